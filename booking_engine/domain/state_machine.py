"""
Grafos de transición de reservas y disputas.

Cualquier arista que no esté aquí es ilegal; ``ensure_*`` lanza
``IllegalTransitionError`` antes de tocar el estado.
"""

from enum import Enum

from booking_engine.domain.errors import IllegalTransitionError


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    DISPUTED = "disputed"


class DisputeStatus(str, Enum):
    OPEN = "open"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    ESCALATED = "escalated"


BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
    ),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.ACTIVE, BookingStatus.CANCELLED}),
    BookingStatus.ACTIVE: frozenset({BookingStatus.COMPLETED, BookingStatus.DISPUTED}),
    BookingStatus.COMPLETED: frozenset({BookingStatus.DISPUTED}),
    BookingStatus.DISPUTED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.REJECTED: frozenset(),
}

DISPUTE_TRANSITIONS: dict[DisputeStatus, frozenset[DisputeStatus]] = {
    DisputeStatus.OPEN: frozenset(
        {DisputeStatus.UNDER_REVIEW, DisputeStatus.RESOLVED, DisputeStatus.ESCALATED}
    ),
    DisputeStatus.UNDER_REVIEW: frozenset({DisputeStatus.RESOLVED, DisputeStatus.ESCALATED}),
    DisputeStatus.RESOLVED: frozenset(),
    DisputeStatus.ESCALATED: frozenset(),
}

# Estados que ocupan el calendario del listing.
BLOCKING_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ACTIVE}
)

TERMINAL_BOOKING_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REJECTED}
)

OPEN_DISPUTE_STATUSES: frozenset[DisputeStatus] = frozenset(
    {DisputeStatus.OPEN, DisputeStatus.UNDER_REVIEW}
)


def can_transition(source: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS[source]


def ensure_booking_transition(source: BookingStatus, target: BookingStatus) -> None:
    if not can_transition(source, target):
        raise IllegalTransitionError("booking", source.value, target.value)


def ensure_dispute_transition(source: DisputeStatus, target: DisputeStatus) -> None:
    if target not in DISPUTE_TRANSITIONS[source]:
        raise IllegalTransitionError("dispute", source.value, target.value)
