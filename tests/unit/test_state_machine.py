import pytest

from booking_engine.domain.errors import IllegalTransitionError
from booking_engine.domain.state_machine import (
    BLOCKING_STATUSES,
    BookingStatus,
    DisputeStatus,
    can_transition,
    ensure_booking_transition,
    ensure_dispute_transition,
)

S = BookingStatus

LEGAL = {
    (S.PENDING, S.CONFIRMED),
    (S.PENDING, S.REJECTED),
    (S.PENDING, S.CANCELLED),
    (S.CONFIRMED, S.ACTIVE),
    (S.CONFIRMED, S.CANCELLED),
    (S.ACTIVE, S.COMPLETED),
    (S.ACTIVE, S.DISPUTED),
    (S.COMPLETED, S.DISPUTED),
    (S.DISPUTED, S.COMPLETED),
    (S.DISPUTED, S.CANCELLED),
}


@pytest.mark.parametrize("source", list(S))
@pytest.mark.parametrize("target", list(S))
def test_booking_graph(source, target):
    assert can_transition(source, target) == ((source, target) in LEGAL)


def test_illegal_booking_edge_message():
    with pytest.raises(IllegalTransitionError) as exc_info:
        ensure_booking_transition(S.COMPLETED, S.ACTIVE)

    assert exc_info.value.code == "ILLEGAL_TRANSITION"
    assert "'completed' to 'active'" in exc_info.value.message


def test_blocking_statuses():
    assert BLOCKING_STATUSES == {S.PENDING, S.CONFIRMED, S.ACTIVE}


def test_dispute_graph():
    ensure_dispute_transition(DisputeStatus.OPEN, DisputeStatus.UNDER_REVIEW)
    ensure_dispute_transition(DisputeStatus.UNDER_REVIEW, DisputeStatus.RESOLVED)
    ensure_dispute_transition(DisputeStatus.OPEN, DisputeStatus.ESCALATED)
    ensure_dispute_transition(DisputeStatus.UNDER_REVIEW, DisputeStatus.ESCALATED)


@pytest.mark.parametrize(
    "source,target",
    [
        (DisputeStatus.RESOLVED, DisputeStatus.OPEN),
        (DisputeStatus.RESOLVED, DisputeStatus.ESCALATED),
        (DisputeStatus.ESCALATED, DisputeStatus.RESOLVED),
        (DisputeStatus.UNDER_REVIEW, DisputeStatus.OPEN),
    ],
)
def test_illegal_dispute_edges(source, target):
    with pytest.raises(IllegalTransitionError):
        ensure_dispute_transition(source, target)
