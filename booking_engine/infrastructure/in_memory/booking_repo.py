import copy
from collections.abc import Iterable, Sequence

from booking_engine.application.interfaces.booking_repo import BookingParty, BookingRepo
from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.errors import BookingNotFoundError, OptimisticLockError
from booking_engine.domain.state_machine import BookingStatus
from booking_engine.domain.value_objects.date_range import DateRange
from booking_engine.infrastructure.in_memory.store import InMemoryStore


class InMemoryBookingRepo(BookingRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add(self, booking: Booking) -> Booking:
        booking.unsaved_transitions.clear()
        self._store.bookings[booking.id] = copy.deepcopy(booking)
        return booking

    async def get(self, booking_id: str) -> Booking | None:
        booking = self._store.bookings.get(booking_id)
        return copy.deepcopy(booking) if booking else None

    async def update(self, booking: Booking) -> Booking:
        stored = self._store.bookings.get(booking.id)
        if not stored:
            raise BookingNotFoundError(booking.id)
        if stored.lock_version != booking.lock_version:
            raise OptimisticLockError(booking.id, booking.lock_version)
        booking.lock_version += 1
        booking.unsaved_transitions.clear()
        self._store.bookings[booking.id] = copy.deepcopy(booking)
        return booking

    async def find_overlapping(
        self,
        listing_id: str,
        date_range: DateRange,
        statuses: Iterable[BookingStatus],
        exclude_booking_id: str | None = None,
    ) -> Sequence[Booking]:
        wanted = set(statuses)
        return [
            copy.deepcopy(b)
            for b in self._store.bookings.values()
            if b.listing_id == listing_id
            and b.id != exclude_booking_id
            and b.status in wanted
            and b.date_range.overlaps_with(date_range)
        ]

    async def list_by_listing(self, listing_id: str) -> Sequence[Booking]:
        bookings = [b for b in self._store.bookings.values() if b.listing_id == listing_id]
        return [copy.deepcopy(b) for b in sorted(bookings, key=lambda b: b.start_date)]

    async def list_for_party(
        self,
        party_id: str,
        as_party: BookingParty | None = None,
        status: BookingStatus | None = None,
    ) -> Sequence[Booking]:
        bookings = [
            b
            for b in self._store.bookings.values()
            if (as_party != "owner" and b.renter_id == party_id)
            or (as_party != "renter" and b.owner_id == party_id)
        ]
        if status:
            bookings = [b for b in bookings if b.status == status]
        bookings.sort(key=lambda b: (b.created_at is not None, b.created_at, b.id), reverse=True)
        return [copy.deepcopy(b) for b in bookings]
