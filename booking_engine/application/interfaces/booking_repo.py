from collections.abc import Iterable, Sequence
from typing import Literal

from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.state_machine import BookingStatus
from booking_engine.domain.value_objects.date_range import DateRange

BookingParty = Literal["renter", "owner"]


class BookingRepo:
    async def add(self, booking: Booking) -> Booking:
        """Inserta la reserva y sus transiciones pendientes de guardar."""
        raise NotImplementedError

    async def get(self, booking_id: str) -> Booking | None:
        """Carga la reserva con su audit trail completo."""
        raise NotImplementedError

    async def update(self, booking: Booking) -> Booking:
        """
        Guarda el estado con bloqueo optimista sobre ``lock_version``.

        Lanza ``OptimisticLockError`` si otra escritura ganó; en éxito la versión
        del objeto se incrementa.
        """
        raise NotImplementedError

    async def find_overlapping(
        self,
        listing_id: str,
        date_range: DateRange,
        statuses: Iterable[BookingStatus],
        exclude_booking_id: str | None = None,
    ) -> Sequence[Booking]:
        raise NotImplementedError

    async def list_by_listing(self, listing_id: str) -> Sequence[Booking]:
        raise NotImplementedError

    async def list_for_party(
        self,
        party_id: str,
        as_party: BookingParty | None = None,
        status: BookingStatus | None = None,
    ) -> Sequence[Booking]:
        """Reservas donde el actor es renter u owner, las más recientes primero."""
        raise NotImplementedError
