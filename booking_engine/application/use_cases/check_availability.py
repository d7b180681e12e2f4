from dataclasses import dataclass

from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.listing_repo import ListingRepo
from booking_engine.domain.errors import ListingNotFoundError
from booking_engine.domain.state_machine import BLOCKING_STATUSES
from booking_engine.domain.value_objects.date_range import DateRange


@dataclass
class AvailabilityResult:
    listing_id: str
    date_range: DateRange
    conflicting_booking_ids: list[str]

    @property
    def available(self) -> bool:
        return not self.conflicting_booking_ids


class AvailabilityChecker:
    """
    Detecta reservas que bloquean un rango del calendario.

    Solo cuentan las reservas pending, confirmed y active. Para que el resultado
    siga siendo válido al insertar, el llamador debe ejecutarlo dentro de la
    misma transacción y con el listing bloqueado.
    """

    def __init__(self, booking_repo: BookingRepo) -> None:
        self._booking_repo = booking_repo

    async def check(
        self,
        listing_id: str,
        date_range: DateRange,
        exclude_booking_id: str | None = None,
    ) -> AvailabilityResult:
        bookings = await self._booking_repo.find_overlapping(
            listing_id=listing_id,
            date_range=date_range,
            statuses=BLOCKING_STATUSES,
            exclude_booking_id=exclude_booking_id,
        )
        conflicts = [
            b.id
            for b in bookings
            if b.status in BLOCKING_STATUSES and b.date_range.overlaps_with(date_range)
        ]
        return AvailabilityResult(
            listing_id=listing_id,
            date_range=date_range,
            conflicting_booking_ids=sorted(conflicts),
        )


class CheckAvailabilityUseCase:
    def __init__(self, listing_repo: ListingRepo, booking_repo: BookingRepo) -> None:
        self._listing_repo = listing_repo
        self._checker = AvailabilityChecker(booking_repo)

    async def execute(
        self,
        listing_id: str,
        date_range: DateRange,
        exclude_booking_id: str | None = None,
    ) -> AvailabilityResult:
        listing = await self._listing_repo.get(listing_id)
        if not listing:
            raise ListingNotFoundError(listing_id)
        return await self._checker.check(listing_id, date_range, exclude_booking_id)
