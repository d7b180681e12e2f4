from collections.abc import Sequence

from booking_engine.application.interfaces.booking_repo import BookingParty, BookingRepo
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.state_machine import BookingStatus


class ListBookingsUseCase:
    """Reservas del actor como renter, como owner o ambas."""

    def __init__(self, booking_repo: BookingRepo) -> None:
        self._booking_repo = booking_repo

    async def execute(
        self,
        actor: Actor,
        as_party: BookingParty | None = None,
        status: BookingStatus | None = None,
    ) -> Sequence[Booking]:
        return await self._booking_repo.list_for_party(actor.id, as_party=as_party, status=status)
