from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.errors import BookingNotFoundError, ForbiddenError


class GetBookingUseCase:
    def __init__(self, booking_repo: BookingRepo) -> None:
        self._booking_repo = booking_repo

    async def execute(self, actor: Actor, booking_id: str) -> Booking:
        booking = await self._booking_repo.get(booking_id)
        if not booking:
            raise BookingNotFoundError(booking_id)
        if not (actor.is_admin or booking.is_party(actor.id)):
            raise ForbiddenError("Only the renter, the owner or an admin can view a booking")
        return booking
