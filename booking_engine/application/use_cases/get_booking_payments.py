from dataclasses import dataclass, field

from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.payment_repo import PaymentRepo
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.entities.payment import (
    PaymentIntent,
    RefundAdjustment,
    TransactionRecord,
)
from booking_engine.domain.errors import BookingNotFoundError, ForbiddenError


@dataclass
class BookingPayments:
    """Historial de cobro de una reserva: intents, registro fiscal y reembolsos."""

    booking: Booking
    intents: list[PaymentIntent] = field(default_factory=list)
    transaction_record: TransactionRecord | None = None
    refund_adjustments: list[RefundAdjustment] = field(default_factory=list)

    @property
    def amount_paid(self) -> int:
        return self.transaction_record.total_amount if self.transaction_record else 0

    @property
    def amount_refunded(self) -> int:
        return sum(a.amount for a in self.refund_adjustments)


class GetBookingPaymentsUseCase:
    def __init__(self, booking_repo: BookingRepo, payment_repo: PaymentRepo) -> None:
        self._booking_repo = booking_repo
        self._payment_repo = payment_repo

    async def execute(self, actor: Actor, booking_id: str) -> BookingPayments:
        booking = await self._booking_repo.get(booking_id)
        if not booking:
            raise BookingNotFoundError(booking_id)
        if not (actor.is_admin or booking.is_party(actor.id)):
            raise ForbiddenError("Only the renter, the owner or an admin can view payments")
        return BookingPayments(
            booking=booking,
            intents=list(await self._payment_repo.list_intents_for_booking(booking.id)),
            transaction_record=await self._payment_repo.get_transaction_record_for_booking(
                booking.id
            ),
            refund_adjustments=list(await self._payment_repo.list_refund_adjustments(booking.id)),
        )
