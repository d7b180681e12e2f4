import logging

from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.outbox_repo import OutboxRepo
from booking_engine.application.interfaces.payment_repo import PaymentRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.application.use_cases.refund_executor import RefundExecutor, RefundOutcome
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.errors import BookingNotFoundError, ConflictError, ForbiddenError
from booking_engine.domain.events import AggregateType, NotificationType
from booking_engine.domain.state_machine import BookingStatus

REFUNDABLE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.ACTIVE, BookingStatus.COMPLETED)


class ProcessRefundUseCase:
    """
    Reembolso total o parcial solicitado por el owner o un admin.

    Un reembolso total de una reserva confirmada la cancela; en active o
    completed la reserva conserva su estado.
    """

    def __init__(
        self,
        booking_repo: BookingRepo,
        payment_repo: PaymentRepo,
        refund_executor: RefundExecutor,
        outbox_repo: OutboxRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._booking_repo = booking_repo
        self._payment_repo = payment_repo
        self._refund_executor = refund_executor
        self._outbox_repo = outbox_repo
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        actor: Actor,
        booking_id: str,
        amount: int | None,
        reason: str,
    ) -> tuple[RefundOutcome, Booking]:
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if not booking:
                raise BookingNotFoundError(booking_id)
            if not (actor.is_admin or actor.id == booking.owner_id):
                raise ForbiddenError("Only the owner or an admin can issue a refund")
            if booking.status not in REFUNDABLE_STATUSES:
                raise ConflictError(
                    f"Booking {booking.id} cannot be refunded in status '{booking.status.value}'",
                    code="BOOKING_NOT_REFUNDABLE",
                )

            previous = await self._payment_repo.list_refund_adjustments(booking.id)
            at = self._clock.now()
            outcome = await self._refund_executor.refund(
                booking=booking,
                amount=amount,
                reason=reason,
                idempotency_key=f"booking-{booking.id}-refund-{len(previous) + 1}",
                at=at,
            )

            if outcome.is_full_refund and booking.status == BookingStatus.CONFIRMED:
                booking.transition_to(BookingStatus.CANCELLED, actor.id, at, "full_refund")
                booking.cancellation_reason = reason
                await self._booking_repo.update(booking)

            await self._outbox_repo.enqueue(
                event_type=NotificationType.REFUND_ISSUED.value,
                aggregate_type=AggregateType.BOOKING.value,
                aggregate_id=booking.id,
                payload={
                    "booking_id": booking.id,
                    "renter_id": booking.renter_id,
                    "owner_id": booking.owner_id,
                    "amount": outcome.adjustment.amount,
                    "reason": reason,
                    "booking_status": booking.status.value,
                },
            )

        self._logger.info(
            "Refund processed",
            extra={
                "booking_id": booking.id,
                "amount": outcome.adjustment.amount,
                "full_refund": outcome.is_full_refund,
                "booking_status": booking.status.value,
            },
        )
        return outcome, booking
