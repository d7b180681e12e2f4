import logging
from datetime import datetime

from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.outbox_repo import OutboxRepo
from booking_engine.application.interfaces.payment_repo import PaymentRepo
from booking_engine.application.interfaces.uuid_generator import UUIDGenerator
from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.entities.payment import (
    PaymentIntent,
    PaymentIntentStatus,
    TransactionRecord,
)
from booking_engine.domain.errors import BookingNotFoundError
from booking_engine.domain.events import AggregateType, NotificationType
from booking_engine.domain.state_machine import BookingStatus

_PROCESSOR_STATUSES: dict[str, PaymentIntentStatus] = {
    "succeeded": PaymentIntentStatus.SUCCEEDED,
    "processing": PaymentIntentStatus.PROCESSING,
    "requires_capture": PaymentIntentStatus.PROCESSING,
    "canceled": PaymentIntentStatus.CANCELED,
}


def map_processor_status(status: str) -> PaymentIntentStatus:
    return _PROCESSOR_STATUSES.get(status, PaymentIntentStatus.REQUIRES_PAYMENT_METHOD)


class PaymentSettlement:
    """
    Aplica el resultado de un cobro sobre intent, reserva y libro de transacciones.

    Compartido por el webhook y la confirmación síncrona; cada paso es una
    actualización condicional, así que aplicar dos veces el mismo resultado no
    duplica efectos. Debe ejecutarse dentro de una transacción.
    """

    def __init__(
        self,
        payment_repo: PaymentRepo,
        booking_repo: BookingRepo,
        outbox_repo: OutboxRepo,
        uuid_generator: UUIDGenerator,
    ) -> None:
        self._payment_repo = payment_repo
        self._booking_repo = booking_repo
        self._outbox_repo = outbox_repo
        self._uuid_generator = uuid_generator
        self._logger = logging.getLogger(__name__)

    async def settle_success(
        self,
        intent: PaymentIntent,
        event_id: str | None,
        at: datetime,
    ) -> Booking:
        booking = await self._booking_repo.get(intent.booking_id)
        if not booking:
            raise BookingNotFoundError(intent.booking_id)

        changed = await self._payment_repo.mark_succeeded(intent.id, event_id, at)
        if not changed:
            self._logger.info(
                "Payment already settled",
                extra={"intent_id": intent.id, "event_id": event_id},
            )
            return booking

        await self._payment_repo.add_transaction_record(
            TransactionRecord(
                id=self._uuid_generator.generate_uuid(),
                booking_id=booking.id,
                payment_intent_id=intent.id,
                base_amount=booking.pricing.subtotal,
                platform_fee=intent.platform_fee,
                processing_fee=intent.processor_fee,
                total_amount=intent.amount,
                owner_payout=intent.owner_payout,
                payer_id=booking.renter_id,
                payee_id=booking.owner_id,
                currency_code=intent.currency_code,
                transaction_date=at,
                tax_year=at.year,
            )
        )
        await self._enqueue(NotificationType.PAYMENT_SUCCEEDED, booking, intent)

        if booking.status == BookingStatus.PENDING:
            booking.confirm_by_payment(at)
            await self._booking_repo.update(booking)
            await self._enqueue(NotificationType.BOOKING_CONFIRMED, booking, intent)
        elif booking.status in (BookingStatus.CANCELLED, BookingStatus.REJECTED):
            # El cobro llegó tarde: no se reabre la reserva, se marca para conciliar.
            booking.flag_for_reconciliation(
                f"payment {intent.id} succeeded while booking was {booking.status.value}",
                at,
            )
            await self._booking_repo.update(booking)
            await self._enqueue(NotificationType.PAYMENT_NEEDS_RECONCILIATION, booking, intent)
            self._logger.warning(
                "Payment succeeded on a closed booking",
                extra={
                    "booking_id": booking.id,
                    "intent_id": intent.id,
                    "booking_status": booking.status.value,
                },
            )

        self._logger.info(
            "Payment succeeded",
            extra={
                "booking_id": booking.id,
                "intent_id": intent.id,
                "event_id": event_id,
                "amount": intent.amount,
            },
        )
        return booking

    async def settle_failure(
        self,
        intent: PaymentIntent,
        event_id: str | None,
        failure_message: str | None,
        at: datetime,
    ) -> bool:
        changed = await self._payment_repo.mark_failed(intent.id, event_id, failure_message, at)
        if not changed:
            return False
        booking = await self._booking_repo.get(intent.booking_id)
        if booking:
            await self._enqueue(NotificationType.PAYMENT_FAILED, booking, intent)
        self._logger.warning(
            "Payment failed",
            extra={
                "booking_id": intent.booking_id,
                "intent_id": intent.id,
                "event_id": event_id,
                "failure_message": failure_message,
            },
        )
        return True

    async def _enqueue(
        self,
        notification: NotificationType,
        booking: Booking,
        intent: PaymentIntent,
    ) -> None:
        await self._outbox_repo.enqueue(
            event_type=notification.value,
            aggregate_type=AggregateType.PAYMENT.value,
            aggregate_id=intent.id,
            payload={
                "booking_id": booking.id,
                "renter_id": booking.renter_id,
                "owner_id": booking.owner_id,
                "intent_id": intent.id,
                "amount": intent.amount,
                "currency": intent.currency_code,
                "booking_status": booking.status.value,
            },
        )
