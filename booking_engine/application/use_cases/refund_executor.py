import logging
from dataclasses import dataclass
from datetime import datetime

from booking_engine.application.interfaces.payment_gateway import PaymentGateway
from booking_engine.application.interfaces.payment_repo import PaymentRepo
from booking_engine.application.interfaces.uuid_generator import UUIDGenerator
from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.entities.payment import RefundAdjustment
from booking_engine.domain.errors import ConflictError, PaymentIntentNotFoundError, ValidationError


@dataclass
class RefundOutcome:
    adjustment: RefundAdjustment
    remaining_refundable: int

    @property
    def is_full_refund(self) -> bool:
        return self.remaining_refundable == 0


class RefundExecutor:
    """
    Reembolso contra el cobro capturado de una reserva.

    El TransactionRecord original no se toca: cada reembolso agrega un
    RefundAdjustment. Llamar dentro de la transacción del caso de uso; si el
    procesador falla no se escribe nada.
    """

    def __init__(
        self,
        payment_repo: PaymentRepo,
        payment_gateway: PaymentGateway,
        uuid_generator: UUIDGenerator,
    ) -> None:
        self._payment_repo = payment_repo
        self._payment_gateway = payment_gateway
        self._uuid_generator = uuid_generator
        self._logger = logging.getLogger(__name__)

    async def refundable_amount(self, booking: Booking) -> int:
        record = await self._payment_repo.get_transaction_record_for_booking(booking.id)
        if not record:
            return 0
        adjustments = await self._payment_repo.list_refund_adjustments(booking.id)
        return record.total_amount - sum(a.amount for a in adjustments)

    async def refund(
        self,
        booking: Booking,
        amount: int | None,
        reason: str,
        idempotency_key: str,
        at: datetime,
    ) -> RefundOutcome:
        record = await self._payment_repo.get_transaction_record_for_booking(booking.id)
        if not record:
            raise ConflictError(f"Booking {booking.id} has no captured payment to refund")
        intent = await self._payment_repo.get_intent(record.payment_intent_id)
        if not intent:
            raise PaymentIntentNotFoundError(record.payment_intent_id)

        refundable = await self.refundable_amount(booking)
        amount = refundable if amount is None else amount
        if amount <= 0 or amount > refundable:
            raise ValidationError("amount", f"must be between 1 and {refundable}")

        processor_refund = await self._payment_gateway.create_refund(
            processor_intent_id=intent.processor_intent_id,
            amount=amount,
            reason=reason,
            idempotency_key=idempotency_key,
        )
        adjustment = RefundAdjustment(
            id=self._uuid_generator.generate_uuid(),
            transaction_record_id=record.id,
            booking_id=booking.id,
            processor_refund_id=processor_refund.id,
            amount=amount,
            reason=reason,
            tax_year=at.year,
            created_at=at,
        )
        await self._payment_repo.add_refund_adjustment(adjustment)
        self._logger.info(
            "Refund issued",
            extra={
                "booking_id": booking.id,
                "refund_id": processor_refund.id,
                "amount": amount,
                "remaining_refundable": refundable - amount,
            },
        )
        return RefundOutcome(adjustment=adjustment, remaining_refundable=refundable - amount)
