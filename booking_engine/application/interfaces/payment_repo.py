from collections.abc import Sequence
from datetime import datetime

from booking_engine.domain.entities.payment import (
    PaymentIntent,
    RefundAdjustment,
    TransactionRecord,
)


class PaymentRepo:
    async def add_intent(self, intent: PaymentIntent) -> PaymentIntent:
        raise NotImplementedError

    async def get_intent(self, intent_id: str) -> PaymentIntent | None:
        raise NotImplementedError

    async def find_by_processor_intent(self, processor_intent_id: str) -> PaymentIntent | None:
        raise NotImplementedError

    async def list_intents_for_booking(self, booking_id: str) -> Sequence[PaymentIntent]:
        raise NotImplementedError

    async def mark_succeeded(self, intent_id: str, event_id: str | None, at: datetime) -> bool:
        """Conditional update; False si el intent ya estaba succeeded."""
        raise NotImplementedError

    async def mark_failed(
        self,
        intent_id: str,
        event_id: str | None,
        failure_message: str | None,
        at: datetime,
    ) -> bool:
        """Conditional update; nunca degrada un intent succeeded."""
        raise NotImplementedError

    async def add_transaction_record(self, record: TransactionRecord) -> TransactionRecord:
        raise NotImplementedError

    async def get_transaction_record_for_booking(
        self,
        booking_id: str,
    ) -> TransactionRecord | None:
        raise NotImplementedError

    async def add_refund_adjustment(self, adjustment: RefundAdjustment) -> RefundAdjustment:
        raise NotImplementedError

    async def list_refund_adjustments(self, booking_id: str) -> Sequence[RefundAdjustment]:
        raise NotImplementedError

    async def list_transaction_records_for_payee(
        self,
        payee_id: str,
        tax_year: int,
    ) -> Sequence[TransactionRecord]:
        raise NotImplementedError

    async def list_refund_adjustments_for_payee(
        self,
        payee_id: str,
        tax_year: int,
    ) -> Sequence[RefundAdjustment]:
        """Ajustes del año sobre transacciones cobradas por ``payee_id``."""
        raise NotImplementedError
