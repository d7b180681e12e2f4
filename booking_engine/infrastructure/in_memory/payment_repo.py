import copy
from collections.abc import Sequence
from datetime import datetime

from booking_engine.application.interfaces.payment_repo import PaymentRepo
from booking_engine.domain.entities.payment import (
    PaymentIntent,
    PaymentIntentStatus,
    RefundAdjustment,
    TransactionRecord,
)
from booking_engine.domain.errors import PaymentIntentNotFoundError
from booking_engine.infrastructure.in_memory.store import InMemoryStore


class InMemoryPaymentRepo(PaymentRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add_intent(self, intent: PaymentIntent) -> PaymentIntent:
        self._store.intents[intent.id] = copy.deepcopy(intent)
        return intent

    async def get_intent(self, intent_id: str) -> PaymentIntent | None:
        intent = self._store.intents.get(intent_id)
        return copy.deepcopy(intent) if intent else None

    async def find_by_processor_intent(self, processor_intent_id: str) -> PaymentIntent | None:
        for intent in self._store.intents.values():
            if intent.processor_intent_id == processor_intent_id:
                return copy.deepcopy(intent)
        return None

    async def list_intents_for_booking(self, booking_id: str) -> Sequence[PaymentIntent]:
        intents = [i for i in self._store.intents.values() if i.booking_id == booking_id]
        return [copy.deepcopy(i) for i in intents]

    async def mark_succeeded(self, intent_id: str, event_id: str | None, at: datetime) -> bool:
        intent = self._stored(intent_id)
        if intent.status == PaymentIntentStatus.SUCCEEDED:
            return False
        intent.status = PaymentIntentStatus.SUCCEEDED
        intent.last_event_id = event_id or intent.last_event_id
        intent.failure_message = None
        intent.updated_at = at
        return True

    async def mark_failed(
        self,
        intent_id: str,
        event_id: str | None,
        failure_message: str | None,
        at: datetime,
    ) -> bool:
        intent = self._stored(intent_id)
        if intent.status in (PaymentIntentStatus.SUCCEEDED, PaymentIntentStatus.PAYMENT_FAILED):
            return False
        intent.status = PaymentIntentStatus.PAYMENT_FAILED
        intent.last_event_id = event_id or intent.last_event_id
        intent.failure_message = failure_message
        intent.updated_at = at
        return True

    async def add_transaction_record(self, record: TransactionRecord) -> TransactionRecord:
        self._store.transaction_records[record.id] = record
        return record

    async def get_transaction_record_for_booking(
        self,
        booking_id: str,
    ) -> TransactionRecord | None:
        for record in self._store.transaction_records.values():
            if record.booking_id == booking_id:
                return record
        return None

    async def add_refund_adjustment(self, adjustment: RefundAdjustment) -> RefundAdjustment:
        self._store.refund_adjustments.append(adjustment)
        return adjustment

    async def list_refund_adjustments(self, booking_id: str) -> Sequence[RefundAdjustment]:
        return [a for a in self._store.refund_adjustments if a.booking_id == booking_id]

    async def list_transaction_records_for_payee(
        self,
        payee_id: str,
        tax_year: int,
    ) -> Sequence[TransactionRecord]:
        records = [
            r
            for r in self._store.transaction_records.values()
            if r.payee_id == payee_id and r.tax_year == tax_year
        ]
        return sorted(records, key=lambda r: r.transaction_date)

    async def list_refund_adjustments_for_payee(
        self,
        payee_id: str,
        tax_year: int,
    ) -> Sequence[RefundAdjustment]:
        record_ids = {
            r.id for r in self._store.transaction_records.values() if r.payee_id == payee_id
        }
        return [
            a
            for a in self._store.refund_adjustments
            if a.transaction_record_id in record_ids and a.tax_year == tax_year
        ]

    def _stored(self, intent_id: str) -> PaymentIntent:
        intent = self._store.intents.get(intent_id)
        if not intent:
            raise PaymentIntentNotFoundError(intent_id)
        return intent
