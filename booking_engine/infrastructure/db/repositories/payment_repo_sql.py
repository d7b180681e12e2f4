from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.application.interfaces.payment_repo import PaymentRepo
from booking_engine.domain.entities.payment import (
    PaymentIntent,
    PaymentIntentStatus,
    RefundAdjustment,
    TransactionRecord,
)
from booking_engine.domain.errors import PaymentIntentNotFoundError
from booking_engine.infrastructure.db.tables import (
    payment_intents,
    refund_adjustments,
    transaction_records,
)


def _to_intent(row) -> PaymentIntent:
    return PaymentIntent(
        id=row["id"],
        booking_id=row["booking_id"],
        processor_intent_id=row["processor_intent_id"],
        amount=row["amount"],
        currency_code=row["currency_code"],
        platform_fee=row["platform_fee"],
        processor_fee=row["processor_fee"],
        owner_payout=row["owner_payout"],
        destination_account_id=row["destination_account_id"],
        status=PaymentIntentStatus(row["status"]),
        client_secret=row["client_secret"],
        last_event_id=row["last_event_id"],
        failure_message=row["failure_message"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _to_adjustment(row) -> RefundAdjustment:
    return RefundAdjustment(
        id=row["id"],
        transaction_record_id=row["transaction_record_id"],
        booking_id=row["booking_id"],
        processor_refund_id=row["processor_refund_id"],
        amount=row["amount"],
        reason=row["reason"],
        tax_year=row["tax_year"],
        created_at=row["created_at"],
        adjustment_type=row["adjustment_type"],
        affects_tax_reporting=bool(row["affects_tax_reporting"]),
    )


class PaymentRepoSQL(PaymentRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_intent(self, intent: PaymentIntent) -> PaymentIntent:
        await self._session.execute(
            insert(payment_intents).values(
                id=intent.id,
                booking_id=intent.booking_id,
                processor_intent_id=intent.processor_intent_id,
                amount=intent.amount,
                currency_code=intent.currency_code,
                platform_fee=intent.platform_fee,
                processor_fee=intent.processor_fee,
                owner_payout=intent.owner_payout,
                destination_account_id=intent.destination_account_id,
                status=intent.status.value,
                client_secret=intent.client_secret,
                last_event_id=intent.last_event_id,
                failure_message=intent.failure_message,
                created_at=intent.created_at,
                updated_at=intent.updated_at,
            )
        )
        return intent

    async def get_intent(self, intent_id: str) -> PaymentIntent | None:
        stmt = select(payment_intents).where(payment_intents.c.id == intent_id)
        row = (await self._session.execute(stmt)).mappings().first()
        return _to_intent(row) if row else None

    async def find_by_processor_intent(self, processor_intent_id: str) -> PaymentIntent | None:
        stmt = select(payment_intents).where(
            payment_intents.c.processor_intent_id == processor_intent_id
        )
        row = (await self._session.execute(stmt)).mappings().first()
        return _to_intent(row) if row else None

    async def list_intents_for_booking(self, booking_id: str) -> Sequence[PaymentIntent]:
        stmt = (
            select(payment_intents)
            .where(payment_intents.c.booking_id == booking_id)
            .order_by(payment_intents.c.created_at)
        )
        rows = (await self._session.execute(stmt)).mappings().all()
        return [_to_intent(row) for row in rows]

    async def mark_succeeded(self, intent_id: str, event_id: str | None, at: datetime) -> bool:
        values = {
            "status": PaymentIntentStatus.SUCCEEDED.value,
            "failure_message": None,
            "updated_at": at,
        }
        if event_id:
            values["last_event_id"] = event_id
        stmt = (
            update(payment_intents)
            .where(
                payment_intents.c.id == intent_id,
                payment_intents.c.status != PaymentIntentStatus.SUCCEEDED.value,
            )
            .values(values)
        )
        return await self._conditional(stmt, intent_id)

    async def mark_failed(
        self,
        intent_id: str,
        event_id: str | None,
        failure_message: str | None,
        at: datetime,
    ) -> bool:
        values = {
            "status": PaymentIntentStatus.PAYMENT_FAILED.value,
            "failure_message": failure_message,
            "updated_at": at,
        }
        if event_id:
            values["last_event_id"] = event_id
        stmt = (
            update(payment_intents)
            .where(
                payment_intents.c.id == intent_id,
                payment_intents.c.status.not_in(
                    [
                        PaymentIntentStatus.SUCCEEDED.value,
                        PaymentIntentStatus.PAYMENT_FAILED.value,
                    ]
                ),
            )
            .values(values)
        )
        return await self._conditional(stmt, intent_id)

    async def add_transaction_record(self, record: TransactionRecord) -> TransactionRecord:
        await self._session.execute(
            insert(transaction_records).values(
                id=record.id,
                booking_id=record.booking_id,
                payment_intent_id=record.payment_intent_id,
                base_amount=record.base_amount,
                platform_fee=record.platform_fee,
                processing_fee=record.processing_fee,
                total_amount=record.total_amount,
                owner_payout=record.owner_payout,
                payer_id=record.payer_id,
                payee_id=record.payee_id,
                currency_code=record.currency_code,
                transaction_date=record.transaction_date,
                tax_year=record.tax_year,
            )
        )
        return record

    async def get_transaction_record_for_booking(
        self,
        booking_id: str,
    ) -> TransactionRecord | None:
        stmt = select(transaction_records).where(transaction_records.c.booking_id == booking_id)
        row = (await self._session.execute(stmt)).mappings().first()
        if not row:
            return None
        return TransactionRecord(**dict(row))

    async def add_refund_adjustment(self, adjustment: RefundAdjustment) -> RefundAdjustment:
        await self._session.execute(
            insert(refund_adjustments).values(
                id=adjustment.id,
                transaction_record_id=adjustment.transaction_record_id,
                booking_id=adjustment.booking_id,
                processor_refund_id=adjustment.processor_refund_id,
                amount=adjustment.amount,
                reason=adjustment.reason,
                adjustment_type=adjustment.adjustment_type,
                affects_tax_reporting=adjustment.affects_tax_reporting,
                tax_year=adjustment.tax_year,
                created_at=adjustment.created_at,
            )
        )
        return adjustment

    async def list_refund_adjustments(self, booking_id: str) -> Sequence[RefundAdjustment]:
        stmt = (
            select(refund_adjustments)
            .where(refund_adjustments.c.booking_id == booking_id)
            .order_by(refund_adjustments.c.created_at)
        )
        rows = (await self._session.execute(stmt)).mappings().all()
        return [_to_adjustment(row) for row in rows]

    async def list_transaction_records_for_payee(
        self,
        payee_id: str,
        tax_year: int,
    ) -> Sequence[TransactionRecord]:
        stmt = (
            select(transaction_records)
            .where(
                transaction_records.c.payee_id == payee_id,
                transaction_records.c.tax_year == tax_year,
            )
            .order_by(transaction_records.c.transaction_date)
        )
        rows = (await self._session.execute(stmt)).mappings().all()
        return [TransactionRecord(**dict(row)) for row in rows]

    async def list_refund_adjustments_for_payee(
        self,
        payee_id: str,
        tax_year: int,
    ) -> Sequence[RefundAdjustment]:
        stmt = (
            select(refund_adjustments)
            .join(
                transaction_records,
                transaction_records.c.id == refund_adjustments.c.transaction_record_id,
            )
            .where(
                transaction_records.c.payee_id == payee_id,
                refund_adjustments.c.tax_year == tax_year,
            )
            .order_by(refund_adjustments.c.created_at)
        )
        rows = (await self._session.execute(stmt)).mappings().all()
        return [_to_adjustment(row) for row in rows]

    async def _conditional(self, stmt, intent_id: str) -> bool:
        result = await self._session.execute(stmt)
        if result.rowcount:
            return True
        if await self.get_intent(intent_id) is None:
            raise PaymentIntentNotFoundError(intent_id)
        return False
