from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from booking_engine.application.use_cases.get_booking_payments import BookingPayments
from booking_engine.application.use_cases.get_owner_earnings import EarningsSummary
from booking_engine.domain.entities.payment import (
    PaymentIntent,
    PaymentIntentStatus,
    RefundAdjustment,
)


class PaymentIntentResponse(BaseModel):
    intent_id: str
    booking_id: str
    processor_intent_id: str
    client_secret: str | None = None
    status: PaymentIntentStatus
    amount: int
    currency_code: str
    platform_fee: int
    processor_fee: int
    owner_payout: int


class RefundRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: int | None = Field(default=None, gt=0)
    reason: str = Field(default="requested_by_customer", min_length=1, max_length=500)


class RefundResponse(BaseModel):
    refund_id: str
    booking_id: str
    processor_refund_id: str
    amount: int
    reason: str
    tax_year: int
    created_at: datetime
    booking_status: str


class WebhookAck(BaseModel):
    received: bool = True
    duplicate: bool = False
    event_type: str | None = None


# === Historial y ganancias ===


class PaymentIntentSummary(BaseModel):
    """Intent sin client_secret: el historial no sirve para completar un cobro."""

    intent_id: str
    processor_intent_id: str
    status: PaymentIntentStatus
    amount: int
    platform_fee: int
    processor_fee: int
    owner_payout: int
    failure_message: str | None = None
    created_at: datetime | None = None


class TransactionRecordResponse(BaseModel):
    id: str
    base_amount: int
    platform_fee: int
    processing_fee: int
    total_amount: int
    owner_payout: int
    payer_id: str
    payee_id: str
    currency_code: str
    transaction_date: datetime
    tax_year: int


class RefundAdjustmentResponse(BaseModel):
    id: str
    processor_refund_id: str
    amount: int
    reason: str
    adjustment_type: str
    tax_year: int
    created_at: datetime


class BookingPaymentsResponse(BaseModel):
    booking_id: str
    booking_status: str
    currency_code: str
    amount_paid: int
    amount_refunded: int
    intents: list[PaymentIntentSummary]
    transaction_record: TransactionRecordResponse | None = None
    refund_adjustments: list[RefundAdjustmentResponse]


class MonthlyEarningsResponse(BaseModel):
    month: int
    transactions: int
    earnings: int
    refunded: int


class EarningsResponse(BaseModel):
    owner_id: str
    tax_year: int
    total_transactions: int
    total_earnings: int
    total_rental_value: int
    total_fees_paid: int
    total_refunded: int
    net_earnings: int
    monthly: list[MonthlyEarningsResponse]


# === Eventos del procesador ===


class _ProcessorObject(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str


class PaymentIntentObject(_ProcessorObject):
    amount: int | None = None
    currency: str | None = None
    status: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
    last_payment_error: dict[str, Any] | None = None

    @property
    def failure_message(self) -> str | None:
        if not self.last_payment_error:
            return None
        return self.last_payment_error.get("message")


class AccountObject(_ProcessorObject):
    charges_enabled: bool = False
    payouts_enabled: bool = False


class PaymentIntentEventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    object: PaymentIntentObject


class AccountEventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    object: AccountObject


class PaymentIntentSucceededEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: Literal["payment_intent.succeeded"]
    data: PaymentIntentEventData


class PaymentIntentFailedEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: Literal["payment_intent.payment_failed"]
    data: PaymentIntentEventData


class AccountUpdatedEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: Literal["account.updated"]
    data: AccountEventData


class UnhandledEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: str


ProcessorEvent = (
    PaymentIntentSucceededEvent | PaymentIntentFailedEvent | AccountUpdatedEvent | UnhandledEvent
)

EVENT_MODELS: dict[str, type[BaseModel]] = {
    "payment_intent.succeeded": PaymentIntentSucceededEvent,
    "payment_intent.payment_failed": PaymentIntentFailedEvent,
    "account.updated": AccountUpdatedEvent,
}


def parse_processor_event(raw: dict[str, Any]) -> ProcessorEvent:
    """Valida el evento crudo contra el modelo de su tipo."""
    model = EVENT_MODELS.get(str(raw.get("type", "")), UnhandledEvent)
    return model.model_validate(raw)


def to_payment_intent_response(intent: PaymentIntent) -> PaymentIntentResponse:
    return PaymentIntentResponse(
        intent_id=intent.id,
        booking_id=intent.booking_id,
        processor_intent_id=intent.processor_intent_id,
        client_secret=intent.client_secret,
        status=intent.status,
        amount=intent.amount,
        currency_code=intent.currency_code,
        platform_fee=intent.platform_fee,
        processor_fee=intent.processor_fee,
        owner_payout=intent.owner_payout,
    )


def to_refund_response(adjustment: RefundAdjustment, booking_status: str) -> RefundResponse:
    return RefundResponse(
        refund_id=adjustment.id,
        booking_id=adjustment.booking_id,
        processor_refund_id=adjustment.processor_refund_id,
        amount=adjustment.amount,
        reason=adjustment.reason,
        tax_year=adjustment.tax_year,
        created_at=adjustment.created_at,
        booking_status=booking_status,
    )


def to_booking_payments_response(history: BookingPayments) -> BookingPaymentsResponse:
    record = history.transaction_record
    return BookingPaymentsResponse(
        booking_id=history.booking.id,
        booking_status=history.booking.status.value,
        currency_code=history.booking.currency_code,
        amount_paid=history.amount_paid,
        amount_refunded=history.amount_refunded,
        intents=[
            PaymentIntentSummary(
                intent_id=i.id,
                processor_intent_id=i.processor_intent_id,
                status=i.status,
                amount=i.amount,
                platform_fee=i.platform_fee,
                processor_fee=i.processor_fee,
                owner_payout=i.owner_payout,
                failure_message=i.failure_message,
                created_at=i.created_at,
            )
            for i in history.intents
        ],
        transaction_record=(
            TransactionRecordResponse(
                id=record.id,
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
            if record
            else None
        ),
        refund_adjustments=[
            RefundAdjustmentResponse(
                id=a.id,
                processor_refund_id=a.processor_refund_id,
                amount=a.amount,
                reason=a.reason,
                adjustment_type=a.adjustment_type,
                tax_year=a.tax_year,
                created_at=a.created_at,
            )
            for a in history.refund_adjustments
        ],
    )


def to_earnings_response(summary: EarningsSummary) -> EarningsResponse:
    return EarningsResponse(
        owner_id=summary.owner_id,
        tax_year=summary.tax_year,
        total_transactions=summary.total_transactions,
        total_earnings=summary.total_earnings,
        total_rental_value=summary.total_rental_value,
        total_fees_paid=summary.total_fees_paid,
        total_refunded=summary.total_refunded,
        net_earnings=summary.net_earnings,
        monthly=[
            MonthlyEarningsResponse(
                month=m.month,
                transactions=m.transactions,
                earnings=m.earnings,
                refunded=m.refunded,
            )
            for m in summary.monthly
        ],
    )
