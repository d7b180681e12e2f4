"""Entidades de pago: PaymentIntent, TransactionRecord y RefundAdjustment."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PaymentIntentStatus(str, Enum):
    """Estados del intent, espejo de los del procesador."""

    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    PAYMENT_FAILED = "payment_failed"
    CANCELED = "canceled"


@dataclass
class PaymentIntent:
    """
    Intento de cobro de una reserva.

    El monto se cobra completo al renter; la plataforma retiene su comisión más
    el fee del procesador y el resto se transfiere a la cuenta del owner.
    """

    id: str
    booking_id: str
    processor_intent_id: str
    amount: int
    currency_code: str
    platform_fee: int
    processor_fee: int
    owner_payout: int
    destination_account_id: str
    status: PaymentIntentStatus = PaymentIntentStatus.REQUIRES_PAYMENT_METHOD
    client_secret: str | None = None
    last_event_id: str | None = None
    failure_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def application_fee(self) -> int:
        return self.platform_fee + self.processor_fee

    @property
    def is_succeeded(self) -> bool:
        return self.status == PaymentIntentStatus.SUCCEEDED

    @property
    def is_open(self) -> bool:
        """Todavía puede cobrarse."""
        return self.status in (
            PaymentIntentStatus.REQUIRES_PAYMENT_METHOD,
            PaymentIntentStatus.PROCESSING,
        )


@dataclass(frozen=True)
class TransactionRecord:
    """Registro inmutable de un cobro exitoso, base del reporte fiscal."""

    id: str
    booking_id: str
    payment_intent_id: str
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


@dataclass(frozen=True)
class RefundAdjustment:
    """
    Ajuste por reembolso.

    Nunca modifica el TransactionRecord original; se suma como fila aparte.
    """

    id: str
    transaction_record_id: str
    booking_id: str
    processor_refund_id: str
    amount: int
    reason: str
    tax_year: int
    created_at: datetime
    adjustment_type: str = "refund"
    affects_tax_reporting: bool = True
