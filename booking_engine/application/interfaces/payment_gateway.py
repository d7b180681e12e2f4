from dataclasses import dataclass, field
from typing import Any


@dataclass
class ProcessorIntent:
    id: str
    status: str
    amount: int
    currency: str
    client_secret: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    failure_message: str | None = None


@dataclass
class ProcessorAccount:
    id: str
    charges_enabled: bool
    payouts_enabled: bool


@dataclass
class ProcessorRefund:
    id: str
    amount: int
    status: str


@dataclass
class ProcessorTransfer:
    id: str
    amount: int
    destination: str


class PaymentGateway:
    """
    Puerto hacia el procesador de pagos.

    Los adaptadores traducen fallos de red a ``PaymentProcessorUnavailableError``
    y rechazos de tarjeta a ``PaymentFailedError``.
    """

    async def create_customer(self, renter_id: str, idempotency_key: str) -> str:
        raise NotImplementedError

    async def retrieve_account(self, account_id: str) -> ProcessorAccount:
        raise NotImplementedError

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        customer_id: str,
        destination_account_id: str,
        application_fee_amount: int,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> ProcessorIntent:
        raise NotImplementedError

    async def retrieve_payment_intent(self, processor_intent_id: str) -> ProcessorIntent:
        raise NotImplementedError

    async def create_refund(
        self,
        processor_intent_id: str,
        amount: int,
        reason: str,
        idempotency_key: str,
    ) -> ProcessorRefund:
        raise NotImplementedError

    async def create_transfer(
        self,
        amount: int,
        currency: str,
        destination_account_id: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> ProcessorTransfer:
        raise NotImplementedError

    async def construct_event(
        self,
        payload: bytes,
        signature_header: str | None,
    ) -> dict[str, Any]:
        """Verifica la firma y devuelve el evento crudo."""
        raise NotImplementedError
