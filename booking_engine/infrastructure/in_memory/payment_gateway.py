import json
from uuid import uuid4

import stripe

from booking_engine.application.interfaces.payment_gateway import (
    PaymentGateway,
    ProcessorAccount,
    ProcessorIntent,
    ProcessorRefund,
    ProcessorTransfer,
)
from booking_engine.domain.errors import InvalidWebhookError


class StubPaymentGateway(PaymentGateway):
    """
    Procesador simulado para modo en memoria y tests.

    Respeta las idempotency keys igual que el real: repetir una llamada con la
    misma key devuelve el mismo objeto sin efectos nuevos. Los fallos se
    inyectan con ``fail_next``.
    """

    def __init__(self, webhook_secret: str | None = None) -> None:
        self._webhook_secret = webhook_secret
        self.accounts: dict[str, ProcessorAccount] = {}
        self.intents: dict[str, ProcessorIntent] = {}
        self.refunds: list[ProcessorRefund] = []
        self.transfers: list[ProcessorTransfer] = []
        self.calls: list[tuple[str, dict]] = []
        self._by_key: dict[str, object] = {}
        self._failures: dict[str, Exception] = {}

    # === Control desde tests ===

    def register_account(
        self,
        account_id: str,
        charges_enabled: bool = True,
        payouts_enabled: bool = True,
    ) -> None:
        self.accounts[account_id] = ProcessorAccount(
            id=account_id,
            charges_enabled=charges_enabled,
            payouts_enabled=payouts_enabled,
        )

    def set_intent_status(
        self,
        processor_intent_id: str,
        status: str,
        failure_message: str | None = None,
    ) -> None:
        intent = self.intents[processor_intent_id]
        intent.status = status
        intent.failure_message = failure_message

    def fail_next(self, operation: str, error: Exception) -> None:
        self._failures[operation] = error

    # === PaymentGateway ===

    async def create_customer(self, renter_id: str, idempotency_key: str) -> str:
        self._record("create_customer", renter_id=renter_id)
        if idempotency_key in self._by_key:
            return self._by_key[idempotency_key]
        customer_id = f"cus_{uuid4().hex[:14]}"
        self._by_key[idempotency_key] = customer_id
        return customer_id

    async def retrieve_account(self, account_id: str) -> ProcessorAccount:
        self._record("retrieve_account", account_id=account_id)
        return self.accounts.get(
            account_id,
            ProcessorAccount(id=account_id, charges_enabled=True, payouts_enabled=True),
        )

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
        self._record(
            "create_payment_intent",
            amount=amount,
            currency=currency,
            customer_id=customer_id,
            destination_account_id=destination_account_id,
            application_fee_amount=application_fee_amount,
            metadata=metadata,
        )
        if idempotency_key in self._by_key:
            return self._by_key[idempotency_key]
        intent_id = f"pi_{uuid4().hex[:14]}"
        intent = ProcessorIntent(
            id=intent_id,
            status="requires_payment_method",
            amount=amount,
            currency=currency,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:10]}",
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        self._by_key[idempotency_key] = intent
        return intent

    async def retrieve_payment_intent(self, processor_intent_id: str) -> ProcessorIntent:
        self._record("retrieve_payment_intent", processor_intent_id=processor_intent_id)
        return self.intents[processor_intent_id]

    async def create_refund(
        self,
        processor_intent_id: str,
        amount: int,
        reason: str,
        idempotency_key: str,
    ) -> ProcessorRefund:
        self._record(
            "create_refund",
            processor_intent_id=processor_intent_id,
            amount=amount,
            reason=reason,
        )
        if idempotency_key in self._by_key:
            return self._by_key[idempotency_key]
        refund = ProcessorRefund(id=f"re_{uuid4().hex[:14]}", amount=amount, status="succeeded")
        self.refunds.append(refund)
        self._by_key[idempotency_key] = refund
        return refund

    async def create_transfer(
        self,
        amount: int,
        currency: str,
        destination_account_id: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> ProcessorTransfer:
        self._record(
            "create_transfer",
            amount=amount,
            currency=currency,
            destination_account_id=destination_account_id,
            metadata=metadata,
        )
        if idempotency_key in self._by_key:
            return self._by_key[idempotency_key]
        transfer = ProcessorTransfer(
            id=f"tr_{uuid4().hex[:14]}",
            amount=amount,
            destination=destination_account_id,
        )
        self.transfers.append(transfer)
        self._by_key[idempotency_key] = transfer
        return transfer

    async def construct_event(self, payload: bytes, signature_header: str | None) -> dict:
        if self._webhook_secret:
            if not signature_header:
                raise InvalidWebhookError("Missing Stripe-Signature header")
            try:
                stripe.WebhookSignature.verify_header(
                    payload.decode(), signature_header, self._webhook_secret
                )
            except stripe.SignatureVerificationError as exc:
                raise InvalidWebhookError("Invalid Stripe signature") from exc
        try:
            event = json.loads(payload.decode() or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise InvalidWebhookError("Invalid webhook payload") from exc
        if not isinstance(event, dict):
            raise InvalidWebhookError("Invalid webhook payload")
        return event

    def _record(self, operation: str, **kwargs) -> None:
        self.calls.append((operation, kwargs))
        error = self._failures.pop(operation, None)
        if error:
            raise error
