import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any, TypeVar

import stripe
from pybreaker import CircuitBreaker

from booking_engine.application.interfaces.payment_gateway import (
    PaymentGateway,
    ProcessorAccount,
    ProcessorIntent,
    ProcessorRefund,
    ProcessorTransfer,
)
from booking_engine.config import get_settings
from booking_engine.domain.errors import (
    InvalidWebhookError,
    PaymentFailedError,
    PaymentProcessorUnavailableError,
    ValidationError,
)
from booking_engine.infrastructure.circuit_breaker import (
    CircuitBreakerError,
    payment_processor_breaker,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StripePaymentGateway(PaymentGateway):
    """
    Adaptador de Stripe Connect con destination charges.

    Solo los errores de conexión se reintentan, con backoff exponencial y la
    misma idempotency key; todo pasa por el circuit breaker.
    """

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        max_retries: int | None = None,
        retry_base_delay: float | None = None,
        timeout_seconds: float | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        settings = get_settings()
        stripe.api_key = api_key or settings.stripe_api_key
        # Los reintentos los controla este adaptador, no el SDK.
        stripe.max_network_retries = 0
        stripe.default_http_client = stripe.RequestsClient(
            timeout=timeout_seconds or settings.processor_timeout_seconds
        )
        self._webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self._max_retries = (
            settings.processor_max_retries if max_retries is None else max_retries
        )
        self._retry_base_delay = (
            settings.processor_retry_base_delay if retry_base_delay is None else retry_base_delay
        )
        self._breaker = breaker or payment_processor_breaker

    async def create_customer(self, renter_id: str, idempotency_key: str) -> str:
        customer = await self._call(
            "create_customer",
            stripe.Customer.create,
            metadata={"renter_id": renter_id},
            idempotency_key=idempotency_key,
        )
        return customer.id

    async def retrieve_account(self, account_id: str) -> ProcessorAccount:
        account = await self._call("retrieve_account", stripe.Account.retrieve, account_id)
        return ProcessorAccount(
            id=account.id,
            charges_enabled=bool(account.charges_enabled),
            payouts_enabled=bool(account.payouts_enabled),
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
        intent = await self._call(
            "create_payment_intent",
            stripe.PaymentIntent.create,
            amount=amount,
            currency=currency.lower(),
            customer=customer_id,
            application_fee_amount=application_fee_amount,
            transfer_data={"destination": destination_account_id},
            automatic_payment_methods={"enabled": True},
            metadata=metadata,
            idempotency_key=idempotency_key,
        )
        return self._to_intent(intent)

    async def retrieve_payment_intent(self, processor_intent_id: str) -> ProcessorIntent:
        intent = await self._call(
            "retrieve_payment_intent", stripe.PaymentIntent.retrieve, processor_intent_id
        )
        return self._to_intent(intent)

    async def create_refund(
        self,
        processor_intent_id: str,
        amount: int,
        reason: str,
        idempotency_key: str,
    ) -> ProcessorRefund:
        refund = await self._call(
            "create_refund",
            stripe.Refund.create,
            payment_intent=processor_intent_id,
            amount=amount,
            reverse_transfer=True,
            refund_application_fee=False,
            metadata={"reason": reason},
            idempotency_key=idempotency_key,
        )
        return ProcessorRefund(id=refund.id, amount=refund.amount, status=refund.status)

    async def create_transfer(
        self,
        amount: int,
        currency: str,
        destination_account_id: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> ProcessorTransfer:
        transfer = await self._call(
            "create_transfer",
            stripe.Transfer.create,
            amount=amount,
            currency=currency.lower(),
            destination=destination_account_id,
            metadata=metadata,
            idempotency_key=idempotency_key,
        )
        return ProcessorTransfer(
            id=transfer.id,
            amount=transfer.amount,
            destination=destination_account_id,
        )

    async def construct_event(
        self,
        payload: bytes,
        signature_header: str | None,
    ) -> dict[str, Any]:
        if not self._webhook_secret:
            raise InvalidWebhookError("Webhook secret is not configured")
        if not signature_header:
            raise InvalidWebhookError("Missing Stripe-Signature header")
        try:
            body = payload.decode()
            stripe.WebhookSignature.verify_header(
                body,
                signature_header,
                self._webhook_secret,
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
            event = json.loads(body)
        except stripe.SignatureVerificationError as exc:
            raise InvalidWebhookError("Invalid Stripe signature") from exc
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise InvalidWebhookError("Invalid Stripe webhook payload") from exc
        if not isinstance(event, dict):
            raise InvalidWebhookError("Invalid Stripe webhook payload")
        return event

    async def _call(self, operation: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        attempt = 0
        while True:
            try:
                # El SDK es síncrono; se ejecuta fuera del event loop.
                return await asyncio.to_thread(self._breaker.call, func, *args, **kwargs)
            except CircuitBreakerError as exc:
                logger.error(
                    "Payment processor circuit is open",
                    extra={"operation": operation},
                )
                raise PaymentProcessorUnavailableError() from exc
            except stripe.APIConnectionError as exc:
                if attempt >= self._max_retries:
                    logger.error(
                        "Payment processor unreachable after retries",
                        extra={"operation": operation, "attempts": attempt + 1},
                    )
                    raise PaymentProcessorUnavailableError() from exc
                delay = self._retry_base_delay * (2**attempt)
                attempt += 1
                logger.warning(
                    "Payment processor connection error, retrying",
                    extra={"operation": operation, "attempt": attempt, "retry_delay": delay},
                )
                await asyncio.sleep(delay)
            except stripe.CardError as exc:
                logger.info(
                    "Payment declined",
                    extra={"operation": operation, "decline_code": exc.code},
                )
                raise PaymentFailedError(exc.user_message or str(exc), decline_code=exc.code) from exc
            except stripe.InvalidRequestError as exc:
                raise ValidationError(exc.param or "processor", exc.user_message or str(exc)) from exc
            except stripe.StripeError as exc:
                logger.error(
                    "Payment processor error",
                    exc_info=exc,
                    extra={"operation": operation, "http_status": exc.http_status},
                )
                raise PaymentProcessorUnavailableError() from exc

    @staticmethod
    def _to_intent(intent: Any) -> ProcessorIntent:
        # StripeObject ya no es un dict: solo acceso por atributo.
        error = getattr(intent, "last_payment_error", None)
        metadata = getattr(intent, "metadata", None)
        return ProcessorIntent(
            id=intent.id,
            status=intent.status,
            amount=intent.amount,
            currency=intent.currency,
            client_secret=getattr(intent, "client_secret", None),
            metadata=metadata.to_dict() if metadata is not None else {},
            failure_message=getattr(error, "message", None),
        )
