import logging
from datetime import datetime

from pydantic import ValidationError as PydanticValidationError

from booking_engine.api.schemas.payments import (
    AccountUpdatedEvent,
    PaymentIntentFailedEvent,
    PaymentIntentSucceededEvent,
    ProcessorEvent,
    WebhookAck,
    parse_processor_event,
)
from booking_engine.application.interfaces.account_repo import AccountRepo
from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.payment_gateway import PaymentGateway
from booking_engine.application.interfaces.payment_repo import PaymentRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.application.interfaces.webhook_event_repo import (
    ProcessedWebhookEvent,
    WebhookEventRepo,
)
from booking_engine.application.use_cases.payment_settlement import PaymentSettlement
from booking_engine.domain.entities.payment import PaymentIntent
from booking_engine.domain.errors import InvalidWebhookError, PaymentIntentNotFoundError


class HandlePaymentWebhookUseCase:
    """
    Procesa eventos firmados del procesador.

    Idempotente por event id: el registro del evento y sus efectos se confirman
    en la misma transacción, así que una entrega repetida no hace nada y una
    entrega fallida puede reintentarse completa.
    """

    def __init__(
        self,
        payment_repo: PaymentRepo,
        account_repo: AccountRepo,
        webhook_event_repo: WebhookEventRepo,
        payment_gateway: PaymentGateway,
        settlement: PaymentSettlement,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._payment_repo = payment_repo
        self._account_repo = account_repo
        self._webhook_event_repo = webhook_event_repo
        self._payment_gateway = payment_gateway
        self._settlement = settlement
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(self, raw_body: bytes, signature: str | None) -> WebhookAck:
        if not raw_body:
            raise InvalidWebhookError("Empty webhook body")
        raw_event = await self._payment_gateway.construct_event(raw_body, signature)
        try:
            event = parse_processor_event(raw_event)
        except PydanticValidationError as exc:
            raise InvalidWebhookError(f"Invalid event payload: {exc.error_count()} errors") from exc

        async with self._transaction_manager.start():
            first_delivery = await self._webhook_event_repo.record(
                ProcessedWebhookEvent(
                    event_id=event.id,
                    event_type=event.type,
                    received_at=self._clock.now(),
                )
            )
            if not first_delivery:
                self._logger.info(
                    "Duplicate webhook ignored",
                    extra={"event_id": event.id, "event_type": event.type},
                )
                return WebhookAck(duplicate=True, event_type=event.type)

            await self._apply(event)

        return WebhookAck(event_type=event.type)

    async def _apply(self, event: ProcessorEvent) -> None:
        at = self._clock.now()
        if isinstance(event, PaymentIntentSucceededEvent):
            intent = await self._intent_for(event.data.object.id)
            await self._settlement.settle_success(intent, event_id=event.id, at=at)
        elif isinstance(event, PaymentIntentFailedEvent):
            intent = await self._intent_for(event.data.object.id)
            await self._settlement.settle_failure(
                intent,
                event_id=event.id,
                failure_message=event.data.object.failure_message,
                at=at,
            )
        elif isinstance(event, AccountUpdatedEvent):
            await self._refresh_account(event, at)
        else:
            self._logger.info(
                "Unhandled webhook event type",
                extra={"event_id": event.id, "event_type": event.type},
            )

    async def _intent_for(self, processor_intent_id: str) -> PaymentIntent:
        intent = await self._payment_repo.find_by_processor_intent(processor_intent_id)
        if not intent:
            # 404 hace que el procesador reintente; el evento no queda registrado.
            raise PaymentIntentNotFoundError(processor_intent_id)
        return intent

    async def _refresh_account(self, event: AccountUpdatedEvent, at: datetime) -> None:
        obj = event.data.object
        account = await self._account_repo.find_payout_account_by_processor_id(obj.id)
        if not account:
            self._logger.info(
                "Account update for unknown payout account",
                extra={"event_id": event.id, "processor_account_id": obj.id},
            )
            return
        account.charges_enabled = obj.charges_enabled
        account.payouts_enabled = obj.payouts_enabled
        account.updated_at = at
        await self._account_repo.save_payout_account(account)
        self._logger.info(
            "Payout account updated",
            extra={
                "owner_id": account.owner_id,
                "processor_account_id": account.processor_account_id,
                "can_accept_payments": account.can_accept_payments,
            },
        )
