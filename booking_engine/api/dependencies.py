from functools import lru_cache
from typing import Any

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.api.deps import AsyncSessionLocal
from booking_engine.application.interfaces.clock import Clock, SystemClock
from booking_engine.application.interfaces.uuid_generator import RealUUIDGenerator, UUIDGenerator
from booking_engine.application.use_cases.add_dispute_message import AddDisputeMessageUseCase
from booking_engine.application.use_cases.check_availability import CheckAvailabilityUseCase
from booking_engine.application.use_cases.confirm_payment import ConfirmPaymentUseCase
from booking_engine.application.use_cases.create_booking import CreateBookingUseCase
from booking_engine.application.use_cases.create_payment_intent import CreatePaymentIntentUseCase
from booking_engine.application.use_cases.dispatch_outbox import DispatchOutboxUseCase
from booking_engine.application.use_cases.get_booking import GetBookingUseCase
from booking_engine.application.use_cases.get_booking_payments import GetBookingPaymentsUseCase
from booking_engine.application.use_cases.get_owner_earnings import GetOwnerEarningsUseCase
from booking_engine.application.use_cases.handle_payment_webhook import (
    HandlePaymentWebhookUseCase,
)
from booking_engine.application.use_cases.link_payout_account import LinkPayoutAccountUseCase
from booking_engine.application.use_cases.list_bookings import ListBookingsUseCase
from booking_engine.application.use_cases.list_disputes import (
    GetDisputeUseCase,
    ListDisputesUseCase,
)
from booking_engine.application.use_cases.open_dispute import OpenDisputeUseCase
from booking_engine.application.use_cases.payment_settlement import PaymentSettlement
from booking_engine.application.use_cases.process_refund import ProcessRefundUseCase
from booking_engine.application.use_cases.quote_booking import QuoteBookingUseCase
from booking_engine.application.use_cases.refund_executor import RefundExecutor
from booking_engine.application.use_cases.register_listing import RegisterListingUseCase
from booking_engine.application.use_cases.reschedule_booking import RescheduleBookingUseCase
from booking_engine.application.use_cases.resolve_dispute import ResolveDisputeUseCase
from booking_engine.application.use_cases.review_dispute import (
    EscalateDisputeUseCase,
    StartDisputeReviewUseCase,
)
from booking_engine.application.use_cases.transition_booking import (
    RecordConditionCheckUseCase,
    TransitionBookingUseCase,
)
from booking_engine.config import Settings, get_settings
from booking_engine.domain.entities.actor import Actor, ActorRole
from booking_engine.infrastructure.circuit_breaker import build_processor_breaker
from booking_engine.infrastructure.db.repositories.account_repo_sql import AccountRepoSQL
from booking_engine.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from booking_engine.infrastructure.db.repositories.dispute_repo_sql import DisputeRepoSQL
from booking_engine.infrastructure.db.repositories.idempotency_repo_sql import IdempotencyRepoSQL
from booking_engine.infrastructure.db.repositories.listing_repo_sql import ListingRepoSQL
from booking_engine.infrastructure.db.repositories.outbox_repo_sql import OutboxRepoSQL
from booking_engine.infrastructure.db.repositories.payment_repo_sql import PaymentRepoSQL
from booking_engine.infrastructure.db.repositories.webhook_event_repo_sql import (
    WebhookEventRepoSQL,
)
from booking_engine.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from booking_engine.infrastructure.gateways.stripe_gateway import StripePaymentGateway
from booking_engine.infrastructure.in_memory.account_repo import InMemoryAccountRepo
from booking_engine.infrastructure.in_memory.booking_repo import InMemoryBookingRepo
from booking_engine.infrastructure.in_memory.dispute_repo import InMemoryDisputeRepo
from booking_engine.infrastructure.in_memory.idempotency_repo import InMemoryIdempotencyRepo
from booking_engine.infrastructure.in_memory.listing_repo import InMemoryListingRepo
from booking_engine.infrastructure.in_memory.outbox_repo import InMemoryOutboxRepo
from booking_engine.infrastructure.in_memory.payment_gateway import StubPaymentGateway
from booking_engine.infrastructure.in_memory.payment_repo import InMemoryPaymentRepo
from booking_engine.infrastructure.in_memory.store import InMemoryStore
from booking_engine.infrastructure.in_memory.transaction_manager import (
    InMemoryTransactionManager,
)
from booking_engine.infrastructure.in_memory.webhook_event_repo import InMemoryWebhookEventRepo
from booking_engine.infrastructure.messaging.logging_notifier import LoggingNotifier


async def get_session(settings: Settings = Depends(get_settings)) -> AsyncSession | None:
    if settings.use_in_memory:
        yield None
        return
    async with AsyncSessionLocal() as session:
        yield session


def get_clock() -> Clock:
    return SystemClock()


def get_uuid_generator() -> UUIDGenerator:
    return RealUUIDGenerator()


def get_actor(
    x_actor_id: str = Header(..., min_length=1, max_length=64),
    x_actor_role: ActorRole = Header(...),
) -> Actor:
    """La autenticación ocurre antes; aquí solo se confía en los headers."""
    return Actor(id=x_actor_id, role=x_actor_role)


@lru_cache(maxsize=1)
def _in_memory_bundle():
    settings = get_settings()
    store = InMemoryStore()
    return {
        "store": store,
        "listing_repo": InMemoryListingRepo(store),
        "booking_repo": InMemoryBookingRepo(store),
        "account_repo": InMemoryAccountRepo(store),
        "payment_repo": InMemoryPaymentRepo(store),
        "dispute_repo": InMemoryDisputeRepo(store),
        "webhook_event_repo": InMemoryWebhookEventRepo(store),
        "idempotency_repo": InMemoryIdempotencyRepo(store),
        "outbox_repo": InMemoryOutboxRepo(store),
        "payment_gateway": StubPaymentGateway(webhook_secret=settings.stripe_webhook_secret),
        "tx_manager": InMemoryTransactionManager(store),
        "notifier": LoggingNotifier(),
    }


@lru_cache(maxsize=1)
def _processor_gateway() -> StripePaymentGateway:
    # Una sola instancia: el circuit breaker debe sobrevivir entre requests.
    settings = get_settings()
    return StripePaymentGateway(
        api_key=settings.stripe_api_key,
        webhook_secret=settings.stripe_webhook_secret,
        breaker=build_processor_breaker(
            fail_max=settings.processor_breaker_fail_max,
            reset_timeout=settings.processor_breaker_reset_timeout,
        ),
    )


def _sql_bundle(session: AsyncSession) -> dict[str, Any]:
    return {
        "listing_repo": ListingRepoSQL(session),
        "booking_repo": BookingRepoSQL(session),
        "account_repo": AccountRepoSQL(session),
        "payment_repo": PaymentRepoSQL(session),
        "dispute_repo": DisputeRepoSQL(session),
        "webhook_event_repo": WebhookEventRepoSQL(session),
        "idempotency_repo": IdempotencyRepoSQL(session),
        "outbox_repo": OutboxRepoSQL(session),
        "payment_gateway": _processor_gateway(),
        "tx_manager": SQLAlchemyTransactionManager(session),
        "notifier": LoggingNotifier(),
    }


def build_use_cases(
    bundle: dict[str, Any],
    settings: Settings,
    clock: Clock,
    uuid_generator: UUIDGenerator,
) -> dict[str, Any]:
    pricing_config = settings.pricing_config()
    tx_manager = bundle["tx_manager"]
    settlement = PaymentSettlement(
        payment_repo=bundle["payment_repo"],
        booking_repo=bundle["booking_repo"],
        outbox_repo=bundle["outbox_repo"],
        uuid_generator=uuid_generator,
    )
    refund_executor = RefundExecutor(
        payment_repo=bundle["payment_repo"],
        payment_gateway=bundle["payment_gateway"],
        uuid_generator=uuid_generator,
    )
    return {
        "register_listing": RegisterListingUseCase(
            listing_repo=bundle["listing_repo"],
            transaction_manager=tx_manager,
            uuid_generator=uuid_generator,
            clock=clock,
        ),
        "check_availability": CheckAvailabilityUseCase(
            listing_repo=bundle["listing_repo"],
            booking_repo=bundle["booking_repo"],
        ),
        "quote_booking": QuoteBookingUseCase(
            listing_repo=bundle["listing_repo"],
            booking_repo=bundle["booking_repo"],
            pricing_config=pricing_config,
        ),
        "create_booking": CreateBookingUseCase(
            listing_repo=bundle["listing_repo"],
            booking_repo=bundle["booking_repo"],
            idempotency_repo=bundle["idempotency_repo"],
            outbox_repo=bundle["outbox_repo"],
            transaction_manager=tx_manager,
            uuid_generator=uuid_generator,
            clock=clock,
            pricing_config=pricing_config,
        ),
        "get_booking": GetBookingUseCase(booking_repo=bundle["booking_repo"]),
        "list_bookings": ListBookingsUseCase(booking_repo=bundle["booking_repo"]),
        "reschedule_booking": RescheduleBookingUseCase(
            listing_repo=bundle["listing_repo"],
            booking_repo=bundle["booking_repo"],
            outbox_repo=bundle["outbox_repo"],
            transaction_manager=tx_manager,
            clock=clock,
            pricing_config=pricing_config,
        ),
        "transition_booking": TransitionBookingUseCase(
            booking_repo=bundle["booking_repo"],
            dispute_repo=bundle["dispute_repo"],
            outbox_repo=bundle["outbox_repo"],
            transaction_manager=tx_manager,
            clock=clock,
        ),
        "record_condition_check": RecordConditionCheckUseCase(
            booking_repo=bundle["booking_repo"],
            transaction_manager=tx_manager,
        ),
        "link_payout_account": LinkPayoutAccountUseCase(
            account_repo=bundle["account_repo"],
            payment_gateway=bundle["payment_gateway"],
            transaction_manager=tx_manager,
            clock=clock,
        ),
        "create_payment_intent": CreatePaymentIntentUseCase(
            booking_repo=bundle["booking_repo"],
            account_repo=bundle["account_repo"],
            payment_repo=bundle["payment_repo"],
            payment_gateway=bundle["payment_gateway"],
            transaction_manager=tx_manager,
            uuid_generator=uuid_generator,
            clock=clock,
            pricing_config=pricing_config,
        ),
        "confirm_payment": ConfirmPaymentUseCase(
            payment_repo=bundle["payment_repo"],
            booking_repo=bundle["booking_repo"],
            payment_gateway=bundle["payment_gateway"],
            settlement=settlement,
            transaction_manager=tx_manager,
            clock=clock,
        ),
        "handle_webhook": HandlePaymentWebhookUseCase(
            payment_repo=bundle["payment_repo"],
            account_repo=bundle["account_repo"],
            webhook_event_repo=bundle["webhook_event_repo"],
            payment_gateway=bundle["payment_gateway"],
            settlement=settlement,
            transaction_manager=tx_manager,
            clock=clock,
        ),
        "process_refund": ProcessRefundUseCase(
            booking_repo=bundle["booking_repo"],
            payment_repo=bundle["payment_repo"],
            refund_executor=refund_executor,
            outbox_repo=bundle["outbox_repo"],
            transaction_manager=tx_manager,
            clock=clock,
        ),
        "get_booking_payments": GetBookingPaymentsUseCase(
            booking_repo=bundle["booking_repo"],
            payment_repo=bundle["payment_repo"],
        ),
        "get_owner_earnings": GetOwnerEarningsUseCase(
            payment_repo=bundle["payment_repo"],
            clock=clock,
        ),
        "open_dispute": OpenDisputeUseCase(
            booking_repo=bundle["booking_repo"],
            dispute_repo=bundle["dispute_repo"],
            outbox_repo=bundle["outbox_repo"],
            transaction_manager=tx_manager,
            uuid_generator=uuid_generator,
            clock=clock,
        ),
        "add_dispute_message": AddDisputeMessageUseCase(
            dispute_repo=bundle["dispute_repo"],
            outbox_repo=bundle["outbox_repo"],
            transaction_manager=tx_manager,
            uuid_generator=uuid_generator,
            clock=clock,
        ),
        "start_dispute_review": StartDisputeReviewUseCase(
            dispute_repo=bundle["dispute_repo"],
            outbox_repo=bundle["outbox_repo"],
            transaction_manager=tx_manager,
            clock=clock,
        ),
        "escalate_dispute": EscalateDisputeUseCase(
            dispute_repo=bundle["dispute_repo"],
            outbox_repo=bundle["outbox_repo"],
            transaction_manager=tx_manager,
            clock=clock,
        ),
        "resolve_dispute": ResolveDisputeUseCase(
            dispute_repo=bundle["dispute_repo"],
            booking_repo=bundle["booking_repo"],
            account_repo=bundle["account_repo"],
            payment_gateway=bundle["payment_gateway"],
            refund_executor=refund_executor,
            outbox_repo=bundle["outbox_repo"],
            transaction_manager=tx_manager,
            clock=clock,
        ),
        "get_dispute": GetDisputeUseCase(dispute_repo=bundle["dispute_repo"]),
        "list_disputes": ListDisputesUseCase(dispute_repo=bundle["dispute_repo"]),
        "dispatch_outbox": DispatchOutboxUseCase(
            outbox_repo=bundle["outbox_repo"],
            notifier=bundle["notifier"],
            transaction_manager=tx_manager,
            clock=clock,
        ),
    }


def get_use_cases(
    settings: Settings = Depends(get_settings),
    session: AsyncSession | None = Depends(get_session),
    clock: Clock = Depends(get_clock),
    uuid_generator: UUIDGenerator = Depends(get_uuid_generator),
) -> dict[str, Any]:
    if settings.use_in_memory:
        bundle = _in_memory_bundle()
    else:
        if not session:
            raise RuntimeError("DB session not available")
        bundle = _sql_bundle(session)
    return build_use_cases(bundle, settings, clock, uuid_generator)
