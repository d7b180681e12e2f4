"""Interfaces (Puertos) de la capa de aplicación."""

from booking_engine.application.interfaces.account_repo import AccountRepo
from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.clock import Clock, FakeClock, SystemClock
from booking_engine.application.interfaces.dispute_repo import DisputeRepo
from booking_engine.application.interfaces.idempotency_repo import (
    IdempotencyRecord,
    IdempotencyRepo,
)
from booking_engine.application.interfaces.listing_repo import ListingRepo
from booking_engine.application.interfaces.notifier import Notifier
from booking_engine.application.interfaces.outbox_repo import OutboxEvent, OutboxRepo
from booking_engine.application.interfaces.payment_gateway import (
    PaymentGateway,
    ProcessorAccount,
    ProcessorIntent,
    ProcessorRefund,
    ProcessorTransfer,
)
from booking_engine.application.interfaces.payment_repo import PaymentRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.application.interfaces.uuid_generator import (
    FakeUUIDGenerator,
    RealUUIDGenerator,
    UUIDGenerator,
)
from booking_engine.application.interfaces.webhook_event_repo import (
    ProcessedWebhookEvent,
    WebhookEventRepo,
)

__all__ = [
    # Repositories
    "AccountRepo",
    "BookingRepo",
    "DisputeRepo",
    "IdempotencyRepo",
    "IdempotencyRecord",
    "ListingRepo",
    "OutboxRepo",
    "OutboxEvent",
    "PaymentRepo",
    "WebhookEventRepo",
    "ProcessedWebhookEvent",
    # Gateways
    "PaymentGateway",
    "ProcessorAccount",
    "ProcessorIntent",
    "ProcessorRefund",
    "ProcessorTransfer",
    "Notifier",
    # Infrastructure
    "TransactionManager",
    # Utilities
    "Clock",
    "SystemClock",
    "FakeClock",
    "UUIDGenerator",
    "RealUUIDGenerator",
    "FakeUUIDGenerator",
]
