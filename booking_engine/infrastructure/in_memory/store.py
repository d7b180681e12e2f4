import copy
from dataclasses import dataclass, field
from typing import Any

from booking_engine.application.interfaces.idempotency_repo import IdempotencyRecord
from booking_engine.application.interfaces.outbox_repo import OutboxEvent
from booking_engine.application.interfaces.webhook_event_repo import ProcessedWebhookEvent
from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.entities.dispute import Dispute, DisputeMessage
from booking_engine.domain.entities.listing import Listing, PayerProfile, PayoutAccount
from booking_engine.domain.entities.payment import (
    PaymentIntent,
    RefundAdjustment,
    TransactionRecord,
)


@dataclass
class InMemoryStore:
    """Estado compartido por los repos en memoria; el transaction manager lo snapshotea."""

    listings: dict[str, Listing] = field(default_factory=dict)
    bookings: dict[str, Booking] = field(default_factory=dict)
    payout_accounts: dict[str, PayoutAccount] = field(default_factory=dict)
    payer_profiles: dict[str, PayerProfile] = field(default_factory=dict)
    intents: dict[str, PaymentIntent] = field(default_factory=dict)
    transaction_records: dict[str, TransactionRecord] = field(default_factory=dict)
    refund_adjustments: list[RefundAdjustment] = field(default_factory=list)
    disputes: dict[str, Dispute] = field(default_factory=dict)
    dispute_messages: list[DisputeMessage] = field(default_factory=list)
    webhook_events: dict[str, ProcessedWebhookEvent] = field(default_factory=dict)
    idempotency: dict[tuple[str, str], IdempotencyRecord] = field(default_factory=dict)
    outbox: dict[int, OutboxEvent] = field(default_factory=dict)
    outbox_next_id: int = 1

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self.__dict__)

    def restore(self, snapshot: dict[str, Any]) -> None:
        self.__dict__.update(snapshot)
