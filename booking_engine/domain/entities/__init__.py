"""Entidades del dominio de alquileres."""

from booking_engine.domain.entities.actor import Actor, ActorRole
from booking_engine.domain.entities.booking import (
    Booking,
    BookingTransition,
    ConditionCheckPhase,
)
from booking_engine.domain.entities.dispute import (
    CompensationRecipient,
    Dispute,
    DisputeMessage,
    DisputeResolution,
    DisputeType,
)
from booking_engine.domain.entities.listing import Listing, PayerProfile, PayoutAccount
from booking_engine.domain.entities.payment import (
    PaymentIntent,
    PaymentIntentStatus,
    RefundAdjustment,
    TransactionRecord,
)

__all__ = [
    # Actor
    "Actor",
    "ActorRole",
    # Listing
    "Listing",
    "PayoutAccount",
    "PayerProfile",
    # Booking
    "Booking",
    "BookingTransition",
    "ConditionCheckPhase",
    # Payment
    "PaymentIntent",
    "PaymentIntentStatus",
    "TransactionRecord",
    "RefundAdjustment",
    # Dispute
    "Dispute",
    "DisputeType",
    "DisputeMessage",
    "DisputeResolution",
    "CompensationRecipient",
]
