"""Tipos de notificación emitidos por el motor hacia el outbox."""

from enum import Enum


class NotificationType(str, Enum):
    BOOKING_REQUESTED = "BOOKING_REQUESTED"
    BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
    BOOKING_REJECTED = "BOOKING_REJECTED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    BOOKING_ACTIVE = "BOOKING_ACTIVE"
    BOOKING_COMPLETED = "BOOKING_COMPLETED"
    BOOKING_SETTLED = "BOOKING_SETTLED"
    BOOKING_RESCHEDULED = "BOOKING_RESCHEDULED"
    PAYMENT_SUCCEEDED = "PAYMENT_SUCCEEDED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PAYMENT_NEEDS_RECONCILIATION = "PAYMENT_NEEDS_RECONCILIATION"
    REFUND_ISSUED = "REFUND_ISSUED"
    DISPUTE_OPENED = "DISPUTE_OPENED"
    DISPUTE_MESSAGE_POSTED = "DISPUTE_MESSAGE_POSTED"
    DISPUTE_UNDER_REVIEW = "DISPUTE_UNDER_REVIEW"
    DISPUTE_ESCALATED = "DISPUTE_ESCALATED"
    DISPUTE_RESOLVED = "DISPUTE_RESOLVED"


class AggregateType(str, Enum):
    BOOKING = "booking"
    PAYMENT = "payment"
    DISPUTE = "dispute"
