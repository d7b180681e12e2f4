from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from booking_engine.api.schemas.listings import PricingResponse, to_pricing_response
from booking_engine.domain.entities.booking import Booking, ConditionCheckPhase
from booking_engine.domain.pricing import DeliveryMethod, InsuranceTier
from booking_engine.domain.state_machine import BookingStatus


class CreateBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    listing_id: str = Field(min_length=1)
    start_date: date
    end_date: date
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    insurance_tier: InsuranceTier = InsuranceTier.NONE

    @field_validator("end_date")
    @classmethod
    def validate_dates(cls, value: date, info) -> date:
        start = info.data.get("start_date")
        if start and value <= start:
            raise ValueError("end_date must be after start_date")
        return value


class TransitionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: str | None = Field(default=None, max_length=1000)


class RescheduleBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start_date: date
    end_date: date

    @field_validator("end_date")
    @classmethod
    def validate_dates(cls, value: date, info) -> date:
        start = info.data.get("start_date")
        if start and value <= start:
            raise ValueError("end_date must be after start_date")
        return value


class SettleBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    outcome: BookingStatus
    reason: str | None = Field(default=None, max_length=1000)

    @field_validator("outcome")
    @classmethod
    def validate_outcome(cls, value: BookingStatus) -> BookingStatus:
        if value not in (BookingStatus.COMPLETED, BookingStatus.CANCELLED):
            raise ValueError("outcome must be 'completed' or 'cancelled'")
        return value


class ConditionCheckRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    phase: ConditionCheckPhase


class BookingTransitionResponse(BaseModel):
    from_status: BookingStatus | None
    to_status: BookingStatus
    actor_id: str
    occurred_at: datetime
    note: str | None = None


class BookingResponse(BaseModel):
    id: str
    listing_id: str
    renter_id: str
    owner_id: str
    start_date: date
    end_date: date
    status: BookingStatus
    delivery_method: DeliveryMethod
    insurance_tier: InsuranceTier
    currency_code: str
    pricing: PricingResponse
    before_check_completed: bool
    after_check_completed: bool
    needs_reconciliation: bool
    created_at: datetime | None = None
    confirmed_at: datetime | None = None
    checked_out_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    rejected_at: datetime | None = None
    disputed_at: datetime | None = None


class BookingDetailResponse(BookingResponse):
    is_overdue: bool
    cancellation_reason: str | None = None
    rejection_reason: str | None = None
    reconciliation_reason: str | None = None
    transitions: list[BookingTransitionResponse]


def _booking_fields(booking: Booking) -> dict:
    return {
        "id": booking.id,
        "listing_id": booking.listing_id,
        "renter_id": booking.renter_id,
        "owner_id": booking.owner_id,
        "start_date": booking.start_date,
        "end_date": booking.end_date,
        "status": booking.status,
        "delivery_method": booking.delivery_method,
        "insurance_tier": booking.insurance_tier,
        "currency_code": booking.currency_code,
        "pricing": to_pricing_response(booking.pricing),
        "before_check_completed": booking.before_check_completed,
        "after_check_completed": booking.after_check_completed,
        "needs_reconciliation": booking.needs_reconciliation,
        "created_at": booking.created_at,
        "confirmed_at": booking.confirmed_at,
        "checked_out_at": booking.checked_out_at,
        "completed_at": booking.completed_at,
        "cancelled_at": booking.cancelled_at,
        "rejected_at": booking.rejected_at,
        "disputed_at": booking.disputed_at,
    }


def to_booking_response(booking: Booking) -> BookingResponse:
    return BookingResponse(**_booking_fields(booking))


def to_booking_detail_response(booking: Booking, today: date) -> BookingDetailResponse:
    return BookingDetailResponse(
        **_booking_fields(booking),
        is_overdue=booking.is_overdue(today),
        cancellation_reason=booking.cancellation_reason,
        rejection_reason=booking.rejection_reason,
        reconciliation_reason=booking.reconciliation_reason,
        transitions=[
            BookingTransitionResponse(
                from_status=t.from_status,
                to_status=t.to_status,
                actor_id=t.actor_id,
                occurred_at=t.occurred_at,
                note=t.note,
            )
            for t in booking.history
        ],
    )
