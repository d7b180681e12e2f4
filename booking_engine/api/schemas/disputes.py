from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, model_validator

from booking_engine.domain.entities.dispute import (
    CompensationRecipient,
    Dispute,
    DisputeMessage,
    DisputeType,
)
from booking_engine.domain.state_machine import BookingStatus, DisputeStatus


class OpenDisputeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dispute_type: DisputeType
    description: str = Field(min_length=1, max_length=5000)
    evidence_urls: list[HttpUrl] = Field(default_factory=list, max_length=20)


class DisputeMessageRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    body: str = Field(min_length=1, max_length=5000)


class EscalateDisputeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    note: str | None = Field(default=None, max_length=2000)


class ResolveDisputeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: str = Field(min_length=1, max_length=100)
    refund_amount: int | None = Field(default=None, gt=0)
    refund_to: CompensationRecipient | None = None
    booking_outcome: BookingStatus = BookingStatus.COMPLETED
    notes: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def validate_compensation(self) -> "ResolveDisputeRequest":
        if (self.refund_amount is None) != (self.refund_to is None):
            raise ValueError("refund_amount and refund_to must be provided together")
        if self.booking_outcome not in (BookingStatus.COMPLETED, BookingStatus.CANCELLED):
            raise ValueError("booking_outcome must be 'completed' or 'cancelled'")
        return self


class DisputeResolutionResponse(BaseModel):
    action: str
    resolved_by: str
    resolved_at: datetime
    compensation_amount: int | None = None
    compensation_recipient: CompensationRecipient | None = None
    processor_reference: str | None = None
    notes: str | None = None


class DisputeMessageResponse(BaseModel):
    id: str
    dispute_id: str
    sender_id: str
    body: str
    is_admin_message: bool
    created_at: datetime


class DisputeResponse(BaseModel):
    id: str
    booking_id: str
    complainant_id: str
    respondent_id: str
    dispute_type: DisputeType
    description: str
    evidence_urls: list[str]
    status: DisputeStatus
    escalation_note: str | None = None
    resolution: DisputeResolutionResponse | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DisputeDetailResponse(DisputeResponse):
    messages: list[DisputeMessageResponse]


def to_dispute_response(dispute: Dispute) -> DisputeResponse:
    return DisputeResponse(**_dispute_fields(dispute))


def to_dispute_detail_response(
    dispute: Dispute,
    messages: list[DisputeMessage],
) -> DisputeDetailResponse:
    return DisputeDetailResponse(
        **_dispute_fields(dispute),
        messages=[to_message_response(m) for m in messages],
    )


def to_message_response(message: DisputeMessage) -> DisputeMessageResponse:
    return DisputeMessageResponse(
        id=message.id,
        dispute_id=message.dispute_id,
        sender_id=message.sender_id,
        body=message.body,
        is_admin_message=message.is_admin_message,
        created_at=message.created_at,
    )


def _dispute_fields(dispute: Dispute) -> dict:
    resolution = None
    if dispute.resolution:
        r = dispute.resolution
        resolution = DisputeResolutionResponse(
            action=r.action,
            resolved_by=r.resolved_by,
            resolved_at=r.resolved_at,
            compensation_amount=r.compensation_amount,
            compensation_recipient=r.compensation_recipient,
            processor_reference=r.processor_reference,
            notes=r.notes,
        )
    return {
        "id": dispute.id,
        "booking_id": dispute.booking_id,
        "complainant_id": dispute.complainant_id,
        "respondent_id": dispute.respondent_id,
        "dispute_type": dispute.dispute_type,
        "description": dispute.description,
        "evidence_urls": list(dispute.evidence_urls),
        "status": dispute.status,
        "escalation_note": dispute.escalation_note,
        "resolution": resolution,
        "created_at": dispute.created_at,
        "updated_at": dispute.updated_at,
    }
