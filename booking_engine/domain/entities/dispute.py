"""Entidad Dispute - reclamo sobre una reserva activa o terminada."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.errors import ForbiddenError
from booking_engine.domain.state_machine import (
    OPEN_DISPUTE_STATUSES,
    DisputeStatus,
    ensure_dispute_transition,
)


class DisputeType(str, Enum):
    DAMAGE = "damage"
    NO_SHOW = "no_show"
    LATE_RETURN = "late_return"
    ITEM_NOT_AS_DESCRIBED = "item_not_as_described"
    OTHER = "other"


class CompensationRecipient(str, Enum):
    RENTER = "renter"
    OWNER = "owner"


@dataclass(frozen=True)
class DisputeResolution:
    """Decisión del admin; el monto queda en None si no hay compensación."""

    action: str
    resolved_by: str
    resolved_at: datetime
    compensation_amount: int | None = None
    compensation_recipient: CompensationRecipient | None = None
    processor_reference: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class DisputeMessage:
    id: str
    dispute_id: str
    sender_id: str
    body: str
    created_at: datetime
    is_admin_message: bool = False


@dataclass
class Dispute:
    """
    Disputa abierta por una de las partes contra la otra.

    Solo un admin la revisa, escala o resuelve.
    """

    id: str
    booking_id: str
    complainant_id: str
    respondent_id: str
    dispute_type: DisputeType
    description: str
    evidence_urls: list[str] = field(default_factory=list)
    status: DisputeStatus = DisputeStatus.OPEN
    resolution: DisputeResolution | None = None
    escalation_note: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_DISPUTE_STATUSES

    def is_participant(self, actor_id: str) -> bool:
        return actor_id in (self.complainant_id, self.respondent_id)

    def can_view(self, actor: Actor) -> bool:
        return actor.is_admin or self.is_participant(actor.id)

    def start_review(self, actor: Actor, at: datetime) -> None:
        self._require_admin(actor, "review")
        ensure_dispute_transition(self.status, DisputeStatus.UNDER_REVIEW)
        self.status = DisputeStatus.UNDER_REVIEW
        self.updated_at = at

    def escalate(self, actor: Actor, at: datetime, note: str | None = None) -> None:
        self._require_admin(actor, "escalate")
        ensure_dispute_transition(self.status, DisputeStatus.ESCALATED)
        self.status = DisputeStatus.ESCALATED
        self.escalation_note = note
        self.updated_at = at

    def resolve(self, actor: Actor, resolution: DisputeResolution) -> None:
        self._require_admin(actor, "resolve")
        ensure_dispute_transition(self.status, DisputeStatus.RESOLVED)
        self.status = DisputeStatus.RESOLVED
        self.resolution = resolution
        self.updated_at = resolution.resolved_at

    @staticmethod
    def _require_admin(actor: Actor, action: str) -> None:
        if not actor.is_admin:
            raise ForbiddenError(f"Only an admin can {action} a dispute")
