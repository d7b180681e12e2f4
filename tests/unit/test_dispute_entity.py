from datetime import datetime, timezone

import pytest

from booking_engine.domain.entities.actor import Actor, ActorRole
from booking_engine.domain.entities.dispute import Dispute, DisputeResolution, DisputeType
from booking_engine.domain.errors import ForbiddenError, IllegalTransitionError
from booking_engine.domain.state_machine import DisputeStatus

AT = datetime(2026, 6, 5, 12, 0, tzinfo=timezone.utc)
ADMIN = Actor(id="admin-1", role=ActorRole.ADMIN)
RENTER = Actor(id="renter-1", role=ActorRole.RENTER)


def _dispute() -> Dispute:
    return Dispute(
        id="d-1",
        booking_id="b-1",
        complainant_id="renter-1",
        respondent_id="owner-1",
        dispute_type=DisputeType.DAMAGE,
        description="Pantalla rota",
    )


def _resolution() -> DisputeResolution:
    return DisputeResolution(action="no_compensation", resolved_by=ADMIN.id, resolved_at=AT)


def test_visibility():
    dispute = _dispute()

    assert dispute.can_view(RENTER)
    assert dispute.can_view(Actor(id="owner-1", role=ActorRole.OWNER))
    assert dispute.can_view(ADMIN)
    assert not dispute.can_view(Actor(id="renter-2", role=ActorRole.RENTER))


def test_review_then_resolve():
    dispute = _dispute()

    dispute.start_review(ADMIN, AT)
    assert dispute.status == DisputeStatus.UNDER_REVIEW
    assert dispute.is_open

    dispute.resolve(ADMIN, _resolution())
    assert dispute.status == DisputeStatus.RESOLVED
    assert not dispute.is_open
    assert dispute.resolution.resolved_by == ADMIN.id


def test_only_admin_moves_a_dispute():
    dispute = _dispute()

    with pytest.raises(ForbiddenError):
        dispute.start_review(RENTER, AT)
    with pytest.raises(ForbiddenError):
        dispute.resolve(RENTER, _resolution())
    assert dispute.status == DisputeStatus.OPEN


def test_escalated_dispute_is_terminal():
    dispute = _dispute()
    dispute.escalate(ADMIN, AT, note="requiere legal")

    assert dispute.status == DisputeStatus.ESCALATED
    assert dispute.escalation_note == "requiere legal"
    with pytest.raises(IllegalTransitionError):
        dispute.resolve(ADMIN, _resolution())
