from collections.abc import Sequence

from sqlalchemy import insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.application.interfaces.dispute_repo import DisputeRepo
from booking_engine.domain.entities.dispute import (
    CompensationRecipient,
    Dispute,
    DisputeMessage,
    DisputeResolution,
    DisputeType,
)
from booking_engine.domain.errors import DisputeNotFoundError
from booking_engine.domain.state_machine import OPEN_DISPUTE_STATUSES, DisputeStatus
from booking_engine.infrastructure.db.tables import dispute_messages, disputes


def _dispute_values(dispute: Dispute) -> dict:
    resolution = dispute.resolution
    return {
        "booking_id": dispute.booking_id,
        "complainant_id": dispute.complainant_id,
        "respondent_id": dispute.respondent_id,
        "dispute_type": dispute.dispute_type.value,
        "description": dispute.description,
        "evidence_urls": list(dispute.evidence_urls),
        "status": dispute.status.value,
        "escalation_note": dispute.escalation_note,
        "resolution_action": resolution.action if resolution else None,
        "resolved_by": resolution.resolved_by if resolution else None,
        "resolved_at": resolution.resolved_at if resolution else None,
        "compensation_amount": resolution.compensation_amount if resolution else None,
        "compensation_recipient": (
            resolution.compensation_recipient.value
            if resolution and resolution.compensation_recipient
            else None
        ),
        "processor_reference": resolution.processor_reference if resolution else None,
        "resolution_notes": resolution.notes if resolution else None,
        "created_at": dispute.created_at,
        "updated_at": dispute.updated_at,
    }


def _to_dispute(row) -> Dispute:
    resolution = None
    if row["resolution_action"]:
        recipient = row["compensation_recipient"]
        resolution = DisputeResolution(
            action=row["resolution_action"],
            resolved_by=row["resolved_by"],
            resolved_at=row["resolved_at"],
            compensation_amount=row["compensation_amount"],
            compensation_recipient=CompensationRecipient(recipient) if recipient else None,
            processor_reference=row["processor_reference"],
            notes=row["resolution_notes"],
        )
    return Dispute(
        id=row["id"],
        booking_id=row["booking_id"],
        complainant_id=row["complainant_id"],
        respondent_id=row["respondent_id"],
        dispute_type=DisputeType(row["dispute_type"]),
        description=row["description"],
        evidence_urls=list(row["evidence_urls"] or []),
        status=DisputeStatus(row["status"]),
        resolution=resolution,
        escalation_note=row["escalation_note"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class DisputeRepoSQL(DisputeRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, dispute: Dispute) -> Dispute:
        await self._session.execute(
            insert(disputes).values(id=dispute.id, **_dispute_values(dispute))
        )
        return dispute

    async def get(self, dispute_id: str) -> Dispute | None:
        stmt = select(disputes).where(disputes.c.id == dispute_id)
        row = (await self._session.execute(stmt)).mappings().first()
        return _to_dispute(row) if row else None

    async def update(self, dispute: Dispute) -> Dispute:
        result = await self._session.execute(
            update(disputes).where(disputes.c.id == dispute.id).values(_dispute_values(dispute))
        )
        if result.rowcount == 0:
            raise DisputeNotFoundError(dispute.id)
        return dispute

    async def find_open_for_booking(self, booking_id: str) -> Dispute | None:
        stmt = (
            select(disputes)
            .where(
                disputes.c.booking_id == booking_id,
                disputes.c.status.in_([s.value for s in OPEN_DISPUTE_STATUSES]),
            )
            .limit(1)
        )
        row = (await self._session.execute(stmt)).mappings().first()
        return _to_dispute(row) if row else None

    async def list_for_user(self, user_id: str) -> Sequence[Dispute]:
        stmt = (
            select(disputes)
            .where(or_(disputes.c.complainant_id == user_id, disputes.c.respondent_id == user_id))
            .order_by(disputes.c.created_at)
        )
        rows = (await self._session.execute(stmt)).mappings().all()
        return [_to_dispute(row) for row in rows]

    async def list_by_status(self, status: DisputeStatus) -> Sequence[Dispute]:
        stmt = (
            select(disputes)
            .where(disputes.c.status == status.value)
            .order_by(disputes.c.created_at)
        )
        rows = (await self._session.execute(stmt)).mappings().all()
        return [_to_dispute(row) for row in rows]

    async def add_message(self, message: DisputeMessage) -> DisputeMessage:
        await self._session.execute(
            insert(dispute_messages).values(
                id=message.id,
                dispute_id=message.dispute_id,
                sender_id=message.sender_id,
                body=message.body,
                is_admin_message=message.is_admin_message,
                created_at=message.created_at,
            )
        )
        return message

    async def list_messages(self, dispute_id: str) -> Sequence[DisputeMessage]:
        stmt = (
            select(dispute_messages)
            .where(dispute_messages.c.dispute_id == dispute_id)
            .order_by(dispute_messages.c.created_at, dispute_messages.c.seq)
        )
        rows = (await self._session.execute(stmt)).mappings().all()
        return [
            DisputeMessage(
                id=row["id"],
                dispute_id=row["dispute_id"],
                sender_id=row["sender_id"],
                body=row["body"],
                created_at=row["created_at"],
                is_admin_message=bool(row["is_admin_message"]),
            )
            for row in rows
        ]
