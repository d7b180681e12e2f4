import logging
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.application.interfaces.outbox_repo import OutboxEvent, OutboxRepo
from booking_engine.infrastructure.db.tables import outbox_events

logger = logging.getLogger(__name__)


def _to_event(data) -> OutboxEvent:
    return OutboxEvent(
        id=data["id"],
        event_type=data["event_type"],
        aggregate_type=data["aggregate_type"],
        aggregate_id=data["aggregate_id"],
        payload=data["payload"],
        status=data["status"],
        attempts=data["attempts"] or 0,
        next_attempt_at=data["next_attempt_at"],
        locked_by=data["locked_by"],
        lock_expires_at=data["lock_expires_at"],
        error_message=data["error_message"],
    )


class OutboxRepoSQL(OutboxRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def enqueue(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str,
        payload: dict[str, Any],
    ) -> OutboxEvent:
        now = datetime.now(timezone.utc)
        stmt = insert(outbox_events).values(
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload,
            status="NEW",
            attempts=0,
            created_at=now,
        )
        result = await self._session.execute(stmt)
        return OutboxEvent(
            id=result.inserted_primary_key[0],
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload,
            status="NEW",
            attempts=0,
        )

    async def claim_batch(
        self,
        locked_by: str,
        now: datetime,
        limit: int = 50,
        lock_ttl_seconds: int = 30,
    ) -> Sequence[OutboxEvent]:
        candidates = (
            select(outbox_events.c.id)
            .where(
                outbox_events.c.status.in_(("NEW", "RETRY")),
                or_(
                    outbox_events.c.next_attempt_at.is_(None),
                    outbox_events.c.next_attempt_at <= now,
                ),
                or_(
                    outbox_events.c.lock_expires_at.is_(None),
                    outbox_events.c.lock_expires_at <= now,
                ),
            )
            .order_by(outbox_events.c.id)
            .limit(limit)
        )
        ids = [row[0] for row in (await self._session.execute(candidates)).all()]
        if not ids:
            return []
        # El status en el WHERE evita robar un evento que otro worker ya reclamó.
        await self._session.execute(
            update(outbox_events)
            .where(
                outbox_events.c.id.in_(ids),
                outbox_events.c.status.in_(("NEW", "RETRY")),
            )
            .values(
                status="IN_PROGRESS",
                locked_by=locked_by,
                lock_expires_at=now + timedelta(seconds=lock_ttl_seconds),
            )
        )
        claimed = await self._session.execute(
            select(outbox_events)
            .where(
                outbox_events.c.id.in_(ids),
                outbox_events.c.locked_by == locked_by,
                outbox_events.c.status == "IN_PROGRESS",
            )
            .order_by(outbox_events.c.id)
        )
        return [_to_event(row) for row in claimed.mappings().all()]

    async def mark_done(self, event_id: int) -> None:
        stmt = (
            update(outbox_events)
            .where(outbox_events.c.id == event_id)
            .values(status="DONE", locked_by=None, lock_expires_at=None)
        )
        await self._session.execute(stmt)

    async def mark_retry(
        self,
        event_id: int,
        attempts: int,
        next_attempt_at: datetime,
        error_message: str | None,
    ) -> None:
        stmt = (
            update(outbox_events)
            .where(outbox_events.c.id == event_id)
            .values(
                status="RETRY",
                attempts=attempts,
                next_attempt_at=next_attempt_at,
                error_message=(error_message or "")[:500] or None,
                locked_by=None,
                lock_expires_at=None,
            )
        )
        await self._session.execute(stmt)

    async def mark_failed(self, event_id: int, attempts: int, error_message: str | None) -> None:
        stmt = (
            update(outbox_events)
            .where(outbox_events.c.id == event_id)
            .values(
                status="FAILED",
                attempts=attempts,
                error_message=(error_message or "")[:500] or None,
                locked_by=None,
                lock_expires_at=None,
            )
        )
        await self._session.execute(stmt)
        logger.error(
            "Outbox event moved to FAILED",
            extra={"event_id": event_id, "attempts": attempts, "error": error_message},
        )
