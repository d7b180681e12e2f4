from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from booking_engine.application.interfaces.outbox_repo import OutboxEvent, OutboxRepo
from booking_engine.infrastructure.in_memory.store import InMemoryStore


class InMemoryOutboxRepo(OutboxRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def enqueue(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str,
        payload: dict[str, Any],
    ) -> OutboxEvent:
        event = OutboxEvent(
            id=self._store.outbox_next_id,
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload,
            status="NEW",
            attempts=0,
        )
        self._store.outbox[event.id] = event
        self._store.outbox_next_id += 1
        return event

    async def claim_batch(
        self,
        locked_by: str,
        now: datetime,
        limit: int = 50,
        lock_ttl_seconds: int = 30,
    ) -> Sequence[OutboxEvent]:
        claimed = []
        for event in sorted(self._store.outbox.values(), key=lambda e: e.id):
            if len(claimed) >= limit:
                break
            if event.status not in {"NEW", "RETRY"}:
                continue
            if event.next_attempt_at and event.next_attempt_at > now:
                continue
            if event.lock_expires_at and event.lock_expires_at > now:
                continue
            event.status = "IN_PROGRESS"
            event.locked_by = locked_by
            event.lock_expires_at = now + timedelta(seconds=lock_ttl_seconds)
            claimed.append(event)
        return claimed

    async def mark_done(self, event_id: int) -> None:
        event = self._store.outbox.get(event_id)
        if not event:
            return
        event.status = "DONE"
        event.locked_by = None
        event.lock_expires_at = None

    async def mark_retry(
        self,
        event_id: int,
        attempts: int,
        next_attempt_at: datetime,
        error_message: str | None,
    ) -> None:
        event = self._store.outbox.get(event_id)
        if not event:
            return
        event.status = "RETRY"
        event.attempts = attempts
        event.next_attempt_at = next_attempt_at
        event.error_message = error_message
        event.locked_by = None
        event.lock_expires_at = None

    async def mark_failed(self, event_id: int, attempts: int, error_message: str | None) -> None:
        event = self._store.outbox.get(event_id)
        if not event:
            return
        event.status = "FAILED"
        event.attempts = attempts
        event.error_message = error_message
        event.locked_by = None
        event.lock_expires_at = None
