from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.application.interfaces.webhook_event_repo import (
    ProcessedWebhookEvent,
    WebhookEventRepo,
)
from booking_engine.infrastructure.db.tables import processed_webhook_events


class WebhookEventRepoSQL(WebhookEventRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def exists(self, event_id: str) -> bool:
        stmt = select(processed_webhook_events.c.event_id).where(
            processed_webhook_events.c.event_id == event_id
        )
        return (await self._session.execute(stmt)).first() is not None

    async def record(self, event: ProcessedWebhookEvent) -> bool:
        if await self.exists(event.event_id):
            return False
        # Savepoint: una entrega concurrente puede ganar el insert.
        try:
            async with self._session.begin_nested():
                await self._session.execute(
                    insert(processed_webhook_events).values(
                        event_id=event.event_id,
                        event_type=event.event_type,
                        received_at=event.received_at,
                    )
                )
        except IntegrityError:
            return False
        return True
