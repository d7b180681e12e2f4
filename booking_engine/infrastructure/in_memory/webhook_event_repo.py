from booking_engine.application.interfaces.webhook_event_repo import (
    ProcessedWebhookEvent,
    WebhookEventRepo,
)
from booking_engine.infrastructure.in_memory.store import InMemoryStore


class InMemoryWebhookEventRepo(WebhookEventRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def exists(self, event_id: str) -> bool:
        return event_id in self._store.webhook_events

    async def record(self, event: ProcessedWebhookEvent) -> bool:
        if event.event_id in self._store.webhook_events:
            return False
        self._store.webhook_events[event.event_id] = event
        return True
