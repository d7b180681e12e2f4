from booking_engine.application.interfaces.idempotency_repo import (
    IdempotencyRecord,
    IdempotencyRepo,
)
from booking_engine.infrastructure.in_memory.store import InMemoryStore


class InMemoryIdempotencyRepo(IdempotencyRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get(self, scope: str, idem_key: str) -> IdempotencyRecord | None:
        return self._store.idempotency.get((scope, idem_key))

    async def save(self, record: IdempotencyRecord) -> None:
        self._store.idempotency[(record.scope, record.idem_key)] = record
