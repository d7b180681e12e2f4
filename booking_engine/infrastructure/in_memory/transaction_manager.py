import asyncio
import contextvars
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.infrastructure.in_memory.store import InMemoryStore

_inside_transaction: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "inside_in_memory_transaction", default=False
)


class InMemoryTransactionManager(TransactionManager):
    """
    Serializa las transacciones con un lock y restaura el snapshot si hay error.

    Equivale a un lock por listing con aislamiento serializable: el
    check-then-insert de disponibilidad nunca se intercala con otro escritor.
    """

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        if _inside_transaction.get():
            yield
            return
        async with self._lock:
            snapshot = self._store.snapshot()
            token = _inside_transaction.set(True)
            try:
                yield
            except BaseException:
                self._store.restore(snapshot)
                raise
            finally:
                _inside_transaction.reset(token)
