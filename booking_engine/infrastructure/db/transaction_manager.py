from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.application.interfaces.transaction_manager import TransactionManager


class SQLAlchemyTransactionManager(TransactionManager):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._depth = 0

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return
        # Cierra la transacción implícita que abre cualquier lectura previa.
        if self._session.in_transaction():
            await self._session.commit()
        self._depth = 1
        try:
            async with self._session.begin():
                yield
        finally:
            self._depth = 0
