from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol


class TransactionManager(Protocol):
    """
    Unidad de trabajo.

    Todo lo escrito dentro de ``start()`` se confirma junto o se descarta junto
    si sale una excepción.
    """

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        yield
