"""
Reintentos ante fallos transitorios de la base de datos.

Deadlocks y lock-wait timeouts de MySQL, y "database is locked" de SQLite, se
reintentan con backoff exponencial; cualquier otro error se propaga.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MYSQL_DEADLOCK_ERROR = "1213"
MYSQL_LOCK_WAIT_TIMEOUT = "1205"
SQLITE_LOCKED = "database is locked"


def is_deadlock_error(error: Exception) -> bool:
    if isinstance(error, (OperationalError, DBAPIError)):
        error_str = str(error)
        return (
            MYSQL_DEADLOCK_ERROR in error_str
            or MYSQL_LOCK_WAIT_TIMEOUT in error_str
            or SQLITE_LOCKED in error_str
        )
    return False


async def retry_on_deadlock(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 0.1,
) -> T:
    """
    Ejecuta ``func`` reintentando si falla por deadlock.

    El delay es ``base_delay * 2 ** attempt``. ``func`` debe abrir su propia
    transacción para que cada intento empiece limpio.
    """
    for attempt in range(max_attempts):
        try:
            return await func()
        except Exception as e:
            if not is_deadlock_error(e) or attempt == max_attempts - 1:
                if is_deadlock_error(e):
                    logger.error(
                        "Database deadlock persists after max retries",
                        extra={"attempts": max_attempts, "error": str(e)},
                    )
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Database deadlock detected, retrying",
                extra={
                    "attempt": attempt + 1,
                    "max_attempts": max_attempts,
                    "retry_delay": delay,
                    "error": str(e),
                },
            )
            await asyncio.sleep(delay)
    raise RuntimeError("Unexpected state in retry_on_deadlock")


def with_deadlock_retry(max_attempts: int = 3, base_delay: float = 0.1):
    """Decorador equivalente a ``retry_on_deadlock`` para funciones async."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await retry_on_deadlock(
                lambda: func(*args, **kwargs), max_attempts, base_delay
            )

        return wrapper

    return decorator
