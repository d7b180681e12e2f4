"""
Reintento automático ante deadlocks.

- Detecta MySQL 1213 (Deadlock), 1205 (Lock wait timeout) y "database is locked"
- Reintenta con backoff exponencial
- Se rinde después de max_attempts
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from booking_engine.infrastructure.db.retry import (
    is_deadlock_error,
    retry_on_deadlock,
    with_deadlock_retry,
)


def _operational(message: str) -> OperationalError:
    return OperationalError("statement", "params", message, connection_invalidated=False)


class TestDeadlockDetection:
    def test_detect_mysql_deadlock_error_1213(self):
        error = _operational("(pymysql.err.OperationalError) (1213, 'Deadlock found')")
        assert is_deadlock_error(error)

    def test_detect_mysql_lock_timeout_error_1205(self):
        error = _operational("(pymysql.err.OperationalError) (1205, 'Lock wait timeout exceeded')")
        assert is_deadlock_error(error)

    def test_detect_sqlite_locked(self):
        assert is_deadlock_error(_operational("(sqlite3.OperationalError) database is locked"))

    def test_ignore_non_deadlock_errors(self):
        assert not is_deadlock_error(Exception("Generic error"))
        assert not is_deadlock_error(
            _operational("(pymysql.err.OperationalError) (2013, 'Lost connection')")
        )
        assert not is_deadlock_error(
            IntegrityError("statement", "params", "UNIQUE constraint failed")
        )


class TestRetryLogic:
    async def test_retry_succeeds_on_first_attempt(self):
        func = AsyncMock(return_value="success")

        result = await retry_on_deadlock(func, max_attempts=3)

        assert result == "success"
        assert func.await_count == 1

    async def test_retry_on_deadlock_until_success(self):
        call_count = 0

        async def fails_twice_then_succeeds():
            nonlocal call_count
            call_count += 1
            if call_count <= 2:
                raise _operational("(1213, 'Deadlock found')")
            return "success_after_retries"

        result = await retry_on_deadlock(fails_twice_then_succeeds, max_attempts=3, base_delay=0.01)

        assert result == "success_after_retries"
        assert call_count == 3

    async def test_gives_up_after_max_attempts(self):
        func = AsyncMock(side_effect=_operational("(1213, 'Deadlock found')"))

        with pytest.raises(OperationalError):
            await retry_on_deadlock(func, max_attempts=3, base_delay=0.01)

        assert func.await_count == 3

    async def test_non_deadlock_error_is_not_retried(self):
        func = AsyncMock(side_effect=ValueError("boom"))

        with pytest.raises(ValueError):
            await retry_on_deadlock(func, max_attempts=3, base_delay=0.01)

        assert func.await_count == 1

    async def test_exponential_backoff(self):
        func = AsyncMock(side_effect=_operational("(1205, 'Lock wait timeout')"))

        with patch("booking_engine.infrastructure.db.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(OperationalError):
                await retry_on_deadlock(func, max_attempts=4, base_delay=0.1)

        delays = [call.args[0] for call in sleep.await_args_list]
        assert delays == pytest.approx([0.1, 0.2, 0.4])


class TestDecorator:
    async def test_decorator_retries_with_arguments(self):
        attempts = []

        @with_deadlock_retry(max_attempts=2, base_delay=0.01)
        async def save(value, suffix=""):
            attempts.append(value)
            if len(attempts) == 1:
                raise _operational("database is locked")
            return value + suffix

        assert await save("ok", suffix="!") == "ok!"
        assert attempts == ["ok", "ok"]
