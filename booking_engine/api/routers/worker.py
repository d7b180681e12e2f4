from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from booking_engine.api.dependencies import get_use_cases
from booking_engine.config import get_settings
from booking_engine.infrastructure.db.retry import retry_on_deadlock

router = APIRouter()


@router.post("/worker/outbox/dispatch", status_code=status.HTTP_200_OK)
async def dispatch_outbox(
    use_cases: Annotated[dict, Depends(get_use_cases)],
    worker_id: str | None = Query(default=None, alias="worker-id"),
    limit: int | None = Query(default=None, ge=1, le=500),
) -> dict:
    """
    Entrega las notificaciones pendientes del outbox.

    Lo llama un cron o el scheduler; reintenta solo ante deadlocks.
    """

    async def execute_dispatch():
        return await use_cases["dispatch_outbox"].execute(
            worker_id=worker_id or "worker-1",
            limit=limit or get_settings().outbox_batch_size,
        )

    return await retry_on_deadlock(execute_dispatch, max_attempts=3, base_delay=0.1)
