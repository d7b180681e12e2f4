import logging
from datetime import timedelta

from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.notifier import Notifier
from booking_engine.application.interfaces.outbox_repo import OutboxRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager

MAX_ATTEMPTS = 5
BASE_BACKOFF_SECONDS = 15


class DispatchOutboxUseCase:
    """
    Drena el outbox hacia el notifier.

    Fire-and-forget: un fallo de entrega se reprograma con backoff exponencial
    y nunca afecta al estado de reservas o pagos.
    """

    def __init__(
        self,
        outbox_repo: OutboxRepo,
        notifier: Notifier,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._outbox_repo = outbox_repo
        self._notifier = notifier
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(self, worker_id: str = "worker-1", limit: int = 50) -> dict:
        now = self._clock.now()
        async with self._transaction_manager.start():
            events = await self._outbox_repo.claim_batch(
                locked_by=worker_id, now=now, limit=limit
            )

        delivered = retried = failed = 0
        for event in events:
            try:
                await self._notifier.send(event.event_type, event.payload)
            except Exception as exc:
                attempts = event.attempts + 1
                async with self._transaction_manager.start():
                    if attempts >= MAX_ATTEMPTS:
                        await self._outbox_repo.mark_failed(event.id, attempts, str(exc))
                        failed += 1
                    else:
                        backoff = min(BASE_BACKOFF_SECONDS * (2 ** (attempts - 1)), 300)
                        await self._outbox_repo.mark_retry(
                            event.id,
                            attempts,
                            now + timedelta(seconds=backoff),
                            str(exc),
                        )
                        retried += 1
                self._logger.warning(
                    "Notification delivery failed",
                    exc_info=exc,
                    extra={
                        "outbox_event_id": event.id,
                        "event_type": event.event_type,
                        "attempt": attempts,
                    },
                )
                continue

            async with self._transaction_manager.start():
                await self._outbox_repo.mark_done(event.id)
            delivered += 1

        if events:
            self._logger.info(
                "Outbox dispatched",
                extra={"delivered": delivered, "retried": retried, "failed": failed},
            )
        return {"claimed": len(events), "delivered": delivered, "retried": retried, "failed": failed}
