import logging

from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.dispute_repo import DisputeRepo
from booking_engine.application.interfaces.outbox_repo import OutboxRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.dispute import Dispute
from booking_engine.domain.errors import DisputeNotFoundError
from booking_engine.domain.events import AggregateType, NotificationType


class _DisputeAdminUseCase:
    def __init__(
        self,
        dispute_repo: DisputeRepo,
        outbox_repo: OutboxRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._dispute_repo = dispute_repo
        self._outbox_repo = outbox_repo
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def _load(self, dispute_id: str) -> Dispute:
        dispute = await self._dispute_repo.get(dispute_id)
        if not dispute:
            raise DisputeNotFoundError(dispute_id)
        return dispute

    async def _save(self, dispute: Dispute, notification: NotificationType) -> None:
        await self._dispute_repo.update(dispute)
        await self._outbox_repo.enqueue(
            event_type=notification.value,
            aggregate_type=AggregateType.DISPUTE.value,
            aggregate_id=dispute.id,
            payload={
                "dispute_id": dispute.id,
                "booking_id": dispute.booking_id,
                "status": dispute.status.value,
                "recipients": [dispute.complainant_id, dispute.respondent_id],
            },
        )


class StartDisputeReviewUseCase(_DisputeAdminUseCase):
    async def execute(self, actor: Actor, dispute_id: str) -> Dispute:
        async with self._transaction_manager.start():
            dispute = await self._load(dispute_id)
            dispute.start_review(actor, self._clock.now())
            await self._save(dispute, NotificationType.DISPUTE_UNDER_REVIEW)

        self._logger.info(
            "Dispute under review",
            extra={"dispute_id": dispute_id, "admin_id": actor.id},
        )
        return dispute


class EscalateDisputeUseCase(_DisputeAdminUseCase):
    """La disputa sale del flujo del motor; la reserva queda disputed hasta un settle."""

    async def execute(self, actor: Actor, dispute_id: str, note: str | None = None) -> Dispute:
        async with self._transaction_manager.start():
            dispute = await self._load(dispute_id)
            dispute.escalate(actor, self._clock.now(), note)
            await self._save(dispute, NotificationType.DISPUTE_ESCALATED)

        self._logger.warning(
            "Dispute escalated",
            extra={"dispute_id": dispute_id, "admin_id": actor.id},
        )
        return dispute
