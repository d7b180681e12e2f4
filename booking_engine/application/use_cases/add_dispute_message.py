import logging

from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.dispute_repo import DisputeRepo
from booking_engine.application.interfaces.outbox_repo import OutboxRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.application.interfaces.uuid_generator import UUIDGenerator
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.dispute import DisputeMessage
from booking_engine.domain.errors import ConflictError, DisputeNotFoundError, ForbiddenError
from booking_engine.domain.events import AggregateType, NotificationType
from booking_engine.domain.state_machine import DisputeStatus


class AddDisputeMessageUseCase:
    def __init__(
        self,
        dispute_repo: DisputeRepo,
        outbox_repo: OutboxRepo,
        transaction_manager: TransactionManager,
        uuid_generator: UUIDGenerator,
        clock: Clock,
    ) -> None:
        self._dispute_repo = dispute_repo
        self._outbox_repo = outbox_repo
        self._transaction_manager = transaction_manager
        self._uuid_generator = uuid_generator
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(self, actor: Actor, dispute_id: str, body: str) -> DisputeMessage:
        async with self._transaction_manager.start():
            dispute = await self._dispute_repo.get(dispute_id)
            if not dispute:
                raise DisputeNotFoundError(dispute_id)
            if not dispute.can_view(actor):
                raise ForbiddenError("Only the dispute parties or an admin can post messages")
            if dispute.status == DisputeStatus.RESOLVED:
                raise ConflictError(f"Dispute {dispute.id} is already resolved")

            message = DisputeMessage(
                id=self._uuid_generator.generate_uuid(),
                dispute_id=dispute.id,
                sender_id=actor.id,
                body=body,
                created_at=self._clock.now(),
                is_admin_message=actor.is_admin,
            )
            await self._dispute_repo.add_message(message)
            await self._outbox_repo.enqueue(
                event_type=NotificationType.DISPUTE_MESSAGE_POSTED.value,
                aggregate_type=AggregateType.DISPUTE.value,
                aggregate_id=dispute.id,
                payload={
                    "dispute_id": dispute.id,
                    "message_id": message.id,
                    "sender_id": actor.id,
                    "recipients": [
                        uid
                        for uid in (dispute.complainant_id, dispute.respondent_id)
                        if uid != actor.id
                    ],
                },
            )

        self._logger.info(
            "Dispute message posted",
            extra={"dispute_id": dispute_id, "sender_id": actor.id, "admin": actor.is_admin},
        )
        return message
