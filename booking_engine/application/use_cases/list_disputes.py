from collections.abc import Sequence

from booking_engine.application.interfaces.dispute_repo import DisputeRepo
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.dispute import Dispute, DisputeMessage
from booking_engine.domain.errors import DisputeNotFoundError, ForbiddenError
from booking_engine.domain.state_machine import DisputeStatus


class GetDisputeUseCase:
    def __init__(self, dispute_repo: DisputeRepo) -> None:
        self._dispute_repo = dispute_repo

    async def execute(
        self,
        actor: Actor,
        dispute_id: str,
    ) -> tuple[Dispute, Sequence[DisputeMessage]]:
        dispute = await self._dispute_repo.get(dispute_id)
        if not dispute:
            raise DisputeNotFoundError(dispute_id)
        if not dispute.can_view(actor):
            raise ForbiddenError("Only the dispute parties or an admin can view a dispute")
        messages = await self._dispute_repo.list_messages(dispute.id)
        return dispute, messages


class ListDisputesUseCase:
    """Disputas propias, o la cola de un estado para admins."""

    def __init__(self, dispute_repo: DisputeRepo) -> None:
        self._dispute_repo = dispute_repo

    async def execute(self, actor: Actor, status: DisputeStatus | None = None) -> Sequence[Dispute]:
        if status is not None:
            if not actor.is_admin:
                raise ForbiddenError("Only admins can browse the dispute queue")
            return await self._dispute_repo.list_by_status(status)
        return await self._dispute_repo.list_for_user(actor.id)
