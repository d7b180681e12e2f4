from collections.abc import Sequence

from booking_engine.domain.entities.dispute import Dispute, DisputeMessage
from booking_engine.domain.state_machine import DisputeStatus


class DisputeRepo:
    async def add(self, dispute: Dispute) -> Dispute:
        raise NotImplementedError

    async def get(self, dispute_id: str) -> Dispute | None:
        raise NotImplementedError

    async def update(self, dispute: Dispute) -> Dispute:
        raise NotImplementedError

    async def find_open_for_booking(self, booking_id: str) -> Dispute | None:
        raise NotImplementedError

    async def list_for_user(self, user_id: str) -> Sequence[Dispute]:
        raise NotImplementedError

    async def list_by_status(self, status: DisputeStatus) -> Sequence[Dispute]:
        raise NotImplementedError

    async def add_message(self, message: DisputeMessage) -> DisputeMessage:
        raise NotImplementedError

    async def list_messages(self, dispute_id: str) -> Sequence[DisputeMessage]:
        raise NotImplementedError
