import copy
from collections.abc import Sequence

from booking_engine.application.interfaces.dispute_repo import DisputeRepo
from booking_engine.domain.entities.dispute import Dispute, DisputeMessage
from booking_engine.domain.errors import DisputeNotFoundError
from booking_engine.domain.state_machine import DisputeStatus
from booking_engine.infrastructure.in_memory.store import InMemoryStore


class InMemoryDisputeRepo(DisputeRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add(self, dispute: Dispute) -> Dispute:
        self._store.disputes[dispute.id] = copy.deepcopy(dispute)
        return dispute

    async def get(self, dispute_id: str) -> Dispute | None:
        dispute = self._store.disputes.get(dispute_id)
        return copy.deepcopy(dispute) if dispute else None

    async def update(self, dispute: Dispute) -> Dispute:
        if dispute.id not in self._store.disputes:
            raise DisputeNotFoundError(dispute.id)
        self._store.disputes[dispute.id] = copy.deepcopy(dispute)
        return dispute

    async def find_open_for_booking(self, booking_id: str) -> Dispute | None:
        for dispute in self._store.disputes.values():
            if dispute.booking_id == booking_id and dispute.is_open:
                return copy.deepcopy(dispute)
        return None

    async def list_for_user(self, user_id: str) -> Sequence[Dispute]:
        disputes = [d for d in self._store.disputes.values() if d.is_participant(user_id)]
        return [copy.deepcopy(d) for d in self._sorted(disputes)]

    async def list_by_status(self, status: DisputeStatus) -> Sequence[Dispute]:
        disputes = [d for d in self._store.disputes.values() if d.status == status]
        return [copy.deepcopy(d) for d in self._sorted(disputes)]

    async def add_message(self, message: DisputeMessage) -> DisputeMessage:
        self._store.dispute_messages.append(message)
        return message

    async def list_messages(self, dispute_id: str) -> Sequence[DisputeMessage]:
        # sorted() es estable: a igual timestamp manda el orden de inserción.
        messages = [m for m in self._store.dispute_messages if m.dispute_id == dispute_id]
        return sorted(messages, key=lambda m: m.created_at)

    @staticmethod
    def _sorted(disputes: list[Dispute]) -> list[Dispute]:
        return sorted(disputes, key=lambda d: (d.created_at is None, d.created_at))
