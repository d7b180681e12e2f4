import logging

from booking_engine.api.schemas.disputes import OpenDisputeRequest
from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.dispute_repo import DisputeRepo
from booking_engine.application.interfaces.outbox_repo import OutboxRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.application.interfaces.uuid_generator import UUIDGenerator
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.dispute import Dispute
from booking_engine.domain.errors import (
    BookingNotFoundError,
    DuplicateOpenDisputeError,
    ForbiddenError,
)
from booking_engine.domain.events import AggregateType, NotificationType
from booking_engine.domain.state_machine import BookingStatus, ensure_booking_transition


class OpenDisputeUseCase:
    """
    Abre una disputa y pasa la reserva a disputed en la misma transacción.

    Solo sobre reservas active (incluidas las vencidas) o completed, y nunca
    con otra disputa abierta o en revisión para la misma reserva.
    """

    def __init__(
        self,
        booking_repo: BookingRepo,
        dispute_repo: DisputeRepo,
        outbox_repo: OutboxRepo,
        transaction_manager: TransactionManager,
        uuid_generator: UUIDGenerator,
        clock: Clock,
    ) -> None:
        self._booking_repo = booking_repo
        self._dispute_repo = dispute_repo
        self._outbox_repo = outbox_repo
        self._transaction_manager = transaction_manager
        self._uuid_generator = uuid_generator
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        actor: Actor,
        booking_id: str,
        request: OpenDisputeRequest,
    ) -> Dispute:
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if not booking:
                raise BookingNotFoundError(booking_id)
            if not booking.is_party(actor.id):
                raise ForbiddenError("Only the renter or the owner can open a dispute")

            existing = await self._dispute_repo.find_open_for_booking(booking.id)
            if existing:
                raise DuplicateOpenDisputeError(booking.id)
            ensure_booking_transition(booking.status, BookingStatus.DISPUTED)

            at = self._clock.now()
            respondent_id = booking.owner_id if actor.id == booking.renter_id else booking.renter_id
            dispute = Dispute(
                id=self._uuid_generator.generate_uuid(),
                booking_id=booking.id,
                complainant_id=actor.id,
                respondent_id=respondent_id,
                dispute_type=request.dispute_type,
                description=request.description,
                evidence_urls=[str(url) for url in request.evidence_urls],
                created_at=at,
                updated_at=at,
            )
            booking.mark_disputed(actor, at, dispute.id)
            await self._dispute_repo.add(dispute)
            await self._booking_repo.update(booking)
            await self._outbox_repo.enqueue(
                event_type=NotificationType.DISPUTE_OPENED.value,
                aggregate_type=AggregateType.DISPUTE.value,
                aggregate_id=dispute.id,
                payload={
                    "dispute_id": dispute.id,
                    "booking_id": booking.id,
                    "complainant_id": dispute.complainant_id,
                    "respondent_id": dispute.respondent_id,
                    "dispute_type": dispute.dispute_type.value,
                    "overdue": booking.end_date <= at.date(),
                },
            )

        self._logger.info(
            "Dispute opened",
            extra={
                "dispute_id": dispute.id,
                "booking_id": booking.id,
                "dispute_type": dispute.dispute_type.value,
            },
        )
        return dispute
