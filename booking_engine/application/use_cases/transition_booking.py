import logging
from enum import Enum

from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.dispute_repo import DisputeRepo
from booking_engine.application.interfaces.outbox_repo import OutboxRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.booking import Booking, ConditionCheckPhase
from booking_engine.domain.errors import (
    BookingNotFoundError,
    ConflictError,
    ForbiddenError,
    ValidationError,
)
from booking_engine.domain.events import AggregateType, NotificationType
from booking_engine.domain.state_machine import BookingStatus


class BookingAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    CHECK_OUT = "check-out"
    COMPLETE = "complete"
    SETTLE = "settle"


_NOTIFICATIONS: dict[BookingStatus, NotificationType] = {
    BookingStatus.CONFIRMED: NotificationType.BOOKING_CONFIRMED,
    BookingStatus.REJECTED: NotificationType.BOOKING_REJECTED,
    BookingStatus.CANCELLED: NotificationType.BOOKING_CANCELLED,
    BookingStatus.ACTIVE: NotificationType.BOOKING_ACTIVE,
    BookingStatus.COMPLETED: NotificationType.BOOKING_COMPLETED,
}


class TransitionBookingUseCase:
    """Aplica una acción del ciclo de vida sobre una reserva."""

    def __init__(
        self,
        booking_repo: BookingRepo,
        dispute_repo: DisputeRepo,
        outbox_repo: OutboxRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._booking_repo = booking_repo
        self._dispute_repo = dispute_repo
        self._outbox_repo = outbox_repo
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        actor: Actor,
        booking_id: str,
        action: BookingAction,
        reason: str | None = None,
        outcome: BookingStatus | None = None,
    ) -> Booking:
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if not booking:
                raise BookingNotFoundError(booking_id)

            at = self._clock.now()
            source = booking.status
            if action == BookingAction.APPROVE:
                booking.approve(actor, at)
            elif action == BookingAction.REJECT:
                booking.reject(actor, at, reason)
            elif action == BookingAction.CANCEL:
                booking.cancel(actor, at, reason)
            elif action == BookingAction.CHECK_OUT:
                booking.check_out(actor, at)
            elif action == BookingAction.COMPLETE:
                booking.complete(actor, at)
            else:
                await self._settle(actor, booking, outcome)

            await self._booking_repo.update(booking)
            notification = (
                NotificationType.BOOKING_SETTLED
                if action == BookingAction.SETTLE
                else _NOTIFICATIONS[booking.status]
            )
            await self._outbox_repo.enqueue(
                event_type=notification.value,
                aggregate_type=AggregateType.BOOKING.value,
                aggregate_id=booking.id,
                payload={
                    "booking_id": booking.id,
                    "renter_id": booking.renter_id,
                    "owner_id": booking.owner_id,
                    "from_status": source.value,
                    "status": booking.status.value,
                    "reason": reason,
                },
            )

        self._logger.info(
            "Booking transitioned",
            extra={
                "booking_id": booking.id,
                "action": action.value,
                "from_status": source.value,
                "to_status": booking.status.value,
                "actor_id": actor.id,
            },
        )
        return booking

    async def _settle(
        self,
        actor: Actor,
        booking: Booking,
        outcome: BookingStatus | None,
    ) -> None:
        # Cierre manual de una reserva cuya disputa fue escalada fuera del motor.
        if not actor.is_admin:
            raise ForbiddenError("Only an admin can settle a disputed booking")
        if outcome not in (BookingStatus.COMPLETED, BookingStatus.CANCELLED):
            raise ValidationError("outcome", "must be 'completed' or 'cancelled'")
        open_dispute = await self._dispute_repo.find_open_for_booking(booking.id)
        if open_dispute:
            raise ConflictError(
                f"Booking {booking.id} has an open dispute; resolve dispute {open_dispute.id}"
            )
        booking.settle_dispute(actor, self._clock.now(), outcome, dispute_id="escalated")


class RecordConditionCheckUseCase:
    def __init__(
        self,
        booking_repo: BookingRepo,
        transaction_manager: TransactionManager,
    ) -> None:
        self._booking_repo = booking_repo
        self._transaction_manager = transaction_manager
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        actor: Actor,
        booking_id: str,
        phase: ConditionCheckPhase,
    ) -> Booking:
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if not booking:
                raise BookingNotFoundError(booking_id)
            booking.record_condition_check(actor, phase)
            await self._booking_repo.update(booking)

        self._logger.info(
            "Condition check recorded",
            extra={"booking_id": booking_id, "phase": phase.value, "actor_id": actor.id},
        )
        return booking
