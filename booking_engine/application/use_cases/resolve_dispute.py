import logging
from dataclasses import dataclass
from datetime import datetime

from booking_engine.application.interfaces.account_repo import AccountRepo
from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.dispute_repo import DisputeRepo
from booking_engine.application.interfaces.outbox_repo import OutboxRepo
from booking_engine.application.interfaces.payment_gateway import PaymentGateway
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.application.use_cases.refund_executor import RefundExecutor
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.entities.dispute import (
    CompensationRecipient,
    Dispute,
    DisputeResolution,
)
from booking_engine.domain.errors import (
    BookingNotFoundError,
    ConflictError,
    DisputeNotFoundError,
    ForbiddenError,
    ValidationError,
)
from booking_engine.domain.events import AggregateType, NotificationType
from booking_engine.domain.state_machine import (
    BookingStatus,
    DisputeStatus,
    ensure_booking_transition,
    ensure_dispute_transition,
)


@dataclass
class ResolveDisputeCommand:
    action: str
    refund_amount: int | None = None
    refund_to: CompensationRecipient | None = None
    booking_outcome: BookingStatus = BookingStatus.COMPLETED
    notes: str | None = None


class ResolveDisputeUseCase:
    """
    Resolución de una disputa por un admin.

    Todo ocurre en una transacción: validación, llamada al procesador con una
    idempotency key derivada de la disputa y escrituras locales. Si el
    procesador falla, disputa y reserva quedan como estaban y el reintento
    reutiliza la misma key, sin pagar dos veces.
    """

    def __init__(
        self,
        dispute_repo: DisputeRepo,
        booking_repo: BookingRepo,
        account_repo: AccountRepo,
        payment_gateway: PaymentGateway,
        refund_executor: RefundExecutor,
        outbox_repo: OutboxRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._dispute_repo = dispute_repo
        self._booking_repo = booking_repo
        self._account_repo = account_repo
        self._payment_gateway = payment_gateway
        self._refund_executor = refund_executor
        self._outbox_repo = outbox_repo
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        actor: Actor,
        dispute_id: str,
        command: ResolveDisputeCommand,
    ) -> tuple[Dispute, Booking]:
        if not actor.is_admin:
            raise ForbiddenError("Only an admin can resolve a dispute")
        if (command.refund_amount is None) != (command.refund_to is None):
            raise ValidationError("refund_to", "refund amount and recipient go together")

        async with self._transaction_manager.start():
            dispute = await self._dispute_repo.get(dispute_id)
            if not dispute:
                raise DisputeNotFoundError(dispute_id)
            booking = await self._booking_repo.get(dispute.booking_id)
            if not booking:
                raise BookingNotFoundError(dispute.booking_id)

            # Validar ambas transiciones antes de mover dinero.
            ensure_dispute_transition(dispute.status, DisputeStatus.RESOLVED)
            if booking.status != BookingStatus.DISPUTED:
                raise ConflictError(f"Booking {booking.id} is not under dispute")
            ensure_booking_transition(booking.status, command.booking_outcome)

            at = self._clock.now()
            processor_reference = None
            if command.refund_amount is not None:
                processor_reference = await self._compensate(dispute, booking, command, at)

            dispute.resolve(
                actor,
                DisputeResolution(
                    action=command.action,
                    resolved_by=actor.id,
                    resolved_at=at,
                    compensation_amount=command.refund_amount,
                    compensation_recipient=command.refund_to,
                    processor_reference=processor_reference,
                    notes=command.notes,
                ),
            )
            booking.settle_dispute(actor, at, command.booking_outcome, dispute.id)
            await self._dispute_repo.update(dispute)
            await self._booking_repo.update(booking)
            await self._outbox_repo.enqueue(
                event_type=NotificationType.DISPUTE_RESOLVED.value,
                aggregate_type=AggregateType.DISPUTE.value,
                aggregate_id=dispute.id,
                payload={
                    "dispute_id": dispute.id,
                    "booking_id": booking.id,
                    "action": command.action,
                    "compensation_amount": command.refund_amount,
                    "compensation_recipient": (
                        command.refund_to.value if command.refund_to else None
                    ),
                    "booking_status": booking.status.value,
                    "recipients": [dispute.complainant_id, dispute.respondent_id],
                },
            )

        self._logger.info(
            "Dispute resolved",
            extra={
                "dispute_id": dispute.id,
                "booking_id": booking.id,
                "admin_id": actor.id,
                "compensation_amount": command.refund_amount,
                "booking_status": booking.status.value,
            },
        )
        return dispute, booking

    async def _compensate(
        self,
        dispute: Dispute,
        booking: Booking,
        command: ResolveDisputeCommand,
        at: datetime,
    ) -> str:
        if command.refund_to == CompensationRecipient.RENTER:
            outcome = await self._refund_executor.refund(
                booking=booking,
                amount=command.refund_amount,
                reason=f"dispute:{dispute.id}",
                idempotency_key=f"dispute-{dispute.id}-refund",
                at=at,
            )
            return outcome.adjustment.processor_refund_id

        payout = await self._account_repo.get_payout_account(booking.owner_id)
        if not payout:
            raise ConflictError(
                f"Owner {booking.owner_id} has no payout account for compensation",
                code="PAYOUT_ACCOUNT_NOT_READY",
            )
        transfer = await self._payment_gateway.create_transfer(
            amount=command.refund_amount,
            currency=booking.currency_code,
            destination_account_id=payout.processor_account_id,
            metadata={"dispute_id": dispute.id, "booking_id": booking.id},
            idempotency_key=f"dispute-{dispute.id}-transfer",
        )
        self._logger.info(
            "Dispute compensation transferred",
            extra={
                "dispute_id": dispute.id,
                "transfer_id": transfer.id,
                "amount": transfer.amount,
            },
        )
        return transfer.id
