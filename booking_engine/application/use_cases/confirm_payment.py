import logging

from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.payment_gateway import PaymentGateway
from booking_engine.application.interfaces.payment_repo import PaymentRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.application.use_cases.payment_settlement import (
    PaymentSettlement,
    map_processor_status,
)
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.payment import PaymentIntent, PaymentIntentStatus
from booking_engine.domain.errors import (
    BookingNotFoundError,
    ForbiddenError,
    PaymentIntentNotFoundError,
)


class ConfirmPaymentUseCase:
    """
    Consulta el intent en el procesador y aplica el resultado.

    Mismo camino que el webhook, para clientes que no quieren esperarlo.
    """

    def __init__(
        self,
        payment_repo: PaymentRepo,
        booking_repo: BookingRepo,
        payment_gateway: PaymentGateway,
        settlement: PaymentSettlement,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._payment_repo = payment_repo
        self._booking_repo = booking_repo
        self._payment_gateway = payment_gateway
        self._settlement = settlement
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(self, actor: Actor, intent_id: str) -> PaymentIntent:
        async with self._transaction_manager.start():
            intent = await self._payment_repo.get_intent(intent_id)
            if not intent:
                raise PaymentIntentNotFoundError(intent_id)
            booking = await self._booking_repo.get(intent.booking_id)
            if not booking:
                raise BookingNotFoundError(intent.booking_id)
            if not (actor.is_admin or actor.id == booking.renter_id):
                raise ForbiddenError("Only the renter can confirm this payment")

            processor_intent = await self._payment_gateway.retrieve_payment_intent(
                intent.processor_intent_id
            )
            status = map_processor_status(processor_intent.status)
            at = self._clock.now()
            if status == PaymentIntentStatus.SUCCEEDED:
                await self._settlement.settle_success(intent, event_id=None, at=at)
            elif processor_intent.failure_message:
                await self._settlement.settle_failure(
                    intent,
                    event_id=None,
                    failure_message=processor_intent.failure_message,
                    at=at,
                )
            else:
                self._logger.info(
                    "Payment not settled yet",
                    extra={"intent_id": intent.id, "processor_status": processor_intent.status},
                )
            refreshed = await self._payment_repo.get_intent(intent_id)

        return refreshed or intent
