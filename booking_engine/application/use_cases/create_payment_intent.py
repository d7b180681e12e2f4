import logging

from booking_engine.application.interfaces.account_repo import AccountRepo
from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.payment_gateway import PaymentGateway
from booking_engine.application.interfaces.payment_repo import PaymentRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.application.interfaces.uuid_generator import UUIDGenerator
from booking_engine.application.use_cases.payment_settlement import map_processor_status
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.entities.listing import PayerProfile
from booking_engine.domain.entities.payment import PaymentIntent
from booking_engine.domain.errors import BookingNotFoundError, ConflictError, ForbiddenError
from booking_engine.domain.pricing import PricingConfig, compute_payment_split
from booking_engine.domain.state_machine import BookingStatus

PAYABLE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class CreatePaymentIntentUseCase:
    """
    Crea el cobro con destination charge para una reserva.

    El total completo se cobra al renter; application_fee_amount es la comisión
    de la plataforma más el fee del procesador y el resto se transfiere al owner.
    """

    def __init__(
        self,
        booking_repo: BookingRepo,
        account_repo: AccountRepo,
        payment_repo: PaymentRepo,
        payment_gateway: PaymentGateway,
        transaction_manager: TransactionManager,
        uuid_generator: UUIDGenerator,
        clock: Clock,
        pricing_config: PricingConfig,
    ) -> None:
        self._booking_repo = booking_repo
        self._account_repo = account_repo
        self._payment_repo = payment_repo
        self._payment_gateway = payment_gateway
        self._transaction_manager = transaction_manager
        self._uuid_generator = uuid_generator
        self._clock = clock
        self._pricing_config = pricing_config
        self._logger = logging.getLogger(__name__)

    async def execute(self, actor: Actor, booking_id: str) -> PaymentIntent:
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if not booking:
                raise BookingNotFoundError(booking_id)
            if actor.id != booking.renter_id:
                raise ForbiddenError("Only the renter can pay for a booking")
            if booking.status not in PAYABLE_STATUSES:
                raise ConflictError(
                    f"Booking {booking.id} cannot be paid in status '{booking.status.value}'",
                    code="BOOKING_NOT_PAYABLE",
                )

            intents = await self._payment_repo.list_intents_for_booking(booking.id)
            if any(i.is_succeeded for i in intents):
                raise ConflictError(f"Booking {booking.id} is already paid", code="ALREADY_PAID")
            open_intents = [i for i in intents if i.is_open and i.amount == booking.total_amount]
            if open_intents:
                return open_intents[-1]

            # Se valida antes de cualquier llamada al procesador.
            split = compute_payment_split(booking.total_amount, self._pricing_config)

            payout = await self._account_repo.get_payout_account(booking.owner_id)
            if not payout or not payout.can_accept_payments:
                raise ConflictError(
                    "The owner cannot accept payments yet",
                    code="PAYOUT_ACCOUNT_NOT_READY",
                )
            customer_id = await self._payer_customer_id(booking)

            processor_intent = await self._payment_gateway.create_payment_intent(
                amount=split.total,
                currency=booking.currency_code,
                customer_id=customer_id,
                destination_account_id=payout.processor_account_id,
                application_fee_amount=split.application_fee,
                metadata={
                    "booking_id": booking.id,
                    "renter_id": booking.renter_id,
                    "owner_id": booking.owner_id,
                },
                idempotency_key=f"booking-{booking.id}-intent-{len(intents) + 1}",
            )
            now = self._clock.now()
            intent = PaymentIntent(
                id=self._uuid_generator.generate_uuid(),
                booking_id=booking.id,
                processor_intent_id=processor_intent.id,
                amount=split.total,
                currency_code=booking.currency_code,
                platform_fee=split.platform_fee,
                processor_fee=split.processor_fee,
                owner_payout=split.owner_payout,
                destination_account_id=payout.processor_account_id,
                status=map_processor_status(processor_intent.status),
                client_secret=processor_intent.client_secret,
                created_at=now,
                updated_at=now,
            )
            await self._payment_repo.add_intent(intent)

        self._logger.info(
            "Payment intent created",
            extra={
                "booking_id": booking.id,
                "intent_id": intent.id,
                "processor_intent_id": intent.processor_intent_id,
                "amount": intent.amount,
                "application_fee": intent.application_fee,
            },
        )
        return intent

    async def _payer_customer_id(self, booking: Booking) -> str:
        profile = await self._account_repo.get_payer_profile(booking.renter_id)
        if profile:
            return profile.processor_customer_id
        customer_id = await self._payment_gateway.create_customer(
            renter_id=booking.renter_id,
            idempotency_key=f"customer-{booking.renter_id}",
        )
        await self._account_repo.save_payer_profile(
            PayerProfile(
                renter_id=booking.renter_id,
                processor_customer_id=customer_id,
                created_at=self._clock.now(),
            )
        )
        return customer_id
