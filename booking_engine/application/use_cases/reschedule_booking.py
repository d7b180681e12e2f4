import logging

from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.listing_repo import ListingRepo
from booking_engine.application.interfaces.outbox_repo import OutboxRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.application.use_cases.check_availability import AvailabilityChecker
from booking_engine.application.use_cases.quote_booking import price_for_listing
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.errors import (
    BookingConflictError,
    BookingNotFoundError,
    ListingNotFoundError,
    ValidationError,
)
from booking_engine.domain.events import AggregateType, NotificationType
from booking_engine.domain.pricing import PricingConfig
from booking_engine.domain.value_objects.date_range import DateRange


class RescheduleBookingUseCase:
    """
    Cambia las fechas de una reserva pending.

    Corre con el calendario del listing bloqueado y excluye la propia reserva
    del chequeo, así puede moverse sobre un rango que se solapa con el actual.
    """

    def __init__(
        self,
        listing_repo: ListingRepo,
        booking_repo: BookingRepo,
        outbox_repo: OutboxRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
        pricing_config: PricingConfig,
    ) -> None:
        self._listing_repo = listing_repo
        self._booking_repo = booking_repo
        self._outbox_repo = outbox_repo
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._pricing_config = pricing_config
        self._checker = AvailabilityChecker(booking_repo)
        self._logger = logging.getLogger(__name__)

    async def execute(self, actor: Actor, booking_id: str, date_range: DateRange) -> Booking:
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if not booking:
                raise BookingNotFoundError(booking_id)
            booking.ensure_reschedulable(actor)
            if date_range.start < self._clock.today():
                raise ValidationError("start_date", "cannot be in the past")

            listing = await self._listing_repo.lock_for_booking(booking.listing_id)
            if not listing:
                raise ListingNotFoundError(booking.listing_id)

            availability = await self._checker.check(
                listing.id, date_range, exclude_booking_id=booking.id
            )
            if not availability.available:
                raise BookingConflictError(listing.id, availability.conflicting_booking_ids)

            previous = booking.date_range
            pricing = price_for_listing(
                listing,
                date_range,
                booking.delivery_method,
                booking.insurance_tier,
                self._pricing_config,
            )
            booking.reschedule(actor, date_range, pricing, self._clock.now())
            await self._booking_repo.update(booking)
            await self._outbox_repo.enqueue(
                event_type=NotificationType.BOOKING_RESCHEDULED.value,
                aggregate_type=AggregateType.BOOKING.value,
                aggregate_id=booking.id,
                payload={
                    "booking_id": booking.id,
                    "owner_id": booking.owner_id,
                    "start_date": booking.start_date.isoformat(),
                    "end_date": booking.end_date.isoformat(),
                    "total": pricing.total,
                },
            )

        self._logger.info(
            "Booking rescheduled",
            extra={
                "booking_id": booking.id,
                "previous_range": str(previous),
                "date_range": str(date_range),
                "total": pricing.total,
            },
        )
        return booking
