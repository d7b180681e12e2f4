import hashlib
import json
import logging
from typing import Any

from booking_engine.api.schemas.bookings import (
    BookingResponse,
    CreateBookingRequest,
    to_booking_response,
)
from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.idempotency_repo import (
    IdempotencyRecord,
    IdempotencyRepo,
)
from booking_engine.application.interfaces.listing_repo import ListingRepo
from booking_engine.application.interfaces.outbox_repo import OutboxRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.application.interfaces.uuid_generator import UUIDGenerator
from booking_engine.application.use_cases.check_availability import AvailabilityChecker
from booking_engine.application.use_cases.quote_booking import price_for_listing
from booking_engine.domain.entities.actor import Actor, ActorRole
from booking_engine.domain.entities.booking import Booking
from booking_engine.domain.errors import (
    BookingConflictError,
    ForbiddenError,
    IdempotencyConflictError,
    ListingNotFoundError,
    ValidationError,
)
from booking_engine.domain.events import AggregateType, NotificationType
from booking_engine.domain.pricing import PricingConfig
from booking_engine.domain.value_objects.date_range import DateRange

SCOPE = "BOOKING_CREATE"


def _hash_request(payload: dict[str, Any]) -> str:
    normalized = json.dumps(payload, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(normalized.encode()).hexdigest()


class CreateBookingUseCase:
    def __init__(
        self,
        listing_repo: ListingRepo,
        booking_repo: BookingRepo,
        idempotency_repo: IdempotencyRepo,
        outbox_repo: OutboxRepo,
        transaction_manager: TransactionManager,
        uuid_generator: UUIDGenerator,
        clock: Clock,
        pricing_config: PricingConfig,
    ) -> None:
        self._listing_repo = listing_repo
        self._booking_repo = booking_repo
        self._idempotency_repo = idempotency_repo
        self._outbox_repo = outbox_repo
        self._transaction_manager = transaction_manager
        self._uuid_generator = uuid_generator
        self._clock = clock
        self._pricing_config = pricing_config
        self._checker = AvailabilityChecker(booking_repo)
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        actor: Actor,
        request: CreateBookingRequest,
        idem_key: str,
    ) -> BookingResponse:
        if actor.role != ActorRole.RENTER:
            raise ForbiddenError("Only renters can request bookings")

        # El key es por renter: dos renters pueden reutilizar el mismo valor.
        idem_scope = f"{SCOPE}:{actor.id}"
        request_hash = _hash_request(request.model_dump())
        date_range = DateRange(start=request.start_date, end=request.end_date)

        async with self._transaction_manager.start():
            existing = await self._idempotency_repo.get(scope=idem_scope, idem_key=idem_key)
            if existing:
                if existing.request_hash != request_hash:
                    raise IdempotencyConflictError(idem_key=idem_key, scope=SCOPE)
                return BookingResponse.model_validate(existing.response_json)

            if date_range.start < self._clock.today():
                raise ValidationError("start_date", "cannot be in the past")

            listing = await self._listing_repo.lock_for_booking(request.listing_id)
            if not listing:
                raise ListingNotFoundError(request.listing_id)
            if listing.owner_id == actor.id:
                raise ForbiddenError("Owners cannot book their own listing")

            availability = await self._checker.check(listing.id, date_range)
            if not availability.available:
                self._logger.info(
                    "Booking rejected: dates unavailable",
                    extra={
                        "listing_id": listing.id,
                        "date_range": str(date_range),
                        "conflicts": availability.conflicting_booking_ids,
                    },
                )
                raise BookingConflictError(listing.id, availability.conflicting_booking_ids)

            pricing = price_for_listing(
                listing,
                date_range,
                request.delivery_method,
                request.insurance_tier,
                self._pricing_config,
            )
            booking = Booking.request(
                booking_id=self._uuid_generator.generate_uuid(),
                listing_id=listing.id,
                renter_id=actor.id,
                owner_id=listing.owner_id,
                date_range=date_range,
                pricing=pricing,
                delivery_method=request.delivery_method,
                insurance_tier=request.insurance_tier,
                currency_code=listing.currency_code,
                instant_book=listing.instant_book,
                at=self._clock.now(),
            )
            await self._booking_repo.add(booking)
            await self._outbox_repo.enqueue(
                event_type=(
                    NotificationType.BOOKING_CONFIRMED.value
                    if listing.instant_book
                    else NotificationType.BOOKING_REQUESTED.value
                ),
                aggregate_type=AggregateType.BOOKING.value,
                aggregate_id=booking.id,
                payload={
                    "booking_id": booking.id,
                    "listing_id": listing.id,
                    "renter_id": booking.renter_id,
                    "owner_id": booking.owner_id,
                    "status": booking.status.value,
                },
            )

            response = to_booking_response(booking)
            await self._idempotency_repo.save(
                IdempotencyRecord(
                    scope=idem_scope,
                    idem_key=idem_key,
                    request_hash=request_hash,
                    response_json=json.loads(response.model_dump_json()),
                    http_status=201,
                    reference_id=booking.id,
                )
            )

        self._logger.info(
            "Booking created",
            extra={
                "booking_id": booking.id,
                "listing_id": listing.id,
                "status": booking.status.value,
                "total": pricing.total,
            },
        )
        return response
