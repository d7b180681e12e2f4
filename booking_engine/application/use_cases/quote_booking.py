from dataclasses import dataclass

from booking_engine.application.interfaces.booking_repo import BookingRepo
from booking_engine.application.interfaces.listing_repo import ListingRepo
from booking_engine.application.use_cases.check_availability import AvailabilityChecker
from booking_engine.domain.entities.listing import Listing
from booking_engine.domain.errors import ListingNotFoundError
from booking_engine.domain.pricing import (
    DeliveryMethod,
    InsuranceTier,
    PricingBreakdown,
    PricingConfig,
    compute_payment_split,
    compute_pricing,
)
from booking_engine.domain.value_objects.date_range import DateRange


@dataclass
class Quote:
    listing: Listing
    date_range: DateRange
    pricing: PricingBreakdown
    available: bool


def price_for_listing(
    listing: Listing,
    date_range: DateRange,
    delivery_method: DeliveryMethod,
    insurance_tier: InsuranceTier,
    config: PricingConfig,
) -> PricingBreakdown:
    pricing = compute_pricing(
        daily_rate=listing.daily_rate,
        days=date_range.days,
        delivery_method=delivery_method,
        insurance_tier=insurance_tier,
        deposit_amount=listing.security_deposit,
        config=config,
        shipping_fee=listing.shipping_fee,
    )
    # Una reserva que no puede cobrarse no se cotiza ni se crea.
    compute_payment_split(pricing.total, config)
    return pricing


class QuoteBookingUseCase:
    """Precio y disponibilidad de un rango sin reservar nada."""

    def __init__(
        self,
        listing_repo: ListingRepo,
        booking_repo: BookingRepo,
        pricing_config: PricingConfig,
    ) -> None:
        self._listing_repo = listing_repo
        self._checker = AvailabilityChecker(booking_repo)
        self._pricing_config = pricing_config

    async def execute(
        self,
        listing_id: str,
        date_range: DateRange,
        delivery_method: DeliveryMethod,
        insurance_tier: InsuranceTier,
    ) -> Quote:
        listing = await self._listing_repo.get(listing_id)
        if not listing:
            raise ListingNotFoundError(listing_id)
        pricing = price_for_listing(
            listing, date_range, delivery_method, insurance_tier, self._pricing_config
        )
        availability = await self._checker.check(listing_id, date_range)
        return Quote(
            listing=listing,
            date_range=date_range,
            pricing=pricing,
            available=availability.available,
        )
