from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator

from booking_engine.domain.entities.listing import Listing, PayoutAccount
from booking_engine.domain.pricing import DeliveryMethod, InsuranceTier, PricingBreakdown

MinorAmount = int


class RegisterListingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: constr(strip_whitespace=True, min_length=1, max_length=200)
    daily_rate: MinorAmount = Field(gt=0)
    weekly_rate: MinorAmount | None = Field(default=None, gt=0)
    monthly_rate: MinorAmount | None = Field(default=None, gt=0)
    security_deposit: MinorAmount = Field(default=0, ge=0)
    shipping_fee: MinorAmount = Field(default=0, ge=0)
    instant_book: bool = False
    currency_code: constr(strip_whitespace=True, min_length=3, max_length=3) = "usd"

    @field_validator("currency_code")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        return value.lower()


class ListingResponse(BaseModel):
    id: str
    owner_id: str
    title: str
    daily_rate: MinorAmount
    weekly_rate: MinorAmount | None = None
    monthly_rate: MinorAmount | None = None
    security_deposit: MinorAmount
    shipping_fee: MinorAmount
    instant_book: bool
    currency_code: str
    created_at: datetime | None = None


class AvailabilityResponse(BaseModel):
    listing_id: str
    start_date: date
    end_date: date
    available: bool
    conflicting_booking_ids: list[str]


class QuoteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start_date: date
    end_date: date
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    insurance_tier: InsuranceTier = InsuranceTier.NONE


class PricingResponse(BaseModel):
    daily_rate: MinorAmount
    days: int
    subtotal: MinorAmount
    service_fee: MinorAmount
    delivery_fee: MinorAmount
    insurance_fee: MinorAmount
    total: MinorAmount
    security_deposit: MinorAmount


class QuoteResponse(BaseModel):
    listing_id: str
    start_date: date
    end_date: date
    currency_code: str
    available: bool
    pricing: PricingResponse


class LinkPayoutAccountRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    processor_account_id: constr(strip_whitespace=True, min_length=1, max_length=255)


class PayoutAccountResponse(BaseModel):
    owner_id: str
    processor_account_id: str
    charges_enabled: bool
    payouts_enabled: bool
    can_accept_payments: bool


def to_listing_response(listing: Listing) -> ListingResponse:
    return ListingResponse(
        id=listing.id,
        owner_id=listing.owner_id,
        title=listing.title,
        daily_rate=listing.daily_rate,
        weekly_rate=listing.weekly_rate,
        monthly_rate=listing.monthly_rate,
        security_deposit=listing.security_deposit,
        shipping_fee=listing.shipping_fee,
        instant_book=listing.instant_book,
        currency_code=listing.currency_code,
        created_at=listing.created_at,
    )


def to_pricing_response(pricing: PricingBreakdown) -> PricingResponse:
    return PricingResponse(
        daily_rate=pricing.daily_rate,
        days=pricing.days,
        subtotal=pricing.subtotal,
        service_fee=pricing.service_fee,
        delivery_fee=pricing.delivery_fee,
        insurance_fee=pricing.insurance_fee,
        total=pricing.total,
        security_deposit=pricing.security_deposit,
    )


def to_payout_account_response(account: PayoutAccount) -> PayoutAccountResponse:
    return PayoutAccountResponse(
        owner_id=account.owner_id,
        processor_account_id=account.processor_account_id,
        charges_enabled=account.charges_enabled,
        payouts_enabled=account.payouts_enabled,
        can_accept_payments=account.can_accept_payments,
    )
