from datetime import date

from fastapi import APIRouter, Depends, Query, status

from booking_engine.api.dependencies import get_actor, get_use_cases
from booking_engine.api.schemas.listings import (
    AvailabilityResponse,
    ListingResponse,
    QuoteRequest,
    QuoteResponse,
    RegisterListingRequest,
    to_listing_response,
    to_pricing_response,
)
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.value_objects.date_range import DateRange

router = APIRouter()


@router.post(
    "/listings",
    response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_listing(
    payload: RegisterListingRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> ListingResponse:
    listing = await use_cases["register_listing"].execute(actor=actor, request=payload)
    return to_listing_response(listing)


@router.get(
    "/listings/{listing_id}/availability",
    response_model=AvailabilityResponse,
)
async def check_availability(
    listing_id: str,
    start_date: date = Query(...),
    end_date: date = Query(...),
    exclude_booking_id: str | None = Query(default=None),
    use_cases=Depends(get_use_cases),
) -> AvailabilityResponse:
    result = await use_cases["check_availability"].execute(
        listing_id=listing_id,
        date_range=DateRange(start=start_date, end=end_date),
        exclude_booking_id=exclude_booking_id,
    )
    return AvailabilityResponse(
        listing_id=result.listing_id,
        start_date=result.date_range.start,
        end_date=result.date_range.end,
        available=result.available,
        conflicting_booking_ids=result.conflicting_booking_ids,
    )


@router.post(
    "/listings/{listing_id}/quote",
    response_model=QuoteResponse,
)
async def quote_booking(
    listing_id: str,
    payload: QuoteRequest,
    use_cases=Depends(get_use_cases),
) -> QuoteResponse:
    quote = await use_cases["quote_booking"].execute(
        listing_id=listing_id,
        date_range=DateRange(start=payload.start_date, end=payload.end_date),
        delivery_method=payload.delivery_method,
        insurance_tier=payload.insurance_tier,
    )
    return QuoteResponse(
        listing_id=quote.listing.id,
        start_date=quote.date_range.start,
        end_date=quote.date_range.end,
        currency_code=quote.listing.currency_code,
        available=quote.available,
        pricing=to_pricing_response(quote.pricing),
    )
