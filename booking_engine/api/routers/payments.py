from fastapi import APIRouter, Depends, Query, Request, status

from booking_engine.api.dependencies import get_actor, get_use_cases
from booking_engine.api.schemas.listings import (
    LinkPayoutAccountRequest,
    PayoutAccountResponse,
    to_payout_account_response,
)
from booking_engine.api.schemas.payments import (
    BookingPaymentsResponse,
    EarningsResponse,
    PaymentIntentResponse,
    RefundRequest,
    RefundResponse,
    WebhookAck,
    to_booking_payments_response,
    to_earnings_response,
    to_payment_intent_response,
    to_refund_response,
)
from booking_engine.domain.entities.actor import Actor

router = APIRouter()


@router.put("/payout-accounts", response_model=PayoutAccountResponse)
async def link_payout_account(
    payload: LinkPayoutAccountRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> PayoutAccountResponse:
    account = await use_cases["link_payout_account"].execute(
        actor=actor, processor_account_id=payload.processor_account_id
    )
    return to_payout_account_response(account)


@router.post(
    "/bookings/{booking_id}/payment-intent",
    response_model=PaymentIntentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_intent(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> PaymentIntentResponse:
    intent = await use_cases["create_payment_intent"].execute(actor=actor, booking_id=booking_id)
    return to_payment_intent_response(intent)


@router.post("/payment-intents/{intent_id}/confirm", response_model=PaymentIntentResponse)
async def confirm_payment(
    intent_id: str,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> PaymentIntentResponse:
    intent = await use_cases["confirm_payment"].execute(actor=actor, intent_id=intent_id)
    return to_payment_intent_response(intent)


@router.post(
    "/bookings/{booking_id}/refunds",
    response_model=RefundResponse,
    status_code=status.HTTP_201_CREATED,
)
async def process_refund(
    booking_id: str,
    payload: RefundRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> RefundResponse:
    outcome, booking = await use_cases["process_refund"].execute(
        actor=actor,
        booking_id=booking_id,
        amount=payload.amount,
        reason=payload.reason,
    )
    return to_refund_response(outcome.adjustment, booking_status=booking.status.value)


@router.post("/webhooks/stripe", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def stripe_webhook(
    request: Request,
    use_cases=Depends(get_use_cases),
) -> WebhookAck:
    raw_body = await request.body()
    signature = request.headers.get("Stripe-Signature")
    return await use_cases["handle_webhook"].execute(raw_body=raw_body, signature=signature)


@router.get("/bookings/{booking_id}/payments", response_model=BookingPaymentsResponse)
async def get_booking_payments(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> BookingPaymentsResponse:
    history = await use_cases["get_booking_payments"].execute(actor=actor, booking_id=booking_id)
    return to_booking_payments_response(history)


@router.get("/payouts/earnings", response_model=EarningsResponse)
async def get_owner_earnings(
    year: int | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> EarningsResponse:
    summary = await use_cases["get_owner_earnings"].execute(actor=actor, tax_year=year)
    return to_earnings_response(summary)
