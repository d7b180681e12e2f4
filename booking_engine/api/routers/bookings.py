from typing import Literal

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from booking_engine.api.dependencies import get_actor, get_clock, get_use_cases
from booking_engine.api.schemas.bookings import (
    BookingDetailResponse,
    BookingResponse,
    ConditionCheckRequest,
    CreateBookingRequest,
    RescheduleBookingRequest,
    SettleBookingRequest,
    TransitionRequest,
    to_booking_detail_response,
    to_booking_response,
)
from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.use_cases.transition_booking import BookingAction
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.state_machine import BookingStatus
from booking_engine.domain.value_objects.date_range import DateRange
from booking_engine.infrastructure.db.retry import retry_on_deadlock

router = APIRouter()


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    payload: CreateBookingRequest,
    idem_key: str = Header(default=None, convert_underscores=False, alias="Idempotency-Key"),
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    if not idem_key:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Idempotency-Key header is required",
        )

    async def execute_create():
        return await use_cases["create_booking"].execute(
            actor=actor, request=payload, idem_key=idem_key
        )

    return await retry_on_deadlock(execute_create)


@router.get("/bookings", response_model=list[BookingResponse])
async def list_bookings(
    role: Literal["renter", "owner"] | None = Query(default=None),
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> list[BookingResponse]:
    bookings = await use_cases["list_bookings"].execute(
        actor=actor, as_party=role, status=status_filter
    )
    return [to_booking_response(b) for b in bookings]


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingDetailResponse,
)
async def get_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    clock: Clock = Depends(get_clock),
    use_cases=Depends(get_use_cases),
) -> BookingDetailResponse:
    booking = await use_cases["get_booking"].execute(actor=actor, booking_id=booking_id)
    return to_booking_detail_response(booking, today=clock.today())


async def _transition(
    use_cases: dict,
    actor: Actor,
    booking_id: str,
    action: BookingAction,
    payload: TransitionRequest | None = None,
) -> BookingResponse:
    booking = await use_cases["transition_booking"].execute(
        actor=actor,
        booking_id=booking_id,
        action=action,
        reason=payload.reason if payload else None,
    )
    return to_booking_response(booking)


@router.post("/bookings/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    return await _transition(use_cases, actor, booking_id, BookingAction.APPROVE)


@router.post("/bookings/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: str,
    payload: TransitionRequest | None = None,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    return await _transition(use_cases, actor, booking_id, BookingAction.REJECT, payload)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    payload: TransitionRequest | None = None,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    return await _transition(use_cases, actor, booking_id, BookingAction.CANCEL, payload)


@router.post("/bookings/{booking_id}/check-out", response_model=BookingResponse)
async def check_out_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    return await _transition(use_cases, actor, booking_id, BookingAction.CHECK_OUT)


@router.post("/bookings/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    return await _transition(use_cases, actor, booking_id, BookingAction.COMPLETE)


@router.post("/bookings/{booking_id}/settle", response_model=BookingResponse)
async def settle_booking(
    booking_id: str,
    payload: SettleBookingRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    booking = await use_cases["transition_booking"].execute(
        actor=actor,
        booking_id=booking_id,
        action=BookingAction.SETTLE,
        reason=payload.reason,
        outcome=payload.outcome,
    )
    return to_booking_response(booking)


@router.post("/bookings/{booking_id}/condition-checks", response_model=BookingResponse)
async def record_condition_check(
    booking_id: str,
    payload: ConditionCheckRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    booking = await use_cases["record_condition_check"].execute(
        actor=actor, booking_id=booking_id, phase=payload.phase
    )
    return to_booking_response(booking)


@router.put("/bookings/{booking_id}/dates", response_model=BookingResponse)
async def reschedule_booking(
    booking_id: str,
    payload: RescheduleBookingRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    date_range = DateRange(start=payload.start_date, end=payload.end_date)

    async def execute_reschedule():
        return await use_cases["reschedule_booking"].execute(
            actor=actor, booking_id=booking_id, date_range=date_range
        )

    booking = await retry_on_deadlock(execute_reschedule)
    return to_booking_response(booking)
