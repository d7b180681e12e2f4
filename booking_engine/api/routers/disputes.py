from fastapi import APIRouter, Depends, Query, status

from booking_engine.api.dependencies import get_actor, get_use_cases
from booking_engine.api.schemas.disputes import (
    DisputeDetailResponse,
    DisputeMessageRequest,
    DisputeMessageResponse,
    DisputeResponse,
    EscalateDisputeRequest,
    OpenDisputeRequest,
    ResolveDisputeRequest,
    to_dispute_detail_response,
    to_dispute_response,
    to_message_response,
)
from booking_engine.application.use_cases.resolve_dispute import ResolveDisputeCommand
from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.state_machine import DisputeStatus

router = APIRouter()


@router.post(
    "/bookings/{booking_id}/disputes",
    response_model=DisputeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def open_dispute(
    booking_id: str,
    payload: OpenDisputeRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> DisputeResponse:
    dispute = await use_cases["open_dispute"].execute(
        actor=actor, booking_id=booking_id, request=payload
    )
    return to_dispute_response(dispute)


@router.get("/disputes", response_model=list[DisputeResponse])
async def list_my_disputes(
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> list[DisputeResponse]:
    disputes = await use_cases["list_disputes"].execute(actor=actor)
    return [to_dispute_response(d) for d in disputes]


@router.get("/admin/disputes", response_model=list[DisputeResponse])
async def list_disputes_by_status(
    dispute_status: DisputeStatus = Query(default=DisputeStatus.OPEN, alias="status"),
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> list[DisputeResponse]:
    disputes = await use_cases["list_disputes"].execute(actor=actor, status=dispute_status)
    return [to_dispute_response(d) for d in disputes]


@router.get("/disputes/{dispute_id}", response_model=DisputeDetailResponse)
async def get_dispute(
    dispute_id: str,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> DisputeDetailResponse:
    dispute, messages = await use_cases["get_dispute"].execute(actor=actor, dispute_id=dispute_id)
    return to_dispute_detail_response(dispute, list(messages))


@router.post(
    "/disputes/{dispute_id}/messages",
    response_model=DisputeMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_dispute_message(
    dispute_id: str,
    payload: DisputeMessageRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> DisputeMessageResponse:
    message = await use_cases["add_dispute_message"].execute(
        actor=actor, dispute_id=dispute_id, body=payload.body
    )
    return to_message_response(message)


@router.post("/disputes/{dispute_id}/review", response_model=DisputeResponse)
async def start_dispute_review(
    dispute_id: str,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> DisputeResponse:
    dispute = await use_cases["start_dispute_review"].execute(actor=actor, dispute_id=dispute_id)
    return to_dispute_response(dispute)


@router.post("/disputes/{dispute_id}/escalate", response_model=DisputeResponse)
async def escalate_dispute(
    dispute_id: str,
    payload: EscalateDisputeRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> DisputeResponse:
    dispute = await use_cases["escalate_dispute"].execute(
        actor=actor, dispute_id=dispute_id, note=payload.note
    )
    return to_dispute_response(dispute)


@router.post("/disputes/{dispute_id}/resolve", response_model=DisputeResponse)
async def resolve_dispute(
    dispute_id: str,
    payload: ResolveDisputeRequest,
    actor: Actor = Depends(get_actor),
    use_cases=Depends(get_use_cases),
) -> DisputeResponse:
    command = ResolveDisputeCommand(
        action=payload.action,
        refund_amount=payload.refund_amount,
        refund_to=payload.refund_to,
        booking_outcome=payload.booking_outcome,
        notes=payload.notes,
    )
    dispute, _ = await use_cases["resolve_dispute"].execute(
        actor=actor, dispute_id=dispute_id, command=command
    )
    return to_dispute_response(dispute)
