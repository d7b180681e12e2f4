from datetime import date, datetime, timezone

import pytest

from booking_engine.domain.entities.actor import Actor, ActorRole
from booking_engine.domain.entities.booking import Booking, ConditionCheckPhase
from booking_engine.domain.errors import (
    ConflictError,
    ForbiddenError,
    IllegalTransitionError,
    ValidationError,
)
from booking_engine.domain.pricing import (
    DeliveryMethod,
    InsuranceTier,
    PricingConfig,
    compute_pricing,
)
from booking_engine.domain.state_machine import BookingStatus
from booking_engine.domain.value_objects.date_range import DateRange

AT = datetime(2026, 6, 1, 10, 0, tzinfo=timezone.utc)
OWNER = Actor(id="owner-1", role=ActorRole.OWNER)
RENTER = Actor(id="renter-1", role=ActorRole.RENTER)
ADMIN = Actor(id="admin-1", role=ActorRole.ADMIN)
STRANGER = Actor(id="renter-9", role=ActorRole.RENTER)


def _booking(instant_book: bool = False) -> Booking:
    date_range = DateRange(start=date(2026, 6, 1), end=date(2026, 6, 4))
    return Booking.request(
        booking_id="b-1",
        listing_id="l-1",
        renter_id=RENTER.id,
        owner_id=OWNER.id,
        date_range=date_range,
        pricing=compute_pricing(
            5000, 3, DeliveryMethod.PICKUP, InsuranceTier.NONE, 0, PricingConfig()
        ),
        delivery_method=DeliveryMethod.PICKUP,
        insurance_tier=InsuranceTier.NONE,
        currency_code="usd",
        instant_book=instant_book,
        at=AT,
    )


def test_request_starts_pending_with_audit_row():
    booking = _booking()

    assert booking.status == BookingStatus.PENDING
    assert booking.blocks_calendar
    assert len(booking.history) == 1
    assert booking.history[0].from_status is None
    assert booking.history[0].to_status == BookingStatus.PENDING


def test_instant_book_starts_confirmed():
    booking = _booking(instant_book=True)

    assert booking.status == BookingStatus.CONFIRMED
    assert booking.confirmed_at == AT


def test_owner_approves():
    booking = _booking()

    transition = booking.approve(OWNER, AT)

    assert booking.status == BookingStatus.CONFIRMED
    assert booking.confirmed_at == AT
    assert transition.actor_id == OWNER.id
    assert booking.unsaved_transitions[-1] is transition


def test_renter_cannot_approve():
    booking = _booking()

    with pytest.raises(ForbiddenError):
        booking.approve(RENTER, AT)
    assert booking.status == BookingStatus.PENDING


def test_reject_records_reason():
    booking = _booking()

    booking.reject(OWNER, AT, "fechas ocupadas")

    assert booking.status == BookingStatus.REJECTED
    assert booking.rejection_reason == "fechas ocupadas"
    assert not booking.blocks_calendar


def test_stranger_cannot_cancel():
    with pytest.raises(ForbiddenError):
        _booking().cancel(STRANGER, AT)


def test_illegal_transition_does_not_mutate():
    booking = _booking()
    history_before = list(booking.history)

    with pytest.raises(IllegalTransitionError):
        booking.complete(OWNER, AT)

    assert booking.status == BookingStatus.PENDING
    assert booking.completed_at is None
    assert booking.history == history_before


def test_check_out_not_before_start_date():
    booking = _booking(instant_book=True)
    early = datetime(2026, 5, 31, 23, 0, tzinfo=timezone.utc)

    with pytest.raises(ValidationError):
        booking.check_out(RENTER, early)

    booking.check_out(RENTER, AT)
    assert booking.status == BookingStatus.ACTIVE
    assert booking.checked_out_at == AT


def test_overdue_is_derived_from_end_date():
    booking = _booking(instant_book=True)
    booking.check_out(RENTER, AT)

    assert not booking.is_overdue(date(2026, 6, 3))
    assert booking.is_overdue(date(2026, 6, 4))


def test_confirm_by_payment_only_from_pending():
    pending = _booking()
    assert pending.confirm_by_payment(AT) is not None
    assert pending.status == BookingStatus.CONFIRMED
    assert pending.history[-1].actor_id == "system"

    assert pending.confirm_by_payment(AT) is None


def test_disputed_booking_only_settled_by_admin():
    booking = _booking(instant_book=True)
    booking.check_out(RENTER, AT)
    booking.mark_disputed(RENTER, AT, "d-1")

    with pytest.raises(ForbiddenError):
        booking.cancel(OWNER, AT)
    with pytest.raises(ForbiddenError):
        booking.settle_dispute(OWNER, AT, BookingStatus.COMPLETED, "d-1")

    booking.settle_dispute(ADMIN, AT, BookingStatus.COMPLETED, "d-1")
    assert booking.status == BookingStatus.COMPLETED


def test_condition_checks():
    booking = _booking()

    with pytest.raises(ValidationError):
        booking.record_condition_check(RENTER, ConditionCheckPhase.BEFORE)

    booking.approve(OWNER, AT)
    booking.record_condition_check(RENTER, ConditionCheckPhase.BEFORE)
    assert booking.before_check_completed

    with pytest.raises(ValidationError):
        booking.record_condition_check(OWNER, ConditionCheckPhase.AFTER)

    booking.check_out(OWNER, AT)
    booking.record_condition_check(OWNER, ConditionCheckPhase.AFTER)
    assert booking.after_check_completed


def test_flag_for_reconciliation_keeps_status():
    booking = _booking()
    booking.cancel(RENTER, AT)

    booking.flag_for_reconciliation("late payment", AT)

    assert booking.status == BookingStatus.CANCELLED
    assert booking.needs_reconciliation
    assert booking.reconciliation_reason == "late payment"


def test_reschedule_moves_dates_without_audit_row():
    booking = _booking()
    new_range = DateRange(start=date(2026, 6, 2), end=date(2026, 6, 6))
    pricing = compute_pricing(
        5000, 4, DeliveryMethod.PICKUP, InsuranceTier.NONE, 0, PricingConfig()
    )

    booking.reschedule(RENTER, new_range, pricing, AT)

    assert booking.date_range == new_range
    assert booking.total_amount == pricing.total
    assert booking.status == BookingStatus.PENDING
    assert len(booking.history) == 1


def test_reschedule_only_by_renter_while_pending():
    booking = _booking()
    with pytest.raises(ForbiddenError):
        booking.ensure_reschedulable(OWNER)

    confirmed = _booking(instant_book=True)
    with pytest.raises(ConflictError) as exc:
        confirmed.ensure_reschedulable(RENTER)
    assert exc.value.code == "BOOKING_NOT_RESCHEDULABLE"
