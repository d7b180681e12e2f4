"""
Repos SQL contra SQLite en memoria.

Mismo flujo que la API pero con SQLAlchemy Core y el transaction manager real:
bloqueo optimista, overlap semiabierto, webhooks duplicados y outbox.
"""

import json
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from booking_engine.api.dependencies import build_use_cases
from booking_engine.api.schemas.bookings import CreateBookingRequest
from booking_engine.api.schemas.disputes import OpenDisputeRequest
from booking_engine.api.schemas.listings import RegisterListingRequest
from booking_engine.application.interfaces.clock import FakeClock
from booking_engine.application.interfaces.uuid_generator import FakeUUIDGenerator
from booking_engine.application.use_cases.resolve_dispute import ResolveDisputeCommand
from booking_engine.application.use_cases.transition_booking import BookingAction
from booking_engine.config import get_settings
from booking_engine.domain.entities.actor import Actor, ActorRole
from booking_engine.domain.entities.dispute import CompensationRecipient
from booking_engine.domain.errors import (
    BookingConflictError,
    OptimisticLockError,
    PaymentProcessorUnavailableError,
)
from booking_engine.domain.state_machine import BLOCKING_STATUSES, BookingStatus, DisputeStatus
from booking_engine.domain.value_objects.date_range import DateRange
from booking_engine.infrastructure.db.repositories.account_repo_sql import AccountRepoSQL
from booking_engine.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from booking_engine.infrastructure.db.repositories.dispute_repo_sql import DisputeRepoSQL
from booking_engine.infrastructure.db.repositories.idempotency_repo_sql import IdempotencyRepoSQL
from booking_engine.infrastructure.db.repositories.listing_repo_sql import ListingRepoSQL
from booking_engine.infrastructure.db.repositories.outbox_repo_sql import OutboxRepoSQL
from booking_engine.infrastructure.db.repositories.payment_repo_sql import PaymentRepoSQL
from booking_engine.infrastructure.db.repositories.webhook_event_repo_sql import (
    WebhookEventRepoSQL,
)
from booking_engine.infrastructure.db.tables import (
    booking_transitions,
    bookings,
    metadata,
    outbox_events,
    refund_adjustments,
    transaction_records,
)
from booking_engine.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from booking_engine.infrastructure.in_memory.payment_gateway import StubPaymentGateway
from booking_engine.infrastructure.messaging.logging_notifier import RecordingNotifier
from tests.conftest import ADMIN, NOW, OTHER_RENTER, OWNER, RENTER, TODAY

OWNER_ACTOR = Actor(id=OWNER, role=ActorRole.OWNER)
RENTER_ACTOR = Actor(id=RENTER, role=ActorRole.RENTER)
ADMIN_ACTOR = Actor(id=ADMIN, role=ActorRole.ADMIN)


@pytest_asyncio.fixture
async def session():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def sql_bundle(session):
    return {
        "listing_repo": ListingRepoSQL(session),
        "booking_repo": BookingRepoSQL(session),
        "account_repo": AccountRepoSQL(session),
        "payment_repo": PaymentRepoSQL(session),
        "dispute_repo": DisputeRepoSQL(session),
        "webhook_event_repo": WebhookEventRepoSQL(session),
        "idempotency_repo": IdempotencyRepoSQL(session),
        "outbox_repo": OutboxRepoSQL(session),
        "payment_gateway": StubPaymentGateway(),
        "tx_manager": SQLAlchemyTransactionManager(session),
        "notifier": RecordingNotifier(),
    }


@pytest.fixture
def sql_clock():
    return FakeClock(NOW)


@pytest.fixture
def sql_use_cases(sql_bundle, sql_clock):
    return build_use_cases(sql_bundle, get_settings(), sql_clock, FakeUUIDGenerator())


async def _count(session, table) -> int:
    return (await session.execute(select(func.count()).select_from(table))).scalar_one()


async def _listing(use_cases, **overrides):
    payload = {"title": "Kayak doble", "daily_rate": 5000, "security_deposit": 20000}
    payload.update(overrides)
    return await use_cases["register_listing"].execute(
        actor=OWNER_ACTOR, request=RegisterListingRequest(**payload)
    )


async def _book(use_cases, listing_id, start=TODAY, days=3, renter=RENTER_ACTOR, key="k-1"):
    return await use_cases["create_booking"].execute(
        actor=renter,
        request=CreateBookingRequest(
            listing_id=listing_id,
            start_date=start,
            end_date=start + timedelta(days=days),
        ),
        idem_key=key,
    )


async def _pay(use_cases, booking_id, event_id="evt_1"):
    await use_cases["link_payout_account"].execute(
        actor=OWNER_ACTOR, processor_account_id="acct_owner1"
    )
    intent = await use_cases["create_payment_intent"].execute(
        actor=RENTER_ACTOR, booking_id=booking_id
    )
    event = {
        "id": event_id,
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": intent.processor_intent_id}},
    }
    ack = await use_cases["handle_webhook"].execute(
        raw_body=json.dumps(event).encode(), signature=None
    )
    return intent, event, ack


class TestBookings:
    async def test_create_and_reload_with_history(self, sql_use_cases, sql_bundle):
        listing = await _listing(sql_use_cases)

        response = await _book(sql_use_cases, listing.id)

        booking = await sql_bundle["booking_repo"].get(response.id)
        assert booking.status == BookingStatus.PENDING
        assert booking.pricing.total == 16500
        assert booking.start_date == TODAY
        assert [t.to_status for t in booking.history] == [BookingStatus.PENDING]

    async def test_idempotent_replay(self, sql_use_cases, session):
        listing = await _listing(sql_use_cases)

        first = await _book(sql_use_cases, listing.id, key="same")
        second = await _book(sql_use_cases, listing.id, key="same")

        assert first.id == second.id
        assert await _count(session, bookings) == 1

    async def test_overlap_rolls_back(self, sql_use_cases, session):
        listing = await _listing(sql_use_cases)
        first = await _book(sql_use_cases, listing.id)

        with pytest.raises(BookingConflictError) as exc_info:
            await _book(
                sql_use_cases,
                listing.id,
                start=TODAY + timedelta(days=1),
                renter=Actor(id=OTHER_RENTER, role=ActorRole.RENTER),
                key="k-2",
            )

        assert exc_info.value.conflicting_ids == [first.id]
        assert await _count(session, bookings) == 1
        assert await _count(session, outbox_events) == 1

    async def test_find_overlapping_is_half_open(self, sql_use_cases, sql_bundle):
        listing = await _listing(sql_use_cases)
        booked = await _book(sql_use_cases, listing.id, start=TODAY, days=3)
        repo = sql_bundle["booking_repo"]

        touching = await repo.find_overlapping(
            listing.id,
            DateRange(start=TODAY + timedelta(days=3), end=TODAY + timedelta(days=5)),
            BLOCKING_STATUSES,
        )
        overlapping = await repo.find_overlapping(
            listing.id,
            DateRange(start=TODAY + timedelta(days=2), end=TODAY + timedelta(days=4)),
            BLOCKING_STATUSES,
        )

        assert touching == []
        assert [b.id for b in overlapping] == [booked.id]

    async def test_stale_update_is_rejected(self, sql_use_cases, sql_bundle):
        listing = await _listing(sql_use_cases)
        created = await _book(sql_use_cases, listing.id)
        repo = sql_bundle["booking_repo"]

        mine = await repo.get(created.id)
        theirs = await repo.get(created.id)
        mine.approve(OWNER_ACTOR, NOW)
        await repo.update(mine)
        theirs.cancel(RENTER_ACTOR, NOW)

        with pytest.raises(OptimisticLockError):
            await repo.update(theirs)

        reloaded = await repo.get(created.id)
        assert reloaded.status == BookingStatus.CONFIRMED
        assert reloaded.lock_version == 1

    async def test_transitions_are_appended(self, sql_use_cases, session):
        listing = await _listing(sql_use_cases, instant_book=True)
        created = await _book(sql_use_cases, listing.id)

        await sql_use_cases["transition_booking"].execute(
            actor=RENTER_ACTOR, booking_id=created.id, action=BookingAction.CHECK_OUT
        )

        assert await _count(session, booking_transitions) == 2


    async def test_list_for_party(self, sql_use_cases, sql_bundle):
        listing = await _listing(sql_use_cases)
        mine = await _book(sql_use_cases, listing.id)
        theirs = await _book(
            sql_use_cases,
            listing.id,
            start=TODAY + timedelta(days=5),
            renter=Actor(id=OTHER_RENTER, role=ActorRole.RENTER),
            key="k-2",
        )
        await sql_use_cases["transition_booking"].execute(
            actor=OWNER_ACTOR, booking_id=theirs.id, action=BookingAction.APPROVE
        )
        repo = sql_bundle["booking_repo"]

        as_renter = await repo.list_for_party(RENTER, as_party="renter")
        as_owner = await repo.list_for_party(OWNER, as_party="owner")
        confirmed = await repo.list_for_party(OWNER, status=BookingStatus.CONFIRMED)

        assert [b.id for b in as_renter] == [mine.id]
        assert {b.id for b in as_owner} == {mine.id, theirs.id}
        assert [b.id for b in confirmed] == [theirs.id]
        assert await repo.list_for_party(RENTER, as_party="owner") == []

    async def test_reschedule_over_own_range(self, sql_use_cases, sql_bundle, session):
        listing = await _listing(sql_use_cases)
        created = await _book(sql_use_cases, listing.id)

        moved = await sql_use_cases["reschedule_booking"].execute(
            actor=RENTER_ACTOR,
            booking_id=created.id,
            date_range=DateRange(start=TODAY + timedelta(days=1), end=TODAY + timedelta(days=4)),
        )

        reloaded = await sql_bundle["booking_repo"].get(created.id)
        assert reloaded.start_date == TODAY + timedelta(days=1)
        assert reloaded.lock_version == moved.lock_version == 1
        assert await _count(session, outbox_events) == 2


class TestPayments:
    async def test_webhook_settles_once(self, sql_use_cases, sql_bundle, session):
        listing = await _listing(sql_use_cases)
        created = await _book(sql_use_cases, listing.id)

        intent, event, ack = await _pay(sql_use_cases, created.id)
        replay = await sql_use_cases["handle_webhook"].execute(
            raw_body=json.dumps(event).encode(), signature=None
        )

        assert ack.duplicate is False
        assert replay.duplicate is True
        assert await _count(session, transaction_records) == 1
        booking = await sql_bundle["booking_repo"].get(created.id)
        assert booking.status == BookingStatus.CONFIRMED
        stored = await sql_bundle["payment_repo"].get_intent(intent.id)
        assert stored.is_succeeded
        assert stored.last_event_id == "evt_1"

    async def test_conditional_status_updates(self, sql_use_cases, sql_bundle):
        listing = await _listing(sql_use_cases)
        created = await _book(sql_use_cases, listing.id)
        await sql_use_cases["link_payout_account"].execute(
            actor=OWNER_ACTOR, processor_account_id="acct_owner1"
        )
        intent = await sql_use_cases["create_payment_intent"].execute(
            actor=RENTER_ACTOR, booking_id=created.id
        )
        repo = sql_bundle["payment_repo"]

        assert await repo.mark_succeeded(intent.id, "evt_a", NOW) is True
        assert await repo.mark_succeeded(intent.id, "evt_b", NOW) is False
        assert await repo.mark_failed(intent.id, "evt_c", "declined", NOW) is False

    async def test_refund_keeps_original_record(self, sql_use_cases, session):
        listing = await _listing(sql_use_cases)
        created = await _book(sql_use_cases, listing.id)
        await _pay(sql_use_cases, created.id)

        outcome, booking = await sql_use_cases["process_refund"].execute(
            actor=OWNER_ACTOR, booking_id=created.id, amount=None, reason="cancelación"
        )

        assert outcome.is_full_refund
        assert booking.status == BookingStatus.CANCELLED
        assert await _count(session, transaction_records) == 1
        assert await _count(session, refund_adjustments) == 1


    async def test_payee_queries_feed_earnings(self, sql_use_cases, sql_bundle):
        listing = await _listing(sql_use_cases)
        created = await _book(sql_use_cases, listing.id)
        await _pay(sql_use_cases, created.id)
        await sql_use_cases["process_refund"].execute(
            actor=OWNER_ACTOR, booking_id=created.id, amount=2000, reason="retraso"
        )
        repo = sql_bundle["payment_repo"]

        records = await repo.list_transaction_records_for_payee(OWNER, 2026)
        adjustments = await repo.list_refund_adjustments_for_payee(OWNER, 2026)
        summary = await sql_use_cases["get_owner_earnings"].execute(actor=OWNER_ACTOR)

        assert [r.booking_id for r in records] == [created.id]
        assert [a.amount for a in adjustments] == [2000]
        assert await repo.list_transaction_records_for_payee(OWNER, 2025) == []
        assert await repo.list_refund_adjustments_for_payee(RENTER, 2026) == []
        assert summary.total_earnings == 14341
        assert summary.net_earnings == 12341


class TestDisputes:
    async def _disputed(self, use_cases, listing):
        created = await _book(use_cases, listing.id)
        await _pay(use_cases, created.id)
        await use_cases["transition_booking"].execute(
            actor=RENTER_ACTOR, booking_id=created.id, action=BookingAction.CHECK_OUT
        )
        dispute = await use_cases["open_dispute"].execute(
            actor=RENTER_ACTOR,
            booking_id=created.id,
            request=OpenDisputeRequest(dispute_type="damage", description="Casco fisurado"),
        )
        return created, dispute

    async def test_resolution_is_all_or_nothing(self, sql_use_cases, sql_bundle, session):
        listing = await _listing(sql_use_cases)
        created, dispute = await self._disputed(sql_use_cases, listing)
        gateway = sql_bundle["payment_gateway"]
        command = ResolveDisputeCommand(
            action="partial_refund",
            refund_amount=4000,
            refund_to=CompensationRecipient.RENTER,
        )
        gateway.fail_next("create_refund", PaymentProcessorUnavailableError())

        with pytest.raises(PaymentProcessorUnavailableError):
            await sql_use_cases["resolve_dispute"].execute(
                actor=ADMIN_ACTOR, dispute_id=dispute.id, command=command
            )

        untouched = await sql_bundle["dispute_repo"].get(dispute.id)
        assert untouched.status == DisputeStatus.OPEN
        assert (await sql_bundle["booking_repo"].get(created.id)).status == BookingStatus.DISPUTED

        resolved, booking = await sql_use_cases["resolve_dispute"].execute(
            actor=ADMIN_ACTOR, dispute_id=dispute.id, command=command
        )

        assert resolved.status == DisputeStatus.RESOLVED
        assert booking.status == BookingStatus.COMPLETED
        assert len(gateway.refunds) == 1
        assert await _count(session, refund_adjustments) == 1
        reloaded = await sql_bundle["dispute_repo"].get(dispute.id)
        assert reloaded.resolution.compensation_amount == 4000
        assert reloaded.resolution.compensation_recipient == CompensationRecipient.RENTER

    async def test_messages_round_trip_in_order(self, sql_use_cases):
        listing = await _listing(sql_use_cases)
        _, dispute = await self._disputed(sql_use_cases, listing)

        await sql_use_cases["add_dispute_message"].execute(
            actor=RENTER_ACTOR, dispute_id=dispute.id, body="Adjunto fotos"
        )
        await sql_use_cases["add_dispute_message"].execute(
            actor=ADMIN_ACTOR, dispute_id=dispute.id, body="Recibido"
        )

        _, messages = await sql_use_cases["get_dispute"].execute(
            actor=OWNER_ACTOR, dispute_id=dispute.id
        )
        assert [m.body for m in messages] == ["Adjunto fotos", "Recibido"]
        assert [m.is_admin_message for m in messages] == [False, True]


class TestOutbox:
    async def test_dispatch_marks_events_done(self, sql_use_cases, sql_bundle, session):
        listing = await _listing(sql_use_cases)
        await _book(sql_use_cases, listing.id)

        first = await sql_use_cases["dispatch_outbox"].execute(worker_id="w-1")
        second = await sql_use_cases["dispatch_outbox"].execute(worker_id="w-2")

        assert first["delivered"] == 1
        assert second["claimed"] == 0
        assert [e for e, _ in sql_bundle["notifier"].sent] == ["BOOKING_REQUESTED"]
        status = (await session.execute(select(outbox_events.c.status))).scalar_one()
        assert status == "DONE"

    async def test_claimed_batch_is_not_reclaimed_while_locked(self, sql_use_cases, sql_bundle):
        listing = await _listing(sql_use_cases)
        await _book(sql_use_cases, listing.id)
        repo = sql_bundle["outbox_repo"]

        claimed = await repo.claim_batch(locked_by="w-1", now=NOW)
        again = await repo.claim_batch(locked_by="w-2", now=NOW)

        assert [e.locked_by for e in claimed] == ["w-1"]
        assert again == []
