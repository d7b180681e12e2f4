from collections.abc import Iterable, Sequence

from sqlalchemy import insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.application.interfaces.booking_repo import BookingParty, BookingRepo
from booking_engine.domain.entities.booking import Booking, BookingTransition
from booking_engine.domain.errors import BookingNotFoundError, OptimisticLockError
from booking_engine.domain.pricing import DeliveryMethod, InsuranceTier, PricingBreakdown
from booking_engine.domain.state_machine import BookingStatus
from booking_engine.domain.value_objects.date_range import DateRange
from booking_engine.infrastructure.db.tables import booking_transitions, bookings


def _booking_values(booking: Booking) -> dict:
    pricing = booking.pricing
    return {
        "listing_id": booking.listing_id,
        "renter_id": booking.renter_id,
        "owner_id": booking.owner_id,
        "start_date": booking.start_date,
        "end_date": booking.end_date,
        "status": booking.status.value,
        "delivery_method": booking.delivery_method.value,
        "insurance_tier": booking.insurance_tier.value,
        "currency_code": booking.currency_code,
        "daily_rate": pricing.daily_rate,
        "days": pricing.days,
        "subtotal": pricing.subtotal,
        "service_fee": pricing.service_fee,
        "delivery_fee": pricing.delivery_fee,
        "insurance_fee": pricing.insurance_fee,
        "total_amount": pricing.total,
        "security_deposit": pricing.security_deposit,
        "before_check_completed": booking.before_check_completed,
        "after_check_completed": booking.after_check_completed,
        "cancellation_reason": booking.cancellation_reason,
        "rejection_reason": booking.rejection_reason,
        "needs_reconciliation": booking.needs_reconciliation,
        "reconciliation_reason": booking.reconciliation_reason,
        "created_at": booking.created_at,
        "updated_at": booking.updated_at,
        "confirmed_at": booking.confirmed_at,
        "checked_out_at": booking.checked_out_at,
        "completed_at": booking.completed_at,
        "cancelled_at": booking.cancelled_at,
        "rejected_at": booking.rejected_at,
        "disputed_at": booking.disputed_at,
    }


def _to_transition(row) -> BookingTransition:
    return BookingTransition(
        booking_id=row["booking_id"],
        from_status=BookingStatus(row["from_status"]) if row["from_status"] else None,
        to_status=BookingStatus(row["to_status"]),
        actor_id=row["actor_id"],
        occurred_at=row["occurred_at"],
        note=row["note"],
    )


def _to_booking(row, history: list[BookingTransition]) -> Booking:
    return Booking(
        id=row["id"],
        listing_id=row["listing_id"],
        renter_id=row["renter_id"],
        owner_id=row["owner_id"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        pricing=PricingBreakdown(
            daily_rate=row["daily_rate"],
            days=row["days"],
            subtotal=row["subtotal"],
            service_fee=row["service_fee"],
            delivery_fee=row["delivery_fee"],
            insurance_fee=row["insurance_fee"],
            total=row["total_amount"],
            security_deposit=row["security_deposit"],
        ),
        status=BookingStatus(row["status"]),
        delivery_method=DeliveryMethod(row["delivery_method"]),
        insurance_tier=InsuranceTier(row["insurance_tier"]),
        currency_code=row["currency_code"],
        before_check_completed=bool(row["before_check_completed"]),
        after_check_completed=bool(row["after_check_completed"]),
        cancellation_reason=row["cancellation_reason"],
        rejection_reason=row["rejection_reason"],
        needs_reconciliation=bool(row["needs_reconciliation"]),
        reconciliation_reason=row["reconciliation_reason"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        confirmed_at=row["confirmed_at"],
        checked_out_at=row["checked_out_at"],
        completed_at=row["completed_at"],
        cancelled_at=row["cancelled_at"],
        rejected_at=row["rejected_at"],
        disputed_at=row["disputed_at"],
        lock_version=row["lock_version"],
        history=history,
    )


class BookingRepoSQL(BookingRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, booking: Booking) -> Booking:
        values = _booking_values(booking)
        values["id"] = booking.id
        values["lock_version"] = booking.lock_version
        await self._session.execute(insert(bookings).values(values))
        await self._flush_transitions(booking)
        return booking

    async def get(self, booking_id: str) -> Booking | None:
        result = await self._session.execute(
            select(bookings).where(bookings.c.id == booking_id).limit(1)
        )
        row = result.mappings().first()
        if not row:
            return None
        history = await self._load_history([booking_id])
        return _to_booking(row, history.get(booking_id, []))

    async def update(self, booking: Booking) -> Booking:
        expected = booking.lock_version
        stmt = (
            update(bookings)
            .where(bookings.c.id == booking.id, bookings.c.lock_version == expected)
            .values(**_booking_values(booking), lock_version=expected + 1)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            exists = await self._session.execute(
                select(bookings.c.id).where(bookings.c.id == booking.id)
            )
            if exists.first() is None:
                raise BookingNotFoundError(booking.id)
            raise OptimisticLockError(booking.id, expected)
        booking.lock_version = expected + 1
        await self._flush_transitions(booking)
        return booking

    async def find_overlapping(
        self,
        listing_id: str,
        date_range: DateRange,
        statuses: Iterable[BookingStatus],
        exclude_booking_id: str | None = None,
    ) -> Sequence[Booking]:
        # Intervalos semiabiertos: se tocan sin solaparse si uno termina cuando el otro empieza.
        stmt = select(bookings).where(
            bookings.c.listing_id == listing_id,
            bookings.c.status.in_([s.value for s in statuses]),
            bookings.c.start_date < date_range.end,
            bookings.c.end_date > date_range.start,
        )
        if exclude_booking_id:
            stmt = stmt.where(bookings.c.id != exclude_booking_id)
        return await self._fetch(stmt)

    async def list_by_listing(self, listing_id: str) -> Sequence[Booking]:
        stmt = (
            select(bookings)
            .where(bookings.c.listing_id == listing_id)
            .order_by(bookings.c.start_date)
        )
        return await self._fetch(stmt)

    async def list_for_party(
        self,
        party_id: str,
        as_party: BookingParty | None = None,
        status: BookingStatus | None = None,
    ) -> Sequence[Booking]:
        if as_party == "renter":
            condition = bookings.c.renter_id == party_id
        elif as_party == "owner":
            condition = bookings.c.owner_id == party_id
        else:
            condition = or_(bookings.c.renter_id == party_id, bookings.c.owner_id == party_id)
        stmt = select(bookings).where(condition)
        if status:
            stmt = stmt.where(bookings.c.status == status.value)
        stmt = stmt.order_by(bookings.c.created_at.desc(), bookings.c.id.desc())
        return await self._fetch(stmt)

    async def _fetch(self, stmt) -> list[Booking]:
        result = await self._session.execute(stmt)
        rows = result.mappings().all()
        history = await self._load_history([row["id"] for row in rows])
        return [_to_booking(row, history.get(row["id"], [])) for row in rows]

    async def _load_history(self, booking_ids: list[str]) -> dict[str, list[BookingTransition]]:
        if not booking_ids:
            return {}
        stmt = (
            select(booking_transitions)
            .where(booking_transitions.c.booking_id.in_(booking_ids))
            .order_by(booking_transitions.c.id)
        )
        result = await self._session.execute(stmt)
        history: dict[str, list[BookingTransition]] = {}
        for row in result.mappings().all():
            history.setdefault(row["booking_id"], []).append(_to_transition(row))
        return history

    async def _flush_transitions(self, booking: Booking) -> None:
        if not booking.unsaved_transitions:
            return
        rows = [
            {
                "booking_id": t.booking_id,
                "from_status": t.from_status.value if t.from_status else None,
                "to_status": t.to_status.value,
                "actor_id": t.actor_id,
                "occurred_at": t.occurred_at,
                "note": t.note,
            }
            for t in booking.unsaved_transitions
        ]
        await self._session.execute(insert(booking_transitions), rows)
        booking.unsaved_transitions.clear()
