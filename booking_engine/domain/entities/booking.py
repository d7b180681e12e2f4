"""Entidad Booking - Agregado raíz del ciclo de vida de un alquiler."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from booking_engine.domain.entities.actor import Actor
from booking_engine.domain.errors import ConflictError, ForbiddenError, ValidationError
from booking_engine.domain.pricing import DeliveryMethod, InsuranceTier, PricingBreakdown
from booking_engine.domain.state_machine import (
    BLOCKING_STATUSES,
    BookingStatus,
    ensure_booking_transition,
)
from booking_engine.domain.value_objects.date_range import DateRange


class ConditionCheckPhase(str, Enum):
    BEFORE = "before"
    AFTER = "after"


# Timestamp propio de cada estado destino.
_TRANSITION_TIMESTAMPS: dict[BookingStatus, str] = {
    BookingStatus.CONFIRMED: "confirmed_at",
    BookingStatus.ACTIVE: "checked_out_at",
    BookingStatus.COMPLETED: "completed_at",
    BookingStatus.CANCELLED: "cancelled_at",
    BookingStatus.REJECTED: "rejected_at",
    BookingStatus.DISPUTED: "disputed_at",
}


@dataclass
class BookingTransition:
    """Entrada del audit trail: una arista recorrida del grafo."""

    booking_id: str
    from_status: BookingStatus | None
    to_status: BookingStatus
    actor_id: str
    occurred_at: datetime
    note: str | None = None


@dataclass
class Booking:
    """
    Reserva de un listing por un renter.

    Renter y owner pueden leerla; cada transición exige un rol concreto.
    """

    id: str
    listing_id: str
    renter_id: str
    owner_id: str
    start_date: date
    end_date: date
    pricing: PricingBreakdown
    status: BookingStatus = BookingStatus.PENDING
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    insurance_tier: InsuranceTier = InsuranceTier.NONE
    currency_code: str = "usd"

    # Verificación de estado del artículo
    before_check_completed: bool = False
    after_check_completed: bool = False

    cancellation_reason: str | None = None
    rejection_reason: str | None = None
    needs_reconciliation: bool = False
    reconciliation_reason: str | None = None

    # Timestamps
    created_at: datetime | None = None
    updated_at: datetime | None = None
    confirmed_at: datetime | None = None
    checked_out_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    rejected_at: datetime | None = None
    disputed_at: datetime | None = None

    # Control de concurrencia
    lock_version: int = 0

    history: list[BookingTransition] = field(default_factory=list)
    unsaved_transitions: list[BookingTransition] = field(
        default_factory=list, repr=False, compare=False
    )

    # === Propiedades ===

    @property
    def date_range(self) -> DateRange:
        return DateRange(start=self.start_date, end=self.end_date)

    @property
    def total_amount(self) -> int:
        return self.pricing.total

    @property
    def blocks_calendar(self) -> bool:
        return self.status in BLOCKING_STATUSES

    def is_party(self, actor_id: str) -> bool:
        return actor_id in (self.renter_id, self.owner_id)

    def is_overdue(self, today: date) -> bool:
        """Activa y con la fecha de devolución ya alcanzada."""
        return self.status == BookingStatus.ACTIVE and today >= self.end_date

    # === Factory ===

    @classmethod
    def request(
        cls,
        booking_id: str,
        listing_id: str,
        renter_id: str,
        owner_id: str,
        date_range: DateRange,
        pricing: PricingBreakdown,
        delivery_method: DeliveryMethod,
        insurance_tier: InsuranceTier,
        currency_code: str,
        instant_book: bool,
        at: datetime,
    ) -> "Booking":
        """Crea la reserva en pending, o confirmed si el listing tiene instant-book."""
        status = BookingStatus.CONFIRMED if instant_book else BookingStatus.PENDING
        booking = cls(
            id=booking_id,
            listing_id=listing_id,
            renter_id=renter_id,
            owner_id=owner_id,
            start_date=date_range.start,
            end_date=date_range.end,
            pricing=pricing,
            status=status,
            delivery_method=delivery_method,
            insurance_tier=insurance_tier,
            currency_code=currency_code,
            created_at=at,
            updated_at=at,
            confirmed_at=at if instant_book else None,
        )
        booking._record(None, status, renter_id, at, "instant_book" if instant_book else None)
        return booking

    # === Transiciones ===

    def transition_to(
        self,
        target: BookingStatus,
        actor_id: str,
        at: datetime,
        note: str | None = None,
    ) -> BookingTransition:
        """Aplica una arista del grafo; no muta nada si la arista es ilegal."""
        ensure_booking_transition(self.status, target)
        source = self.status
        self.status = target
        setattr(self, _TRANSITION_TIMESTAMPS[target], at)
        self.updated_at = at
        return self._record(source, target, actor_id, at, note)

    def approve(self, actor: Actor, at: datetime) -> BookingTransition:
        if actor.id != self.owner_id:
            raise ForbiddenError("Only the listing owner can approve a booking")
        return self.transition_to(BookingStatus.CONFIRMED, actor.id, at, "owner_approval")

    def reject(self, actor: Actor, at: datetime, reason: str | None = None) -> BookingTransition:
        if actor.id != self.owner_id:
            raise ForbiddenError("Only the listing owner can reject a booking")
        transition = self.transition_to(BookingStatus.REJECTED, actor.id, at, reason)
        self.rejection_reason = reason
        return transition

    def cancel(self, actor: Actor, at: datetime, reason: str | None = None) -> BookingTransition:
        if not self.is_party(actor.id):
            raise ForbiddenError("Only the renter or the owner can cancel a booking")
        if self.status == BookingStatus.DISPUTED:
            raise ForbiddenError("A disputed booking can only be settled by an admin")
        transition = self.transition_to(BookingStatus.CANCELLED, actor.id, at, reason)
        self.cancellation_reason = reason
        return transition

    def confirm_by_payment(self, at: datetime) -> BookingTransition | None:
        """Confirmación automática tras el webhook de pago; solo desde pending."""
        if self.status != BookingStatus.PENDING:
            return None
        return self.transition_to(
            BookingStatus.CONFIRMED, Actor.system().id, at, "payment_succeeded"
        )

    def check_out(self, actor: Actor, at: datetime) -> BookingTransition:
        if not self.is_party(actor.id):
            raise ForbiddenError("Only the renter or the owner can hand over the item")
        if at.date() < self.start_date:
            raise ValidationError("start_date", "the rental period has not started yet")
        return self.transition_to(BookingStatus.ACTIVE, actor.id, at, "pickup")

    def complete(self, actor: Actor, at: datetime) -> BookingTransition:
        if actor.id != self.owner_id:
            raise ForbiddenError("Only the listing owner can confirm the return")
        return self.transition_to(BookingStatus.COMPLETED, actor.id, at, "return_confirmed")

    def mark_disputed(self, actor: Actor, at: datetime, dispute_id: str) -> BookingTransition:
        return self.transition_to(BookingStatus.DISPUTED, actor.id, at, f"dispute:{dispute_id}")

    def settle_dispute(
        self,
        actor: Actor,
        at: datetime,
        outcome: BookingStatus,
        dispute_id: str,
    ) -> BookingTransition:
        if not actor.is_admin:
            raise ForbiddenError("Only an admin can resolve a disputed booking")
        if self.status != BookingStatus.DISPUTED:
            raise ValidationError("status", "booking is not under dispute")
        return self.transition_to(outcome, actor.id, at, f"dispute_resolved:{dispute_id}")

    # === Cambio de fechas ===

    def reschedule(
        self,
        actor: Actor,
        date_range: DateRange,
        pricing: PricingBreakdown,
        at: datetime,
    ) -> None:
        """
        Mueve una reserva pending a otro rango con el precio recalculado.

        La disponibilidad la comprueba el caso de uso, excluyendo esta reserva.
        """
        self.ensure_reschedulable(actor)
        self.start_date = date_range.start
        self.end_date = date_range.end
        self.pricing = pricing
        self.updated_at = at

    def ensure_reschedulable(self, actor: Actor) -> None:
        if actor.id != self.renter_id:
            raise ForbiddenError("Only the renter can change the booking dates")
        if self.status != BookingStatus.PENDING:
            raise ConflictError(
                f"Booking {self.id} cannot change dates in status '{self.status.value}'",
                code="BOOKING_NOT_RESCHEDULABLE",
            )

    # === Verificación y conciliación ===

    def record_condition_check(self, actor: Actor, phase: ConditionCheckPhase) -> None:
        if not self.is_party(actor.id):
            raise ForbiddenError("Only the renter or the owner can record a condition check")
        if phase == ConditionCheckPhase.BEFORE:
            if self.status not in (BookingStatus.CONFIRMED, BookingStatus.ACTIVE):
                raise ValidationError("phase", "pre-rental check requires a confirmed booking")
            self.before_check_completed = True
        else:
            if self.status not in (BookingStatus.ACTIVE, BookingStatus.COMPLETED):
                raise ValidationError("phase", "post-rental check requires an active booking")
            self.after_check_completed = True

    def flag_for_reconciliation(self, reason: str, at: datetime) -> None:
        self.needs_reconciliation = True
        self.reconciliation_reason = reason
        self.updated_at = at

    def _record(
        self,
        source: BookingStatus | None,
        target: BookingStatus,
        actor_id: str,
        at: datetime,
        note: str | None,
    ) -> BookingTransition:
        transition = BookingTransition(
            booking_id=self.id,
            from_status=source,
            to_status=target,
            actor_id=actor_id,
            occurred_at=at,
            note=note,
        )
        self.history.append(transition)
        self.unsaved_transitions.append(transition)
        return transition
