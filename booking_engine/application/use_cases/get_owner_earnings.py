from dataclasses import dataclass, field

from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.payment_repo import PaymentRepo
from booking_engine.domain.entities.actor import Actor, ActorRole
from booking_engine.domain.errors import ForbiddenError, ValidationError


@dataclass
class MonthlyEarnings:
    month: int
    transactions: int = 0
    earnings: int = 0
    refunded: int = 0


@dataclass
class EarningsSummary:
    """Resumen anual del owner a partir de los registros fiscales."""

    owner_id: str
    tax_year: int
    total_transactions: int = 0
    total_earnings: int = 0
    total_rental_value: int = 0
    total_fees_paid: int = 0
    total_refunded: int = 0
    monthly: list[MonthlyEarnings] = field(default_factory=list)

    @property
    def net_earnings(self) -> int:
        return self.total_earnings - self.total_refunded


class GetOwnerEarningsUseCase:
    """
    Agrega los TransactionRecord del owner como payee en un año fiscal.

    Los reembolsos se cuentan en el mes en que se emitieron, no en el del cobro.
    """

    def __init__(self, payment_repo: PaymentRepo, clock: Clock) -> None:
        self._payment_repo = payment_repo
        self._clock = clock

    async def execute(self, actor: Actor, tax_year: int | None = None) -> EarningsSummary:
        if actor.role != ActorRole.OWNER:
            raise ForbiddenError("Only owners have earnings")
        year = tax_year if tax_year is not None else self._clock.today().year
        if year < 2000 or year > self._clock.today().year + 1:
            raise ValidationError("year", f"{year} is not a valid tax year")

        records = await self._payment_repo.list_transaction_records_for_payee(actor.id, year)
        adjustments = await self._payment_repo.list_refund_adjustments_for_payee(actor.id, year)

        summary = EarningsSummary(owner_id=actor.id, tax_year=year)
        months: dict[int, MonthlyEarnings] = {}
        for record in records:
            month = months.setdefault(
                record.transaction_date.month, MonthlyEarnings(record.transaction_date.month)
            )
            month.transactions += 1
            month.earnings += record.owner_payout
            summary.total_transactions += 1
            summary.total_earnings += record.owner_payout
            summary.total_rental_value += record.base_amount
            summary.total_fees_paid += record.platform_fee + record.processing_fee
        for adjustment in adjustments:
            month = months.setdefault(
                adjustment.created_at.month, MonthlyEarnings(adjustment.created_at.month)
            )
            month.refunded += adjustment.amount
            summary.total_refunded += adjustment.amount

        summary.monthly = [months[m] for m in sorted(months)]
        return summary
