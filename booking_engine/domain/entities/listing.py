"""Entidades Listing y cuentas del procesador de pagos."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Listing:
    """
    Artículo publicado por un owner.

    Tarifas y depósito en unidades menores de la moneda.
    """

    id: str
    owner_id: str
    daily_rate: int
    weekly_rate: int | None = None
    monthly_rate: int | None = None
    security_deposit: int = 0
    instant_book: bool = False
    shipping_fee: int = 0
    currency_code: str = "usd"
    title: str = ""
    created_at: datetime | None = None


@dataclass
class PayoutAccount:
    """Cuenta conectada del owner que recibe el payout."""

    owner_id: str
    processor_account_id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False
    updated_at: datetime | None = None

    @property
    def can_accept_payments(self) -> bool:
        return self.charges_enabled and self.payouts_enabled


@dataclass
class PayerProfile:
    """Cliente del procesador asociado a un renter."""

    renter_id: str
    processor_customer_id: str
    created_at: datetime | None = None
