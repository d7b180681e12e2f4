"""
Motor de precios.

Funciones puras: mismas entradas, mismo desglose. Todos los montos son enteros
en unidades menores de la moneda (centavos) y cada paso se redondea "half away
from zero" igual que el procesador de pagos, no solo al final.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from booking_engine.domain.errors import ValidationError


class DeliveryMethod(str, Enum):
    PICKUP = "pickup"
    DROPOFF = "dropoff"
    SHIPPING = "shipping"


class InsuranceTier(str, Enum):
    NONE = "none"
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"


def _default_insurance_fees() -> dict[InsuranceTier, int]:
    return {
        InsuranceTier.NONE: 0,
        InsuranceTier.BASIC: 500,
        InsuranceTier.STANDARD: 1000,
        InsuranceTier.PREMIUM: 1500,
    }


@dataclass(frozen=True)
class PricingConfig:
    """
    Tarifas de la plataforma.

    Se pasa explícitamente al motor; nunca se lee de estado global.
    """

    service_fee_rate: Decimal = Decimal("0.10")
    platform_fee_percent: Decimal = Decimal("0.10")
    processor_fee_percent: Decimal = Decimal("0.029")
    processor_fixed_fee: int = 30
    dropoff_delivery_fee: int = 500
    insurance_fees: dict[InsuranceTier, int] = field(default_factory=_default_insurance_fees)


@dataclass(frozen=True)
class PricingBreakdown:
    daily_rate: int
    days: int
    subtotal: int
    service_fee: int
    delivery_fee: int
    insurance_fee: int
    total: int
    security_deposit: int

    @property
    def fees(self) -> int:
        return self.service_fee + self.delivery_fee + self.insurance_fee


@dataclass(frozen=True)
class PaymentSplit:
    """Reparto de un cargo con destination charge."""

    total: int
    platform_fee: int
    processor_fee: int
    owner_payout: int

    @property
    def application_fee(self) -> int:
        # La plataforma retiene su comisión y cubre el fee del procesador.
        return self.platform_fee + self.processor_fee


def round_minor(value: Decimal) -> int:
    """Redondeo half away from zero a la unidad menor."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def delivery_fee_for(
    delivery_method: DeliveryMethod,
    config: PricingConfig,
    shipping_fee: int = 0,
) -> int:
    if delivery_method == DeliveryMethod.PICKUP:
        return 0
    if delivery_method == DeliveryMethod.DROPOFF:
        return config.dropoff_delivery_fee
    return shipping_fee


def compute_pricing(
    daily_rate: int,
    days: int,
    delivery_method: DeliveryMethod,
    insurance_tier: InsuranceTier,
    deposit_amount: int,
    config: PricingConfig,
    shipping_fee: int = 0,
) -> PricingBreakdown:
    """
    Calcula el desglose de una reserva.

    Orden fijo: subtotal, service fee, delivery fee, insurance fee, total.
    """
    if daily_rate <= 0:
        raise ValidationError("daily_rate", "must be a positive amount")
    if days <= 0:
        raise ValidationError("days", "must be at least 1")
    if deposit_amount < 0:
        raise ValidationError("deposit_amount", "cannot be negative")

    subtotal = daily_rate * days
    service_fee = round_minor(Decimal(subtotal) * config.service_fee_rate)
    delivery_fee = delivery_fee_for(delivery_method, config, shipping_fee)
    insurance_fee = config.insurance_fees.get(insurance_tier, 0)
    total = subtotal + service_fee + delivery_fee + insurance_fee

    return PricingBreakdown(
        daily_rate=daily_rate,
        days=days,
        subtotal=subtotal,
        service_fee=service_fee,
        delivery_fee=delivery_fee,
        insurance_fee=insurance_fee,
        total=total,
        security_deposit=deposit_amount,
    )


def compute_payment_split(total: int, config: PricingConfig) -> PaymentSplit:
    """
    Reparto plataforma / procesador / owner.

    El fee del procesador lo absorbe el owner: owner_payout = total - platform - processor.
    Un total que no cubre ambos fees se rechaza: el owner siempre recibe algo.
    """
    if total <= 0:
        raise ValidationError("total", "must be a positive amount")
    platform_fee = round_minor(Decimal(total) * config.platform_fee_percent)
    processor_fee = (
        round_minor(Decimal(total) * config.processor_fee_percent) + config.processor_fixed_fee
    )
    fees = platform_fee + processor_fee
    if fees >= total:
        raise ValidationError(
            "total", f"{total} does not cover platform and processor fees ({fees})"
        )
    return PaymentSplit(
        total=total,
        platform_fee=platform_fee,
        processor_fee=processor_fee,
        owner_payout=total - platform_fee - processor_fee,
    )
