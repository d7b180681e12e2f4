"""Value Objects del dominio de reservas."""

from booking_engine.domain.value_objects.date_range import DateRange

__all__ = [
    "DateRange",
]
