"""Value Object DateRange - rango de fechas semiabierto [start, end)."""

from dataclasses import dataclass
from datetime import date

from booking_engine.domain.errors import InvalidDateRangeError


@dataclass(frozen=True)
class DateRange:
    """
    Value Object inmutable que representa el periodo de una reserva.

    El inicio es inclusivo y el fin exclusivo: una reserva del 1 al 5 de junio
    ocupa las noches del 1, 2, 3 y 4, y otra reserva puede empezar el 5.

    Attributes:
        start: Primer día de la reserva (inclusivo).
        end: Día de devolución (exclusivo).
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise InvalidDateRangeError(
                f"end date must be after start date: {self.start} >= {self.end}"
            )

    @property
    def days(self) -> int:
        """Días facturables del rango."""
        return (self.end - self.start).days

    def overlaps_with(self, other: "DateRange") -> bool:
        """Test de solapamiento semiabierto: s1 < e2 and s2 < e1."""
        return self.start < other.end and other.start < self.end

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"
