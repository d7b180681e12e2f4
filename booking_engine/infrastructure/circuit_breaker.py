"""
Circuit breaker para las llamadas al procesador de pagos.

- CLOSED: operación normal
- OPEN: demasiados fallos seguidos, las llamadas fallan de inmediato
- HALF_OPEN: tras ``reset_timeout`` se deja pasar una llamada de prueba

Los rechazos de negocio (tarjeta rechazada, request inválido) no cuentan
como fallo del servicio.
"""

import logging

import stripe
from pybreaker import CircuitBreaker, CircuitBreakerError, CircuitBreakerListener

logger = logging.getLogger(__name__)


class StateChangeLogger(CircuitBreakerListener):
    def __init__(self, name: str) -> None:
        self.name = name

    def state_change(self, cb, old_state, new_state) -> None:
        logger.warning(
            "Circuit breaker state changed",
            extra={
                "breaker_name": self.name,
                "old_state": old_state.name if old_state else None,
                "new_state": new_state.name,
            },
        )


def build_processor_breaker(fail_max: int = 5, reset_timeout: int = 60) -> CircuitBreaker:
    return CircuitBreaker(
        fail_max=fail_max,
        reset_timeout=reset_timeout,
        exclude=[stripe.CardError, stripe.InvalidRequestError, stripe.IdempotencyError],
        listeners=[StateChangeLogger("payment_processor")],
        name="payment_processor_circuit_breaker",
    )


payment_processor_breaker = build_processor_breaker()


__all__ = [
    "payment_processor_breaker",
    "build_processor_breaker",
    "CircuitBreakerError",
]
