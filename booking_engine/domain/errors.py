"""Excepciones de dominio para el motor de reservas de alquiler."""


class DomainError(Exception):
    """Clase base para todos los errores de dominio."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


# === Not found ===


class NotFoundError(DomainError):
    """La entidad solicitada no existe."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            message=f"{entity} not found: {entity_id}",
            code="NOT_FOUND",
        )
        self.entity = entity
        self.entity_id = entity_id


class ListingNotFoundError(NotFoundError):
    def __init__(self, listing_id: str):
        super().__init__("Listing", listing_id)


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: str):
        super().__init__("Booking", booking_id)


class DisputeNotFoundError(NotFoundError):
    def __init__(self, dispute_id: str):
        super().__init__("Dispute", dispute_id)


class PaymentIntentNotFoundError(NotFoundError):
    def __init__(self, intent_id: str):
        super().__init__("Payment intent", intent_id)


# === Forbidden ===


class ForbiddenError(DomainError):
    """El actor no tiene el rol necesario para la acción."""

    def __init__(self, message: str):
        super().__init__(message=message, code="FORBIDDEN")


# === Conflict ===


class ConflictError(DomainError):
    """La operación choca con el estado actual (solapamiento, disputa duplicada)."""

    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(message=message, code=code)


class BookingConflictError(ConflictError):
    """El rango de fechas se solapa con reservas activas del listing."""

    def __init__(self, listing_id: str, conflicting_ids: list[str]):
        super().__init__(
            message=f"Listing {listing_id} is not available for the selected dates",
        )
        self.listing_id = listing_id
        self.conflicting_ids = conflicting_ids


class DuplicateOpenDisputeError(ConflictError):
    def __init__(self, booking_id: str):
        super().__init__(
            message=f"There is already an open dispute for booking {booking_id}",
        )
        self.booking_id = booking_id


class IdempotencyConflictError(ConflictError):
    """Conflicto de idempotencia: mismo key pero diferente request."""

    def __init__(self, idem_key: str, scope: str):
        super().__init__(
            message=f"Idempotency conflict: key '{idem_key}' in scope '{scope}' "
            f"was already used with a different payload",
            code="IDEMPOTENCY_CONFLICT",
        )
        self.idem_key = idem_key
        self.scope = scope


class OptimisticLockError(ConflictError):
    """Conflicto de concurrencia al actualizar un registro."""

    def __init__(self, entity_id: str, expected_version: int):
        super().__init__(
            message=f"Concurrent update detected on {entity_id} "
            f"(expected version {expected_version})",
            code="CONCURRENT_UPDATE",
        )
        self.entity_id = entity_id
        self.expected_version = expected_version


# === Transiciones ===


class IllegalTransitionError(DomainError):
    """Transición no presente en el grafo de estados."""

    def __init__(self, entity: str, source: str, target: str):
        super().__init__(
            message=f"Forbidden {entity} transition from '{source}' to '{target}'",
            code="ILLEGAL_TRANSITION",
        )
        self.entity = entity
        self.source = source
        self.target = target


# === Validación ===


class ValidationError(DomainError):
    """Error de validación de datos de entrada."""

    def __init__(self, field: str, message: str):
        super().__init__(
            message=f"Validation failed on '{field}': {message}",
            code="VALIDATION_ERROR",
        )
        self.field = field


class InvalidDateRangeError(ValidationError):
    """Rango de fechas inválido."""

    def __init__(self, message: str):
        super().__init__(field="date_range", message=message)


class InvalidWebhookError(ValidationError):
    def __init__(self, message: str):
        super().__init__(field="webhook", message=message)


# === Pagos ===


class PaymentFailedError(DomainError):
    """El procesador reportó un fallo terminal (tarjeta rechazada, etc.)."""

    def __init__(self, message: str, decline_code: str | None = None):
        super().__init__(message=message, code="PAYMENT_FAILED")
        self.decline_code = decline_code


class PaymentProcessorUnavailableError(DomainError):
    """El procesador no respondió tras los reintentos o el circuito está abierto."""

    def __init__(self, message: str = "Payment processor is temporarily unavailable"):
        super().__init__(message=message, code="PAYMENT_PROCESSOR_UNAVAILABLE")
