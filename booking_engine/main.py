import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from booking_engine.api.deps import engine
from booking_engine.api.routers.bookings import router as bookings_router
from booking_engine.api.routers.disputes import router as disputes_router
from booking_engine.api.routers.health import router as health_router
from booking_engine.api.routers.listings import router as listings_router
from booking_engine.api.routers.payments import router as payments_router
from booking_engine.api.routers.worker import router as worker_router
from booking_engine.config import get_settings
from booking_engine.domain.errors import (
    BookingConflictError,
    ConflictError,
    DomainError,
    ForbiddenError,
    IllegalTransitionError,
    NotFoundError,
    PaymentFailedError,
    PaymentProcessorUnavailableError,
    ValidationError,
)
from booking_engine.infrastructure.db.tables import metadata

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Orden relevante: las subclases antes que sus bases.
_STATUS_BY_ERROR: list[tuple[type[DomainError], int]] = [
    (NotFoundError, 404),
    (ForbiddenError, 403),
    (ConflictError, 409),
    (IllegalTransitionError, 409),
    (ValidationError, 400),
    (PaymentFailedError, 402),
    (PaymentProcessorUnavailableError, 503),
]


def status_for(exc: DomainError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize DB tables (for dev/demo purposes)
    if not get_settings().use_in_memory:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(
    title="Rental Booking Engine",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    status_code = status_for(exc)
    content = {"code": exc.code, "message": exc.message}
    if isinstance(exc, BookingConflictError):
        content["conflicting_booking_ids"] = exc.conflicting_ids
    if isinstance(exc, PaymentFailedError) and exc.decline_code:
        content["decline_code"] = exc.decline_code

    log = logger.error if status_code >= 500 else logger.info
    log(
        "Domain error",
        extra={
            "code": exc.code,
            "status_code": status_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler to prevent stack trace exposure to clients.

    Unhandled exceptions are logged with an error_id that is also returned
    to the caller.
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception occurred",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
            "client_host": request.client.host if request.client else None,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "code": "INTERNAL_ERROR",
            "detail": "Internal server error",
            "error_id": error_id,
            "message": "An unexpected error occurred. Please contact support with the error_id if the issue persists.",
        },
    )


app.include_router(health_router, tags=["Health"])
app.include_router(listings_router, prefix="/api/v1", tags=["Listings"])
app.include_router(bookings_router, prefix="/api/v1", tags=["Bookings"])
app.include_router(payments_router, prefix="/api/v1", tags=["Payments"])
app.include_router(disputes_router, prefix="/api/v1", tags=["Disputes"])
app.include_router(worker_router, prefix="/api/v1", tags=["Worker"])
