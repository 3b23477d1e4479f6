"""
Domain errors raised by the reservation core and their HTTP rendering.

Every error carries a stable ``code`` so clients can tell "slot taken" apart
from "backend hiccup" without parsing messages. Backend failures expose a
generic message only; the underlying cause is logged, never returned.
"""

from __future__ import annotations

from collections.abc import Iterable

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

TRY_AGAIN = "Temporary problem reaching the booking backend, please try again."


class ReservationError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "reservation_error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail()
        super().__init__(self.detail)

    def default_detail(self) -> str:
        return "Reservation request failed"


class ValidationError(ReservationError):
    """Malformed request: inverted interval, negative rate, zero billable units..."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"


class NotFound(ReservationError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"

    def __init__(self, what: str = "Reservation") -> None:
        super().__init__(f"{what} not found")


class ResourceUnavailable(ReservationError):
    status_code = status.HTTP_409_CONFLICT
    code = "resource_unavailable"

    def default_detail(self) -> str:
        return "This slot is no longer available, please pick another time."


class InvalidTransition(ReservationError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_transition"

    def __init__(
        self,
        current: str,
        target: str,
        allowed: Iterable[str] = (),
        detail: str | None = None,
    ) -> None:
        self.current = current
        self.target = target
        self.allowed = sorted(str(s) for s in allowed)
        super().__init__(
            detail
            or (
                f"Cannot transition from '{current}' to '{target}'. "
                f"Allowed: {self.allowed}"
            )
        )


class BackendError(ReservationError):
    """Connectivity or storage failure. Rendered with a generic message."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "backend_error"

    def default_detail(self) -> str:
        return TRY_AGAIN


class AvailabilityCheckFailed(BackendError):
    code = "availability_check_failed"


class PersistenceFailed(BackendError):
    code = "persistence_failed"


class CatalogUnavailable(BackendError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "catalog_unavailable"


async def reservation_error_handler(
    request: Request, exc: ReservationError
) -> JSONResponse:
    if isinstance(exc, BackendError):
        logger.warning(
            "{} on {} {}: {}", exc.code, request.method, request.url.path, exc.detail
        )
        detail = TRY_AGAIN
    else:
        detail = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail, "code": exc.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReservationError, reservation_error_handler)  # type: ignore[arg-type]
