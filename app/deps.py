from dataclasses import dataclass, field
from urllib.parse import unquote
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from app.admission import AdmissionCoordinator
from app.availability import AvailabilityChecker
from app.catalog import CatalogClient, get_catalog_client
from app.scopes import ADMIN_ROLES, ReservationScope


@dataclass
class CurrentUser:
    """Request context threaded explicitly into every reservation operation."""

    id: UUID
    username: str
    role: str | None = None
    scopes: list[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return (
            self.role in ADMIN_ROLES
            or ReservationScope.ADMIN in self.scopes
            or ReservationScope.ADMIN_WRITE in self.scopes
        )

    @property
    def can_read_all(self) -> bool:
        return self.is_admin or ReservationScope.ADMIN_READ in self.scopes


def get_current_user(
    x_user_id: str = Header(...),
    x_username: str = Header(...),
    x_user_role: str = Header(default=""),
    x_user_scopes: str = Header(default=""),
) -> CurrentUser:
    """
    Reads the identity headers injected by the gateway after it validated the
    session cookie. The session has already been verified, we trust these.
    """
    try:
        user_id = UUID(x_user_id)
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identity from gateway",
        ) from None

    scopes = x_user_scopes.split(" ") if x_user_scopes else []

    return CurrentUser(
        id=user_id,
        username=unquote(x_username),
        role=x_user_role or None,
        scopes=scopes,
    )


def require_scopes(*required: str):
    """
    Factory that returns a dependency enforcing one or more scopes.
    Admins pass regardless of scopes.

    Usage:
        @router.get("/protected")
        async def route(user = Depends(require_scopes("reservations:read"))):
            ...
    """

    async def _dep(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if current_user.is_admin:
            return current_user
        missing = [s for s in required if s not in current_user.scopes]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing required scopes: {', '.join(missing)}",
            )
        return current_user

    return _dep


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Operator-only endpoints: admin role or admin reservation scope."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operator access required",
        )
    return current_user


# ---------------------------------------------------------------------------
# Pre-built scope dependencies
# ---------------------------------------------------------------------------

can_write_reservation = require_scopes(ReservationScope.WRITE)
can_pay_reservation = require_scopes(ReservationScope.PAY)


async def can_read_reservation(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    Passes if the user can read own reservations or read all of them.
    - reservations:read        → customer sees own reservations
    - admin role / admin:*     → operator sees all
    """
    if not (ReservationScope.READ in current_user.scopes or current_user.can_read_all):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=(
                f"Requires '{ReservationScope.READ}' (customers) "
                f"or '{ReservationScope.ADMIN_READ}' (admin)."
            ),
        )
    return current_user


# ---------------------------------------------------------------------------
# Core services
# ---------------------------------------------------------------------------

_availability_checker = AvailabilityChecker()


def get_availability_checker() -> AvailabilityChecker:
    return _availability_checker


def get_admission_coordinator(
    catalog: CatalogClient = Depends(get_catalog_client),
    checker: AvailabilityChecker = Depends(get_availability_checker),
) -> AdmissionCoordinator:
    return AdmissionCoordinator(catalog=catalog, checker=checker)
