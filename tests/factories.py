"""
All test-data builders in one place.
Import from here in every test file, never define dummy data inline.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

from app.deps import CurrentUser
from app.models import ResourceUnit
from app.schemas import ReservationCreate, ReservationResponse, ResourceInfo
from app.scopes import ReservationScope

# ---------------------------------------------------------------------------
# Stable IDs: use these when a specific, repeatable UUID is needed.
# Call uuid4() inline when you need a fresh one per test.
# ---------------------------------------------------------------------------

CUSTOMER_ID: UUID = uuid4()
ADMIN_ID: UUID = uuid4()
OTHER_USER_ID: UUID = uuid4()

RESERVATION_ID: UUID = uuid4()
RESOURCE_ID: UUID = uuid4()
PAYMENT_ID: UUID = uuid4()

NOW = datetime(2024, 1, 1, 10, 0, 0, tzinfo=UTC)
LATER = NOW + timedelta(hours=2)

RATE = Decimal("50000")


# ---------------------------------------------------------------------------
# User factories
# ---------------------------------------------------------------------------


def make_customer(
    user_id: UUID = CUSTOMER_ID,
    scopes: list[str] | None = None,
) -> CurrentUser:
    """Customer with read/write/cancel/pay reservation scopes."""
    if scopes is None:
        scopes = [
            ReservationScope.READ,
            ReservationScope.WRITE,
            ReservationScope.CANCEL,
            ReservationScope.PAY,
            "resources:read",
        ]
    return CurrentUser(id=user_id, username=f"customer_{user_id}", scopes=scopes)


def make_admin(role: str = "admin") -> CurrentUser:
    """Operator recognised by the session role claim alone."""
    return CurrentUser(id=ADMIN_ID, username="admin", role=role, scopes=[])


def make_scoped_admin() -> CurrentUser:
    """Operator recognised by admin scopes instead of a role."""
    return CurrentUser(
        id=ADMIN_ID,
        username="ops",
        scopes=[
            ReservationScope.ADMIN,
            ReservationScope.ADMIN_READ,
            ReservationScope.ADMIN_WRITE,
        ],
    )


# ---------------------------------------------------------------------------
# Catalog factories
# ---------------------------------------------------------------------------


def resource_dict(**overrides) -> dict:
    """Catalog-service resource representation (its column is `price`)."""
    base = dict(
        id=str(RESOURCE_ID),
        name="Aula Serbaguna",
        unit="per_hour",
        price="50000",
        is_active=True,
        currency="IDR",
    )
    return {**base, **overrides}


def make_resource(**overrides) -> ResourceInfo:
    return ResourceInfo.model_validate(resource_dict(**overrides))


# ---------------------------------------------------------------------------
# Reservation factories
# ---------------------------------------------------------------------------


def reservation_response(**overrides) -> dict:
    base = dict(
        id=str(RESERVATION_ID),
        resource_id=str(RESOURCE_ID),
        user_id=str(CUSTOMER_ID),
        start_datetime=NOW.isoformat(),
        end_datetime=LATER.isoformat(),
        status="pending_payment",
        payment_status="unpaid",
        unit=ResourceUnit.PER_HOUR.value,
        rate="50000.00",
        total_price="100000.00",
        total_paid="0.00",
        currency="IDR",
        customer_name="Budi",
        customer_email="budi@example.com",
        customer_phone=None,
        notes=None,
        created_at=NOW.isoformat(),
        updated_at=NOW.isoformat(),
    )
    return {**base, **overrides}


def reservation_model(**overrides) -> ReservationResponse:
    """ReservationResponse object, needed when the router reads .status etc."""
    return ReservationResponse(**reservation_response(**overrides))


def payment_response(**overrides) -> dict:
    base = dict(
        id=str(PAYMENT_ID),
        reservation_id=str(RESERVATION_ID),
        user_id=str(CUSTOMER_ID),
        amount="50000.00",
        payment_type="transfer",
        proof_url=f"receipts/{CUSTOMER_ID}/{RESERVATION_ID}.jpg",
        status="pending",
        verified_at=None,
        verified_by=None,
        created_at=NOW.isoformat(),
    )
    return {**base, **overrides}


# ---------------------------------------------------------------------------
# Request payload factories
# ---------------------------------------------------------------------------


def reservation_create_payload(**overrides) -> dict:
    base = dict(
        resource_id=str(RESOURCE_ID),
        start_datetime=NOW.isoformat(),
        end_datetime=LATER.isoformat(),
        customer_name="Budi",
        customer_email="budi@example.com",
        notes=None,
    )
    return {**base, **overrides}


def reservation_create(**overrides) -> ReservationCreate:
    return ReservationCreate.model_validate(reservation_create_payload(**overrides))
