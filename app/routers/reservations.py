from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from app.admission import AdmissionCoordinator, quote
from app.availability import AvailabilityChecker
from app.cache import get_slots_cache, invalidate_slots_cache, set_slots_cache
from app.catalog import CatalogClient, get_catalog_client
from app.crud import reservation_crud
from app.deps import (
    CurrentUser,
    can_pay_reservation,
    can_read_reservation,
    can_write_reservation,
    get_admission_coordinator,
    get_availability_checker,
    get_current_user,
    require_admin,
)
from app.errors import NotFound, ValidationError
from app.models import ReservationStatus
from app.payments import review_payment, submit_payment
from app.schemas import (
    AvailabilityQuery,
    AvailabilityResponse,
    PaymentCreate,
    PaymentResponse,
    PaymentReview,
    ReservationCreate,
    ReservationEnriched,
    ReservationFilters,
    ReservationResponse,
    ReservationSlot,
    ReservationStatusUpdate,
    TicketCheck,
)
from app.scopes import ReservationScope
from app.settings import DEFAULT_CURRENCY

router = APIRouter(prefix="/reservations", tags=["reservations"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _enrich(
    reservations: list,
    current_user: CurrentUser,
    catalog: CatalogClient,
) -> list[ReservationEnriched]:
    """
    Attach resource names from the catalog. Degrades to None on upstream errors.
    """
    if not reservations:
        return []

    parsed = [
        ReservationResponse.model_validate(r, from_attributes=True)
        for r in reservations
    ]
    resources_raw = await catalog.get_by_ids(
        {r.resource_id for r in parsed}, current_user
    )
    names: dict[str, str | None] = {r["id"]: r.get("name") for r in resources_raw}

    return [
        ReservationEnriched(
            **r.model_dump(), resource_name=names.get(str(r.resource_id))
        )
        for r in parsed
    ]


async def _visible_reservation(
    reservation_id: UUID, current_user: CurrentUser
) -> ReservationResponse:
    """Operators see every reservation, customers only their own."""
    if current_user.can_read_all:
        reservation = await reservation_crud.get_reservation(reservation_id)
    else:
        reservation = await reservation_crud.get_reservation(
            reservation_id, user_id=current_user.id
        )
    if not reservation:
        raise NotFound()
    return reservation


def _assert_may_transition(
    reservation: ReservationResponse,
    new_status: ReservationStatus,
    current_user: CurrentUser,
) -> None:
    """
    Permission half of a status change; legality is checked by the lifecycle.

    Operators may fire any legal transition. Customers may only cancel their
    own reservation, and need the cancel scope to do so.
    """
    if current_user.is_admin:
        return

    is_booker = current_user.id == reservation.user_id
    has_cancel = ReservationScope.CANCEL in current_user.scopes
    if new_status == ReservationStatus.CANCELLED and is_booker and has_cancel:
        return

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=(
            f"Transitioning to '{new_status}' requires operator access, or "
            f"'{ReservationScope.CANCEL}' scope to cancel your own reservation."
        ),
    )


# ---------------------------------------------------------------------------
# Calendar & live availability
# ---------------------------------------------------------------------------


@router.get("/slots", response_model=list[ReservationSlot])
async def get_resource_slots(
    resource_id: UUID,
    _: CurrentUser = Depends(get_current_user),
) -> list[ReservationSlot]:
    """
    Returns occupied time windows for a resource.
    Any authenticated user can call this; the response contains NO user identity.
    """
    cached = await get_slots_cache(resource_id)
    if cached is not None:
        logger.debug("Cache hit for slots: resource_id={}", resource_id)
        return cached

    logger.debug("Cache miss for slots: resource_id={}", resource_id)
    slots = await reservation_crud.list_occupied_slots(resource_id)
    await set_slots_cache(resource_id, slots)
    return slots


@router.get("/availability", response_model=AvailabilityResponse)
async def check_availability(
    resource_id: UUID,
    start_datetime: datetime,
    end_datetime: datetime,
    current_user: CurrentUser = Depends(get_current_user),
    coordinator: AdmissionCoordinator = Depends(get_admission_coordinator),
    checker: AvailabilityChecker = Depends(get_availability_checker),
) -> AvailabilityResponse:
    """
    Advisory check for booking forms: is the window free, and what would it cost.
    A window shorter than one billable unit is a 422, as it is on admission.
    A backend failure is a 503, never a silent "available".
    """
    try:
        query = AvailabilityQuery(
            resource_id=resource_id,
            start_datetime=start_datetime,
            end_datetime=end_datetime,
        )
    except PydanticValidationError as exc:
        raise ValidationError(exc.errors()[0]["msg"]) from None

    resource = await coordinator.load_resource(current_user, query.resource_id)
    total_price = quote(resource, query.start_datetime, query.end_datetime)
    available = await checker.is_available(
        query.resource_id, query.start_datetime, query.end_datetime
    )
    return AvailabilityResponse(
        resource_id=query.resource_id,
        start_datetime=query.start_datetime,
        end_datetime=query.end_datetime,
        available=available,
        total_price=total_price,
        currency=resource.currency or DEFAULT_CURRENCY,
    )


# ---------------------------------------------------------------------------
# Reservations
# ---------------------------------------------------------------------------


@router.get("/", response_model=list[ReservationEnriched])
async def list_reservations(
    filters: ReservationFilters = Depends(),
    current_user: CurrentUser = Depends(can_read_reservation),
    catalog: CatalogClient = Depends(get_catalog_client),
) -> list[ReservationEnriched]:
    if current_user.can_read_all:
        reservations = await reservation_crud.list_reservations(filters=filters)
    else:
        reservations = await reservation_crud.list_reservations(
            filters=filters, user_id=current_user.id
        )
    return await _enrich(reservations, current_user, catalog)


@router.post(
    "/", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED
)
async def create_reservation(
    payload: ReservationCreate,
    current_user: CurrentUser = Depends(can_write_reservation),
    coordinator: AdmissionCoordinator = Depends(get_admission_coordinator),
) -> ReservationResponse:
    return await coordinator.admit(current_user, payload)


@router.get("/{reservation_id}", response_model=ReservationEnriched)
async def get_reservation(
    reservation_id: UUID,
    current_user: CurrentUser = Depends(can_read_reservation),
    catalog: CatalogClient = Depends(get_catalog_client),
) -> ReservationEnriched:
    reservation = await _visible_reservation(reservation_id, current_user)
    results = await _enrich([reservation], current_user, catalog)
    return results[0]


@router.patch("/{reservation_id}/status", response_model=ReservationResponse)
async def update_reservation_status(
    reservation_id: UUID,
    payload: ReservationStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
) -> ReservationResponse:
    # Fetch without ownership filter, permissions are validated manually
    reservation = await reservation_crud.get_reservation(reservation_id)
    if not reservation:
        raise NotFound()

    _assert_may_transition(reservation, payload.status, current_user)

    updated = await reservation_crud.transition_status(reservation_id, payload.status)
    await invalidate_slots_cache(reservation.resource_id)
    return updated


# ---------------------------------------------------------------------------
# Payment evidence
# ---------------------------------------------------------------------------


@router.get("/{reservation_id}/payments", response_model=list[PaymentResponse])
async def list_reservation_payments(
    reservation_id: UUID,
    current_user: CurrentUser = Depends(can_read_reservation),
) -> list[PaymentResponse]:
    await _visible_reservation(reservation_id, current_user)
    return await reservation_crud.list_payments(reservation_id)


@router.post(
    "/{reservation_id}/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_reservation_payment(
    reservation_id: UUID,
    payload: PaymentCreate,
    current_user: CurrentUser = Depends(can_pay_reservation),
) -> PaymentResponse:
    return await submit_payment(current_user, reservation_id, payload)


@router.patch(
    "/{reservation_id}/payments/{payment_id}", response_model=ReservationResponse
)
async def review_reservation_payment(
    reservation_id: UUID,
    payment_id: UUID,
    payload: PaymentReview,
    current_user: CurrentUser = Depends(require_admin),
) -> ReservationResponse:
    return await review_payment(current_user, reservation_id, payment_id, payload)


@router.get("/{reservation_id}/ticket", response_model=TicketCheck)
async def check_ticket(
    reservation_id: UUID,
    current_user: CurrentUser = Depends(require_admin),
    catalog: CatalogClient = Depends(get_catalog_client),
) -> TicketCheck:
    """Gate check for a scanned e-ticket: only confirmed reservations are valid."""
    reservation = await _visible_reservation(reservation_id, current_user)
    enriched = (await _enrich([reservation], current_user, catalog))[0]
    return TicketCheck(
        reservation_id=enriched.id,
        valid=enriched.status == ReservationStatus.CONFIRMED,
        status=enriched.status,
        payment_status=enriched.payment_status,
        resource_name=enriched.resource_name,
        customer_name=enriched.customer_name,
        start_datetime=enriched.start_datetime,
        end_datetime=enriched.end_datetime,
    )
