"""
Admission of new reservations.

The coordinator is the only writer that creates reservations. It re-checks
availability immediately before persisting rather than trusting whatever the
client saw earlier, prices the window with the resource's current rate, and
hands the insert to the CRUD layer, whose transaction and storage guard close
the remaining race.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from loguru import logger

from app import settings
from app.availability import AvailabilityChecker
from app.cache import invalidate_slots_cache
from app.crud import ReservationCRUD, reservation_crud
from app.errors import ResourceUnavailable, ValidationError
from app.pricing import billable_units, calculate_price
from app.schemas import ReservationCreate, ReservationResponse, ResourceInfo

if TYPE_CHECKING:
    from app.catalog import CatalogClient
    from app.deps import CurrentUser


def quote(resource: ResourceInfo, start: datetime, end: datetime) -> Decimal:
    """
    Price [start, end) on `resource`.

    A window worth zero billable units is rejected rather than quoted as free;
    a free resource (rate 0) still quotes 0.
    """
    if billable_units(resource.unit, start, end) == 0:
        raise ValidationError(
            "Reservation is shorter than one billable hour for this resource"
        )
    return calculate_price(resource.unit, start, end, resource.rate)


def _collect_commit_outcome(task: asyncio.Task) -> None:
    # Retrieves the result even when the requester has gone away.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.info("Reservation commit ended without a reservation: {!r}", exc)


class AdmissionCoordinator:
    def __init__(
        self,
        catalog: CatalogClient,
        checker: AvailabilityChecker | None = None,
        crud: ReservationCRUD = reservation_crud,
    ) -> None:
        self._catalog = catalog
        self._crud = crud
        self._checker = checker or AvailabilityChecker(crud=crud)

    async def load_resource(self, ctx: CurrentUser, resource_id: UUID) -> ResourceInfo:
        """Fetch a resource that can currently be reserved."""
        resource = await self._catalog.get_resource(resource_id, ctx)
        if not resource.is_active:
            raise ValidationError("Resource is not accepting reservations")
        if resource.rate < 0:
            raise ValidationError("Resource has a negative rate")
        return resource

    async def admit(
        self, ctx: CurrentUser, request: ReservationCreate
    ) -> ReservationResponse:
        """
        Admit `request` on behalf of `ctx`.

        Raises NotFound (unknown resource), ValidationError (inactive resource,
        negative rate, window shorter than one billable unit),
        ResourceUnavailable (overlap at pre-check or commit),
        AvailabilityCheckFailed, PersistenceFailed or CatalogUnavailable.
        Exactly one insert on success, none otherwise.
        """
        resource = await self.load_resource(ctx, request.resource_id)
        start, end = request.start_datetime, request.end_datetime
        total_price = quote(resource, start, end)

        if not await self._checker.is_available(resource.id, start, end):
            logger.info(
                "Admission refused for resource {}: [{}, {}) is taken",
                resource.id,
                start,
                end,
            )
            raise ResourceUnavailable()

        commit = asyncio.ensure_future(
            self._commit(
                resource_id=resource.id,
                user_id=ctx.id,
                start_datetime=start,
                end_datetime=end,
                unit=resource.unit,
                rate=resource.rate,
                total_price=total_price,
                currency=resource.currency or settings.DEFAULT_CURRENCY,
                customer_name=request.customer_name or ctx.username,
                customer_email=request.customer_email,
                customer_phone=request.customer_phone,
                notes=request.notes,
            )
        )
        commit.add_done_callback(_collect_commit_outcome)
        # Shielded so an abandoned request still commits or aborts as a whole.
        reservation = await asyncio.shield(commit)
        logger.info(
            "Reservation {} admitted for resource {} by {} ({} {})",
            reservation.id,
            resource.id,
            ctx.id,
            total_price,
            reservation.currency,
        )
        return reservation

    async def _commit(self, **fields) -> ReservationResponse:
        """Insert, then drop the cached calendar of the resource."""
        reservation = await self._crud.create_reservation(**fields)
        await invalidate_slots_cache(reservation.resource_id)
        return reservation
