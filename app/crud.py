from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from loguru import logger
from tortoise.exceptions import BaseORMException, IntegrityError
from tortoise.queryset import QuerySet
from tortoise.transactions import in_transaction

from app.errors import NotFound, PersistenceFailed, ResourceUnavailable
from app.lifecycle import assert_transition
from app.models import (
    ACTIVE_STATUSES,
    Payment,
    Reservation,
    ReservationStatus,
    ResourceUnit,
)
from app.schemas import (
    PaymentResponse,
    ReservationFilters,
    ReservationResponse,
    ReservationSlot,
)


def _to_utc(dt: datetime) -> datetime:
    """Ensure a datetime is UTC-aware, handling both aware and naive inputs."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _overlapping(
    resource_id: UUID, start: datetime, end: datetime
) -> QuerySet[Reservation]:
    """Non-cancelled reservations of the resource intersecting [start, end)."""
    return Reservation.filter(
        resource_id=resource_id,
        status__in=ACTIVE_STATUSES,
        start_datetime__lt=end,
        end_datetime__gt=start,
    )


class ReservationCRUD:
    async def has_conflict(
        self, resource_id: UUID, start: datetime, end: datetime
    ) -> bool:
        """Return True if an active reservation overlaps the given window."""
        return await _overlapping(resource_id, _to_utc(start), _to_utc(end)).exists()

    async def create_reservation(
        self,
        resource_id: UUID,
        user_id: UUID,
        start_datetime: datetime,
        end_datetime: datetime,
        unit: ResourceUnit,
        rate: Decimal,
        total_price: Decimal,
        currency: str,
        customer_name: str | None = None,
        customer_email: str | None = None,
        customer_phone: str | None = None,
        notes: str | None = None,
    ) -> ReservationResponse:
        """
        Insert a reservation in `pending_payment` / `unpaid`.

        Overlap is re-checked under SELECT FOR UPDATE in the same transaction as
        the insert, and the storage guard rejects whatever still slips through.
        Either rejection is ResourceUnavailable; any other write failure is
        PersistenceFailed. Nothing is written on any failure path.
        """
        start, end = _to_utc(start_datetime), _to_utc(end_datetime)
        try:
            async with in_transaction():
                conflict = _overlapping(resource_id, start, end).select_for_update()
                if await conflict.first() is not None:
                    raise ResourceUnavailable()

                inst = await Reservation.create(
                    resource_id=resource_id,
                    user_id=user_id,
                    start_datetime=start,
                    end_datetime=end,
                    unit=unit,
                    rate=rate,
                    total_price=total_price,
                    currency=currency,
                    customer_name=customer_name,
                    customer_email=customer_email,
                    customer_phone=customer_phone,
                    notes=notes,
                )
        except IntegrityError as exc:
            logger.info(
                "Overlap guard rejected reservation for resource {}: {}", resource_id, exc
            )
            raise ResourceUnavailable() from exc
        except (BaseORMException, OSError) as exc:
            raise PersistenceFailed(f"reservation insert failed: {exc}") from exc

        return ReservationResponse.model_validate(inst, from_attributes=True)

    async def get_reservation(
        self,
        reservation_id: UUID,
        user_id: UUID | None = None,
    ) -> ReservationResponse | None:
        if user_id is not None:
            inst = await Reservation.get_or_none(id=reservation_id, user_id=user_id)
        else:
            inst = await Reservation.get_or_none(id=reservation_id)

        if not inst:
            return None
        return ReservationResponse.model_validate(inst, from_attributes=True)

    async def list_reservations(
        self,
        filters: ReservationFilters,
        user_id: UUID | None = None,
    ) -> list[ReservationResponse]:
        qs = Reservation.all()

        if user_id is not None:
            qs = qs.filter(user_id=user_id)
        if filters.resource_id is not None:
            qs = qs.filter(resource_id=filters.resource_id)
        if filters.status is not None:
            qs = qs.filter(status=filters.status)
        if filters.payment_status is not None:
            qs = qs.filter(payment_status=filters.payment_status)

        offset = (filters.page - 1) * filters.page_size
        qs = qs.offset(offset).limit(filters.page_size)

        reservations = await qs
        return [
            ReservationResponse.model_validate(r, from_attributes=True)
            for r in reservations
        ]

    async def transition_status(
        self,
        reservation_id: UUID,
        new_status: ReservationStatus,
    ) -> ReservationResponse:
        """
        Move a reservation to `new_status`.

        The row is locked and the transition re-validated inside the transaction,
        so a concurrent change can't slip an illegal move past the check.
        Raises NotFound or InvalidTransition; the stored status is untouched then.
        """
        async with in_transaction():
            inst = (
                await Reservation.filter(id=reservation_id).select_for_update().first()
            )
            if inst is None:
                raise NotFound()
            assert_transition(inst.status, new_status)
            old_status = inst.status
            inst.status = new_status  # type: ignore
            await inst.save(update_fields=["status", "updated_at"])

        logger.info(
            "Reservation {} moved {} -> {}", reservation_id, old_status, new_status
        )
        return ReservationResponse.model_validate(inst, from_attributes=True)

    async def list_occupied_slots(self, resource_id: UUID) -> list[ReservationSlot]:
        """Return booked time windows for a resource. No requester info exposed."""
        reservations = await Reservation.filter(
            resource_id=resource_id,
            status__in=ACTIVE_STATUSES,
        ).only("start_datetime", "end_datetime")
        return [
            ReservationSlot.model_validate(r, from_attributes=True)
            for r in reservations
        ]

    async def list_payments(self, reservation_id: UUID) -> list[PaymentResponse]:
        payments = await Payment.filter(reservation_id=reservation_id)
        return [PaymentResponse.model_validate(p, from_attributes=True) for p in payments]


reservation_crud = ReservationCRUD()
