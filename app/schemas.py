from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models import (
    EvidenceStatus,
    PaymentStatus,
    PaymentType,
    ReservationStatus,
    ResourceUnit,
)


def _require_utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        raise ValueError("datetime must be timezone-aware (include UTC offset)")
    return v.astimezone(timezone.utc)


class _Window(BaseModel):
    start_datetime: datetime
    end_datetime: datetime

    @field_validator("start_datetime", "end_datetime", mode="after")
    @classmethod
    def require_timezone(cls, v: datetime) -> datetime:
        return _require_utc(v)

    @model_validator(mode="after")
    def validate_time_range(self):
        if self.end_datetime <= self.start_datetime:
            raise ValueError("end_datetime must be after start_datetime")
        return self


class ReservationCreate(_Window):
    resource_id: UUID
    customer_name: str | None = Field(default=None, max_length=255)
    customer_email: str | None = Field(default=None, max_length=255)
    customer_phone: str | None = Field(default=None, max_length=32)
    notes: str | None = Field(default=None, max_length=1000)


class AvailabilityQuery(_Window):
    resource_id: UUID


class AvailabilityResponse(BaseModel):
    resource_id: UUID
    start_datetime: datetime
    end_datetime: datetime
    available: bool
    total_price: Decimal
    currency: str


class ReservationStatusUpdate(BaseModel):
    status: ReservationStatus


class ReservationResponse(BaseModel):
    id: UUID
    resource_id: UUID
    user_id: UUID
    start_datetime: datetime
    end_datetime: datetime
    status: ReservationStatus
    payment_status: PaymentStatus
    unit: ResourceUnit
    rate: Decimal
    total_price: Decimal
    total_paid: Decimal
    currency: str
    customer_name: str | None
    customer_email: str | None
    customer_phone: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def outstanding(self) -> Decimal:
        return max(self.total_price - self.total_paid, Decimal("0"))


class ReservationEnriched(ReservationResponse):
    resource_name: str | None = None


class ReservationSlot(BaseModel):
    """Minimal occupied slot, reveals no requester identity."""

    start_datetime: datetime
    end_datetime: datetime

    model_config = ConfigDict(from_attributes=True)


class ReservationFilters(BaseModel):
    """Bind to a FastAPI route via Depends(ReservationFilters)."""

    resource_id: UUID | None = None
    status: ReservationStatus | None = None
    payment_status: PaymentStatus | None = None

    # Pagination
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class ResourceInfo(BaseModel):
    """Catalog representation of a rentable resource."""

    id: UUID
    name: str | None = None
    unit: ResourceUnit
    rate: Decimal = Field(alias="price")
    is_active: bool = True
    currency: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class PaymentCreate(BaseModel):
    amount: Decimal = Field(gt=0, decimal_places=2)
    payment_type: PaymentType = PaymentType.TRANSFER
    proof_url: str | None = Field(default=None, max_length=1024)


class PaymentReview(BaseModel):
    decision: Literal["verified", "rejected"]


class PaymentResponse(BaseModel):
    id: UUID
    reservation_id: UUID
    user_id: UUID
    amount: Decimal
    payment_type: PaymentType
    proof_url: str | None
    status: EvidenceStatus
    verified_at: datetime | None
    verified_by: UUID | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TicketCheck(BaseModel):
    reservation_id: UUID
    valid: bool
    status: ReservationStatus
    payment_status: PaymentStatus
    resource_name: str | None = None
    customer_name: str | None = None
    start_datetime: datetime
    end_datetime: datetime
