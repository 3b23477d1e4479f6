from decimal import Decimal
from enum import StrEnum

from tortoise import fields
from tortoise.models import Model


class ReservationStatus(StrEnum):
    PENDING_PAYMENT = "pending_payment"  # just admitted, nothing paid yet
    WAITING_VERIFICATION = "waiting_verification"  # evidence uploaded, awaiting review
    CONFIRMED = "confirmed"  # payment approved, valid for use
    COMPLETED = "completed"  # rental period elapsed, marked done
    CANCELLED = "cancelled"  # cancelled by customer or operator


class PaymentStatus(StrEnum):
    UNPAID = "unpaid"
    PARTIAL = "partial"  # down payment verified, balance outstanding
    PAID = "paid"


class ResourceUnit(StrEnum):
    PER_HOUR = "per_hour"
    PER_DAY = "per_day"


class PaymentType(StrEnum):
    TRANSFER = "transfer"
    CASH = "cash"
    QRIS = "qris"
    OTHER = "other"


class EvidenceStatus(StrEnum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


# Statuses that occupy the resource's calendar
ACTIVE_STATUSES = [
    ReservationStatus.PENDING_PAYMENT,
    ReservationStatus.WAITING_VERIFICATION,
    ReservationStatus.CONFIRMED,
    ReservationStatus.COMPLETED,
]


class Reservation(Model):
    id = fields.UUIDField(primary_key=True)

    resource_id = fields.UUIDField(db_index=True)
    user_id = fields.UUIDField()  # the requester

    start_datetime = fields.DatetimeField()
    end_datetime = fields.DatetimeField()  # exclusive

    status = fields.CharEnumField(
        ReservationStatus, default=ReservationStatus.PENDING_PAYMENT
    )
    payment_status = fields.CharEnumField(PaymentStatus, default=PaymentStatus.UNPAID)

    unit = fields.CharEnumField(ResourceUnit)  # snapshot at admission time
    rate = fields.DecimalField(max_digits=12, decimal_places=2)  # snapshot
    total_price = fields.DecimalField(max_digits=14, decimal_places=2)  # computed
    total_paid = fields.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0")
    )  # sum of verified evidence
    currency = fields.CharField(max_length=3, default="IDR")

    customer_name = fields.CharField(max_length=255, null=True)
    customer_email = fields.CharField(max_length=255, null=True)
    customer_phone = fields.CharField(max_length=32, null=True)
    notes = fields.TextField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    payments: fields.ReverseRelation["Payment"]

    class Meta:  # type: ignore
        table = "reservations"
        ordering = ["-created_at"]


class Payment(Model):
    id = fields.UUIDField(primary_key=True)

    reservation: fields.ForeignKeyRelation[Reservation] = fields.ForeignKeyField(
        "models.Reservation", related_name="payments", on_delete=fields.CASCADE
    )
    user_id = fields.UUIDField()

    amount = fields.DecimalField(max_digits=14, decimal_places=2)
    payment_type = fields.CharEnumField(PaymentType, default=PaymentType.TRANSFER)
    proof_url = fields.CharField(max_length=1024, null=True)  # path in the receipts bucket

    status = fields.CharEnumField(EvidenceStatus, default=EvidenceStatus.PENDING)
    verified_at = fields.DatetimeField(null=True)
    verified_by = fields.UUIDField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:  # type: ignore
        table = "payments"
        ordering = ["created_at"]
