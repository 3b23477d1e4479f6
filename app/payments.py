"""
Payment evidence: customers upload transfer receipts, operators review them.

Both operations lock the reservation row for the duration of their
transaction so the running `total_paid` and the lifecycle status move together.
The receipt file itself lives in external object storage; only its path is kept.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from loguru import logger
from tortoise.exceptions import BaseORMException
from tortoise.transactions import in_transaction

from app import settings
from app.errors import InvalidTransition, NotFound, PersistenceFailed, ValidationError
from app.lifecycle import assert_transition, is_terminal
from app.models import (
    EvidenceStatus,
    Payment,
    PaymentStatus,
    Reservation,
    ReservationStatus,
)
from app.schemas import PaymentCreate, PaymentResponse, PaymentReview, ReservationResponse

if TYPE_CHECKING:
    from app.deps import CurrentUser


def payment_status_for(
    total_paid: Decimal,
    total_price: Decimal,
    tolerance: Decimal = settings.PAYMENT_TOLERANCE,
) -> PaymentStatus:
    """Small shortfalls under `tolerance` (bank fees, rounding) count as paid."""
    if total_paid <= 0:
        return PaymentStatus.UNPAID
    if total_paid >= total_price - tolerance:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


async def _locked_reservation(
    reservation_id: UUID, ctx: CurrentUser
) -> Reservation:
    qs = Reservation.filter(id=reservation_id)
    if not ctx.is_admin:
        qs = qs.filter(user_id=ctx.id)
    inst = await qs.select_for_update().first()
    if inst is None:
        raise NotFound()
    return inst


async def submit_payment(
    ctx: CurrentUser,
    reservation_id: UUID,
    payload: PaymentCreate,
) -> PaymentResponse:
    """
    Attach payment evidence to a reservation.

    A `pending_payment` reservation moves to `waiting_verification`; evidence
    for further instalments on a confirmed reservation leaves it confirmed.
    """
    try:
        async with in_transaction():
            reservation = await _locked_reservation(reservation_id, ctx)

            if is_terminal(reservation.status):
                raise InvalidTransition(
                    current=reservation.status,
                    target=ReservationStatus.WAITING_VERIFICATION,
                    detail=(
                        f"Reservation is '{reservation.status}' and no longer "
                        "accepts payments"
                    ),
                )

            awaiting = sum(
                await Payment.filter(
                    reservation_id=reservation.id, status=EvidenceStatus.PENDING
                ).values_list("amount", flat=True),
                Decimal("0"),
            )
            outstanding = reservation.total_price - reservation.total_paid - awaiting
            if outstanding <= 0:
                if awaiting:
                    raise ValidationError(
                        "Remaining balance is already covered by payments "
                        "awaiting verification"
                    )
                raise ValidationError("Reservation is already fully paid")
            if payload.amount > outstanding:
                raise ValidationError(
                    f"Amount exceeds the outstanding balance of {outstanding}"
                )
            if payload.amount < min(settings.MIN_PAYMENT_AMOUNT, outstanding):
                raise ValidationError(
                    f"Minimum payment is {settings.MIN_PAYMENT_AMOUNT}"
                )

            payment = await Payment.create(
                reservation_id=reservation.id,
                user_id=ctx.id,
                amount=payload.amount,
                payment_type=payload.payment_type,
                proof_url=payload.proof_url,
            )

            if reservation.status == ReservationStatus.PENDING_PAYMENT:
                reservation.status = ReservationStatus.WAITING_VERIFICATION  # type: ignore
                await reservation.save(update_fields=["status", "updated_at"])
    except BaseORMException as exc:
        raise PersistenceFailed(f"payment insert failed: {exc}") from exc

    logger.info(
        "Payment {} of {} submitted for reservation {}",
        payment.id,
        payment.amount,
        reservation_id,
    )
    return PaymentResponse.model_validate(payment, from_attributes=True)


async def review_payment(
    ctx: CurrentUser,
    reservation_id: UUID,
    payment_id: UUID,
    payload: PaymentReview,
) -> ReservationResponse:
    """
    Verify or reject pending evidence (operators only; callers enforce it).

    verified: adds the amount to `total_paid`, recomputes `payment_status` and
        confirms a reservation that was waiting for verification.
    rejected: a reservation with nothing paid and no other pending evidence
        returns to `pending_payment` so the customer can upload again.
    """
    decision = EvidenceStatus(payload.decision)
    try:
        async with in_transaction():
            reservation = await _locked_reservation(reservation_id, ctx)
            payment = await Payment.get_or_none(
                id=payment_id, reservation_id=reservation.id
            )
            if payment is None:
                raise NotFound("Payment")
            if payment.status != EvidenceStatus.PENDING:
                raise InvalidTransition(
                    current=payment.status,
                    target=decision,
                    detail=f"Payment was already {payment.status}",
                )

            if decision == EvidenceStatus.VERIFIED:
                await _apply_verified(reservation, payment)
            else:
                await _apply_rejected(reservation, payment)

            payment.status = decision  # type: ignore
            payment.verified_at = datetime.now(timezone.utc)
            payment.verified_by = ctx.id
            await payment.save(update_fields=["status", "verified_at", "verified_by"])
    except BaseORMException as exc:
        raise PersistenceFailed(f"payment review failed: {exc}") from exc

    logger.info(
        "Payment {} {} by {}; reservation {} now {} / {}",
        payment_id,
        decision,
        ctx.id,
        reservation_id,
        reservation.status,
        reservation.payment_status,
    )
    return ReservationResponse.model_validate(reservation, from_attributes=True)


async def _apply_verified(reservation: Reservation, payment: Payment) -> None:
    if is_terminal(reservation.status):
        raise InvalidTransition(
            current=reservation.status,
            target=ReservationStatus.CONFIRMED,
            detail=f"Cannot verify a payment on a '{reservation.status}' reservation",
        )
    ceiling = reservation.total_price + settings.PAYMENT_TOLERANCE
    if reservation.total_paid + payment.amount > ceiling:
        raise ValidationError(
            f"Verifying {payment.amount} would exceed the total price of "
            f"{reservation.total_price}"
        )
    if reservation.status == ReservationStatus.WAITING_VERIFICATION:
        assert_transition(reservation.status, ReservationStatus.CONFIRMED)
        reservation.status = ReservationStatus.CONFIRMED  # type: ignore

    reservation.total_paid = reservation.total_paid + payment.amount
    reservation.payment_status = payment_status_for(  # type: ignore
        reservation.total_paid, reservation.total_price
    )
    await reservation.save(
        update_fields=["status", "total_paid", "payment_status", "updated_at"]
    )


async def _apply_rejected(reservation: Reservation, payment: Payment) -> None:
    if reservation.status != ReservationStatus.WAITING_VERIFICATION:
        return
    if reservation.total_paid > 0:
        return
    others_pending = (
        await Payment.filter(
            reservation_id=reservation.id, status=EvidenceStatus.PENDING
        )
        .exclude(id=payment.id)
        .exists()
    )
    if others_pending:
        return
    assert_transition(reservation.status, ReservationStatus.PENDING_PAYMENT)
    reservation.status = ReservationStatus.PENDING_PAYMENT  # type: ignore
    await reservation.save(update_fields=["status", "updated_at"])
