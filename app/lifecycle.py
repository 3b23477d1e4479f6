from __future__ import annotations

from app.errors import InvalidTransition
from app.models import ReservationStatus

ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING_PAYMENT: frozenset(
        {ReservationStatus.WAITING_VERIFICATION, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.WAITING_VERIFICATION: frozenset(
        {
            ReservationStatus.CONFIRMED,
            ReservationStatus.CANCELLED,
            ReservationStatus.PENDING_PAYMENT,  # only evidence was rejected
        }
    ),
    ReservationStatus.CONFIRMED: frozenset(
        {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}


def allowed_targets(current: ReservationStatus | str) -> frozenset[ReservationStatus]:
    return ALLOWED_TRANSITIONS.get(ReservationStatus(current), frozenset())


def is_terminal(current: ReservationStatus | str) -> bool:
    return not allowed_targets(current)


def can_transition(
    current: ReservationStatus | str, target: ReservationStatus | str
) -> bool:
    return ReservationStatus(target) in allowed_targets(current)


def assert_transition(
    current: ReservationStatus | str, target: ReservationStatus | str
) -> None:
    """Raise InvalidTransition unless current -> target is legal."""
    if not can_transition(current, target):
        raise InvalidTransition(
            current=str(current),
            target=str(target),
            allowed=[s.value for s in allowed_targets(current)],
        )
