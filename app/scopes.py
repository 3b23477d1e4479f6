from enum import StrEnum


class ReservationScope(StrEnum):
    # Customer scopes
    READ = "reservations:read"  # view own reservations
    WRITE = "reservations:write"  # request a reservation
    CANCEL = "reservations:cancel"  # cancel own reservation
    PAY = "reservations:pay"  # upload payment evidence for own reservation

    # Operator scopes
    ADMIN = "admin:reservations"
    ADMIN_READ = "admin:reservations:read"
    ADMIN_WRITE = "admin:reservations:write"


# Roles carried in the session that grant full operator access
ADMIN_ROLES = frozenset({"admin", "superadmin"})


RESERVATION_SCOPE_DESCRIPTIONS: dict[str, str] = {
    ReservationScope.READ: "View your own reservations.",
    ReservationScope.WRITE: "Request a reservation of a rentable resource.",
    ReservationScope.CANCEL: "Cancel your own reservation before it is used.",
    ReservationScope.PAY: "Upload payment evidence for your own reservation.",
    ReservationScope.ADMIN_READ: "Read any reservation regardless of requester (admin).",
    ReservationScope.ADMIN_WRITE: "Transition reservations and review payments (admin).",
}
