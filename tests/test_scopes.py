"""Tests for ReservationScope values, admin roles and descriptions."""

from app.scopes import ADMIN_ROLES, RESERVATION_SCOPE_DESCRIPTIONS, ReservationScope


class TestReservationScopeValues:
    def test_customer_read_scope(self):
        assert ReservationScope.READ == "reservations:read"

    def test_customer_write_scope(self):
        assert ReservationScope.WRITE == "reservations:write"

    def test_customer_cancel_scope(self):
        assert ReservationScope.CANCEL == "reservations:cancel"

    def test_customer_pay_scope(self):
        assert ReservationScope.PAY == "reservations:pay"

    def test_admin_super_scope(self):
        assert ReservationScope.ADMIN == "admin:reservations"

    def test_admin_read_scope(self):
        assert ReservationScope.ADMIN_READ == "admin:reservations:read"

    def test_admin_write_scope(self):
        assert ReservationScope.ADMIN_WRITE == "admin:reservations:write"

    def test_all_scopes_are_strings(self):
        for scope in ReservationScope:
            assert isinstance(scope, str)


class TestAdminRoles:
    def test_admin_and_superadmin(self):
        assert ADMIN_ROLES == {"admin", "superadmin"}

    def test_customer_role_is_not_admin(self):
        assert "customer" not in ADMIN_ROLES


class TestReservationScopeDescriptions:
    def test_customer_scopes_have_descriptions(self):
        for scope in (
            ReservationScope.READ,
            ReservationScope.WRITE,
            ReservationScope.CANCEL,
            ReservationScope.PAY,
        ):
            assert scope in RESERVATION_SCOPE_DESCRIPTIONS
            assert len(RESERVATION_SCOPE_DESCRIPTIONS[scope]) > 0

    def test_admin_scopes_have_descriptions(self):
        for scope in (ReservationScope.ADMIN_READ, ReservationScope.ADMIN_WRITE):
            assert scope in RESERVATION_SCOPE_DESCRIPTIONS

    def test_all_description_values_are_non_empty_strings(self):
        for key, value in RESERVATION_SCOPE_DESCRIPTIONS.items():
            assert isinstance(key, str)
            assert isinstance(value, str)
            assert len(value) > 0
