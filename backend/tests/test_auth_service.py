"""
Account and verifier provisioning tests.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from storefront.extensions import db
from storefront.models import StaffRecord, User
from storefront.services import auth_service
from storefront.services.auth_service import PasswordValidationError, VerifierProvisioningError
from storefront.validation import AuthorizationError, ValidationError


# =============================================================================
# PASSWORDS
# =============================================================================


class TestPasswords:

    @pytest.mark.parametrize(
        "password",
        ["Sh0rt!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigitsHere!", "NoSpecial123"],
    )
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_hash_and_verify(self):
        hashed = auth_service.hash_password("Password123!")

        assert hashed.startswith("$2")
        assert auth_service.verify_password("Password123!", hashed)
        assert not auth_service.verify_password("Password124!", hashed)

    def test_guest_placeholder_never_verifies(self):
        assert not auth_service.verify_password("anything", "GUEST_1700000000000".ljust(60, "X"))
        assert not auth_service.verify_password("anything", None)


class TestCreateAdmin:

    def test_creates_admin(self, db_session):
        user = auth_service.create_admin_user("  Admin@Shop.Local ", "Shop Admin", "Password123!")

        assert user.email == "admin@shop.local"
        assert user.is_admin
        assert auth_service.verify_password("Password123!", user.password_hash)

    def test_duplicate_email(self, db_session, admin_user):
        with pytest.raises(ValidationError, match="already exists"):
            auth_service.create_admin_user(admin_user.email, None, "Password123!")


# =============================================================================
# VERIFIERS
# =============================================================================


class TestResolveAdminVerifier:

    def test_missing_id(self, db_session):
        with pytest.raises(AuthorizationError) as exc:
            auth_service.resolve_admin_verifier(None, "approve")
        assert exc.value.status_code == 401

    def test_unknown_id(self, db_session):
        with pytest.raises(AuthorizationError) as exc:
            auth_service.resolve_admin_verifier("missing", "approve")
        assert exc.value.status_code == 401
        assert str(exc.value) == "User not found"

    def test_non_admin(self, db_session, customer_user):
        with pytest.raises(AuthorizationError) as exc:
            auth_service.resolve_admin_verifier(customer_user.id, "reject")
        assert exc.value.status_code == 403
        assert str(exc.value) == "Only admins can reject payments"
        assert db_session.query(StaffRecord).count() == 0

    def test_admin_gets_staff_id(self, db_session, admin_user):
        user, staff_id = auth_service.resolve_admin_verifier(admin_user.id, "approve")

        assert user.id == admin_user.id
        assert db_session.get(StaffRecord, staff_id).email == admin_user.email


class TestEnsureStaffRecord:

    def test_next_id_after_existing(self, db_session, admin_user, legacy_admin_staff):
        assert auth_service.ensure_staff_record(admin_user) == legacy_admin_staff.id + 1

    def test_idempotent(self, db_session, admin_user):
        first = auth_service.ensure_staff_record(admin_user)
        second = auth_service.ensure_staff_record(admin_user)

        assert first == second
        assert db_session.query(StaffRecord).count() == 1

    def test_insert_conflict_borrows_admin_record(self, db_session, admin_user, legacy_admin_staff, monkeypatch):
        def conflict():
            raise IntegrityError("INSERT INTO staff_records", {}, Exception("UNIQUE constraint failed"))
        monkeypatch.setattr(db.session, "commit", conflict)

        staff_id = auth_service.ensure_staff_record(admin_user)

        assert staff_id == legacy_admin_staff.id

    def test_insert_conflict_without_admin_record(self, db_session, admin_user, monkeypatch):
        db_session.add(StaffRecord(id=3, email="clerk@shop.local", full_name="Clerk", roles={"role": "Clerk"}))
        db_session.commit()

        def conflict():
            raise IntegrityError("INSERT INTO staff_records", {}, Exception("UNIQUE constraint failed"))
        monkeypatch.setattr(db.session, "commit", conflict)

        with pytest.raises(VerifierProvisioningError):
            auth_service.ensure_staff_record(admin_user)

    def test_staff_role_formats(self):
        assert StaffRecord(roles={"role": "Admin"}).is_admin
        assert StaffRecord(roles="Admin").is_admin
        assert not StaffRecord(roles={"role": "Clerk"}).is_admin
        assert not StaffRecord(roles=None).is_admin

    def test_user_role(self):
        assert User(role="admin").is_admin
        assert not User(role="customer").is_admin
