# Overview: Service-layer operations for accounts and payment verifiers; encapsulates business logic and database work.

"""
Account and Verifier Service

Two identity tables exist side by side:
- users: storefront accounts (UUID ids, role admin/customer).
- staff_records: the legacy staff directory that payments reference in
  verified_by.

Approving or rejecting a payment needs a staff_records id for an account
that is an admin. resolve_admin_verifier checks the role and provisions the
staff record on first use. The provisioning is a data-migration shim; the
role check is the actual gate.

SECURITY NOTES:
- Admin passwords are hashed with bcrypt (cost factor 12)
- Minimum 8 characters, mixed case, digit and special character required
"""

import re

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, StaffRecord
from ..models.accounts import ROLE_ADMIN
from storefront.validation import AuthorizationError, ValidationError


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


class VerifierProvisioningError(RuntimeError):
    """No staff record could be created or borrowed for an admin verifier."""
    pass


STAFF_ADMIN_ROLES = {"role": "Admin"}


# =============================================================================
# PASSWORDS
# =============================================================================

def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate then hash with bcrypt (cost factor 12)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Not a bcrypt hash (e.g. guest placeholder)
        return False


def create_admin_user(email: str, name: str | None, password: str) -> User:
    """
    Create an admin storefront account.

    Raises:
        ValidationError: email missing or already registered
        PasswordValidationError: weak password
    """
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("email is required")

    if db.session.query(User).filter_by(email=email).first():
        raise ValidationError(f"User with email {email} already exists")

    user = User(
        email=email,
        name=(name or "").strip() or None,
        role=ROLE_ADMIN,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.commit()
    return user


# =============================================================================
# PAYMENT VERIFIERS
# =============================================================================

def ensure_staff_record(user: User) -> int:
    """
    Return the staff_records id for user, creating the row if needed.

    New rows get max(id) + 1. If the insert fails (another request took
    the id or the email first) the session is rolled back and any existing
    Admin staff record is borrowed instead.

    Raises:
        VerifierProvisioningError: insert failed and no Admin record exists
    """
    record = db.session.query(StaffRecord).filter_by(email=user.email).first()
    if record:
        return record.id

    max_id = db.session.query(db.func.max(StaffRecord.id)).scalar()
    new_id = (max_id or 0) + 1

    try:
        record = StaffRecord(
            id=new_id,
            email=user.email,
            full_name=user.name or "Admin User",
            password_hash="",
            roles=dict(STAFF_ADMIN_ROLES),
        )
        db.session.add(record)
        db.session.commit()
        return record.id
    except IntegrityError:
        db.session.rollback()
        current_app.logger.exception("Failed to create staff record for %s", user.email)

    # Another request may have provisioned this same email
    record = db.session.query(StaffRecord).filter_by(email=user.email).first()
    if record:
        return record.id

    for candidate in db.session.query(StaffRecord).order_by(StaffRecord.id).all():
        if candidate.is_admin:
            current_app.logger.warning(
                "Using staff record %s as verifier for %s", candidate.id, user.email
            )
            return candidate.id

    raise VerifierProvisioningError(
        "Failed to set up admin user. Please contact system administrator."
    )


def resolve_admin_verifier(user_id: str | None, action: str) -> tuple[User, int]:
    """
    Authorize user_id to approve/reject payments.

    Args:
        user_id: storefront account id sent as verifiedBy
        action: verb used in the 403 message ("approve", "reject")

    Returns:
        (user, staff_record_id)

    Raises:
        AuthorizationError: 401 if user_id missing/unknown, 403 if not admin
        VerifierProvisioningError: no staff record available
    """
    if not user_id:
        raise AuthorizationError("Unauthorized - verifiedBy is required", status_code=401)

    user = db.session.get(User, str(user_id))
    if user is None:
        raise AuthorizationError("User not found", status_code=401)

    if not user.is_admin:
        raise AuthorizationError(f"Only admins can {action} payments", status_code=403)

    return user, ensure_staff_record(user)
