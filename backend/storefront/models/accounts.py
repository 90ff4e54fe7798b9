from __future__ import annotations

import uuid

from ..extensions import db
from storefront.time_utils import to_utc_z


ROLE_ADMIN = "admin"
ROLE_CUSTOMER = "customer"


class User(db.Model):
    """
    Storefront account (the identity the frontend signs in with).

    The id is a UUID string; the admin dashboard sends it back as
    `verifiedBy` when approving or rejecting payments.
    """
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(255), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(16), nullable=False, default=ROLE_CUSTOMER, index=True)
    password_hash = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "createdAt": to_utc_z(self.created_at),
        }


class StaffRecord(db.Model):
    """
    Legacy staff directory.

    Payments record their verifier against this table, not against `users`.
    Rows are provisioned lazily the first time an admin verifies a payment
    (see auth_service.ensure_staff_record). Ids are assigned by the
    application as max(id) + 1.
    """
    __tablename__ = "staff_records"

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    full_name = db.Column(db.String(255), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False, default="")
    roles = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_admin(self) -> bool:
        roles = self.roles
        if isinstance(roles, dict):
            return roles.get("role") == "Admin"
        return roles == "Admin"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "fullName": self.full_name,
            "roles": self.roles,
        }
