from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer account. Guests created at checkout carry a placeholder
    password hash until they set a real password.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    phone = db.Column(db.String(32), nullable=True, unique=True)
    address = db.Column(db.Text, nullable=True)
    password_hash = db.Column(db.String(60), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "createdAt": to_utc_z(self.created_at),
        }
