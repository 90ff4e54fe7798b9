from __future__ import annotations

from ..extensions import db
from storefront.validation import money_to_json


class Product(db.Model):
    """Catalog apparel product that order lines point at."""
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_name = db.Column(db.String(255), nullable=False, unique=True)
    category = db.Column(db.String(64), nullable=False, default="General")
    base_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="Active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.product_name,
            "category": self.category,
            "basePrice": money_to_json(self.base_price),
            "status": self.status,
        }
