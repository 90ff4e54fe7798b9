from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z
from storefront.validation import money_to_json


class Order(db.Model):
    """
    Customer purchase.

    order_ref is the caller-supplied external reference (e.g. "ORD-12345678").
    Customer contact details are copied onto the order when it is created so
    later account edits do not rewrite order history.

    balance_remaining moves as payments are approved; total_amount is fixed.
    payment_id points at the latest submitted payment. It is a plain column
    rather than a foreign key because payments already reference orders.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_order_date", "status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_ref = db.Column(db.String(64), nullable=False, unique=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False, index=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    customer_address = db.Column(db.Text, nullable=True)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    balance_remaining = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(db.String(32), nullable=False, default="payment_pending", index=True)
    payment_id = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.order_ref,
            "orderId": self.id,
            "customer": {
                "name": self.customer_name,
                "email": self.customer_email,
                "phone": self.customer_phone or "",
                "address": self.customer_address or "",
            },
            "total": money_to_json(self.total_amount),
            "balanceRemaining": money_to_json(self.balance_remaining),
            "status": self.status,
            "paymentId": self.payment_id,
            "notes": self.notes,
            "orderDate": to_utc_z(self.order_date),
            "updatedAt": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Line item on an order. customization_data holds the design payload."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    size = db.Column(db.String(16), nullable=True)
    color = db.Column(db.String(32), nullable=True)
    customization_data = db.Column(db.JSON, nullable=True)

    order = db.relationship("Order", backref=db.backref("items", lazy=True, order_by="OrderItem.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "productId": self.product_id,
            "name": self.product_name,
            "quantity": self.quantity,
            "unitPrice": money_to_json(self.unit_price),
            "subtotal": money_to_json(self.subtotal),
            "size": self.size,
            "color": self.color,
            "customizationData": self.customization_data,
        }


class TrackingEvent(db.Model):
    """Customer-facing status timeline entry (append-only)."""
    __tablename__ = "tracking_events"
    __table_args__ = (
        db.Index("ix_tracking_events_order_timestamp", "order_id", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)
    status = db.Column(db.String(32), nullable=False)
    message = db.Column(db.String(255), nullable=False)
    location = db.Column(db.String(128), nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)

    order = db.relationship("Order", backref=db.backref("tracking_events", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "message": self.message,
            "location": self.location,
            "timestamp": to_utc_z(self.timestamp),
        }
