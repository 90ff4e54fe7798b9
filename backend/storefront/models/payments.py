from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z
from storefront.validation import money_to_json


class Payment(db.Model):
    """
    One attempt to pay toward an order.

    STATUS: pending -> paid | failed. Both outcomes are terminal.

    amount is the order total at submission time (kept for audit);
    amount_paid is what the customer sent on this installment and
    remaining_balance is total minus amount_paid, computed at submission.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_status_created", "payment_status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    payment_method = db.Column(db.String(32), nullable=False, default="gcash")
    payment_type = db.Column(db.String(16), nullable=False)  # partial, full
    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False)
    remaining_balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    reference_number = db.Column(db.String(128), nullable=False)

    verified_by = db.Column(db.Integer, db.ForeignKey("staff_records.id"), nullable=True)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("payments", lazy=True))
    verifier = db.relationship("StaffRecord")

    def to_dict(self) -> dict:
        """Admin verification view: payment joined with its order summary."""
        order = self.order
        items = order.items if order else []
        return {
            "id": str(self.id),
            "orderId": order.order_ref if order else None,
            "customer": {
                "name": order.customer_name if order else None,
                "email": order.customer_email if order else None,
                "phone": (order.customer_phone or "") if order else "",
            },
            "orderSummary": {
                "items": ", ".join(f"{item.product_name} x{item.quantity}" for item in items),
                "total": money_to_json(order.total_amount) if order else None,
            },
            "paymentMethod": self.payment_method,
            "paymentType": self.payment_type or "full",
            "amountPaid": money_to_json(self.amount_paid if self.amount_paid is not None else self.amount),
            "remainingBalance": money_to_json(self.remaining_balance) or 0,
            "paymentStatus": self.payment_status or "pending",
            "referenceNumber": self.reference_number,
            "verifiedBy": self.verifier.full_name if self.verifier else None,
            "verifiedAt": to_utc_z(self.verified_at),
            "submittedAt": to_utc_z(self.created_at),
        }

    def to_summary_dict(self) -> dict:
        """Compact form embedded in order tracking views."""
        return {
            "id": self.id,
            "method": self.payment_method,
            "status": self.payment_status,
            "type": self.payment_type,
            "amountPaid": money_to_json(self.amount_paid),
            "amount": money_to_json(self.amount),
            "remainingBalance": money_to_json(self.remaining_balance),
            "referenceNumber": self.reference_number,
            "createdAt": to_utc_z(self.created_at),
            "verifiedAt": to_utc_z(self.verified_at),
            "paidAt": to_utc_z(self.paid_at),
        }
