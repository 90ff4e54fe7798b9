from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z
from storefront.validation import money_to_json


class CashflowEntry(db.Model):
    """
    Signed ledger row for one money movement.

    The sign of amount is the only record of direction: positive is money in,
    negative is money out. Zero never reaches the table. Reports derive the
    in/out type from the sign instead of storing it.
    """
    __tablename__ = "cashflow_entries"
    __table_args__ = (
        db.Index("ix_cashflow_entries_date", "date"),
        db.Index("ix_cashflow_entries_category_date", "category", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    vendor = db.Column(db.String(255), nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    @property
    def entry_type(self) -> str:
        return "in" if self.is_income else "out"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "description": self.description,
            "category": self.category or ("income" if self.is_income else "general"),
            "amount": money_to_json(abs(self.amount)),
            "type": self.entry_type,
            "vendor": self.vendor,
            "paymentMethod": self.payment_method,
        }


class PendingCashflowPosting(db.Model):
    """
    Income posting that failed during payment approval.

    Rows stay unresolved until a reconciliation run manages to write the
    cashflow entry; resolved_at and cashflow_entry_id are stamped then.
    """
    __tablename__ = "pending_cashflow_postings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=False, index=True)
    order_ref = db.Column(db.String(64), nullable=False)

    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    vendor = db.Column(db.String(255), nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)
    reference_number = db.Column(db.String(128), nullable=True)

    attempts = db.Column(db.Integer, nullable=False, default=1)
    last_error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)
    cashflow_entry_id = db.Column(db.Integer, db.ForeignKey("cashflow_entries.id", ondelete="SET NULL"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "paymentId": self.payment_id,
            "orderRef": self.order_ref,
            "description": self.description,
            "amount": money_to_json(self.amount),
            "vendor": self.vendor,
            "paymentMethod": self.payment_method,
            "referenceNumber": self.reference_number,
            "attempts": self.attempts,
            "lastError": self.last_error,
            "createdAt": to_utc_z(self.created_at),
            "resolvedAt": to_utc_z(self.resolved_at),
            "cashflowEntryId": self.cashflow_entry_id,
        }
