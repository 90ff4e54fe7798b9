# Overview: Service-layer operations for the cashflow ledger; encapsulates business logic and database work.

"""
Cashflow Ledger Service

Every money movement is one CashflowEntry with a signed amount:
income is stored positive, expenses negative. Reports never store totals;
they are recomputed from the entries in range on every request.

INVARIANTS:
- A zero amount never reaches the table (inputs must be > 0 before the
  sign is applied).
- Money-out entries are never categorized as "income".
- Updating an entry can change its magnitude but never its sign.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date as date_type, datetime, timedelta
from decimal import Decimal

from ..extensions import db
from ..models import CashflowEntry, PendingCashflowPosting
from storefront.time_utils import utcnow, start_of_day, end_of_day, start_of_week, to_utc_z
from storefront.validation import (
    ValidationError,
    NotFoundError,
    clean_text,
    to_datetime,
    to_money,
    money_to_json,
)


CATEGORY_INCOME = "income"
CATEGORY_GENERAL = "general"

TYPE_IN = "in"
TYPE_OUT = "out"
VALID_TYPES = (TYPE_IN, TYPE_OUT)

ZERO = Decimal("0.00")

MIN_YEAR = 1
MAX_YEAR = 9999


@dataclass
class CashflowReport:
    """Aggregate view of the ledger over an inclusive date range."""
    start_date: datetime
    end_date: datetime
    total_money_in: Decimal = ZERO
    total_money_out: Decimal = ZERO
    transactions: list[CashflowEntry] = field(default_factory=list)

    @property
    def net_cashflow(self) -> Decimal:
        return self.total_money_in - self.total_money_out

    @property
    def period(self) -> str:
        return f"{self.start_date.date().isoformat()} to {self.end_date.date().isoformat()}"

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "startDate": to_utc_z(self.start_date),
            "endDate": to_utc_z(self.end_date),
            "totalMoneyIn": money_to_json(self.total_money_in),
            "totalMoneyOut": money_to_json(self.total_money_out),
            "netCashflow": money_to_json(self.net_cashflow),
            "transactions": [entry.to_dict() for entry in self.transactions],
        }


# =============================================================================
# MONEY IN / MONEY OUT
# =============================================================================

def _require_positive(description, amount) -> tuple[str, Decimal]:
    description = clean_text(description)
    if description is None or amount is None:
        raise ValidationError("Description and positive amount are required")

    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Description and positive amount are required")
    return description, amount


def add_money_in(
    description: str,
    amount,
    category: str | None = None,
    vendor: str | None = None,
    payment_method: str | None = None,
    date: datetime | str | None = None,
    reference_number: str | None = None,
) -> CashflowEntry:
    """
    Record income.

    category defaults to "income". reference_number is accepted for API
    compatibility but the ledger has no column for it, so it is dropped.

    Raises:
        ValidationError: description empty or amount <= 0
    """
    description, amount = _require_positive(description, amount)

    entry = CashflowEntry(
        date=to_datetime(date) or utcnow(),
        description=description,
        category=clean_text(category) or CATEGORY_INCOME,
        amount=abs(amount),
        vendor=clean_text(vendor),
        payment_method=clean_text(payment_method),
    )
    db.session.add(entry)
    db.session.commit()
    return entry


def add_money_out(
    description: str,
    amount,
    category: str | None,
    vendor: str | None = None,
    payment_method: str | None = None,
    date: datetime | str | None = None,
    reference_number: str | None = None,
) -> CashflowEntry:
    """
    Record an expense (stored negative).

    A category of "income" is rewritten to "general" so expenses never
    show up under income in category reports.

    Raises:
        ValidationError: description empty, amount <= 0, or category missing
    """
    description, amount = _require_positive(description, amount)

    category = clean_text(category)
    if category is None:
        raise ValidationError("Category is required for expenses")
    if category == CATEGORY_INCOME:
        category = CATEGORY_GENERAL

    entry = CashflowEntry(
        date=to_datetime(date) or utcnow(),
        description=description,
        category=category,
        amount=-abs(amount),
        vendor=clean_text(vendor),
        payment_method=clean_text(payment_method),
    )
    db.session.add(entry)
    db.session.commit()
    return entry


# =============================================================================
# REPORTS
# =============================================================================

def get_cashflow_report(start_date: datetime, end_date: datetime) -> CashflowReport:
    """
    Sum the ledger over [start_date, end_date] (both inclusive).

    Money out is reported as a positive magnitude, so
    net_cashflow = total_money_in - total_money_out.
    """
    if start_date is None or end_date is None:
        raise ValidationError("startDate and endDate are required")
    if start_date > end_date:
        raise ValidationError("startDate must not be after endDate")

    entries = (
        db.session.query(CashflowEntry)
        .filter(CashflowEntry.date >= start_date, CashflowEntry.date <= end_date)
        .order_by(CashflowEntry.date.desc(), CashflowEntry.id.desc())
        .all()
    )

    report = CashflowReport(start_date=start_date, end_date=end_date, transactions=entries)
    for entry in entries:
        if entry.amount > 0:
            report.total_money_in += entry.amount
        else:
            report.total_money_out += abs(entry.amount)
    return report


def get_daily_report(day: datetime | date_type) -> CashflowReport:
    if day is None:
        raise ValidationError("date is required")
    return get_cashflow_report(start_of_day(day), end_of_day(day))


def get_weekly_report(day: datetime | date_type) -> CashflowReport:
    """
    Sunday 00:00:00.000 through Saturday 23:59:59.999 of the week containing day.

    Raises:
        ValidationError: the week runs past the first or last representable date
    """
    if day is None:
        raise ValidationError("date is required")
    try:
        week_start = start_of_week(day)
        week_end = end_of_day(week_start + timedelta(days=6))
    except OverflowError:
        raise ValidationError("date is out of range for a weekly report")
    return get_cashflow_report(week_start, week_end)


def get_monthly_report(year: int, month: int) -> CashflowReport:
    if month < 1 or month > 12 or year < MIN_YEAR or year > MAX_YEAR:
        raise ValidationError("Invalid year or month. Month must be 1-12.")

    last_day = calendar.monthrange(year, month)[1]
    return get_cashflow_report(
        start_of_day(date_type(year, month, 1)),
        end_of_day(date_type(year, month, last_day)),
    )


# =============================================================================
# ENTRY QUERIES AND EDITS
# =============================================================================

def get_all_cashflow_entries(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    category: str | None = None,
    entry_type: str | None = None,
) -> list[CashflowEntry]:
    """
    List entries newest first.

    entry_type "in" selects amount > 0 and "out" selects amount < 0.
    """
    query = db.session.query(CashflowEntry)

    if start_date is not None:
        query = query.filter(CashflowEntry.date >= start_date)
    if end_date is not None:
        query = query.filter(CashflowEntry.date <= end_date)
    if category:
        query = query.filter(CashflowEntry.category == category)

    if entry_type is not None:
        if entry_type not in VALID_TYPES:
            raise ValidationError(f"Invalid type: {entry_type}. Must be one of {list(VALID_TYPES)}")
        if entry_type == TYPE_IN:
            query = query.filter(CashflowEntry.amount > 0)
        else:
            query = query.filter(CashflowEntry.amount < 0)

    return query.order_by(CashflowEntry.date.desc(), CashflowEntry.id.desc()).all()


def get_cashflow_entry(entry_id: int) -> CashflowEntry | None:
    return db.session.get(CashflowEntry, entry_id)


def _get_entry_or_404(entry_id: int) -> CashflowEntry:
    entry = db.session.get(CashflowEntry, entry_id)
    if entry is None:
        raise NotFoundError("Cashflow entry not found")
    return entry


UPDATABLE_FIELDS = ("description", "amount", "category", "vendor", "payment_method", "date", "reference_number")


def update_cashflow_entry(entry_id: int, patch: dict) -> CashflowEntry:
    """
    Apply a partial update.

    If amount is present only its magnitude is used: the existing entry's
    sign is re-applied, so income stays income and expenses stay expenses.
    reference_number is accepted and ignored like on create.

    Raises:
        NotFoundError: no entry with entry_id
        ValidationError: empty description or a zero amount
    """
    entry = _get_entry_or_404(entry_id)

    unknown = set(patch) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    if "description" in patch:
        description = clean_text(patch["description"])
        if description is None:
            raise ValidationError("Description cannot be empty")
        entry.description = description

    if "category" in patch:
        entry.category = clean_text(patch["category"])

    if "vendor" in patch:
        entry.vendor = clean_text(patch["vendor"])

    if "payment_method" in patch:
        entry.payment_method = clean_text(patch["payment_method"])

    if "date" in patch:
        new_date = to_datetime(patch["date"])
        if new_date is None:
            raise ValidationError("date cannot be empty")
        entry.date = new_date

    if "amount" in patch:
        magnitude = abs(to_money(patch["amount"]))
        if magnitude == 0:
            raise ValidationError("Amount must be greater than zero")
        entry.amount = magnitude if entry.is_income else -magnitude

    db.session.commit()
    return entry


def delete_cashflow_entry(entry_id: int) -> None:
    """Hard delete. Raises NotFoundError if absent."""
    entry = _get_entry_or_404(entry_id)

    # Reconciled postings keep their history without the dangling link
    db.session.query(PendingCashflowPosting).filter_by(cashflow_entry_id=entry.id).update(
        {PendingCashflowPosting.cashflow_entry_id: None},
        synchronize_session=False,
    )
    db.session.delete(entry)
    db.session.commit()


def reset_cashflow() -> int:
    """
    Delete every ledger entry (demo/test reset).

    Reports are computed from entries, so they drop to zero as well.
    Returns the number of deleted entries.
    """
    db.session.query(PendingCashflowPosting).filter(
        PendingCashflowPosting.cashflow_entry_id.isnot(None)
    ).update({PendingCashflowPosting.cashflow_entry_id: None}, synchronize_session=False)
    deleted = db.session.query(CashflowEntry).delete(synchronize_session=False)
    db.session.commit()
    return deleted
