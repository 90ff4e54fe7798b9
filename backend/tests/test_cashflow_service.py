"""
Cashflow ledger service tests.

Verifies:
- Money in is stored positive, money out negative
- "income" is never used as an expense category
- Range reports include both bounds and net = in - out
- Daily, weekly (Sunday start) and monthly boundaries
- Updates keep the sign of the original entry
"""

from datetime import datetime
from decimal import Decimal

import pytest

from storefront.models import CashflowEntry, PendingCashflowPosting
from storefront.services import cashflow_service
from storefront.validation import ValidationError, NotFoundError


def _in(amount, when, description="Sale", **kwargs):
    return cashflow_service.add_money_in(description=description, amount=amount, date=when, **kwargs)


def _out(amount, when, category="materials", description="Fabric", **kwargs):
    return cashflow_service.add_money_out(
        description=description, amount=amount, category=category, date=when, **kwargs
    )


# =============================================================================
# MONEY IN / OUT
# =============================================================================


class TestMoneyIn:

    def test_stores_positive_amount_with_income_category(self, db_session):
        entry = _in(1500, datetime(2026, 1, 15, 9, 30))

        assert entry.amount == Decimal("1500.00")
        assert entry.category == "income"
        assert entry.is_income

    def test_negative_input_is_rejected(self, db_session):
        with pytest.raises(ValidationError):
            _in(-50, datetime(2026, 1, 15))

    def test_zero_amount_is_rejected(self, db_session):
        with pytest.raises(ValidationError):
            _in(0, datetime(2026, 1, 15))

    def test_blank_description_is_rejected(self, db_session):
        with pytest.raises(ValidationError):
            _in(100, datetime(2026, 1, 15), description="   ")

    def test_date_defaults_to_now(self, db_session):
        entry = cashflow_service.add_money_in(description="Walk-in", amount="250.50")

        assert entry.date is not None
        assert entry.amount == Decimal("250.50")

    def test_reference_number_is_accepted_but_not_stored(self, db_session):
        entry = _in(100, datetime(2026, 1, 15), reference_number="GC-1")

        assert entry.to_dict()["amount"] == 100.0
        assert "referenceNumber" not in entry.to_dict()

    def test_custom_category_kept(self, db_session):
        entry = _in(100, datetime(2026, 1, 15), category="refund")
        assert entry.category == "refund"


class TestMoneyOut:

    def test_stores_negative_amount(self, db_session):
        entry = _out(300, datetime(2026, 1, 15))

        assert entry.amount == Decimal("-300.00")
        assert entry.entry_type == "out"

    def test_serialized_amount_is_magnitude(self, db_session):
        data = _out(300, datetime(2026, 1, 15)).to_dict()

        assert data["amount"] == 300.0
        assert data["type"] == "out"

    def test_income_category_becomes_general(self, db_session):
        entry = _out(300, datetime(2026, 1, 15), category="income")
        assert entry.category == "general"

    def test_category_required(self, db_session):
        with pytest.raises(ValidationError):
            _out(300, datetime(2026, 1, 15), category=None)

    def test_negative_input_is_rejected(self, db_session):
        with pytest.raises(ValidationError):
            _out(-300, datetime(2026, 1, 15))


# =============================================================================
# REPORTS
# =============================================================================


class TestRangeReport:

    def test_totals_and_net(self, db_session):
        _in(1000, datetime(2026, 1, 10))
        _in(500, datetime(2026, 1, 12))
        _out(300, datetime(2026, 1, 11))

        report = cashflow_service.get_cashflow_report(datetime(2026, 1, 1), datetime(2026, 1, 31))

        assert report.total_money_in == Decimal("1500.00")
        assert report.total_money_out == Decimal("300.00")
        assert report.net_cashflow == Decimal("1200.00")
        assert len(report.transactions) == 3

    def test_bounds_are_inclusive(self, db_session):
        start = datetime(2026, 1, 1)
        end = datetime(2026, 1, 31, 23, 59, 59)
        _in(100, start)
        _in(200, end)
        _in(999, datetime(2026, 2, 1))

        report = cashflow_service.get_cashflow_report(start, end)

        assert report.total_money_in == Decimal("300.00")

    def test_transactions_newest_first(self, db_session):
        _in(100, datetime(2026, 1, 5), description="older")
        _in(100, datetime(2026, 1, 20), description="newer")

        report = cashflow_service.get_cashflow_report(datetime(2026, 1, 1), datetime(2026, 1, 31))

        assert [e.description for e in report.transactions] == ["newer", "older"]

    def test_empty_range_is_all_zero(self, db_session):
        report = cashflow_service.get_cashflow_report(datetime(2026, 1, 1), datetime(2026, 1, 31))

        data = report.to_dict()
        assert data["totalMoneyIn"] == 0
        assert data["totalMoneyOut"] == 0
        assert data["netCashflow"] == 0
        assert data["transactions"] == []
        assert data["period"] == "2026-01-01 to 2026-01-31"

    def test_start_after_end_rejected(self, db_session):
        with pytest.raises(ValidationError):
            cashflow_service.get_cashflow_report(datetime(2026, 2, 1), datetime(2026, 1, 1))

    def test_missing_bound_rejected(self, db_session):
        with pytest.raises(ValidationError):
            cashflow_service.get_cashflow_report(None, datetime(2026, 1, 1))


class TestCalendarReports:

    def test_daily_covers_whole_day(self, db_session):
        _in(100, datetime(2026, 1, 15, 0, 0, 0))
        _in(200, datetime(2026, 1, 15, 23, 59, 59))
        _in(999, datetime(2026, 1, 16, 0, 0, 0))

        report = cashflow_service.get_daily_report(datetime(2026, 1, 15, 14, 0))

        assert report.total_money_in == Decimal("300.00")
        assert report.to_dict()["endDate"] == "2026-01-15T23:59:59.999Z"

    def test_weekly_runs_sunday_to_saturday(self, db_session):
        # 2026-01-14 is a Wednesday; its week is Sun 11th .. Sat 17th
        _in(1, datetime(2026, 1, 10, 23, 0))
        _in(10, datetime(2026, 1, 11, 0, 0))
        _in(100, datetime(2026, 1, 17, 23, 59, 59))
        _in(1000, datetime(2026, 1, 18, 0, 0))

        report = cashflow_service.get_weekly_report(datetime(2026, 1, 14))

        assert report.start_date == datetime(2026, 1, 11)
        assert report.total_money_in == Decimal("110.00")

    def test_weekly_on_a_sunday_starts_that_day(self, db_session):
        report = cashflow_service.get_weekly_report(datetime(2026, 1, 11, 8, 0))
        assert report.start_date == datetime(2026, 1, 11)

    def test_monthly_uses_calendar_month_end(self, db_session):
        _in(100, datetime(2026, 2, 1))
        _in(200, datetime(2026, 2, 28, 23, 59, 59))
        _in(999, datetime(2026, 3, 1))

        report = cashflow_service.get_monthly_report(2026, 2)

        assert report.total_money_in == Decimal("300.00")
        assert report.period == "2026-02-01 to 2026-02-28"

    def test_monthly_rejects_bad_month(self, db_session):
        with pytest.raises(ValidationError):
            cashflow_service.get_monthly_report(2026, 13)


# =============================================================================
# QUERIES AND EDITS
# =============================================================================


class TestEntryQueries:

    def test_filter_by_type(self, db_session):
        _in(100, datetime(2026, 1, 1))
        _out(50, datetime(2026, 1, 2))

        incoming = cashflow_service.get_all_cashflow_entries(entry_type="in")
        outgoing = cashflow_service.get_all_cashflow_entries(entry_type="out")

        assert [e.amount for e in incoming] == [Decimal("100.00")]
        assert [e.amount for e in outgoing] == [Decimal("-50.00")]

    def test_filter_by_category_and_range(self, db_session):
        _out(50, datetime(2026, 1, 2), category="utilities")
        _out(70, datetime(2026, 1, 20), category="utilities")
        _out(90, datetime(2026, 1, 3), category="materials")

        entries = cashflow_service.get_all_cashflow_entries(
            start_date=datetime(2026, 1, 1),
            end_date=datetime(2026, 1, 10),
            category="utilities",
        )

        assert len(entries) == 1
        assert entries[0].amount == Decimal("-50.00")

    def test_invalid_type_rejected(self, db_session):
        with pytest.raises(ValidationError):
            cashflow_service.get_all_cashflow_entries(entry_type="sideways")


class TestEntryEdits:

    def test_update_keeps_expense_negative(self, db_session):
        entry = _out(300, datetime(2026, 1, 15))

        updated = cashflow_service.update_cashflow_entry(entry.id, {"amount": 450})

        assert updated.amount == Decimal("-450.00")

    def test_update_keeps_income_positive_when_negative_sent(self, db_session):
        entry = _in(300, datetime(2026, 1, 15))

        updated = cashflow_service.update_cashflow_entry(entry.id, {"amount": -120})

        assert updated.amount == Decimal("120.00")

    def test_update_text_fields(self, db_session):
        entry = _out(300, datetime(2026, 1, 15))

        updated = cashflow_service.update_cashflow_entry(
            entry.id, {"description": "Thread", "vendor": "Divisoria", "payment_method": "cash"}
        )

        assert updated.description == "Thread"
        assert updated.vendor == "Divisoria"
        assert updated.payment_method == "cash"

    def test_update_zero_amount_rejected(self, db_session):
        entry = _in(300, datetime(2026, 1, 15))

        with pytest.raises(ValidationError):
            cashflow_service.update_cashflow_entry(entry.id, {"amount": 0})

    def test_update_unknown_field_rejected(self, db_session):
        entry = _in(300, datetime(2026, 1, 15))

        with pytest.raises(ValidationError):
            cashflow_service.update_cashflow_entry(entry.id, {"balance": 1})

    def test_update_missing_entry(self, db_session):
        with pytest.raises(NotFoundError):
            cashflow_service.update_cashflow_entry(9999, {"description": "x"})

    def test_delete(self, db_session):
        entry = _in(300, datetime(2026, 1, 15))

        cashflow_service.delete_cashflow_entry(entry.id)

        assert cashflow_service.get_cashflow_entry(entry.id) is None

    def test_delete_missing_entry(self, db_session):
        with pytest.raises(NotFoundError):
            cashflow_service.delete_cashflow_entry(9999)

    def test_reset_deletes_everything(self, db_session):
        _in(100, datetime(2026, 1, 1))
        entry = _out(50, datetime(2026, 1, 2))
        posting = PendingCashflowPosting(
            payment_id=1, order_ref="ORD-1", description="Order Payment - ORD-1",
            amount=Decimal("50.00"), attempts=1, cashflow_entry_id=entry.id,
        )
        db_session.add(posting)
        db_session.commit()

        deleted = cashflow_service.reset_cashflow()

        assert deleted == 2
        assert db_session.query(CashflowEntry).count() == 0
        db_session.expire_all()
        assert db_session.get(PendingCashflowPosting, posting.id).cashflow_entry_id is None
