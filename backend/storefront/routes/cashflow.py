# Overview: Flask API routes for the cashflow ledger; parses input and returns JSON responses.

"""
Cashflow API Routes

Money in / money out entry, range and calendar reports, and entry edits
for the admin cash flow page.

Time semantics:
- ISO-8601 dates/datetimes are accepted with Z/offsets and normalized to
  UTC-naive internally.
- A date-only endDate means the end of that day (23:59:59.999).
"""

from datetime import date

from flask import Blueprint, request, jsonify, current_app

from ..services import cashflow_service, reconciliation_service
from ..validation import ValidationError, NotFoundError
from storefront.time_utils import parse_iso_datetime, is_date_only, end_of_day, utcnow


cashflow_bp = Blueprint("cashflow", __name__, url_prefix="/api/cashflow")

# JSON body key -> service keyword
ENTRY_FIELDS = {
    "description": "description",
    "amount": "amount",
    "category": "category",
    "vendor": "vendor",
    "paymentMethod": "payment_method",
    "date": "date",
    "referenceNumber": "reference_number",
}


def _parse_range_bound(raw: str | None, *, is_end: bool):
    """Parse a query datetime; date-only end bounds extend to end of day."""
    dt = parse_iso_datetime(raw)
    if dt is not None and is_end and is_date_only(raw):
        dt = end_of_day(dt)
    return dt


def _entry_kwargs(data: dict) -> dict:
    return {ENTRY_FIELDS[key]: value for key, value in data.items() if key in ENTRY_FIELDS}


# =============================================================================
# MONEY IN / OUT
# =============================================================================

@cashflow_bp.post("/money-in")
def add_money_in_route():
    """
    Record income.

    Request body:
    {
        "description": "Walk-in sale",
        "amount": 1500,
        "category": "income",         (optional)
        "vendor": "Juan Dela Cruz",   (optional)
        "paymentMethod": "cash",      (optional)
        "date": "2026-01-15T09:30Z",  (optional, defaults to now)
        "referenceNumber": "..."      (optional, not stored)
    }
    """
    try:
        data = request.get_json(silent=True) or {}

        if not data.get("description") or not data.get("amount"):
            return jsonify({"error": "Description and amount are required"}), 400

        entry = cashflow_service.add_money_in(**_entry_kwargs(data))
        return jsonify(entry.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to add money in")
        return jsonify({"error": str(e) or "Failed to add money in"}), 500


@cashflow_bp.post("/money-out")
def add_money_out_route():
    """Record an expense. Same body as money-in; category is required."""
    try:
        data = request.get_json(silent=True) or {}

        if not data.get("description") or not data.get("amount") or not data.get("category"):
            return jsonify({"error": "Description, amount, and category are required"}), 400

        entry = cashflow_service.add_money_out(**_entry_kwargs(data))
        return jsonify(entry.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to add money out")
        return jsonify({"error": str(e) or "Failed to add money out"}), 500


# =============================================================================
# REPORTS
# =============================================================================

@cashflow_bp.get("/report")
def get_report_route():
    """Custom range report. Query params: startDate, endDate (both required)."""
    start_raw = request.args.get("startDate")
    end_raw = request.args.get("endDate")

    if not start_raw or not end_raw:
        return jsonify({
            "error": "startDate and endDate query parameters are required (ISO date strings)"
        }), 400

    try:
        start_dt = _parse_range_bound(start_raw, is_end=False)
        end_dt = _parse_range_bound(end_raw, is_end=True)
    except ValueError:
        return jsonify({"error": "Invalid date format. Use ISO date strings."}), 400

    try:
        report = cashflow_service.get_cashflow_report(start_dt, end_dt)
        return jsonify(report.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to build cashflow report")
        return jsonify({"error": str(e) or "Failed to get cashflow report"}), 500


def _day_param():
    raw = request.args.get("date")
    if not raw:
        return utcnow()
    return parse_iso_datetime(raw)


@cashflow_bp.get("/report/daily")
def get_daily_report_route():
    """Query param: date (defaults to today)."""
    try:
        day = _day_param()
    except ValueError:
        return jsonify({"error": "Invalid date format. Use ISO date string."}), 400

    try:
        return jsonify(cashflow_service.get_daily_report(day).to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to build daily report")
        return jsonify({"error": str(e) or "Failed to get daily report"}), 500


@cashflow_bp.get("/report/weekly")
def get_weekly_report_route():
    """Query param: date (defaults to today). Weeks run Sunday to Saturday."""
    try:
        day = _day_param()
    except ValueError:
        return jsonify({"error": "Invalid date format. Use ISO date string."}), 400

    try:
        return jsonify(cashflow_service.get_weekly_report(day).to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to build weekly report")
        return jsonify({"error": str(e) or "Failed to get weekly report"}), 500


@cashflow_bp.get("/report/monthly")
def get_monthly_report_route():
    """Query params: year, month (1-12). Both default to the current month."""
    today = date.today()
    try:
        year = int(request.args.get("year") or today.year)
        month = int(request.args.get("month") or today.month)
    except ValueError:
        return jsonify({"error": "Invalid year or month. Month must be 1-12."}), 400

    if month < 1 or month > 12 or year < cashflow_service.MIN_YEAR or year > cashflow_service.MAX_YEAR:
        return jsonify({"error": "Invalid year or month. Month must be 1-12."}), 400

    try:
        return jsonify(cashflow_service.get_monthly_report(year, month).to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to build monthly report")
        return jsonify({"error": str(e) or "Failed to get monthly report"}), 500


# =============================================================================
# ENTRIES
# =============================================================================

@cashflow_bp.get("")
def list_entries_route():
    """Query params: startDate, endDate, category, type (in|out)."""
    try:
        start_dt = _parse_range_bound(request.args.get("startDate"), is_end=False)
        end_dt = _parse_range_bound(request.args.get("endDate"), is_end=True)
    except ValueError:
        return jsonify({"error": "Invalid date format. Use ISO date strings."}), 400

    try:
        entries = cashflow_service.get_all_cashflow_entries(
            start_date=start_dt,
            end_date=end_dt,
            category=request.args.get("category") or None,
            entry_type=request.args.get("type") or None,
        )
        return jsonify([entry.to_dict() for entry in entries]), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to list cashflow entries")
        return jsonify({"error": str(e) or "Failed to get cashflow entries"}), 500


@cashflow_bp.get("/reconciliation")
def list_pending_postings_route():
    """Income postings from approved payments that never reached the ledger."""
    postings = reconciliation_service.list_pending_postings()
    return jsonify([posting.to_dict() for posting in postings]), 200


@cashflow_bp.get("/<int:entry_id>")
def get_entry_route(entry_id: int):
    entry = cashflow_service.get_cashflow_entry(entry_id)
    if entry is None:
        return jsonify({"error": "Cashflow entry not found"}), 404
    return jsonify(entry.to_dict()), 200


@cashflow_bp.put("/<int:entry_id>")
def update_entry_route(entry_id: int):
    """
    Partial update; any subset of the money-in fields.

    An amount only changes the magnitude: income stays income and
    expenses stay expenses whatever sign is sent.
    """
    try:
        data = request.get_json(silent=True) or {}
        entry = cashflow_service.update_cashflow_entry(entry_id, _entry_kwargs(data))
        return jsonify(entry.to_dict()), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to update cashflow entry")
        return jsonify({"error": str(e) or "Failed to update cashflow entry"}), 500


@cashflow_bp.delete("/<int:entry_id>")
def delete_entry_route(entry_id: int):
    try:
        cashflow_service.delete_cashflow_entry(entry_id)
        return jsonify({"success": True, "message": "Cashflow entry deleted successfully"}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        current_app.logger.exception("Failed to delete cashflow entry")
        return jsonify({"error": str(e) or "Failed to delete cashflow entry"}), 500


@cashflow_bp.delete("/reset/all")
def reset_cashflow_route():
    """
    Wipe every cashflow entry (demo/test reset).

    Admin-only by convention; this route does not check the caller.
    """
    try:
        deleted = cashflow_service.reset_cashflow()
        current_app.logger.warning("Cashflow reset: %d entries deleted", deleted)
        return jsonify({
            "success": True,
            "message": "Cashflow and reports reset successfully",
            "deletedEntries": deleted,
            "note": "Reports are automatically generated from cashflow data, so they are now reset to zero values",
        }), 200
    except Exception as e:
        current_app.logger.exception("Failed to reset cashflow")
        return jsonify({"error": str(e) or "Failed to reset cashflow"}), 500
