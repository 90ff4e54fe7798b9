# Overview: Retry queue for cashflow postings that failed during payment approval.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import PendingCashflowPosting
from storefront.time_utils import utcnow
from . import cashflow_service


def queue_posting(
    *,
    payment_id: int,
    order_ref: str,
    description: str,
    amount,
    vendor: str | None,
    payment_method: str | None,
    reference_number: str | None,
    error: str,
) -> PendingCashflowPosting:
    posting = PendingCashflowPosting(
        payment_id=payment_id,
        order_ref=order_ref,
        description=description,
        amount=amount,
        vendor=vendor,
        payment_method=payment_method,
        reference_number=reference_number,
        attempts=1,
        last_error=error,
    )
    db.session.add(posting)
    db.session.commit()
    return posting


def list_pending_postings() -> list[PendingCashflowPosting]:
    return (
        db.session.query(PendingCashflowPosting)
        .filter(PendingCashflowPosting.resolved_at.is_(None))
        .order_by(PendingCashflowPosting.created_at, PendingCashflowPosting.id)
        .all()
    )


def retry_pending_postings(limit: int | None = None) -> dict:
    """
    Replay unresolved postings through add_money_in.

    Each posting is retried independently; one failure does not stop the run.

    Returns:
        {"attempted": n, "resolved": n, "failed": n}
    """
    postings = list_pending_postings()
    if limit is not None:
        postings = postings[:limit]

    resolved = failed = 0
    for posting in postings:
        posting_id = posting.id
        try:
            entry = cashflow_service.add_money_in(
                description=posting.description,
                amount=posting.amount,
                category=cashflow_service.CATEGORY_INCOME,
                vendor=posting.vendor,
                payment_method=posting.payment_method,
                date=posting.created_at,
                reference_number=posting.reference_number,
            )
        except Exception as exc:
            db.session.rollback()
            posting = db.session.get(PendingCashflowPosting, posting_id)
            posting.attempts += 1
            posting.last_error = str(exc)
            db.session.commit()
            failed += 1
            current_app.logger.warning(
                "Cashflow posting %s for payment %s failed again: %s",
                posting_id, posting.payment_id, exc,
            )
            continue

        posting.resolved_at = utcnow()
        posting.cashflow_entry_id = entry.id
        db.session.commit()
        resolved += 1

    return {"attempted": len(postings), "resolved": resolved, "failed": failed}
