# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
GCash Payment Service

Customers pay by GCash transfer and submit the transfer reference; an admin
checks the reference against the GCash account and approves or rejects it.

FLOW:
- submit_payment: resolve (or create) the order, validate the amount,
  store the payment as pending, reopen the order as payment_pending.
- approve_payment: payment -> paid, order balance/status updated, then an
  income entry is posted to the cashflow ledger (best-effort).
- reject_payment: payment -> failed. No order or ledger changes.

AMOUNT RULES (against the order total):
- full: amount must equal the total exactly.
- partial: amount >= 50% of the total and strictly below it.

Payment statuses are terminal: a paid or failed payment cannot be approved
or rejected again.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import CashflowEntry, Order, Payment
from storefront.time_utils import utcnow
from storefront.validation import ValidationError, NotFoundError, clean_text, to_money, money_to_json
from . import cashflow_service, customer_service, order_service, reconciliation_service
from .concurrency import lock_for_update, run_with_retry


# =============================================================================
# CONSTANTS
# =============================================================================

PAYMENT_METHOD_GCASH = "gcash"

PAYMENT_TYPE_PARTIAL = "partial"
PAYMENT_TYPE_FULL = "full"
VALID_PAYMENT_TYPES = [PAYMENT_TYPE_PARTIAL, PAYMENT_TYPE_FULL]

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_FAILED = "failed"

PARTIAL_PAYMENT_MIN_RATIO = Decimal("0.5")

ZERO = Decimal("0.00")


@dataclass
class PaymentResult:
    payment_id: int
    order_id: int
    payment_type: str
    amount_paid: Decimal
    remaining_balance: Decimal
    payment_status: str = PAYMENT_STATUS_PENDING

    def to_dict(self) -> dict:
        return {
            "paymentId": self.payment_id,
            "orderId": self.order_id,
            "paymentType": self.payment_type,
            "amountPaid": money_to_json(self.amount_paid),
            "remainingBalance": money_to_json(self.remaining_balance),
            "paymentStatus": self.payment_status,
        }


@dataclass
class CashflowPostResult:
    """Outcome of the best-effort ledger write that follows an approval."""
    ok: bool
    entry: CashflowEntry | None = None
    error: str | None = None


# =============================================================================
# AMOUNT RULES
# =============================================================================

def remaining_after(payment_type: str, total: Decimal, amount: Decimal) -> Decimal:
    return total - amount if payment_type == PAYMENT_TYPE_PARTIAL else ZERO


def validate_payment_amount(payment_type: str, amount: Decimal, total: Decimal) -> None:
    """
    Raises:
        ValidationError: amount breaks the partial/full rule for total
    """
    if payment_type == PAYMENT_TYPE_PARTIAL:
        min_amount = (total * PARTIAL_PAYMENT_MIN_RATIO).quantize(Decimal("0.01"))
        if amount < total * PARTIAL_PAYMENT_MIN_RATIO:
            raise ValidationError(
                f"Partial payment must be at least 50% of total (₱{min_amount:.2f})"
            )
        if amount >= total:
            raise ValidationError(
                "Partial payment amount cannot exceed total. Please use full payment."
            )
    elif payment_type == PAYMENT_TYPE_FULL:
        if amount != total:
            raise ValidationError("Full payment amount must match order total")
    else:
        raise ValidationError(f"Invalid payment type. Must be one of {VALID_PAYMENT_TYPES}")


# =============================================================================
# SUBMISSION
# =============================================================================

def _create_order_for_payment(
    order_ref: str,
    payment_type: str,
    amount: Decimal,
    total,
    customer_info,
    order_items,
) -> Order:
    if not customer_info or not order_items or total is None:
        raise ValidationError("Order not found and missing data to create order")

    total = to_money(total, field="total", exact=True)
    if total <= 0:
        raise ValidationError("total must be greater than zero")

    customer = customer_service.resolve_customer(customer_info)
    return order_service.create_order(
        order_ref=order_ref,
        customer=customer,
        customer_info=customer_info,
        order_items=order_items,
        total=total,
        balance_remaining=remaining_after(payment_type, total, amount),
    )


def submit_payment(
    order_ref: str,
    amount,
    payment_type: str,
    reference_number: str,
    total=None,
    customer_info: dict | None = None,
    order_items: list | None = None,
) -> PaymentResult:
    """
    Record a customer's GCash payment for order_ref.

    If no order has that reference yet, one is created from customer_info,
    order_items and total. The order is always (re)opened as payment_pending,
    whatever stage it was in, so every submission goes through approval.

    Returns:
        PaymentResult with payment_status "pending"

    Raises:
        ValidationError: blank reference, missing order data, bad amount
    """
    reference_number = clean_text(reference_number)
    if reference_number is None:
        raise ValidationError("GCash reference number is required")

    order_ref = clean_text(order_ref)
    if order_ref is None:
        raise ValidationError("orderId is required")

    if payment_type not in VALID_PAYMENT_TYPES:
        raise ValidationError('Invalid payment type. Must be "partial" or "full"')

    amount = to_money(amount, exact=True)
    if amount <= 0:
        raise ValidationError("Invalid payment amount")

    order = order_service.get_order_by_ref_raw(order_ref)
    if order is None:
        order = _create_order_for_payment(
            order_ref, payment_type, amount, total, customer_info, order_items
        )

    order_total = Decimal(order.total_amount)
    validate_payment_amount(payment_type, amount, order_total)
    remaining_balance = remaining_after(payment_type, order_total, amount)

    order_id = order.id

    def _op():
        locked = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()

        payment = Payment(
            order_id=locked.id,
            payment_method=PAYMENT_METHOD_GCASH,
            payment_type=payment_type,
            payment_status=PAYMENT_STATUS_PENDING,
            amount=order_total,
            amount_paid=amount,
            remaining_balance=remaining_balance,
            reference_number=reference_number,
        )
        db.session.add(payment)
        db.session.flush()

        previous_status = locked.status
        locked.balance_remaining = remaining_balance
        locked.payment_id = payment.id
        locked.status = order_service.STATUS_PAYMENT_PENDING
        db.session.commit()
        return payment, previous_status

    payment, previous_status = run_with_retry(_op)

    if previous_status != order_service.STATUS_PAYMENT_PENDING:
        current_app.logger.warning(
            "Order %s moved from %s back to payment_pending by payment %s",
            order_ref, previous_status, payment.id,
        )
        order_service.add_tracking_event(order_id, order_service.STATUS_PAYMENT_PENDING)

    return PaymentResult(
        payment_id=payment.id,
        order_id=order_id,
        payment_type=payment_type,
        amount_paid=amount,
        remaining_balance=remaining_balance,
    )


# =============================================================================
# QUERIES
# =============================================================================

def get_payments(
    status: str | None = None,
    payment_method: str | None = None,
    payment_type: str | None = None,
) -> list[Payment]:
    """Payments newest first, optionally filtered."""
    query = db.session.query(Payment)

    if status:
        query = query.filter(Payment.payment_status == status)
    if payment_method:
        query = query.filter(Payment.payment_method == payment_method)
    if payment_type:
        query = query.filter(Payment.payment_type == payment_type)

    return query.order_by(Payment.created_at.desc(), Payment.id.desc()).all()


def get_payment_by_id(payment_id: int) -> Payment | None:
    return db.session.get(Payment, payment_id)


# =============================================================================
# VERIFICATION
# =============================================================================

def _get_pending_payment_locked(payment_id: int) -> Payment:
    payment = lock_for_update(db.session.query(Payment).filter_by(id=payment_id)).first()
    if payment is None:
        raise NotFoundError("Payment not found")
    if payment.payment_status != PAYMENT_STATUS_PENDING:
        raise ValidationError(
            f"Payment {payment_id} is already {payment.payment_status}"
        )
    return payment


def _post_income_entry(payment: Payment, order: Order) -> CashflowPostResult:
    """Write the ledger entry for an approved payment; never raises."""
    try:
        entry = cashflow_service.add_money_in(
            description=f"Order Payment - {order.order_ref}",
            amount=payment.amount_paid,
            category=cashflow_service.CATEGORY_INCOME,
            vendor=order.customer_name,
            payment_method=payment.payment_method,
            date=utcnow(),
            reference_number=payment.reference_number,
        )
    except Exception as exc:
        db.session.rollback()
        return CashflowPostResult(ok=False, error=str(exc) or type(exc).__name__)
    return CashflowPostResult(ok=True, entry=entry)


def approve_payment(payment_id: int, verified_by: int) -> dict:
    """
    Approve a pending payment.

    The order's balance is copied from the payment's remaining balance. The
    order enters production (pending) when nothing is left to pay, otherwise
    it stays payment_pending for the next installment.

    The cashflow income entry is written after the approval is committed.
    If that write fails the approval still succeeds: the failure is logged
    and queued for reconciliation, and cashflowRecorded is False.

    Raises:
        NotFoundError: unknown payment
        ValidationError: payment already paid or failed
    """
    def _op():
        payment = _get_pending_payment_locked(payment_id)
        now = utcnow()

        payment.payment_status = PAYMENT_STATUS_PAID
        payment.verified_by = verified_by
        payment.verified_at = now
        payment.paid_at = now

        order = payment.order
        remaining = Decimal(payment.remaining_balance or 0)
        order.balance_remaining = remaining
        order.status = (
            order_service.STATUS_PAYMENT_PENDING if remaining > 0 else order_service.STATUS_PENDING
        )
        db.session.commit()
        return payment, order

    payment, order = run_with_retry(_op)

    if order.status == order_service.STATUS_PENDING:
        order_service.add_tracking_event(order.id, order_service.STATUS_PENDING)

    # Captured before the ledger write so a rollback cannot expire them
    payment_snapshot = {
        "payment_id": payment.id,
        "order_ref": order.order_ref,
        "amount": Decimal(payment.amount_paid),
        "vendor": order.customer_name,
        "payment_method": payment.payment_method,
        "reference_number": payment.reference_number,
    }

    result = _post_income_entry(payment, order)
    if not result.ok:
        _record_failed_posting(payment_snapshot, result.error)

    return {
        "success": True,
        "message": "Payment approved successfully",
        "cashflowRecorded": result.ok,
    }


def _record_failed_posting(snapshot: dict, error: str) -> None:
    current_app.logger.warning(
        "Failed to create income entry in cashflow for payment %s",
        snapshot["payment_id"],
        extra={
            "payment_id": snapshot["payment_id"],
            "order_ref": snapshot["order_ref"],
            "amount": str(snapshot["amount"]),
            "error": error,
        },
    )
    try:
        reconciliation_service.queue_posting(
            payment_id=snapshot["payment_id"],
            order_ref=snapshot["order_ref"],
            description=f"Order Payment - {snapshot['order_ref']}",
            amount=snapshot["amount"],
            vendor=snapshot["vendor"],
            payment_method=snapshot["payment_method"],
            reference_number=snapshot["reference_number"],
            error=error,
        )
    except Exception:
        db.session.rollback()
        current_app.logger.exception(
            "Could not queue cashflow reconciliation for payment %s", snapshot["payment_id"]
        )


def reject_payment(payment_id: int, verified_by: int) -> dict:
    """
    Reject a pending payment. The order and the ledger are left untouched.

    Raises:
        NotFoundError: unknown payment
        ValidationError: payment already paid or failed
    """
    def _op():
        payment = _get_pending_payment_locked(payment_id)
        payment.payment_status = PAYMENT_STATUS_FAILED
        payment.verified_by = verified_by
        payment.verified_at = utcnow()
        db.session.commit()
        return payment

    run_with_retry(_op)
    return {"success": True, "message": "Payment rejected"}
