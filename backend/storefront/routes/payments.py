# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

"""
Payment API Routes

Checkout submits GCash payments here; the payment verification page lists
them and approves or rejects each one.

SECURITY:
- Approve/reject require verifiedBy to be an admin account
  (see decorators.require_admin_verifier).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import payment_service
from ..validation import ValidationError, NotFoundError, decode_json_field
from ..decorators import require_admin_verifier


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


# =============================================================================
# SUBMISSION
# =============================================================================

@payments_bp.post("")
def submit_payment_route():
    """
    Submit a GCash payment for an order (creates the order if needed).

    Request body:
    {
        "orderId": "ORD-12345678",
        "amount": 600,
        "paymentType": "partial",            (partial | full)
        "referenceNumber": "1234567890123",
        "total": 1000,                        (required for a new order)
        "customerInfo": {name, email, phone, address},   (new order)
        "orderItems": [{productId, productName, quantity, unitPrice, subtotal, size, color}]
    }

    customerInfo and orderItems may also be sent as JSON strings.

    Returns:
        201: {paymentId, orderId, paymentType, amountPaid, remainingBalance, paymentStatus}
        400: Invalid input or amount rule violated
        500: Server error
    """
    try:
        data = request.get_json(silent=True) or {}

        order_ref = data.get("orderId")
        amount = data.get("amount")
        payment_type = data.get("paymentType")
        reference_number = data.get("referenceNumber")

        if not order_ref or not amount or not payment_type or not reference_number:
            return jsonify({
                "error": "Missing required fields: orderId, amount, paymentType, referenceNumber"
            }), 400

        if not str(reference_number).strip():
            return jsonify({"error": "GCash reference number is required"}), 400

        try:
            payment_amount = float(amount)
        except (TypeError, ValueError):
            return jsonify({"error": "Invalid payment amount"}), 400
        if payment_amount != payment_amount or payment_amount <= 0:
            return jsonify({"error": "Invalid payment amount"}), 400

        if payment_type not in payment_service.VALID_PAYMENT_TYPES:
            return jsonify({"error": 'Invalid payment type. Must be "partial" or "full"'}), 400

        customer_info = decode_json_field(data.get("customerInfo"), "customerInfo")
        order_items = decode_json_field(data.get("orderItems"), "orderItems")

        result = payment_service.submit_payment(
            order_ref=str(order_ref),
            amount=amount,
            payment_type=payment_type,
            reference_number=str(reference_number).strip(),
            total=data.get("total") or None,
            customer_info=customer_info,
            order_items=order_items,
        )
        return jsonify(result.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to submit payment")
        return jsonify({"error": str(e) or "Failed to submit payment"}), 500


# =============================================================================
# QUERIES
# =============================================================================

@payments_bp.get("")
def list_payments_route():
    """Query params: status, paymentMethod, paymentType."""
    try:
        payments = payment_service.get_payments(
            status=request.args.get("status") or None,
            payment_method=request.args.get("paymentMethod") or None,
            payment_type=request.args.get("paymentType") or None,
        )
        return jsonify([p.to_dict() for p in payments]), 200
    except Exception:
        current_app.logger.exception("Failed to fetch payments")
        return jsonify({"error": "Failed to fetch payments"}), 500


@payments_bp.get("/<int:payment_id>")
def get_payment_route(payment_id: int):
    payment = payment_service.get_payment_by_id(payment_id)
    if not payment:
        return jsonify({"error": "Payment not found"}), 404
    return jsonify(payment.to_dict()), 200


# =============================================================================
# VERIFICATION
# =============================================================================

@payments_bp.put("/<int:payment_id>/approve")
@require_admin_verifier("approve")
def approve_payment_route(payment_id: int):
    """
    Approve a pending payment (admin only).

    Request body: {"verifiedBy": "<admin user id>"}

    Returns:
        200: {success, message, cashflowRecorded}
        400: Payment already verified
        401/403: Caller missing, unknown, or not an admin
        404: Payment not found
    """
    try:
        result = payment_service.approve_payment(payment_id, g.verifier_staff_id)
        return jsonify(result), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to approve payment")
        return jsonify({"error": str(e) or "Failed to approve payment"}), 500


@payments_bp.put("/<int:payment_id>/reject")
@require_admin_verifier("reject")
def reject_payment_route(payment_id: int):
    """Reject a pending payment (admin only). Same body as approve."""
    try:
        result = payment_service.reject_payment(payment_id, g.verifier_staff_id)
        return jsonify(result), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to reject payment")
        return jsonify({"error": str(e) or "Failed to reject payment"}), 500
