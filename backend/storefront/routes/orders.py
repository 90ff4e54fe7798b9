# Overview: Flask API routes for orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import order_service
from ..validation import ValidationError, NotFoundError


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
def list_orders_route():
    """
    List orders newest first.

    Query params:
    - status: exact status (e.g. payment_pending, designing)
    - customerEmail: case-insensitive match on the order email
    """
    try:
        orders = order_service.list_orders(
            status=request.args.get("status") or None,
            customer_email=request.args.get("customerEmail") or None,
        )
        return jsonify([order_service.order_view(order) for order in orders]), 200
    except Exception as e:
        current_app.logger.exception("Failed to fetch orders")
        return jsonify({"error": str(e) or "Failed to fetch orders"}), 500


@orders_bp.get("/<string:order_ref>")
def get_order_route(order_ref: str):
    """Tracking view: items, balance, latest payment and status timeline."""
    order = order_service.get_order_by_ref(order_ref)
    if order is None:
        return jsonify({"error": "Order not found"}), 404
    return jsonify(order), 200


@orders_bp.put("/<int:order_id>/status")
def update_status_route(order_id: int):
    """
    Move an order through production.

    Request body: {"status": "designing"}
    """
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.update_order_status(order_id, data.get("status"))
        return jsonify({
            "id": order.order_ref,
            "orderId": order.id,
            "status": order.status,
            "updatedAt": order.to_dict()["updatedAt"],
        }), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": str(e) or "Failed to update order status"}), 500
