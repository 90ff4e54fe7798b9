# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order Service

Orders are created lazily by the first payment submitted against an
unknown order_ref (see payment_service.submit_payment). This module owns
that creation step plus the read and status APIs used by order tracking
and the admin production board.

STATUS FLOW:
payment_pending -> pending -> designing -> ripping -> heatpress -> assembly
-> qa -> packing -> done -> shipping -> delivered, or cancelled.

Every status change appends a TrackingEvent for the customer timeline.
"""

from __future__ import annotations

import time
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Order, OrderItem, Payment, Product, TrackingEvent, Customer
from storefront.time_utils import utcnow
from storefront.validation import ValidationError, NotFoundError, clean_text, to_money
from .concurrency import lock_for_update, run_with_retry


STATUS_PAYMENT_PENDING = "payment_pending"
STATUS_PENDING = "pending"

ORDER_STATUSES = [
    "payment_pending",
    "pending",
    "designing",
    "ripping",
    "heatpress",
    "assembly",
    "qa",
    "packing",
    "done",
    "shipping",
    "delivered",
    "cancelled",
]

STATUS_MESSAGES: dict[str, tuple[str, str | None]] = {
    "payment_pending": ("Order placed - Waiting for payment confirmation", None),
    "pending": ("Order confirmed and ready for production", None),
    "designing": ("Design team is working on your custom design", "Design Department"),
    "ripping": ("Preparing fabric and materials for printing", "Ripping Station"),
    "heatpress": ("Applying heat transfer to fabric", "Heat Press Station"),
    "assembly": ("Assembling and sewing garment pieces together", "Assembly Line"),
    "qa": ("Quality assurance in progress - Inspecting final product", "QA Department"),
    "packing": ("Packing your order for shipment", "Packing Station"),
    "done": ("Production complete - Preparing to ship your parcel", "Warehouse"),
    "shipping": ("Parcel picked up by logistics partner - In transit", None),
    "delivered": ("Order delivered successfully", None),
    "cancelled": ("Order has been cancelled", None),
}


# =============================================================================
# TRACKING EVENTS
# =============================================================================

def add_tracking_event(order_id: int, status: str) -> TrackingEvent | None:
    """
    Append the timeline event for status.

    Best-effort: a failed insert is rolled back and logged, and None is
    returned, so callers never fail a status change over the timeline.
    """
    message, location = STATUS_MESSAGES.get(status, (None, None))
    if message is None:
        return None

    try:
        event = TrackingEvent(
            order_id=order_id,
            status=status,
            message=message,
            location=location,
            timestamp=utcnow(),
        )
        db.session.add(event)
        db.session.commit()
        return event
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error adding tracking event for order %s", order_id)
        return None


# =============================================================================
# ORDER CREATION
# =============================================================================

def get_order_by_ref_raw(order_ref: str) -> Order | None:
    return db.session.query(Order).filter_by(order_ref=order_ref).first()


def _fallback_product() -> Product:
    """First catalog product, or a placeholder if the catalog is empty."""
    product = db.session.query(Product).order_by(Product.id).first()
    if product:
        return product

    product = Product(
        product_name=f"Placeholder Product {int(time.time() * 1000)}",
        category="General",
        base_price=Decimal("0.00"),
        status="Active",
    )
    db.session.add(product)
    try:
        db.session.flush()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise ValidationError(
            "No products found in catalog and unable to create placeholder. Please add products first."
        ) from exc
    return product


def resolve_product_id(product_id) -> int:
    """
    Map a client-supplied product id onto an existing catalog product.

    Missing, zero, or unknown ids are replaced with the fallback product and
    a warning is logged. With STRICT_PRODUCT_IDS enabled they are rejected.
    """
    valid_id = None
    if isinstance(product_id, str) and product_id.strip().isdigit():
        product_id = int(product_id.strip())
    if isinstance(product_id, int) and not isinstance(product_id, bool) and product_id > 0:
        if db.session.get(Product, product_id) is not None:
            valid_id = product_id

    if valid_id is not None:
        return valid_id

    if current_app.config.get("STRICT_PRODUCT_IDS"):
        raise ValidationError(f"Unknown product id: {product_id}")

    fallback = _fallback_product()
    current_app.logger.warning(
        "Line item product id %r is not in the catalog; using product %s", product_id, fallback.id
    )
    return fallback.id


def _build_order_items(order_items) -> list[OrderItem]:
    if not isinstance(order_items, list) or not order_items:
        raise ValidationError("orderItems must be a non-empty list")

    rows = []
    for index, item in enumerate(order_items):
        if not isinstance(item, dict):
            raise ValidationError(f"orderItems[{index}] must be an object")

        name = clean_text(item.get("productName"))
        quantity = item.get("quantity")
        if not name:
            raise ValidationError(f"orderItems[{index}].productName is required")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationError(f"orderItems[{index}].quantity must be a positive integer")

        unit_price = to_money(item.get("unitPrice", 0), field=f"orderItems[{index}].unitPrice")
        subtotal = item.get("subtotal")
        subtotal = (
            to_money(subtotal, field=f"orderItems[{index}].subtotal")
            if subtotal is not None
            else unit_price * quantity
        )

        rows.append(OrderItem(
            product_id=resolve_product_id(item.get("productId")),
            product_name=name,
            quantity=quantity,
            unit_price=unit_price,
            subtotal=subtotal,
            size=clean_text(item.get("size")),
            color=clean_text(item.get("color")),
            customization_data=item.get("customizationData") or None,
        ))
    return rows


def create_order(
    *,
    order_ref: str,
    customer: Customer,
    customer_info: dict,
    order_items: list,
    total: Decimal,
    balance_remaining: Decimal,
) -> Order:
    """
    Create an order in payment_pending with its line items.

    The customer's contact details are copied onto the order; the email is
    stored trimmed and lower-cased.
    """
    order = Order(
        order_ref=order_ref,
        customer_id=customer.id,
        customer_name=clean_text(customer_info.get("name")),
        customer_email=(customer_info.get("email") or "").strip().lower(),
        customer_phone=clean_text(customer_info.get("phone")),
        customer_address=clean_text(customer_info.get("address")),
        total_amount=total,
        balance_remaining=balance_remaining,
        status=STATUS_PAYMENT_PENDING,
    )
    order.items = _build_order_items(order_items)

    db.session.add(order)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Error creating order %s", order_ref)
        raise RuntimeError(f"Failed to create order: {exc}") from exc

    add_tracking_event(order.id, STATUS_PAYMENT_PENDING)
    return order


# =============================================================================
# ORDER QUERIES
# =============================================================================

def _latest_payment(order: Order) -> Payment | None:
    return (
        db.session.query(Payment)
        .filter_by(order_id=order.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .first()
    )


def order_view(order: Order, *, include_tracking: bool = False) -> dict:
    """Order with items and latest payment, optionally with its timeline."""
    view = order.to_dict()
    view["items"] = [item.to_dict() for item in order.items]

    latest = _latest_payment(order)
    view["payment"] = latest.to_summary_dict() if latest else None

    if include_tracking:
        events = (
            db.session.query(TrackingEvent)
            .filter_by(order_id=order.id)
            .order_by(TrackingEvent.timestamp.desc(), TrackingEvent.id.desc())
            .all()
        )
        view["trackingEvents"] = [event.to_dict() for event in events]
    return view


def list_orders(status: str | None = None, customer_email: str | None = None) -> list[Order]:
    query = db.session.query(Order)

    if status:
        query = query.filter(Order.status == status.strip().lower())

    if customer_email:
        normalized = customer_email.strip().lower()
        query = query.filter(db.func.lower(Order.customer_email) == normalized)

    return query.order_by(Order.order_date.desc(), Order.id.desc()).all()


def get_order_by_ref(order_ref: str) -> dict | None:
    """Tracking view for order_ref, or None."""
    order = get_order_by_ref_raw(order_ref)
    if order is None:
        return None
    return order_view(order, include_tracking=True)


# =============================================================================
# STATUS UPDATES
# =============================================================================

def normalize_status(status) -> str:
    if not isinstance(status, str) or not status.strip():
        raise ValidationError("status is required")

    normalized = status.strip().lower()
    if normalized not in ORDER_STATUSES:
        raise ValidationError(
            f'Invalid status "{status}". Must be one of: {", ".join(ORDER_STATUSES)}'
        )
    return normalized


def update_order_status(order_id: int, status: str) -> Order:
    """
    Move an order to status and record the timeline event.

    Raises:
        ValidationError: status not one of ORDER_STATUSES
        NotFoundError: unknown order_id
    """
    normalized = normalize_status(status)

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        order.status = normalized
        order.updated_at = utcnow()
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s status set to %s", order.order_ref, normalized)
    add_tracking_event(order.id, normalized)
    return order
