"""
Order tracking tests.

Verifies:
- Order tracking view carries items, latest payment and the timeline
- Status updates validate the status and append tracking events
- Listing filters by status and customer email
"""

import pytest

from storefront.models import Order, TrackingEvent
from storefront.services import order_service, payment_service
from storefront.validation import ValidationError, NotFoundError

from conftest import customer_info, payment_payload


def _place_order(client, order_ref="ORD-10000001", **overrides):
    resp = client.post("/api/payments", json=payment_payload(order_ref=order_ref, **overrides))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


class TestOrderService:

    def test_update_status_appends_event(self, client, db_session, product):
        placed = _place_order(client, product_id=product.id)

        order = order_service.update_order_status(placed["orderId"], "Designing")

        assert order.status == "designing"
        latest = (
            db_session.query(TrackingEvent)
            .filter_by(order_id=order.id)
            .order_by(TrackingEvent.id.desc())
            .first()
        )
        assert latest.status == "designing"
        assert latest.location == "Design Department"

    def test_update_status_unknown_status(self, client, product):
        placed = _place_order(client, product_id=product.id)

        with pytest.raises(ValidationError, match="Invalid status"):
            order_service.update_order_status(placed["orderId"], "teleporting")

    def test_update_status_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.update_order_status(9999, "designing")

    def test_every_status_has_a_message(self):
        assert set(order_service.STATUS_MESSAGES) == set(order_service.ORDER_STATUSES)

    def test_unknown_status_adds_no_event(self, db_session):
        assert order_service.add_tracking_event(9999, "not-a-status") is None
        assert db_session.query(TrackingEvent).count() == 0

    def test_list_orders_filters(self, client, db_session, product):
        _place_order(client, order_ref="ORD-1", product_id=product.id)
        _place_order(
            client,
            order_ref="ORD-2",
            product_id=product.id,
            customerInfo=customer_info(email="other@example.com", phone="09179999999"),
        )
        order_service.update_order_status(
            db_session.query(Order).filter_by(order_ref="ORD-1").one().id, "qa"
        )

        assert [o.order_ref for o in order_service.list_orders(status="qa")] == ["ORD-1"]
        assert [o.order_ref for o in order_service.list_orders(customer_email="OTHER@example.com")] == ["ORD-2"]
        assert len(order_service.list_orders()) == 2


class TestOrderRoutes:

    def test_tracking_view(self, client, product):
        _place_order(client, product_id=product.id, amount=600, payment_type="partial")

        resp = client.get("/api/orders/ORD-10000001")

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["id"] == "ORD-10000001"
        assert data["status"] == "payment_pending"
        assert data["total"] == 1000.0
        assert data["balanceRemaining"] == 400.0
        assert data["customer"]["phone"] == "09171234567"
        assert data["items"][0]["name"] == "Classic Tee"
        assert data["payment"]["status"] == "pending"
        assert data["payment"]["amountPaid"] == 600.0
        assert [e["status"] for e in data["trackingEvents"]] == ["payment_pending"]

    def test_tracking_view_missing(self, client):
        resp = client.get("/api/orders/ORD-404")

        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Order not found"

    def test_list(self, client, product):
        _place_order(client, product_id=product.id)

        resp = client.get("/api/orders?status=payment_pending")

        assert resp.status_code == 200
        [order] = resp.get_json()
        assert order["id"] == "ORD-10000001"
        assert "trackingEvents" not in order

    def test_update_status(self, client, product, admin_user):
        placed = _place_order(client, product_id=product.id)
        client.put(
            f"/api/payments/{placed['paymentId']}/approve", json={"verifiedBy": admin_user.id}
        )

        resp = client.put(f"/api/orders/{placed['orderId']}/status", json={"status": "designing"})

        assert resp.status_code == 200
        assert resp.get_json()["status"] == "designing"
        events = client.get("/api/orders/ORD-10000001").get_json()["trackingEvents"]
        assert events[0]["status"] == "designing"
        assert {e["status"] for e in events} == {"payment_pending", "pending", "designing"}

    def test_update_status_invalid(self, client, product):
        placed = _place_order(client, product_id=product.id)

        resp = client.put(f"/api/orders/{placed['orderId']}/status", json={"status": "lost"})
        assert resp.status_code == 400

    def test_update_status_missing_order(self, client):
        resp = client.put("/api/orders/9999/status", json={"status": "designing"})
        assert resp.status_code == 404

    def test_resubmission_shows_in_timeline(self, client, db_session, product, legacy_admin_staff):
        placed = _place_order(client, product_id=product.id)
        payment_service.approve_payment(placed["paymentId"], legacy_admin_staff.id)
        order_service.update_order_status(placed["orderId"], "assembly")

        _place_order(client, product_id=product.id, referenceNumber="GC-2")

        data = client.get("/api/orders/ORD-10000001").get_json()
        assert data["status"] == "payment_pending"
        assert data["trackingEvents"][0]["status"] == "payment_pending"
