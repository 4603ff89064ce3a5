"""
Tests for storefront orders, order status changes and the POS register.
"""
import pytest

from storedesk.models import Notification, Order, Product, Store
from storedesk.services.orders import calculate_shipping

ZONES = {
    "zones": [
        {"name": "УБ хот", "price": 5000, "enabled": True},
        {"name": "Орон нутаг", "price": 15000, "enabled": False},
    ],
    "free_shipping_enabled": True,
    "free_shipping_minimum": 100000,
}


@pytest.fixture
def product(db_session):
    item = Product(store_id="store-1", name="Кашемир цамц", category="clothing", base_price=45000)
    db_session.add(item)
    db_session.commit()
    return item


def _order_body(product_id, **overrides):
    body = {
        "store_id": "store-1",
        "items": [{"product_id": product_id, "quantity": 2, "unit_price": 45000}],
        "shipping_address": "БЗД 3-р хороо",
    }
    body.update(overrides)
    return body


class TestCalculateShipping:
    def test_enabled_zone_is_charged(self):
        assert calculate_shipping(50000, "УБ хот", ZONES) == 5000

    def test_free_over_minimum(self):
        assert calculate_shipping(100000, "УБ хот", ZONES) == 0

    def test_disabled_or_unknown_zone_is_free(self):
        assert calculate_shipping(50000, "Орон нутаг", ZONES) == 0
        assert calculate_shipping(50000, "Сар", ZONES) == 0

    def test_no_zone_or_settings(self):
        assert calculate_shipping(50000, None, ZONES) == 0
        assert calculate_shipping(50000, "УБ хот", None) == 0


class TestPublicCheckout:
    def test_place_order_without_auth(self, client, db_session, product):
        resp = client.post("/orders", json=_order_body(product.id))
        assert resp.status_code == 201
        data = resp.json()
        assert data["order_number"].startswith("ORD-")
        assert data["subtotal"] == 90000
        assert data["shipping_amount"] == 0
        assert data["total_amount"] == 90000
        assert data["status"] == "pending"
        assert data["payment_status"] == "pending"

        notification = db_session.query(Notification).filter(Notification.type == "new_order").one()
        assert notification.title == f"Шинэ захиалга #{data['order_number']}"
        assert notification.body == "Нийт: 90,000₮"

    def test_delivery_zone_adds_shipping(self, client, db_session, product):
        db_session.get(Store, "store-1").shipping_settings = ZONES
        db_session.commit()

        body = _order_body(product.id, items=[{"product_id": product.id, "quantity": 1, "unit_price": 45000}],
                           shipping_zone="УБ хот")
        data = client.post("/orders", json=body).json()
        assert data["shipping_amount"] == 5000
        assert data["total_amount"] == 50000

    def test_pickup_never_pays_shipping(self, client, db_session, product):
        db_session.get(Store, "store-1").shipping_settings = ZONES
        db_session.commit()

        body = _order_body(product.id, shipping_zone="УБ хот", order_type="pickup",
                           items=[{"product_id": product.id, "quantity": 1, "unit_price": 45000}])
        data = client.post("/orders", json=body).json()
        assert data["shipping_amount"] == 0

    def test_unknown_store_returns_404(self, client, product):
        resp = client.post("/orders", json=_order_body(product.id, store_id="nope"))
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Store not found"

    def test_empty_items_rejected(self, client):
        resp = client.post("/orders", json={"store_id": "store-1", "items": []})
        assert resp.status_code == 400
        assert "items" in resp.json()["detail"]

    def test_busy_store_returns_503(self, client, db_session, product):
        store = db_session.get(Store, "store-1")
        store.busy_mode = True
        store.busy_message = "Түр завсарлага"
        store.estimated_wait_minutes = 30
        db_session.commit()

        resp = client.post("/orders", json=_order_body(product.id))
        assert resp.status_code == 503
        assert resp.json() == {"detail": "Түр завсарлага", "busy": True, "estimated_wait_minutes": 30}
        assert db_session.query(Order).count() == 0


class TestOrderStatus:
    def _place(self, client, product):
        return client.post("/orders", json=_order_body(product.id)).json()

    def test_owner_lists_orders_with_items(self, client, owner_auth, stranger_auth, product):
        self._place(client, product)
        data = client.get("/orders", auth=owner_auth).json()
        assert data["total"] == 1
        assert data["data"][0]["items"][0]["quantity"] == 2

        assert client.get("/orders", auth=stranger_auth).json()["total"] == 0

    def test_status_change_notifies_owner(self, client, db_session, owner_auth, product):
        order = self._place(client, product)
        resp = client.patch("/orders/status", json={
            "order_id": order["order_id"], "status": "confirmed",
        }, auth=owner_auth)
        assert resp.status_code == 200
        assert resp.json()["status"] == "confirmed"

        notification = db_session.query(Notification).filter(Notification.type == "order_status").one()
        assert notification.body == "Хүлээгдэж буй → Баталгаажсан"

    def test_tracking_number_saved(self, client, owner_auth, product):
        order = self._place(client, product)
        for status in ("confirmed", "processing"):
            client.patch("/orders/status", json={"order_id": order["order_id"], "status": status}, auth=owner_auth)
        resp = client.patch("/orders/status", json={
            "order_id": order["order_id"], "status": "shipped", "tracking_number": "TRK-1",
        }, auth=owner_auth)
        assert resp.json()["tracking_number"] == "TRK-1"

    def test_invalid_transition(self, client, owner_auth, product):
        order = self._place(client, product)
        resp = client.patch("/orders/status", json={
            "order_id": order["order_id"], "status": "shipped",
        }, auth=owner_auth)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Cannot transition from pending to shipped"

    def test_cancelled_is_terminal(self, client, owner_auth, product):
        order = self._place(client, product)
        client.patch("/orders/status", json={"order_id": order["order_id"], "status": "cancelled"}, auth=owner_auth)
        resp = client.patch("/orders/status", json={
            "order_id": order["order_id"], "status": "confirmed",
        }, auth=owner_auth)
        assert resp.status_code == 400

    def test_other_store_order_is_404(self, client, stranger_auth, product):
        order = self._place(client, product)
        resp = client.patch("/orders/status", json={
            "order_id": order["order_id"], "status": "confirmed",
        }, auth=stranger_auth)
        assert resp.status_code == 404

    def test_unknown_status_value_is_400(self, client, owner_auth, product):
        order = self._place(client, product)
        resp = client.patch("/orders/status", json={
            "order_id": order["order_id"], "status": "lost",
        }, auth=owner_auth)
        assert resp.status_code == 400
        assert "status" in resp.json()["detail"]


class TestPos:
    def _open(self, client, auth, opening_cash=50000):
        resp = client.post("/pos/sessions", json={"register_name": "Касс 1", "opening_cash": opening_cash}, auth=auth)
        assert resp.status_code == 201, resp.text
        return resp.json()

    def test_open_requires_staff_record(self, client, stranger_auth):
        resp = client.post("/pos/sessions", json={"opening_cash": 0}, auth=stranger_auth)
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Staff record not found"

    def test_open_session(self, client, owner_auth):
        session = self._open(client, owner_auth)
        assert session["status"] == "open"
        assert session["opened_by"] == "staff-1"
        assert session["total_sales"] == 0
        assert session["total_transactions"] == 0

    def test_checkout_and_close_reconciles_cash(self, client, db_session, owner_auth, product):
        session = self._open(client, owner_auth)

        resp = client.post("/pos/checkout", json={
            "session_id": session["id"],
            "items": [{"product_id": product.id, "quantity": 2, "unit_price": 45000}],
            "payment_method": "cash",
            "amount_paid": 100000,
        }, auth=owner_auth)
        assert resp.status_code == 201
        sale = resp.json()
        assert sale["order_number"].startswith("POS-")
        assert sale["total_amount"] == 90000
        assert sale["change_amount"] == 10000

        client.post("/pos/checkout", json={
            "session_id": session["id"],
            "items": [{"product_id": product.id, "quantity": 1, "unit_price": 45000}],
            "payment_method": "card",
            "amount_paid": 45000,
        }, auth=owner_auth)

        order = db_session.get(Order, sale["order_id"])
        assert order.status == "completed"
        assert order.payment_status == "paid"
        assert order.pos_session_id == session["id"]

        resp = client.post(f"/pos/sessions/{session['id']}/close", json={"closing_cash": 135000}, auth=owner_auth)
        assert resp.status_code == 200
        closed = resp.json()
        assert closed["status"] == "closed"
        assert closed["total_sales"] == 135000
        assert closed["total_transactions"] == 2
        assert closed["expected_cash"] == 140000
        assert closed["cash_difference"] == -5000

    def test_closed_session_rejects_checkout_and_close(self, client, owner_auth, product):
        session = self._open(client, owner_auth)
        client.post(f"/pos/sessions/{session['id']}/close", json={"closing_cash": 50000}, auth=owner_auth)

        resp = client.post("/pos/checkout", json={
            "session_id": session["id"],
            "items": [{"product_id": product.id, "quantity": 1, "unit_price": 1000}],
            "payment_method": "cash",
            "amount_paid": 1000,
        }, auth=owner_auth)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Session is not open"

        resp = client.post(f"/pos/sessions/{session['id']}/close", json={"closing_cash": 0}, auth=owner_auth)
        assert resp.status_code == 400

    def test_list_sessions(self, client, owner_auth, stranger_auth):
        self._open(client, owner_auth)
        assert client.get("/pos/sessions", auth=owner_auth).json()["total"] == 1
        assert client.get("/pos/sessions", auth=stranger_auth).json()["total"] == 0
