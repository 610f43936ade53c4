"""
Order API tests.

Verifies:
- Cart submission status codes and response shape
- Gateway return/IPN callbacks are signature-checked and idempotent
- Cancellation and order reads honor owner/staff access
"""

from datetime import datetime
from urllib.parse import urlsplit, parse_qs

from skinshop.extensions import db
from skinshop.models import Order, Product
from skinshop.models.orders import ORDER_STATUS_PENDING, ORDER_STATUS_PAID, ORDER_STATUS_CANCELED
from skinshop.services.order_service import CANCEL_MESSAGE


def _submit(client, headers, account_id, items):
    return client.post(
        "/api/order/add-to-cart",
        json={"account": account_id, "items": items, "promotion": "None"},
        headers=headers,
    )


def _paid_order(client, headers, account, product, quantity, signed_callback):
    resp = _submit(client, headers, account.id, [{"product": product.id, "quantity": quantity}])
    assert resp.status_code == 201
    order_id = resp.get_json()["orderId"]
    amount = product.price * quantity
    client.get("/api/order/vnpay-ipn", query_string=signed_callback(order_id, amount))
    return order_id


# =============================================================================
# CART SUBMISSION
# =============================================================================


class TestAddToCart:

    def test_requires_auth(self, client, db_session):
        resp = client.post("/api/order/add-to-cart", json={"account": 1, "items": []})
        assert resp.status_code == 401

    def test_creates_order_and_returns_payment_url(self, client, customer, customer_headers, make_product):
        product = make_product(price=100, quantity=10)

        resp = _submit(client, customer_headers, customer.id, [{"product": product.id, "quantity": 3}])

        assert resp.status_code == 201
        body = resp.get_json()
        query = parse_qs(urlsplit(body["vnpayResponse"]).query)
        assert query["vnp_TxnRef"] == [str(body["orderId"])]
        assert query["vnp_Amount"] == ["30000"]
        assert query["vnp_TmnCode"] == ["TESTTMN1"]
        assert db.session.get(Product, product.id).quantity == 7
        assert db.session.get(Order, body["orderId"]).status == ORDER_STATUS_PENDING

    def test_empty_cart(self, client, customer, customer_headers):
        resp = _submit(client, customer_headers, customer.id, [])

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "An order must contain at least one product."

    def test_missing_account(self, client, customer_headers, make_product):
        product = make_product()

        resp = client.post(
            "/api/order/add-to-cart",
            json={"items": [{"product": product.id, "quantity": 1}]},
            headers=customer_headers,
        )

        assert resp.status_code == 400

    def test_cannot_order_for_another_account(
        self, client, customer_headers, other_customer, make_product
    ):
        product = make_product()

        resp = _submit(client, customer_headers, other_customer.id, [{"product": product.id, "quantity": 1}])

        assert resp.status_code == 403
        assert db.session.get(Product, product.id).quantity == 10

    def test_staff_cannot_place_orders(self, client, manager, manager_headers, make_product):
        product = make_product()

        resp = _submit(client, manager_headers, manager.id, [{"product": product.id, "quantity": 1}])

        assert resp.status_code == 403

    def test_insufficient_stock(self, client, customer, customer_headers, make_product):
        product = make_product(name="Sunscreen", quantity=2)

        resp = _submit(client, customer_headers, customer.id, [{"product": product.id, "quantity": 5}])

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"] == "Not enough stock for Sunscreen. Available: 2, Requested: 5"
        assert body["details"]["requested"] == 5
        assert db.session.query(Order).count() == 0

    def test_unknown_product(self, client, customer, customer_headers):
        resp = _submit(client, customer_headers, customer.id, [{"product": 999999, "quantity": 1}])

        assert resp.status_code == 404

    def test_zero_total_is_rejected(self, client, customer, customer_headers, make_product):
        sample = make_product(name="Free Sample", price=0, quantity=10)

        resp = _submit(client, customer_headers, customer.id, [{"product": sample.id, "quantity": 1}])

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Order total must be greater than zero."
        assert db.session.get(Product, sample.id).quantity == 10
        assert db.session.query(Order).count() == 0

    def test_gateway_unavailable_returns_500(self, app, client, customer, customer_headers, make_product, monkeypatch):
        from skinshop.services.payment_gateway import GatewayConfig, VNPayGateway

        product = make_product(quantity=10)
        monkeypatch.setitem(app.extensions, "payment_gateway", VNPayGateway(GatewayConfig(
            tmn_code="", hash_secret="", payment_url="https://pay.test", return_url="https://shop.test",
        )))

        resp = _submit(client, customer_headers, customer.id, [{"product": product.id, "quantity": 1}])

        assert resp.status_code == 500
        assert db.session.get(Product, product.id).quantity == 10


# =============================================================================
# GATEWAY CALLBACKS
# =============================================================================


class TestVnpayReturn:

    def test_success_marks_paid_and_redirects(self, client, customer, customer_headers, make_product, signed_callback):
        product = make_product(price=100, quantity=10)
        order_id = _submit(
            client, customer_headers, customer.id, [{"product": product.id, "quantity": 3}]
        ).get_json()["orderId"]

        resp = client.get("/api/order/vnpay-return", query_string=signed_callback(order_id, 300))

        assert resp.status_code == 302
        assert resp.headers["Location"] == f"http://shop.test/payment-success?orderId={order_id}"
        assert db.session.get(Order, order_id).status == ORDER_STATUS_PAID

    def test_success_records_gateway_pay_date_and_bank(
        self, client, customer, customer_headers, make_product, signed_callback
    ):
        product = make_product(price=100, quantity=10)
        order_id = _submit(
            client, customer_headers, customer.id, [{"product": product.id, "quantity": 1}]
        ).get_json()["orderId"]

        client.get("/api/order/vnpay-return", query_string=signed_callback(order_id, 100))

        order = db.session.get(Order, order_id)
        # 10:30 in Ho Chi Minh City is 03:30 UTC
        assert order.paid_at == datetime(2026, 10, 17, 3, 30)
        assert order.gateway_bank_code == "NCB"
        assert order.to_dict()["paidAt"] == "2026-10-17T03:30:00Z"

    def test_unparseable_pay_date_falls_back_to_server_clock(
        self, client, customer, customer_headers, make_product, signed_callback
    ):
        product = make_product(price=100, quantity=10)
        order_id = _submit(
            client, customer_headers, customer.id, [{"product": product.id, "quantity": 1}]
        ).get_json()["orderId"]

        client.get("/api/order/vnpay-return", query_string=signed_callback(order_id, 100, vnp_PayDate="garbage"))

        order = db.session.get(Order, order_id)
        assert order.status == ORDER_STATUS_PAID
        assert order.paid_at is not None
        assert order.paid_at != datetime(2026, 10, 17, 3, 30)

    def test_failure_code_redirects_to_failure_page(
        self, client, customer, customer_headers, make_product, signed_callback
    ):
        product = make_product(price=100, quantity=10)
        order_id = _submit(
            client, customer_headers, customer.id, [{"product": product.id, "quantity": 3}]
        ).get_json()["orderId"]

        resp = client.get(
            "/api/order/vnpay-return",
            query_string=signed_callback(order_id, 300, response_code="24", transaction_status="02"),
        )

        assert resp.status_code == 302
        assert resp.headers["Location"] == f"http://shop.test/payment-failed?orderId={order_id}"
        assert db.session.get(Order, order_id).status == ORDER_STATUS_PENDING
        assert db.session.get(Product, product.id).quantity == 7

    def test_tampered_signature_is_ignored(self, client, customer, customer_headers, make_product, signed_callback):
        product = make_product(price=100, quantity=10)
        order_id = _submit(
            client, customer_headers, customer.id, [{"product": product.id, "quantity": 3}]
        ).get_json()["orderId"]
        params = signed_callback(order_id, 300)
        params["vnp_Amount"] = "100"

        resp = client.get("/api/order/vnpay-return", query_string=params)

        assert resp.headers["Location"].startswith("http://shop.test/payment-failed")
        assert db.session.get(Order, order_id).status == ORDER_STATUS_PENDING


class TestVnpayIpn:

    def test_confirms_then_reports_already_confirmed(
        self, client, customer, customer_headers, make_product, signed_callback
    ):
        product = make_product(price=100, quantity=10)
        order_id = _submit(
            client, customer_headers, customer.id, [{"product": product.id, "quantity": 3}]
        ).get_json()["orderId"]
        params = signed_callback(order_id, 300)

        first = client.get("/api/order/vnpay-ipn", query_string=params)
        second = client.get("/api/order/vnpay-ipn", query_string=params)

        assert first.get_json() == {"RspCode": "00", "Message": "Confirm Success"}
        assert second.get_json()["RspCode"] == "02"
        assert db.session.get(Order, order_id).status == ORDER_STATUS_PAID
        assert db.session.get(Product, product.id).quantity == 7

    def test_invalid_signature(self, client, db_session, signed_callback):
        params = signed_callback(1, 300)
        params["vnp_SecureHash"] = "0" * 128

        resp = client.get("/api/order/vnpay-ipn", query_string=params)

        assert resp.status_code == 200
        assert resp.get_json()["RspCode"] == "97"

    def test_unknown_order(self, client, db_session, signed_callback):
        resp = client.get("/api/order/vnpay-ipn", query_string=signed_callback(999999, 300))

        assert resp.get_json()["RspCode"] == "01"

    def test_amount_mismatch(self, client, customer, customer_headers, make_product, signed_callback):
        product = make_product(price=100, quantity=10)
        order_id = _submit(
            client, customer_headers, customer.id, [{"product": product.id, "quantity": 3}]
        ).get_json()["orderId"]

        resp = client.get("/api/order/vnpay-ipn", query_string=signed_callback(order_id, 1))

        assert resp.get_json()["RspCode"] == "04"
        assert db.session.get(Order, order_id).status == ORDER_STATUS_PENDING


# =============================================================================
# CANCELLATION
# =============================================================================


class TestCancelOrderRoute:

    def test_cancel_paid_order(self, client, customer, customer_headers, make_product, signed_callback):
        product = make_product(price=100, quantity=10)
        order_id = _paid_order(client, customer_headers, customer, product, 3, signed_callback)

        resp = client.post(f"/api/order/cancel-order/{order_id}", headers=customer_headers)

        assert resp.status_code == 200
        assert resp.get_json() == {"message": CANCEL_MESSAGE, "refundAmount": 150}
        assert db.session.get(Order, order_id).status == ORDER_STATUS_CANCELED
        assert db.session.get(Product, product.id).quantity == 10

    def test_cancel_pending_order(self, client, customer, customer_headers, make_product):
        product = make_product(quantity=10)
        order_id = _submit(
            client, customer_headers, customer.id, [{"product": product.id, "quantity": 3}]
        ).get_json()["orderId"]

        resp = client.post(f"/api/order/cancel-order/{order_id}", headers=customer_headers)

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Only paid orders can be canceled."

    def test_cancel_twice(self, client, customer, customer_headers, make_product, signed_callback):
        product = make_product(quantity=10)
        order_id = _paid_order(client, customer_headers, customer, product, 3, signed_callback)

        client.post(f"/api/order/cancel-order/{order_id}", headers=customer_headers)
        resp = client.post(f"/api/order/cancel-order/{order_id}", headers=customer_headers)

        assert resp.status_code == 400
        assert db.session.get(Product, product.id).quantity == 10

    def test_other_customer_forbidden(
        self, client, customer, customer_headers, other_customer_headers, make_product, signed_callback
    ):
        product = make_product(quantity=10)
        order_id = _paid_order(client, customer_headers, customer, product, 3, signed_callback)

        resp = client.post(f"/api/order/cancel-order/{order_id}", headers=other_customer_headers)

        assert resp.status_code == 403
        assert db.session.get(Order, order_id).status == ORDER_STATUS_PAID

    def test_manager_can_cancel(
        self, client, customer, customer_headers, manager_headers, make_product, signed_callback
    ):
        product = make_product(quantity=10)
        order_id = _paid_order(client, customer_headers, customer, product, 3, signed_callback)

        resp = client.post(f"/api/order/cancel-order/{order_id}", headers=manager_headers)

        assert resp.status_code == 200

    def test_unknown_order(self, client, customer_headers):
        resp = client.post("/api/order/cancel-order/999999", headers=customer_headers)

        assert resp.status_code == 404

    def test_requires_auth(self, client, db_session):
        resp = client.post("/api/order/cancel-order/1")

        assert resp.status_code == 401


# =============================================================================
# ORDER READS
# =============================================================================


class TestOrderReads:

    def test_list_own_orders(self, client, customer, customer_headers, make_product):
        product = make_product(quantity=10)
        _submit(client, customer_headers, customer.id, [{"product": product.id, "quantity": 1}])

        resp = client.get(f"/api/order/account/{customer.id}", headers=customer_headers)

        assert resp.status_code == 200
        orders = resp.get_json()
        assert len(orders) == 1
        assert orders[0]["status"] == ORDER_STATUS_PENDING
        assert orders[0]["items"] == [{"product": product.id, "quantity": 1, "unitPrice": 100}]

    def test_cannot_list_other_accounts_orders(self, client, customer, other_customer_headers):
        resp = client.get(f"/api/order/account/{customer.id}", headers=other_customer_headers)

        assert resp.status_code == 403

    def test_staff_can_list_any_account(self, client, customer, manager_headers):
        resp = client.get(f"/api/order/account/{customer.id}", headers=manager_headers)

        assert resp.status_code == 200
        assert resp.get_json() == []

    def test_order_detail_includes_refund(self, client, customer, customer_headers, make_product, signed_callback):
        product = make_product(price=100, quantity=10)
        order_id = _paid_order(client, customer_headers, customer, product, 3, signed_callback)
        client.post(f"/api/order/cancel-order/{order_id}", headers=customer_headers)

        resp = client.get(f"/api/order/{order_id}", headers=customer_headers)

        body = resp.get_json()
        assert resp.status_code == 200
        assert body["_id"] == order_id
        assert body["status"] == ORDER_STATUS_CANCELED
        assert body["refund"]["amount"] == 150

    def test_order_detail_hidden_from_other_customers(
        self, client, customer, customer_headers, other_customer_headers, make_product
    ):
        product = make_product(quantity=10)
        order_id = _submit(
            client, customer_headers, customer.id, [{"product": product.id, "quantity": 1}]
        ).get_json()["orderId"]

        resp = client.get(f"/api/order/{order_id}", headers=other_customer_headers)

        assert resp.status_code == 403
