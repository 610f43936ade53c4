"""
Notification delivery tests.

Verifies:
- Sender failures are logged and never reach the caller
- Refund confirmation renders the order lines
- Suppressed mail never opens an SMTP connection
"""

import smtplib
import threading

import pytest

from skinshop.extensions import db
from skinshop.models import Order
from skinshop.models.orders import ORDER_STATUS_CANCELED
from skinshop.services import notification_service, order_service


def _explode(**kwargs):
    raise smtplib.SMTPException("smtp down")


class TestDispatch:

    def test_sender_failure_is_swallowed(self, app, caplog):
        notification_service.dispatch(_explode, to="a@example.com")

        assert "Notification _explode failed" in caplog.text

    def test_async_dispatch_runs_on_executor(self, app, monkeypatch):
        calls = []
        done = threading.Event()
        monkeypatch.setitem(app.config, "NOTIFICATIONS_ASYNC", True)

        def _record(**kwargs):
            calls.append(kwargs)
            done.set()

        notification_service.dispatch(_record, to="a@example.com")

        assert done.wait(timeout=5)
        assert calls == [{"to": "a@example.com"}]

    def test_cancellation_succeeds_when_email_fails(self, monkeypatch, customer, make_product):
        monkeypatch.setattr(notification_service, "send_refund_confirmation", _explode)
        product = make_product(price=100, quantity=10)
        result = order_service.place_order(
            account_id=customer.id,
            items=[{"product": product.id, "quantity": 3}],
        )
        order_service.confirm_payment(str(result.order.id), "00")

        cancellation = order_service.cancel_order(result.order.id, customer)

        assert cancellation.refund_amount == 150
        assert db.session.get(Order, result.order.id).status == ORDER_STATUS_CANCELED


class TestEmails:

    def test_suppressed_send_never_connects(self, app, monkeypatch):
        def _no_smtp(*args, **kwargs):
            pytest.fail("SMTP connection opened while mail is suppressed")

        monkeypatch.setattr(notification_service.smtplib, "SMTP", _no_smtp)

        notification_service.send_email(to="a@example.com", subject="Hi", html="<p>Hi</p>")

    def test_refund_confirmation_renders_lines(self, app, monkeypatch):
        captured = {}
        monkeypatch.setattr(
            notification_service,
            "send_email",
            lambda **kwargs: captured.update(kwargs),
        )

        with app.test_request_context():
            notification_service.send_refund_confirmation(
                to="alice@example.com",
                order_id=42,
                refund_amount=150,
                items=[{"product_name": "Serum", "quantity": 3, "price": 100, "total": 300}],
            )

        assert captured["to"] == "alice@example.com"
        assert captured["subject"] == "Refund confirmation for order #42"
        assert "Serum" in captured["html"]
        assert "150" in captured["html"]

    def test_send_email_over_smtp(self, app, monkeypatch):
        sent = []

        class FakeSMTP:
            def __init__(self, host, port, timeout=None):
                self.host = host
                self.port = port

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

            def starttls(self):
                sent.append("starttls")

            def login(self, user, password):
                sent.append(("login", user))

            def send_message(self, message):
                sent.append(message["To"])

        monkeypatch.setattr(notification_service.smtplib, "SMTP", FakeSMTP)
        monkeypatch.setitem(app.config, "MAIL_SUPPRESS_SEND", False)
        monkeypatch.setitem(app.config, "MAIL_USE_TLS", True)
        monkeypatch.setitem(app.config, "MAIL_USERNAME", "shop@example.com")
        monkeypatch.setitem(app.config, "MAIL_PASSWORD", "app-password")
        monkeypatch.setitem(app.config, "MAIL_DEFAULT_SENDER", "shop@example.com")

        notification_service.send_email(to="alice@example.com", subject="Hi", html="<p>Hi</p>")

        assert sent == ["starttls", ("login", "shop@example.com"), "alice@example.com"]
