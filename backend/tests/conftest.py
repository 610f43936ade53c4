"""
Pytest fixtures for Skinshop backend tests.

Provides an in-memory database, test client, account/product factories,
authenticated headers and signed gateway callbacks.
"""

import pytest

from skinshop import create_app
from skinshop.extensions import db
from skinshop.models import Product
from skinshop.models.accounts import ROLE_CUSTOMER, ROLE_MANAGER
from skinshop.services import auth_service


PASSWORD = "Password123!"

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "SQLALCHEMY_TRACK_MODIFICATIONS": False,
    "VNPAY_TMN_CODE": "TESTTMN1",
    "VNPAY_HASH_SECRET": "TESTSECRETKEY0123456789",
    "VNPAY_PAYMENT_URL": "https://sandbox.vnpayment.vn/paymentv2/vpcpay.html",
    "VNPAY_RETURN_URL": "http://localhost/api/order/vnpay-return",
    "PAYMENT_SUCCESS_REDIRECT": "http://shop.test/payment-success",
    "PAYMENT_FAILURE_REDIRECT": "http://shop.test/payment-failed",
    "MAIL_SUPPRESS_SEND": True,
    "NOTIFICATIONS_ASYNC": False,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Clear all data but keep schema."""
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def make_account(db_session):
    def _make(email, role=ROLE_CUSTOMER, username=None):
        return auth_service.create_account(email, PASSWORD, username=username, role=role)
    return _make


@pytest.fixture(scope='function')
def customer(make_account):
    return make_account("alice@example.com", username="alice")


@pytest.fixture(scope='function')
def other_customer(make_account):
    return make_account("bob@example.com", username="bob")


@pytest.fixture(scope='function')
def manager(make_account):
    return make_account("manager@skinshop.test", role=ROLE_MANAGER, username="manager")


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(name="Gentle Cleanser", price=100, quantity=10):
        product = Product(name=name, price=price, quantity=quantity)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


def login_headers(client, email):
    resp = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}


@pytest.fixture(scope='function')
def customer_headers(client, customer):
    return login_headers(client, customer.email)


@pytest.fixture(scope='function')
def other_customer_headers(client, other_customer):
    return login_headers(client, other_customer.email)


@pytest.fixture(scope='function')
def manager_headers(client, manager):
    return login_headers(client, manager.email)


@pytest.fixture(scope='function')
def signed_callback(app):
    """Build gateway callback query params signed with the test merchant secret."""
    def _build(order_id, amount, response_code="00", transaction_status="00", **extra):
        params = {
            "vnp_TmnCode": app.config["VNPAY_TMN_CODE"],
            "vnp_TxnRef": str(order_id),
            "vnp_Amount": str(amount * 100),
            "vnp_ResponseCode": response_code,
            "vnp_TransactionStatus": transaction_status,
            "vnp_TransactionNo": "14123456",
            "vnp_BankCode": "NCB",
            "vnp_PayDate": "20261017103000",
        }
        params.update(extra)
        params["vnp_SecureHash"] = app.extensions["payment_gateway"].sign(params)
        return params
    return _build
