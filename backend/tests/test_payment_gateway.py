"""
VNPay adapter tests.

Pure unit tests: no application context or database needed.
"""

import hashlib
import hmac
from datetime import datetime, timedelta
from urllib.parse import parse_qsl, urlsplit

import pytest

from skinshop.services.payment_gateway import (
    GatewayConfig,
    GatewayError,
    PaymentRequest,
    VNPayGateway,
)


SECRET = "UNITTESTSECRET"


@pytest.fixture
def gateway():
    return VNPayGateway(GatewayConfig(
        tmn_code="UNITTMN",
        hash_secret=SECRET,
        payment_url="https://sandbox.vnpayment.vn/paymentv2/vpcpay.html",
        return_url="http://localhost/api/order/vnpay-return",
    ))


def _request(amount=300, created_at=datetime(2026, 1, 1, 0, 0, 0), hours=24):
    return PaymentRequest(
        reference="42",
        amount=amount,
        client_ip="10.0.0.1",
        created_at=created_at,
        expires_at=created_at + timedelta(hours=hours),
        order_info="Payment for order 42",
    )


def _params(url):
    return dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))


class TestBuildPaymentUrl:

    def test_carries_required_fields(self, gateway):
        params = _params(gateway.build_payment_url(_request()))

        assert params["vnp_Version"] == "2.1.0"
        assert params["vnp_Command"] == "pay"
        assert params["vnp_TmnCode"] == "UNITTMN"
        assert params["vnp_Amount"] == "30000"
        assert params["vnp_CurrCode"] == "VND"
        assert params["vnp_TxnRef"] == "42"
        assert params["vnp_IpAddr"] == "10.0.0.1"
        assert params["vnp_ReturnUrl"] == "http://localhost/api/order/vnpay-return"
        assert params["vnp_Locale"] == "vn"

    def test_timestamps_are_vietnam_local_time(self, gateway):
        params = _params(gateway.build_payment_url(_request()))

        # 00:00 UTC is 07:00 in Asia/Ho_Chi_Minh
        assert params["vnp_CreateDate"] == "20260101070000"
        assert params["vnp_ExpireDate"] == "20260102070000"

    def test_query_is_sorted_and_signature_last(self, gateway):
        url = gateway.build_payment_url(_request())
        keys = [key for key, _ in parse_qsl(urlsplit(url).query)]

        assert keys[-1] == "vnp_SecureHash"
        assert keys[:-1] == sorted(keys[:-1])

    def test_signature_is_hmac_sha512_of_signed_query(self, gateway):
        url = gateway.build_payment_url(_request())
        query = urlsplit(url).query
        signed_part, _, received = query.rpartition("&vnp_SecureHash=")

        expected = hmac.new(SECRET.encode(), signed_part.encode(), hashlib.sha512).hexdigest()
        assert received == expected

    def test_own_url_verifies(self, gateway):
        assert gateway.verify(_params(gateway.build_payment_url(_request())))

    def test_unconfigured_gateway_refuses(self):
        gateway = VNPayGateway(GatewayConfig(
            tmn_code="", hash_secret="", payment_url="https://pay.test", return_url="https://shop.test",
        ))

        with pytest.raises(GatewayError):
            gateway.build_payment_url(_request())

    def test_rejects_non_positive_amount(self, gateway):
        with pytest.raises(GatewayError):
            gateway.build_payment_url(_request(amount=0))

    def test_rejects_expiry_before_creation(self, gateway):
        with pytest.raises(GatewayError):
            gateway.build_payment_url(_request(hours=0))


class TestCallbacks:

    def _signed(self, gateway, **overrides):
        params = {
            "vnp_TxnRef": "42",
            "vnp_Amount": "30000",
            "vnp_ResponseCode": "00",
            "vnp_TransactionStatus": "00",
            "vnp_TransactionNo": "14123456",
            "vnp_BankCode": "NCB",
            "vnp_OrderInfo": "Payment for order 42",
        }
        params.update(overrides)
        params["vnp_SecureHash"] = gateway.sign(params)
        return params

    def test_parses_successful_callback(self, gateway):
        callback = gateway.parse_callback(self._signed(gateway))

        assert callback.valid_signature
        assert callback.is_success
        assert callback.reference == "42"
        assert callback.amount == 300
        assert callback.transaction_no == "14123456"

    def test_signature_ignores_hash_type_and_empty_values(self, gateway):
        params = self._signed(gateway)
        params["vnp_SecureHashType"] = "HmacSHA512"
        params["vnp_CardType"] = ""

        assert gateway.verify(params)

    def test_signature_is_case_insensitive(self, gateway):
        params = self._signed(gateway)
        params["vnp_SecureHash"] = params["vnp_SecureHash"].upper()

        assert gateway.verify(params)

    def test_tampered_field_fails_verification(self, gateway):
        params = self._signed(gateway)
        params["vnp_Amount"] = "100"

        callback = gateway.parse_callback(params)

        assert not callback.valid_signature
        assert not callback.is_success

    def test_missing_signature(self, gateway):
        params = self._signed(gateway)
        del params["vnp_SecureHash"]

        assert not gateway.verify(params)

    def test_failed_transaction_status(self, gateway):
        callback = gateway.parse_callback(self._signed(gateway, vnp_TransactionStatus="02"))

        assert callback.valid_signature
        assert not callback.is_success

    def test_malformed_amount(self, gateway):
        callback = gateway.parse_callback(self._signed(gateway, vnp_Amount="abc"))

        assert callback.amount is None

    def test_pay_date_is_converted_to_utc(self, gateway):
        callback = gateway.parse_callback(self._signed(gateway, vnp_PayDate="20260101070000"))

        assert callback.pay_date == datetime(2026, 1, 1, 0, 0, 0)
        assert callback.bank_code == "NCB"

    @pytest.mark.parametrize("raw", [None, "", "2026-01-01", "20261399000000"])
    def test_missing_or_malformed_pay_date(self, gateway, raw):
        overrides = {} if raw is None else {"vnp_PayDate": raw}
        callback = gateway.parse_callback(self._signed(gateway, **overrides))

        assert callback.pay_date is None
        assert callback.valid_signature


class TestGatewayConfig:

    def test_from_app_config(self):
        config = GatewayConfig.from_app_config({
            "VNPAY_TMN_CODE": "ABC",
            "VNPAY_HASH_SECRET": "S",
            "VNPAY_PAYMENT_URL": "https://pay.test",
            "VNPAY_RETURN_URL": "https://shop.test/return",
            "PAYMENT_EXPIRE_HOURS": "2",
        })

        assert config.is_configured
        assert config.expire_hours == 2
        assert config.locale == "vn"

    def test_missing_secret_is_not_configured(self):
        config = GatewayConfig.from_app_config({
            "VNPAY_TMN_CODE": "ABC",
            "VNPAY_PAYMENT_URL": "https://pay.test",
            "VNPAY_RETURN_URL": "https://shop.test/return",
        })

        assert not config.is_configured
