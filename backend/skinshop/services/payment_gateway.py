# Overview: VNPay payment gateway adapter; signs redirect URLs and verifies callbacks.

"""
VNPay Gateway Adapter

WHY: Keep every detail of the external processor's wire format in one place.
The order workflow only sees PaymentRequest in and GatewayCallback out.

SIGNING (VNPay 2.1.0):
- All vnp_* parameters sorted by key, URL-encoded (quote_plus), joined with '&'
- HMAC-SHA512 over that string with the merchant hash secret, hex encoded
- Appended as vnp_SecureHash; callbacks carry the same hash over their params

The adapter is constructed once per process from GatewayConfig and shared
through app.extensions["payment_gateway"].
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping
from urllib.parse import urlencode

from flask import current_app

from skinshop.time_utils import parse_gateway_timestamp, to_gateway_timestamp


VNPAY_VERSION = "2.1.0"
VNPAY_COMMAND_PAY = "pay"
VNPAY_CURRENCY = "VND"

RESPONSE_CODE_SUCCESS = "00"

SIGNATURE_FIELDS = ("vnp_SecureHash", "vnp_SecureHashType")


class GatewayError(Exception):
    """Raised when a payment URL cannot be produced."""
    pass


@dataclass(frozen=True)
class GatewayConfig:
    tmn_code: str
    hash_secret: str
    payment_url: str
    return_url: str
    locale: str = "vn"
    order_type: str = "other"
    expire_hours: int = 24

    @classmethod
    def from_app_config(cls, config: Mapping) -> "GatewayConfig":
        return cls(
            tmn_code=config.get("VNPAY_TMN_CODE") or "",
            hash_secret=config.get("VNPAY_HASH_SECRET") or "",
            payment_url=config["VNPAY_PAYMENT_URL"],
            return_url=config["VNPAY_RETURN_URL"],
            locale=config.get("VNPAY_LOCALE", "vn"),
            order_type=config.get("VNPAY_ORDER_TYPE", "other"),
            expire_hours=int(config.get("PAYMENT_EXPIRE_HOURS", 24)),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.tmn_code and self.hash_secret)


@dataclass(frozen=True)
class PaymentRequest:
    """Transient view of an order used to build the redirect."""
    reference: str
    amount: int
    client_ip: str
    created_at: datetime
    expires_at: datetime
    order_info: str
    return_url: str | None = None


@dataclass(frozen=True)
class GatewayCallback:
    """Parsed, signature-checked payment outcome reported by the gateway."""
    reference: str | None
    response_code: str | None
    transaction_status: str | None
    amount: int | None
    transaction_no: str | None
    bank_code: str | None
    pay_date: datetime | None
    valid_signature: bool

    @property
    def is_success(self) -> bool:
        if not self.valid_signature:
            return False
        if self.response_code != RESPONSE_CODE_SUCCESS:
            return False
        # Return URL always carries vnp_TransactionStatus; older IPNs may omit it
        return self.transaction_status in (None, RESPONSE_CODE_SUCCESS)


def _canonical_query(params: Mapping[str, object]) -> str:
    items = sorted(
        (key, str(value))
        for key, value in params.items()
        if key.startswith("vnp_") and key not in SIGNATURE_FIELDS and value not in (None, "")
    )
    return urlencode(items)


class VNPayGateway:
    def __init__(self, config: GatewayConfig):
        self.config = config

    def sign(self, params: Mapping[str, object]) -> str:
        query = _canonical_query(params)
        return hmac.new(
            self.config.hash_secret.encode("utf-8"),
            query.encode("utf-8"),
            hashlib.sha512,
        ).hexdigest()

    def build_payment_url(self, request: PaymentRequest) -> str:
        """
        Build the signed redirect URL for a payment request.

        Pure: no I/O and no local state changes. Raises GatewayError when the
        merchant credentials are missing or the request is unusable.
        """
        if not self.config.is_configured:
            raise GatewayError("Payment gateway is not configured")
        if request.amount <= 0:
            raise GatewayError("Payment amount must be positive")
        if request.expires_at <= request.created_at:
            raise GatewayError("Payment expiry must be after creation time")

        params = {
            "vnp_Version": VNPAY_VERSION,
            "vnp_Command": VNPAY_COMMAND_PAY,
            "vnp_TmnCode": self.config.tmn_code,
            # Gateway amounts carry two implied decimal places
            "vnp_Amount": request.amount * 100,
            "vnp_CurrCode": VNPAY_CURRENCY,
            "vnp_TxnRef": request.reference,
            "vnp_OrderInfo": request.order_info,
            "vnp_OrderType": self.config.order_type,
            "vnp_Locale": self.config.locale,
            "vnp_ReturnUrl": request.return_url or self.config.return_url,
            "vnp_IpAddr": request.client_ip,
            "vnp_CreateDate": to_gateway_timestamp(request.created_at),
            "vnp_ExpireDate": to_gateway_timestamp(request.expires_at),
        }

        query = _canonical_query(params)
        return f"{self.config.payment_url}?{query}&vnp_SecureHash={self.sign(params)}"

    def verify(self, params: Mapping[str, object]) -> bool:
        received = params.get("vnp_SecureHash")
        if not received or not self.config.hash_secret:
            return False
        expected = self.sign(params)
        return hmac.compare_digest(expected.lower(), str(received).lower())

    def parse_callback(self, params: Mapping[str, object]) -> GatewayCallback:
        raw_amount = params.get("vnp_Amount")
        try:
            amount = int(raw_amount) // 100 if raw_amount not in (None, "") else None
        except (TypeError, ValueError):
            amount = None

        try:
            pay_date = parse_gateway_timestamp(params.get("vnp_PayDate"))
        except ValueError:
            pay_date = None

        return GatewayCallback(
            reference=params.get("vnp_TxnRef") or None,
            response_code=params.get("vnp_ResponseCode") or None,
            transaction_status=params.get("vnp_TransactionStatus") or None,
            amount=amount,
            transaction_no=params.get("vnp_TransactionNo") or None,
            bank_code=params.get("vnp_BankCode") or None,
            pay_date=pay_date,
            valid_signature=self.verify(params),
        )


def get_gateway() -> VNPayGateway:
    """Process-scoped gateway registered by create_app."""
    return current_app.extensions["payment_gateway"]
