# backend/skinshop/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/skinshop.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///skinshop.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # VNPay merchant credentials (sandbox defaults)
    VNPAY_TMN_CODE = os.environ.get("VNPAY_TMN_CODE", "")
    VNPAY_HASH_SECRET = os.environ.get("VNPAY_HASH_SECRET", "")
    VNPAY_PAYMENT_URL = os.environ.get(
        "VNPAY_PAYMENT_URL",
        "https://sandbox.vnpayment.vn/paymentv2/vpcpay.html",
    )
    VNPAY_RETURN_URL = os.environ.get(
        "VNPAY_RETURN_URL",
        "http://localhost:5000/api/order/vnpay-return",
    )
    VNPAY_LOCALE = os.environ.get("VNPAY_LOCALE", "vn")
    VNPAY_ORDER_TYPE = os.environ.get("VNPAY_ORDER_TYPE", "other")
    PAYMENT_EXPIRE_HOURS = int(os.environ.get("PAYMENT_EXPIRE_HOURS", "24"))

    # Where the shopper lands after the gateway redirects back to us
    PAYMENT_SUCCESS_REDIRECT = os.environ.get(
        "PAYMENT_SUCCESS_REDIRECT", "http://localhost:5173/payment-success"
    )
    PAYMENT_FAILURE_REDIRECT = os.environ.get(
        "PAYMENT_FAILURE_REDIRECT", "http://localhost:5173/payment-failed"
    )

    # Outbound email
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "587"))
    MAIL_USE_TLS = _env_flag("MAIL_USE_TLS", "true")
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME") or os.environ.get("EMAIL_USER")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD") or os.environ.get("EMAIL_PASS")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER") or MAIL_USERNAME
    MAIL_TIMEOUT_SECONDS = float(os.environ.get("MAIL_TIMEOUT_SECONDS", "10"))
    MAIL_SUPPRESS_SEND = _env_flag("MAIL_SUPPRESS_SEND", "true")
    NOTIFICATIONS_ASYNC = _env_flag("NOTIFICATIONS_ASYNC", "true")

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    ]
