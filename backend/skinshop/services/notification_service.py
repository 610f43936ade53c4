# Overview: Best-effort transactional email (refund confirmation, welcome).

"""
Notification Service

Emails are rendered from Jinja templates under templates/email/ and sent over
SMTP with the configured credential pair.

DISPATCH RULES:
- Callers hand over plain data after their transaction has committed.
- Delivery runs on a small thread pool (inline when NOTIFICATIONS_ASYNC is off).
- Every failure is logged and swallowed; nothing here can fail the caller.
"""

from __future__ import annotations

import smtplib
from concurrent.futures import ThreadPoolExecutor
from email.message import EmailMessage

from flask import current_app, render_template


EXECUTOR_KEY = "notification_executor"


def init_app(app) -> None:
    app.extensions[EXECUTOR_KEY] = ThreadPoolExecutor(
        max_workers=2,
        thread_name_prefix="skinshop-notify",
    )


def dispatch(func, *args, **kwargs) -> None:
    """
    Run `func` outside the request's success path.

    The function runs inside a fresh application context so it can render
    templates and read config; its exceptions never reach the caller.
    """
    app = current_app._get_current_object()

    def _run():
        with app.app_context():
            try:
                func(*args, **kwargs)
            except Exception:
                app.logger.exception("Notification %s failed", getattr(func, "__name__", func))

    if not app.config.get("NOTIFICATIONS_ASYNC", True):
        _run()
        return

    try:
        app.extensions[EXECUTOR_KEY].submit(_run)
    except (KeyError, RuntimeError):
        app.logger.exception("Notification executor unavailable; dropping %s", getattr(func, "__name__", func))


def send_email(*, to: str, subject: str, html: str, text: str | None = None) -> None:
    config = current_app.config

    if config.get("MAIL_SUPPRESS_SEND", False):
        current_app.logger.info("Email to %s suppressed (subject=%r)", to, subject)
        return

    sender = config.get("MAIL_DEFAULT_SENDER") or config.get("MAIL_USERNAME")
    if not sender:
        raise RuntimeError("MAIL_DEFAULT_SENDER or MAIL_USERNAME must be configured")

    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = subject
    message.set_content(text or "Please view this message in an HTML-capable email client.")
    message.add_alternative(html, subtype="html")

    with smtplib.SMTP(
        config["MAIL_SERVER"],
        config["MAIL_PORT"],
        timeout=config.get("MAIL_TIMEOUT_SECONDS", 10),
    ) as smtp:
        if config.get("MAIL_USE_TLS", True):
            smtp.starttls()
        if config.get("MAIL_USERNAME") and config.get("MAIL_PASSWORD"):
            smtp.login(config["MAIL_USERNAME"], config["MAIL_PASSWORD"])
        smtp.send_message(message)

    current_app.logger.info("Email sent to %s (subject=%r)", to, subject)


def send_refund_confirmation(*, to: str, order_id: int, refund_amount: int, items: list[dict]) -> None:
    """
    items: [{"product_name", "quantity", "price", "total"}]
    """
    html = render_template(
        "email/refund_confirmation.html",
        order_id=order_id,
        refund_amount=refund_amount,
        items=items,
    )
    send_email(
        to=to,
        subject=f"Refund confirmation for order #{order_id}",
        html=html,
        text=f"Order #{order_id} was canceled. Refund amount: {refund_amount:,} VND.",
    )


def send_welcome_email(*, to: str, username: str | None = None) -> None:
    html = render_template("email/welcome.html", username=username or to)
    send_email(
        to=to,
        subject="Welcome to Skinshop",
        html=html,
        text=f"Hi {username or to}, your Skinshop account is ready.",
    )
