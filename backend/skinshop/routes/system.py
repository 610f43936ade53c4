# backend/skinshop/routes/system.py
"""
System health endpoint.

Checks the database and reports whether the payment gateway and mail
credentials are configured.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Order
from ..models.orders import ORDER_STATUS_PENDING
from ..services.payment_gateway import get_gateway
from skinshop.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        pending_orders = db.session.query(Order).filter_by(status=ORDER_STATUS_PENDING).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "pending_orders": pending_orders,
            }
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_integrations() -> dict:
    config = current_app.config
    gateway_ready = get_gateway().config.is_configured
    mail_ready = bool(config.get("MAIL_SUPPRESS_SEND") or config.get("MAIL_USERNAME"))

    return {
        "status": "healthy" if gateway_ready and mail_ready else "degraded",
        "details": {
            "payment_gateway_configured": gateway_ready,
            "mail_configured": mail_ready,
        }
    }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (integrations missing credentials)
    - 503: database unreachable
    """
    database_health = check_database_health()
    integrations = check_integrations()

    if database_health["status"] == "unhealthy":
        overall_status, http_status = "unhealthy", 503
    elif integrations["status"] == "degraded":
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "database": database_health,
            "integrations": integrations,
        }
    }, http_status
