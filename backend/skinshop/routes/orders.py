# Overview: Flask API routes for order operations; parses input and returns JSON responses.

# backend/skinshop/routes/orders.py
"""
Order API Routes

DESIGN:
- Cart submission reserves stock and returns a VNPay redirect URL
- The gateway reports the outcome via the browser return URL and the IPN
- Paid orders can be canceled for a 50% refund with stock restored

SECURITY:
- Cart submission: authenticated customers, for their own account only
- Order reads and cancellation: the owning customer or staff (manager/admin)
- Gateway callbacks are unauthenticated but signature-checked
"""

from urllib.parse import urlencode

from flask import Blueprint, request, jsonify, g, current_app, redirect

from ..decorators import require_auth, require_role
from ..models.accounts import ROLE_CUSTOMER
from ..services import order_service
from ..services.order_service import (
    OrderError,
    CALLBACK_RESULT_PAID,
    parse_promotion_id,
)


orders_bp = Blueprint("orders", __name__, url_prefix="/api/order")


# VNPay IPN acknowledgement codes
IPN_RESPONSES = {
    "confirmed": ("00", "Confirm Success"),
    "order_not_found": ("01", "Order not found"),
    "already_confirmed": ("02", "Order already confirmed"),
    "order_not_pending": ("02", "Order already confirmed"),
    "amount_mismatch": ("04", "Invalid amount"),
    "invalid_signature": ("97", "Invalid signature"),
    "unknown": ("99", "Unknown error"),
}


def _order_error_response(e: OrderError):
    if e.status_code >= 500:
        current_app.logger.error("Order operation failed: %s %s", e, e.details)
    return jsonify({"error": str(e), "details": e.details}), e.status_code


# =============================================================================
# CART SUBMISSION
# =============================================================================

@orders_bp.post("/add-to-cart")
@require_auth
@require_role(ROLE_CUSTOMER)
def add_to_cart_route():
    """
    Submit a cart and create a VNPay payment URL.

    Request body:
    {
        "account": 12,
        "items": [{"product": 3, "quantity": 2}],
        "promotion": 5  (optional)
    }

    Returns:
        201: {"vnpayResponse": "<redirect url>", "orderId": 42}
        400: Empty/invalid cart or insufficient stock
        403: Account does not match the caller
        404: Product, account or promotion not found
        500: Server or payment gateway error
    """
    try:
        data = request.get_json(silent=True) or {}
        account = data.get("account")
        items = data.get("items")

        if not account or not items:
            return jsonify({"error": "An order must contain at least one product."}), 400

        if str(account) != str(g.current_account.id):
            return jsonify({"error": "Orders can only be placed for your own account"}), 403

        result = order_service.place_order(
            account_id=g.current_account.id,
            items=items,
            promotion_id=parse_promotion_id(data.get("promotion")),
            client_ip=request.remote_addr or "127.0.0.1",
        )

        return jsonify({
            "vnpayResponse": result.payment_url,
            "orderId": result.order.id,
        }), 201

    except OrderError as e:
        return _order_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ORDER QUERIES
# =============================================================================

@orders_bp.get("/account/<int:account_id>")
@require_auth
def list_account_orders_route(account_id: int):
    """
    List orders for an account, newest first.

    Customers may only list their own orders; staff may list anyone's.
    """
    try:
        current = g.current_account
        if not current.is_staff and current.id != account_id:
            return jsonify({"error": "Permission denied"}), 403

        orders = order_service.list_orders_for_account(account_id)
        return jsonify([order.to_dict() for order in orders]), 200

    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id, g.current_account)
        payload = order.to_dict()
        if order.refund is not None:
            payload["refund"] = order.refund.to_dict()
        return jsonify(payload), 200

    except OrderError as e:
        return _order_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# CANCELLATION
# =============================================================================

@orders_bp.post("/cancel-order/<int:order_id>")
@require_auth
def cancel_order_route(order_id: int):
    """
    Cancel a Paid order and refund 50% of its total.

    Returns:
        200: {"message": "...", "refundAmount": 150}
        400: Order is not Paid
        403: Caller is neither the owner nor staff
        404: Order not found
        500: Server error
    """
    try:
        result = order_service.cancel_order(order_id, g.current_account)
        return jsonify({
            "message": result.message,
            "refundAmount": result.refund_amount,
        }), 200

    except OrderError as e:
        return _order_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# GATEWAY CALLBACKS
# =============================================================================

def _redirect_target(base: str, order_id) -> str:
    if order_id in (None, ""):
        return base
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}{urlencode({'orderId': order_id})}"


@orders_bp.get("/vnpay-return")
def vnpay_return_route():
    """
    Browser return from VNPay.

    Query params (subset): vnp_ResponseCode, vnp_TxnRef (= order id),
    vnp_Amount, vnp_TransactionNo, vnp_SecureHash.

    Redirects to the success page when the order is Paid, otherwise to the
    failure page.
    """
    config = current_app.config
    order_ref = request.args.get("vnp_TxnRef")

    try:
        outcome = order_service.handle_payment_callback(request.args.to_dict())
    except Exception:
        current_app.logger.exception("Failed to process payment return for order %s", order_ref)
        return redirect(_redirect_target(config["PAYMENT_FAILURE_REDIRECT"], order_ref))

    if outcome.result == CALLBACK_RESULT_PAID:
        return redirect(_redirect_target(config["PAYMENT_SUCCESS_REDIRECT"], order_ref))
    return redirect(_redirect_target(config["PAYMENT_FAILURE_REDIRECT"], order_ref))


@orders_bp.get("/vnpay-ipn")
def vnpay_ipn_route():
    """
    Server-to-server payment notification from VNPay.

    Always answers 200 with {"RspCode", "Message"}; the gateway retries
    until it receives a code it accepts.
    """
    try:
        outcome = order_service.handle_payment_callback(request.args.to_dict())
    except Exception:
        current_app.logger.exception("Failed to process payment IPN")
        code, message = IPN_RESPONSES["unknown"]
        return jsonify({"RspCode": code, "Message": message}), 200

    key = outcome.reason if outcome.reason in IPN_RESPONSES else "confirmed"
    code, message = IPN_RESPONSES[key]
    return jsonify({"RspCode": code, "Message": message}), 200
