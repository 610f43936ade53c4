# Overview: Order workflow; cart submission, payment confirmation, cancellation with refund.

"""
Order Workflow Service

WHY: Orders are the only place where stock, money and an external payment
processor meet. Every mutation here is one database transaction so a caller
never observes half of a reservation or half of a cancellation.

LIFECYCLE:
    Pending --(gateway success)--> Paid --(authorized cancellation)--> Canceled
    Pending --(gateway failure)--> Pending   (stock stays reserved)

There is no Pending -> Canceled edge and nothing leaves Canceled.

DESIGN PRINCIPLES:
- Check before mutate: every product is loaded and validated before any stock moves
- Conditional decrement: stock only moves when quantity >= requested at UPDATE time
- One transaction per operation: reservation + order + payment URL commit together,
  status change + stock restoration + refund record commit together
- Idempotent confirmation: only a Pending order can become Paid; repeats are no-ops
- Notifications go out after commit and can never fail the operation
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import Account, Order, OrderItem, OrderRefund, Product, Promotion
from ..models.orders import (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_PAID,
    ORDER_STATUS_CANCELED,
)
from skinshop.time_utils import utcnow
from .catalog_service import get_product, reserve_stock, restore_stock
from .concurrency import lock_for_update, run_with_retry
from .payment_gateway import GatewayError, PaymentRequest, RESPONSE_CODE_SUCCESS, get_gateway
from . import notification_service


# =============================================================================
# ERRORS
# =============================================================================

class OrderError(Exception):
    """Base class for order workflow errors; carries its HTTP mapping."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrderValidationError(OrderError):
    """Missing or malformed request fields (empty cart, bad quantity)."""
    status_code = 400


class OrderNotFoundError(OrderError):
    """Referenced order, product, account or promotion does not exist."""
    status_code = 404


class OrderPermissionError(OrderError):
    """Caller may not act on this order."""
    status_code = 403


class InsufficientStockError(OrderError):
    """Requested quantity exceeds the product's available stock."""
    status_code = 400


class InvalidOrderStateError(OrderError):
    """Operation not allowed from the order's current status."""
    status_code = 400


class PaymentGatewayError(OrderError):
    """Payment URL could not be produced; nothing was reserved."""
    status_code = 500


# =============================================================================
# CONSTANTS
# =============================================================================

# Flat 50% refund on cancellation, in basis points
REFUND_RATIO_BPS = 5000

CALLBACK_RESULT_PAID = "Paid"
CALLBACK_RESULT_FAILED = "Failed"

CANCEL_MESSAGE = (
    "Order has been canceled and 50% refund issued. "
    "Product quantities have been updated in the inventory."
)

# Allowed status edges; anything else is an InvalidOrderStateError
ALLOWED_TRANSITIONS = {
    ORDER_STATUS_PENDING: {ORDER_STATUS_PAID},
    ORDER_STATUS_PAID: {ORDER_STATUS_CANCELED},
    ORDER_STATUS_CANCELED: set(),
}


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class PlacementResult:
    order: Order
    payment_url: str


@dataclass(frozen=True)
class CallbackOutcome:
    result: str
    order: Order | None
    transitioned: bool
    reason: str | None = None


@dataclass(frozen=True)
class CancellationResult:
    order: Order
    refund_amount: int
    message: str = CANCEL_MESSAGE


# =============================================================================
# INPUT PARSING
# =============================================================================

def _parse_positive_int(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed >= 1 else None
    return None


def parse_cart_items(raw_items) -> list[CartLine]:
    """
    Validate the submitted cart.

    Each entry must be {"product": <id>, "quantity": <int >= 1>}.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise OrderValidationError("An order must contain at least one product.")

    lines = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise OrderValidationError(f"items[{index}] must be an object")

        product_id = _parse_positive_int(raw.get("product"))
        if product_id is None:
            raise OrderValidationError(f"items[{index}].product must be a product id")

        quantity = _parse_positive_int(raw.get("quantity"))
        if quantity is None:
            raise OrderValidationError(
                f"items[{index}].quantity must be an integer >= 1",
                details={"index": index, "quantity": raw.get("quantity")},
            )

        lines.append(CartLine(product_id=product_id, quantity=quantity))
    return lines


def parse_promotion_id(raw) -> int | None:
    # Clients send "None" / "" when no promotion is attached
    if raw is None or raw == "" or raw == "None":
        return None
    promotion_id = _parse_positive_int(raw)
    if promotion_id is None:
        raise OrderValidationError("promotion must be a promotion id")
    return promotion_id


def compute_refund_amount(total_amount: int) -> int:
    """Refund for a canceled order: 50% of the total, half-up to a whole unit."""
    return (total_amount * REFUND_RATIO_BPS + 5000) // 10000


def _transition(order: Order, new_status: str) -> None:
    if new_status not in ALLOWED_TRANSITIONS.get(order.status, set()):
        raise InvalidOrderStateError(
            f"Order {order.id} cannot move from {order.status} to {new_status}.",
            details={"status": order.status, "requested": new_status},
        )
    order.status = new_status


# =============================================================================
# ORDER PLACEMENT
# =============================================================================

def _resolve_promotion(promotion_id: int | None, now: datetime) -> Promotion | None:
    if promotion_id is None:
        return None
    promotion = db.session.get(Promotion, promotion_id)
    if promotion is None:
        raise OrderNotFoundError(f"Promotion with ID {promotion_id} not found.")
    if not promotion.is_active or promotion.expires_at <= now:
        raise OrderValidationError(
            "Promotion is no longer valid.",
            details={"promotion": promotion_id},
        )
    return promotion


def _insufficient(product: Product | None, product_id: int, requested: int) -> InsufficientStockError:
    available = product.quantity if product is not None else 0
    name = product.name if product is not None else f"product {product_id}"
    return InsufficientStockError(
        f"Not enough stock for {name}. Available: {available}, Requested: {requested}",
        details={
            "product": product_id,
            "product_name": name,
            "available": available,
            "requested": requested,
        },
    )


def place_order(
    *,
    account_id: int,
    items,
    promotion_id: int | None = None,
    client_ip: str = "127.0.0.1",
) -> PlacementResult:
    """
    Submit a cart: reserve stock, create a Pending order, issue a payment URL.

    All-or-nothing: if any product is missing or short, or the gateway cannot
    produce a URL, no stock moves and no order exists afterwards.

    Raises:
        OrderValidationError: Empty or malformed cart, zero total, invalid promotion
        OrderNotFoundError: Account, product or promotion not found
        InsufficientStockError: A product cannot cover the requested quantity
        PaymentGatewayError: Payment URL could not be built
    """
    lines = parse_cart_items(items)
    gateway = get_gateway()

    # Duplicate product lines reserve against the same stock
    requested: dict[int, int] = {}
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    def _op() -> PlacementResult:
        now = utcnow()

        account = db.session.get(Account, account_id)
        if account is None or not account.is_active:
            raise OrderNotFoundError(f"Account with ID {account_id} not found.")

        promotion = _resolve_promotion(promotion_id, now)

        # 1. Every product must exist
        products: dict[int, Product] = {}
        for product_id in requested:
            product = get_product(product_id)
            if product is None:
                raise OrderNotFoundError(
                    f"Product with ID {product_id} not found.",
                    details={"product": product_id},
                )
            products[product_id] = product

        # 2. Every product must cover its quantity, before anything is mutated
        for product_id, quantity in requested.items():
            if products[product_id].quantity < quantity:
                raise _insufficient(products[product_id], product_id, quantity)

        # Price locked in at submission
        unit_prices = {product_id: product.price for product_id, product in products.items()}
        total_amount = sum(line.quantity * unit_prices[line.product_id] for line in lines)
        if total_amount <= 0:
            raise OrderValidationError(
                "Order total must be greater than zero.",
                details={"totalAmount": total_amount},
            )

        # 3. Conditional decrements; a concurrent buyer may have won the race
        for product_id, quantity in requested.items():
            if not reserve_stock(product_id, quantity):
                db.session.rollback()
                raise _insufficient(get_product(product_id), product_id, quantity)

        # 4-5. Pending order with the submitted lines
        order = Order(
            account_id=account.id,
            promotion_id=promotion.id if promotion else None,
            status=ORDER_STATUS_PENDING,
            total_amount=total_amount,
        )
        for line in lines:
            order.items.append(
                OrderItem(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=unit_prices[line.product_id],
                )
            )
        db.session.add(order)
        db.session.flush()  # order.id is the gateway reference

        # 6. Payment URL inside the same transaction: failure rolls back the reservation
        payment_request = PaymentRequest(
            reference=str(order.id),
            amount=total_amount,
            client_ip=client_ip,
            created_at=now,
            expires_at=now + timedelta(hours=gateway.config.expire_hours),
            order_info=f"Payment for order {order.id}",
        )
        try:
            payment_url = gateway.build_payment_url(payment_request)
        except GatewayError as exc:
            raise PaymentGatewayError(
                "Payment gateway unavailable; order was not placed.",
                details={"reason": str(exc)},
            ) from exc

        db.session.commit()
        return PlacementResult(order=order, payment_url=payment_url)

    result = run_with_retry(_op)
    current_app.logger.info(
        "Order %s placed for account %s (total=%s, lines=%s)",
        result.order.id, account_id, result.order.total_amount, len(lines),
    )
    return result


# =============================================================================
# PAYMENT CONFIRMATION
# =============================================================================

def _parse_reference(reference) -> int | None:
    if reference is None:
        return None
    return _parse_positive_int(str(reference))


def confirm_payment(
    reference,
    response_code: str | None,
    *,
    amount: int | None = None,
    transaction_no: str | None = None,
    bank_code: str | None = None,
    paid_at: datetime | None = None,
) -> CallbackOutcome:
    """
    Apply a gateway payment outcome to an order.

    Idempotent: only a Pending order transitions to Paid. A repeat success
    callback, or one for a Canceled order, changes nothing and does not raise.
    A failure code leaves the order Pending with its stock still reserved.
    """
    order_id = _parse_reference(reference)
    if order_id is None:
        return CallbackOutcome(CALLBACK_RESULT_FAILED, None, False, "order_not_found")

    def _op() -> CallbackOutcome:
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            return CallbackOutcome(CALLBACK_RESULT_FAILED, None, False, "order_not_found")

        if amount is not None and amount != order.total_amount:
            return CallbackOutcome(CALLBACK_RESULT_FAILED, order, False, "amount_mismatch")

        if order.status == ORDER_STATUS_PAID:
            return CallbackOutcome(CALLBACK_RESULT_PAID, order, False, "already_confirmed")

        if order.status != ORDER_STATUS_PENDING:
            return CallbackOutcome(CALLBACK_RESULT_FAILED, order, False, "order_not_pending")

        if response_code != RESPONSE_CODE_SUCCESS:
            order.gateway_response_code = response_code
            db.session.commit()
            return CallbackOutcome(CALLBACK_RESULT_FAILED, order, False, "payment_failed")

        _transition(order, ORDER_STATUS_PAID)
        # Gateway-reported pay time when available, else our clock
        order.paid_at = paid_at or utcnow()
        order.gateway_response_code = response_code
        order.gateway_transaction_no = transaction_no
        order.gateway_bank_code = bank_code
        db.session.commit()
        return CallbackOutcome(CALLBACK_RESULT_PAID, order, True)

    outcome = run_with_retry(_op)
    if outcome.transitioned:
        current_app.logger.info("Order %s marked Paid (txn=%s)", order_id, transaction_no)
    elif outcome.reason not in (None, "already_confirmed"):
        current_app.logger.warning(
            "Payment callback for order %s not applied: %s (code=%s)",
            order_id, outcome.reason, response_code,
        )
    return outcome


def handle_payment_callback(params) -> CallbackOutcome:
    """
    Verify a gateway callback's signature and apply it.

    An invalid signature never touches the order.
    """
    gateway = get_gateway()
    callback = gateway.parse_callback(params)

    if not callback.valid_signature:
        current_app.logger.warning("Rejected payment callback with invalid signature (ref=%s)", callback.reference)
        return CallbackOutcome(CALLBACK_RESULT_FAILED, None, False, "invalid_signature")

    response_code = callback.response_code
    if response_code == RESPONSE_CODE_SUCCESS and not callback.is_success:
        response_code = callback.transaction_status

    return confirm_payment(
        callback.reference,
        response_code,
        amount=callback.amount,
        transaction_no=callback.transaction_no,
        bank_code=callback.bank_code,
        paid_at=callback.pay_date,
    )


# =============================================================================
# CANCELLATION & REFUND
# =============================================================================

def can_manage_order(account: Account, order: Order) -> bool:
    return account.is_staff or account.id == order.account_id


def cancel_order(order_id: int, requester: Account) -> CancellationResult:
    """
    Cancel a Paid order: restore stock, record a 50% refund, notify the owner.

    Status change, stock restoration and refund record commit together; a
    concurrent second cancellation loses on the version check and then sees
    the order as Canceled.

    Raises:
        OrderNotFoundError: Order does not exist
        OrderPermissionError: Requester is neither the owner nor staff
        InvalidOrderStateError: Order is not Paid (includes already Canceled)
    """
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            raise OrderNotFoundError(f"Order with ID {order_id} not found.")

        if not can_manage_order(requester, order):
            raise OrderPermissionError("You are not allowed to cancel this order.")

        if order.status != ORDER_STATUS_PAID:
            raise InvalidOrderStateError(
                "Only paid orders can be canceled.",
                details={"status": order.status},
            )

        items = list(order.items)
        refund_amount = compute_refund_amount(order.total_amount)

        # Status first: the version check fails fast for a concurrent cancel
        _transition(order, ORDER_STATUS_CANCELED)
        order.canceled_at = utcnow()
        db.session.flush()

        for item in items:
            if not restore_stock(item.product_id, item.quantity):
                raise RuntimeError(
                    f"Product {item.product_id} missing while restoring stock for order {order.id}"
                )

        db.session.add(OrderRefund(
            order_id=order.id,
            amount=refund_amount,
            ratio_bps=REFUND_RATIO_BPS,
            requested_by_account_id=requester.id,
        ))

        notification = {
            "to": order.account.email,
            "order_id": order.id,
            "refund_amount": refund_amount,
            "items": [
                {
                    "product_name": item.product.name if item.product else "Unknown Product",
                    "quantity": item.quantity,
                    "price": item.unit_price,
                    "total": item.line_total,
                }
                for item in items
            ],
        }

        db.session.commit()
        return CancellationResult(order=order, refund_amount=refund_amount), notification

    result, notification = run_with_retry(_op)
    current_app.logger.info(
        "Order %s canceled by account %s (refund=%s)",
        order_id, requester.id, result.refund_amount,
    )

    notification_service.dispatch(notification_service.send_refund_confirmation, **notification)
    return result


# =============================================================================
# QUERIES
# =============================================================================

def list_orders_for_account(account_id: int) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.account_id == account_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def get_order(order_id: int, requester: Account) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError(f"Order with ID {order_id} not found.")
    if not can_manage_order(requester, order):
        raise OrderPermissionError("You are not allowed to view this order.")
    return order


def list_stale_pending_orders(older_than: timedelta) -> list[Order]:
    """Pending orders created before now - older_than (reporting only)."""
    cutoff = utcnow() - older_than
    return (
        db.session.query(Order)
        .filter(Order.status == ORDER_STATUS_PENDING, Order.created_at < cutoff)
        .order_by(Order.created_at.asc())
        .all()
    )
