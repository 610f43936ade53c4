from __future__ import annotations

from ..extensions import db
from skinshop.time_utils import to_utc_z


ORDER_STATUS_PENDING = "Pending"
ORDER_STATUS_PAID = "Paid"
ORDER_STATUS_CANCELED = "Canceled"

ORDER_STATUSES = (ORDER_STATUS_PENDING, ORDER_STATUS_PAID, ORDER_STATUS_CANCELED)


class Order(db.Model):
    """
    Customer order created at cart submission.

    LIFECYCLE:
    Pending --(gateway success)--> Paid --(authorized cancellation)--> Canceled

    The order owns its line items and total_amount; both are snapshots taken
    at placement and never recomputed.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('Pending', 'Paid', 'Canceled')",
            name="ck_orders_status",
        ),
        db.Index("ix_orders_account_created", "account_id", "created_at"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    promotion_id = db.Column(db.Integer, db.ForeignKey("promotions.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING)
    total_amount = db.Column(db.Integer, nullable=False)

    # Gateway confirmation details (set when the order becomes Paid)
    gateway_transaction_no = db.Column(db.String(64), nullable=True)
    gateway_response_code = db.Column(db.String(8), nullable=True)
    gateway_bank_code = db.Column(db.String(32), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    canceled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    account = db.relationship("Account", backref=db.backref("orders", lazy=True))
    promotion = db.relationship("Promotion")
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "_id": self.id,
            "account": self.account_id,
            "status": self.status,
            "items": [item.to_dict() for item in self.items],
            "promotion": self.promotion_id,
            "totalAmount": self.total_amount,
            "paidAt": to_utc_z(self.paid_at) if self.paid_at else None,
            "canceledAt": to_utc_z(self.canceled_at) if self.canceled_at else None,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Line item of an order: product reference plus the quantity reserved."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    # Price locked in at placement
    unit_price = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    @property
    def line_total(self) -> int:
        return self.quantity * self.unit_price

    def to_dict(self) -> dict:
        return {
            "product": self.product_id,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
        }


class OrderRefund(db.Model):
    """
    Refund issued when a paid order is canceled.

    Written in the same transaction as the status change and stock restoration.
    """
    __tablename__ = "order_refunds"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, unique=True, index=True)
    amount = db.Column(db.Integer, nullable=False)
    ratio_bps = db.Column(db.Integer, nullable=False)
    requested_by_account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("refund", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "amount": self.amount,
            "ratio_bps": self.ratio_bps,
            "requested_by_account_id": self.requested_by_account_id,
            "created_at": to_utc_z(self.created_at),
        }
