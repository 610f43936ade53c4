from __future__ import annotations

from ..extensions import db
from skinshop.time_utils import to_utc_z


class Promotion(db.Model):
    """
    Promotion code a customer may attach to an order.

    discount is a whole percentage (0-100).
    """
    __tablename__ = "promotions"
    __table_args__ = (
        db.CheckConstraint("discount >= 0 AND discount <= 100", name="ck_promotions_discount_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    discount = db.Column(db.Integer, nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_by_account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "discount": self.discount,
            "expires_at": to_utc_z(self.expires_at),
            "is_active": self.is_active,
            "created_by_account_id": self.created_by_account_id,
            "created_at": to_utc_z(self.created_at),
        }
