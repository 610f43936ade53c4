from __future__ import annotations

from ..extensions import db
from skinshop.time_utils import to_utc_z


MIN_RATING = 1
MAX_RATING = 5


class Feedback(db.Model):
    """
    Customer review of a product: free-text content plus a 1-5 star rating.

    Staff can hide a review; hidden reviews are kept but never listed.
    """
    __tablename__ = "feedback"
    __table_args__ = (
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_feedback_rating_range"),
        db.Index("ix_feedback_product_visible", "product_id", "is_visible"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    content = db.Column(db.Text, nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    is_visible = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    account = db.relationship("Account")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "fromAccount": self.account_id,
            "username": self.account.username if self.account else None,
            "product": self.product_id,
            "content": self.content,
            "rating": self.rating,
            "is_visible": self.is_visible,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
