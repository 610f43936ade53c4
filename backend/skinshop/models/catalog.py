from __future__ import annotations

from ..extensions import db
from skinshop.time_utils import to_utc_z


class _TaxonomyMixin:
    """Shared shape of the small lookup tables products point at."""

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Category(_TaxonomyMixin, db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}


class Brand(_TaxonomyMixin, db.Model):
    __tablename__ = "brands"
    __table_args__ = {"sqlite_autoincrement": True}


class Skin(_TaxonomyMixin, db.Model):
    """Skin type a product is suitable for (oily, dry, combination, ...)."""
    __tablename__ = "skins"
    __table_args__ = {"sqlite_autoincrement": True}


class Product(db.Model):
    """
    Sellable product with a mutable stock count.

    STOCK INVARIANT:
    - quantity is never negative (CHECK constraint + conditional updates)
    - only the order workflow mutates quantity after creation:
      reservation at cart submission, restoration at cancellation

    Price is a whole number of VND (no minor unit).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_deleted_name", "is_deleted", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image = db.Column(db.String(512), nullable=True)

    price = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=True, index=True)
    skin_id = db.Column(db.Integer, db.ForeignKey("skins.id"), nullable=True, index=True)
    created_by_account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category")
    brand = db.relationship("Brand")
    skin = db.relationship("Skin")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "image": self.image,
            "price": self.price,
            "quantity": self.quantity,
            "category_id": self.category_id,
            "brand_id": self.brand_id,
            "skin_id": self.skin_id,
            "is_deleted": self.is_deleted,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
