# Overview: Service-layer operations for the product catalog and stock counts.

"""
Catalog Service

Products, their taxonomy (categories, brands, skin types) and the two stock
primitives the order workflow builds on.

STOCK PRIMITIVES:
- reserve_stock / restore_stock issue a single conditional UPDATE each.
- They never commit: the caller owns the transaction, so a multi-item cart
  either reserves every line or rolls every line back.
- Loaded Product instances are not synchronized; the caller's commit or
  rollback expires them.
"""

from __future__ import annotations

from sqlalchemy import or_, update

from ..extensions import db
from ..models import Product, Category, Brand, Skin


class CatalogError(Exception):
    """Raised for catalog operation errors."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


TAXONOMY_MODELS = {
    "categories": Category,
    "brands": Brand,
    "skins": Skin,
}

_REFERENCE_FIELDS = {
    "category_id": Category,
    "brand_id": Brand,
    "skin_id": Skin,
}

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "image", "price", "quantity",
    "category_id", "brand_id", "skin_id",
}


# =============================================================================
# STOCK PRIMITIVES
# =============================================================================

def reserve_stock(product_id: int, quantity: int) -> bool:
    """
    Decrement stock by `quantity` only if at least that much is available.

    Returns False (and changes nothing) when the product is missing,
    soft-deleted, or short on stock at the moment of the UPDATE.
    """
    if quantity < 1:
        raise ValueError("quantity must be >= 1")

    stmt = (
        update(Product)
        .where(
            Product.id == product_id,
            Product.is_deleted.is_(False),
            Product.quantity >= quantity,
        )
        .values(quantity=Product.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount == 1


def restore_stock(product_id: int, quantity: int) -> bool:
    """
    Return previously reserved units to stock.

    Soft-deleted products still get their units back; the row is what
    the reservation was taken from.
    """
    if quantity < 1:
        raise ValueError("quantity must be >= 1")

    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(quantity=Product.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount == 1


# =============================================================================
# PRODUCTS
# =============================================================================

def get_product(product_id: int, *, include_deleted: bool = False) -> Product | None:
    query = db.session.query(Product).filter(Product.id == product_id)
    if not include_deleted:
        query = query.filter(Product.is_deleted.is_(False))
    return query.first()


def list_products(
    *,
    category_id: int | None = None,
    brand_id: int | None = None,
    skin_id: int | None = None,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Public product listing; soft-deleted products are never returned.

    If page is None, returns all items; otherwise paginates
    (per_page default 20, max 100).
    """
    base_query = db.session.query(Product).filter(Product.is_deleted.is_(False))

    if category_id is not None:
        base_query = base_query.filter(Product.category_id == category_id)
    if brand_id is not None:
        base_query = base_query.filter(Product.brand_id == brand_id)
    if skin_id is not None:
        base_query = base_query.filter(Product.skin_id == skin_id)
    if search:
        pattern = f"%{search.strip()}%"
        base_query = base_query.filter(
            or_(Product.name.ilike(pattern), Product.description.ilike(pattern))
        )

    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def _check_references(patch: dict) -> None:
    for field, model in _REFERENCE_FIELDS.items():
        ref_id = patch.get(field)
        if ref_id is None:
            continue
        if db.session.get(model, ref_id) is None:
            raise CatalogError(f"{field} {ref_id} does not exist", status_code=404)


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def create_product(*, patch: dict, created_by_account_id: int | None = None) -> Product:
    _check_references(patch)

    p = Product(created_by_account_id=created_by_account_id)
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    p = get_product(product_id)
    if p is None:
        raise CatalogError("Product not found", status_code=404)

    _check_references(patch)
    apply_product_patch(p, patch)

    db.session.commit()
    return p


def delete_product(*, product_id: int) -> bool:
    """
    Soft-delete a product.

    Order history keeps pointing at the row, so it is flagged rather than removed.
    Returns True if deleted, False if not found.
    """
    p = get_product(product_id)
    if p is None:
        return False

    p.is_deleted = True
    db.session.commit()
    return True


# =============================================================================
# TAXONOMY
# =============================================================================

def _taxonomy_model(kind: str):
    model = TAXONOMY_MODELS.get(kind)
    if model is None:
        raise CatalogError(f"Unknown catalog kind: {kind}", status_code=404)
    return model


def list_taxonomy(kind: str) -> list[dict]:
    model = _taxonomy_model(kind)
    rows = db.session.query(model).order_by(model.name.asc()).all()
    return [row.to_dict() for row in rows]


def create_taxonomy(kind: str, *, name: str, description: str | None = None):
    model = _taxonomy_model(kind)

    name = (name or "").strip()
    if not name:
        raise CatalogError("name is required")

    if db.session.query(model).filter(model.name == name).first():
        raise CatalogError(f"{name} already exists", status_code=409)

    row = model(name=name, description=description)
    db.session.add(row)
    db.session.commit()
    return row
