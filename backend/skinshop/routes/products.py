# Overview: Flask API routes for products and catalog taxonomy.

# backend/skinshop/routes/products.py
"""
Catalog routes.

SECURITY:
- Reads are public
- Writes require a manager or admin account
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_role
from ..models import Product
from ..models.accounts import STAFF_ROLES
from ..services import catalog_service
from ..services.catalog_service import CatalogError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "image", "price", "quantity",
        "category_id", "brand_id", "skin_id",
    },
    required_on_create={"name", "price", "quantity"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@products_bp.get("")
def list_products():
    """
    List products that are not soft-deleted.

    Query params:
    - category_id, brand_id, skin_id: int (optional) filters
    - q: str (optional) - name/description search
    - page, per_page: int (optional) - pagination (per_page default 20, max 100)
    """
    return catalog_service.list_products(
        category_id=request.args.get("category_id", type=int),
        brand_id=request.args.get("brand_id", type=int),
        skin_id=request.args.get("skin_id", type=int),
        search=request.args.get("q"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    product = catalog_service.get_product(product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return product.to_dict()


@products_bp.post("")
@require_auth
@require_role(*STAFF_ROLES)
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = catalog_service.create_product(patch=patch, created_by_account_id=g.current_account.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except CatalogError as e:
        return {"error": str(e)}, e.status_code

    return product.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(*STAFF_ROLES)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        product = catalog_service.update_product(product_id=product_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except CatalogError as e:
        return {"error": str(e)}, e.status_code

    return product.to_dict()


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(*STAFF_ROLES)
def delete_product_route(product_id: int):
    """Soft-delete a product; existing orders keep referencing it."""
    if not catalog_service.delete_product(product_id=product_id):
        return {"error": "Product not found"}, 404
    return {"message": "Product deleted"}


@catalog_bp.get("/<kind>")
def list_taxonomy_route(kind: str):
    """kind: categories | brands | skins"""
    try:
        return {"items": catalog_service.list_taxonomy(kind)}
    except CatalogError as e:
        return {"error": str(e)}, e.status_code


@catalog_bp.post("/<kind>")
@require_auth
@require_role(*STAFF_ROLES)
def create_taxonomy_route(kind: str):
    data = request.get_json(silent=True) or {}
    try:
        row = catalog_service.create_taxonomy(
            kind,
            name=data.get("name"),
            description=data.get("description"),
        )
        return row.to_dict(), 201
    except CatalogError as e:
        return {"error": str(e)}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to create %s entry", kind)
        return {"error": "Internal server error"}, 500
