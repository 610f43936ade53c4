# Overview: Flask API routes for promotions.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..models import Promotion
from ..models.accounts import STAFF_ROLES
from ..services import promotion_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_promotion,
    ValidationError,
    ConflictError,
)

PROMOTION_POLICY = ModelValidationPolicy(
    writable_fields={"code", "discount", "expires_at", "is_active"},
    required_on_create={"code", "discount", "expires_at"},
)

promotions_bp = Blueprint("promotions", __name__, url_prefix="/api/promotions")


@promotions_bp.get("")
def list_promotions_route():
    promotions = promotion_service.list_active_promotions()
    return jsonify({"items": [p.to_dict() for p in promotions]}), 200


@promotions_bp.post("")
@require_auth
@require_role(*STAFF_ROLES)
def create_promotion_route():
    """
    Create a promotion.

    Request body: {"code": "GLOW10", "discount": 10, "expires_at": "2026-12-31T00:00:00Z"}
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Promotion, payload=payload, policy=PROMOTION_POLICY, partial=False)
        enforce_rules_promotion(patch)
        promotion = promotion_service.create_promotion(
            patch=patch,
            created_by_account_id=g.current_account.id,
        )
        return jsonify(promotion.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create promotion")
        return jsonify({"error": "Internal server error"}), 500
