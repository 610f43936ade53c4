# Overview: Flask API routes for product feedback.

# backend/skinshop/routes/feedback.py
"""
Feedback routes.

SECURITY:
- Reading feedback is public
- Posting requires a logged-in account; the author is always the caller
- Hiding feedback requires a manager or admin account
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..models.accounts import STAFF_ROLES
from ..services import feedback_service
from ..services.feedback_service import FeedbackError


feedback_bp = Blueprint("feedback", __name__, url_prefix="/api/feedback")


@feedback_bp.get("")
def list_feedback_route():
    """
    Query params:
    - product_id: int (optional) - only feedback for this product
    """
    items = feedback_service.list_feedback(product_id=request.args.get("product_id", type=int))
    return jsonify({"feedback": [f.to_dict() for f in items]}), 200


@feedback_bp.post("")
@require_auth
def create_feedback_route():
    """Request body: {"product", "content", "rating"}"""
    try:
        data = request.get_json(silent=True) or {}
        feedback = feedback_service.create_feedback(
            account_id=g.current_account.id,
            product_id=data.get("product"),
            content=data.get("content"),
            rating=data.get("rating"),
        )
        return jsonify({"feedback": feedback.to_dict(), "message": "Feedback created successfully"}), 201

    except FeedbackError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create feedback")
        return jsonify({"error": "Internal server error"}), 500


@feedback_bp.delete("/<int:feedback_id>")
@require_auth
@require_role(*STAFF_ROLES)
def hide_feedback_route(feedback_id: int):
    if not feedback_service.hide_feedback(feedback_id):
        return jsonify({"error": "Feedback not found"}), 404
    return jsonify({"message": "Feedback hidden"}), 200
