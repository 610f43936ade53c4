# Overview: Flask API routes for skincare routines.

# backend/skinshop/routes/routines.py
"""
Routine routes.

SECURITY:
- Reads are public
- Writes require a manager or admin account
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..models.accounts import STAFF_ROLES
from ..services import routine_service
from ..services.routine_service import RoutineError


routines_bp = Blueprint("routines", __name__, url_prefix="/api/routines")


@routines_bp.get("")
def list_routines_route():
    routines = routine_service.list_routines()
    return jsonify({"routines": [r.to_dict() for r in routines]}), 200


@routines_bp.get("/skin/<int:skin_id>")
def list_routines_for_skin_route(skin_id: int):
    routines = routine_service.list_routines(skin_id=skin_id)
    return jsonify({"routines": [r.to_dict() for r in routines]}), 200


@routines_bp.post("")
@require_auth
@require_role(*STAFF_ROLES)
def create_routine_route():
    """Request body: {"skin", "name", "steps": [{"order", "description"}]}"""
    try:
        data = request.get_json(silent=True) or {}
        routine = routine_service.create_routine(
            skin_id=data.get("skin"),
            name=data.get("name"),
            steps=data.get("steps"),
        )
        return jsonify({"routine": routine.to_dict()}), 201
    except RoutineError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create routine")
        return jsonify({"error": "Internal server error"}), 500


@routines_bp.put("/<int:routine_id>")
@require_auth
@require_role(*STAFF_ROLES)
def update_routine_route(routine_id: int):
    """Request body: any of {"name", "steps"}; steps replace the existing list."""
    try:
        data = request.get_json(silent=True) or {}
        routine = routine_service.update_routine(
            routine_id,
            name=data.get("name"),
            steps=data.get("steps"),
        )
        return jsonify({"routine": routine.to_dict()}), 200
    except RoutineError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update routine %s", routine_id)
        return jsonify({"error": "Internal server error"}), 500


@routines_bp.delete("/<int:routine_id>")
@require_auth
@require_role(*STAFF_ROLES)
def delete_routine_route(routine_id: int):
    if not routine_service.delete_routine(routine_id):
        return jsonify({"error": "Routine not found"}), 404
    return jsonify({"message": "Routine deleted"}), 200
