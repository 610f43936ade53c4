# Overview: Flask API routes for staff management of customer and manager accounts.

# backend/skinshop/routes/accounts.py
"""
Account management routes.

SECURITY:
- /api/customers requires a manager or admin account
- /api/managers requires an admin account
- Accounts are deactivated, never deleted
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..models.accounts import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_MANAGER, STAFF_ROLES
from ..services import account_service, auth_service
from ..services.account_service import AccountError
from ..services.auth_service import PasswordValidationError
from ..validation import ValidationError, ConflictError


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")
managers_bp = Blueprint("managers", __name__, url_prefix="/api/managers")


def _register_account_routes(bp: Blueprint, *, role: str, allowed_roles: tuple[str, ...]) -> None:
    """Attach list/get/create/update/deactivate/reactivate views for one account role."""
    label = role.capitalize()

    @bp.get("")
    @require_auth
    @require_role(*allowed_roles)
    def list_accounts_route():
        """
        Query params:
        - include_inactive: bool (default false)
        """
        include_inactive = request.args.get("include_inactive", "false").lower() == "true"
        accounts = account_service.list_accounts(role, include_inactive=include_inactive)
        return jsonify({"accounts": [a.to_dict() for a in accounts], "count": len(accounts)}), 200

    @bp.get("/<int:account_id>")
    @require_auth
    @require_role(*allowed_roles)
    def get_account_route(account_id: int):
        try:
            account = account_service.get_account(account_id, role)
        except AccountError as e:
            return jsonify({"error": str(e)}), e.status_code
        return jsonify({"account": account.to_dict()}), 200

    @bp.post("")
    @require_auth
    @require_role(*allowed_roles)
    def create_account_route():
        """Request body: {"email", "password", "username"?, "phone"?}"""
        try:
            data = request.get_json(silent=True) or {}
            if not all([data.get("email"), data.get("password")]):
                return jsonify({"error": "email and password required"}), 400

            account = auth_service.create_account(
                data["email"],
                data["password"],
                username=data.get("username"),
                phone=data.get("phone"),
                role=role,
            )
            current_app.logger.info(
                "%s %s created by account %s", label, account.id, g.current_account.id
            )
            return jsonify({"account": account.to_dict()}), 201

        except (ValidationError, PasswordValidationError) as e:
            return jsonify({"error": str(e)}), 400
        except ConflictError as e:
            return jsonify({"error": str(e)}), 409
        except Exception:
            current_app.logger.exception("Failed to create %s account", role)
            return jsonify({"error": "Internal server error"}), 500

    @bp.patch("/<int:account_id>")
    @require_auth
    @require_role(*allowed_roles)
    def update_account_route(account_id: int):
        """Request body: any of {"email", "username", "phone", "password"}"""
        try:
            data = request.get_json(silent=True) or {}
            account = account_service.update_account(account_id, role, data)
            return jsonify({"account": account.to_dict(), "message": f"{label} updated successfully"}), 200

        except AccountError as e:
            return jsonify({"error": str(e)}), e.status_code
        except (ValidationError, PasswordValidationError) as e:
            return jsonify({"error": str(e)}), 400
        except ConflictError as e:
            return jsonify({"error": str(e)}), 409
        except Exception:
            current_app.logger.exception("Failed to update %s %s", role, account_id)
            return jsonify({"error": "Internal server error"}), 500

    @bp.post("/<int:account_id>/deactivate")
    @require_auth
    @require_role(*allowed_roles)
    def deactivate_account_route(account_id: int):
        """Deactivate the account and revoke all of its sessions."""
        try:
            account = account_service.set_account_active(
                account_id, role, active=False, actor=g.current_account
            )
            return jsonify({"account": account.to_dict(), "message": f"{label} deactivated successfully"}), 200
        except AccountError as e:
            return jsonify({"error": str(e)}), e.status_code
        except Exception:
            current_app.logger.exception("Failed to deactivate %s %s", role, account_id)
            return jsonify({"error": "Internal server error"}), 500

    @bp.post("/<int:account_id>/reactivate")
    @require_auth
    @require_role(*allowed_roles)
    def reactivate_account_route(account_id: int):
        try:
            account = account_service.set_account_active(
                account_id, role, active=True, actor=g.current_account
            )
            return jsonify({"account": account.to_dict(), "message": f"{label} reactivated successfully"}), 200
        except AccountError as e:
            return jsonify({"error": str(e)}), e.status_code
        except Exception:
            current_app.logger.exception("Failed to reactivate %s %s", role, account_id)
            return jsonify({"error": "Internal server error"}), 500


_register_account_routes(customers_bp, role=ROLE_CUSTOMER, allowed_roles=STAFF_ROLES)
_register_account_routes(managers_bp, role=ROLE_MANAGER, allowed_roles=(ROLE_ADMIN,))
