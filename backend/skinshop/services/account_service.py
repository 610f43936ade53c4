# Overview: Staff-side account management for customer and manager accounts.

"""
Account Management Service

Managers and admins look after customer accounts; only admins look after
manager accounts. Accounts are never deleted: deactivation flips is_active
and revokes every session, so order history keeps its owner.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Account
from ..validation import ConflictError, ValidationError
from . import auth_service, session_service


class AccountError(Exception):
    """Raised for account management errors."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


ACCOUNT_MUTABLE_FIELDS = {"email", "username", "phone", "password"}


def list_accounts(role: str, *, include_inactive: bool = False) -> list[Account]:
    query = db.session.query(Account).filter(Account.role == role)
    if not include_inactive:
        query = query.filter(Account.is_active.is_(True))
    return query.order_by(Account.id.asc()).all()


def get_account(account_id: int, role: str) -> Account:
    """Account with this id AND role; anything else is reported as not found."""
    account = db.session.get(Account, account_id)
    if account is None or account.role != role:
        raise AccountError(f"{role.capitalize()} not found", status_code=404)
    return account


def update_account(account_id: int, role: str, patch: dict) -> Account:
    """
    Update contact details or password.

    Raises:
        AccountError: Account not found (404)
        ValidationError: Unknown field or malformed email
        ConflictError: Email already registered to another account
        PasswordValidationError: New password too weak
    """
    account = get_account(account_id, role)

    unknown = sorted(set(patch) - ACCOUNT_MUTABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    if "email" in patch:
        email = auth_service.normalize_email(patch["email"])
        if not auth_service.EMAIL_PATTERN.match(email):
            raise ValidationError("A valid email is required")
        existing = db.session.query(Account).filter(
            Account.email == email,
            Account.id != account.id,
        ).first()
        if existing:
            raise ConflictError("Email is already registered")
        account.email = email

    if "username" in patch:
        account.username = (patch["username"] or "").strip() or None

    if "phone" in patch:
        account.phone = (patch["phone"] or "").strip() or None

    if "password" in patch:
        account.password_hash = auth_service.hash_password(patch["password"])
        session_service.revoke_all_account_sessions(account.id, reason="Password changed by staff")

    db.session.commit()
    return account


def set_account_active(account_id: int, role: str, *, active: bool, actor: Account) -> Account:
    """
    Deactivate or reactivate an account.

    Deactivation revokes all of the account's sessions in the same commit.
    """
    account = get_account(account_id, role)

    if account.id == actor.id:
        raise AccountError("Cannot change the status of your own account")
    if account.is_active == active:
        state = "active" if active else "deactivated"
        raise AccountError(f"{role.capitalize()} is already {state}")

    account.is_active = active
    if not active:
        session_service.revoke_all_account_sessions(account.id, reason="Account deactivated by staff")

    db.session.commit()
    return account
