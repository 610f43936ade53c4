# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Account Authentication Service

Uses bcrypt for password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..extensions import db
from ..models import Account
from ..models.accounts import ROLE_CUSTOMER, VALID_ROLES
from ..validation import ConflictError, ValidationError
from skinshop.time_utils import utcnow


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def create_account(
    email: str,
    password: str,
    *,
    username: str | None = None,
    phone: str | None = None,
    role: str = ROLE_CUSTOMER,
) -> Account:
    """
    Create a new account with a bcrypt password hash.

    Raises:
        ValidationError: Malformed email or unknown role
        ConflictError: Email already registered
        PasswordValidationError: Password doesn't meet requirements
    """
    email = normalize_email(email)
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("A valid email is required")

    if role not in VALID_ROLES:
        raise ValidationError(f"Invalid role: {role}. Must be one of {list(VALID_ROLES)}")

    if db.session.query(Account).filter_by(email=email).first():
        raise ConflictError("Email is already registered")

    account = Account(
        email=email,
        username=(username or "").strip() or None,
        phone=(phone or "").strip() or None,
        password_hash=hash_password(password),
        role=role,
    )

    db.session.add(account)
    db.session.commit()
    return account


def authenticate(email: str, password: str) -> Account | None:
    """
    Authenticate by email and password.

    Returns the Account if credentials are valid and the account is active,
    None otherwise. Updates last_login_at on success.
    """
    account = db.session.query(Account).filter(
        Account.email == normalize_email(email),
        Account.is_active.is_(True),
    ).first()

    if account is None or not verify_password(password or "", account.password_hash):
        return None

    account.last_login_at = utcnow()
    db.session.commit()
    return account
