# Overview: Service-layer operations for promotions.

from __future__ import annotations

from ..extensions import db
from ..models import Promotion
from ..validation import ConflictError
from skinshop.time_utils import utcnow


def list_active_promotions() -> list[Promotion]:
    """Active promotions that have not expired yet."""
    return (
        db.session.query(Promotion)
        .filter(Promotion.is_active.is_(True), Promotion.expires_at > utcnow())
        .order_by(Promotion.expires_at.asc())
        .all()
    )


def create_promotion(*, patch: dict, created_by_account_id: int) -> Promotion:
    """
    Create a promotion from a validated patch.

    Raises ConflictError if the code is already taken.
    """
    if db.session.query(Promotion).filter_by(code=patch["code"]).first():
        raise ConflictError("Promotion code already exists")

    promotion = Promotion(created_by_account_id=created_by_account_id)
    for key, value in patch.items():
        setattr(promotion, key, value)

    db.session.add(promotion)
    db.session.commit()
    return promotion
