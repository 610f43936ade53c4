# Overview: Service-layer operations for product feedback (reviews and ratings).

from __future__ import annotations

from ..extensions import db
from ..models import Feedback
from ..models.feedback import MIN_RATING, MAX_RATING
from .catalog_service import get_product


class FeedbackError(Exception):
    """Raised for feedback operation errors."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def _parse_rating(raw) -> int:
    if isinstance(raw, bool):
        raise FeedbackError(f"rating must be an integer between {MIN_RATING} and {MAX_RATING}")
    if isinstance(raw, str) and raw.strip().isdigit():
        raw = int(raw.strip())
    if not isinstance(raw, int) or not MIN_RATING <= raw <= MAX_RATING:
        raise FeedbackError(f"rating must be an integer between {MIN_RATING} and {MAX_RATING}")
    return raw


def create_feedback(*, account_id: int, product_id, content, rating) -> Feedback:
    """
    Record a review for a product that is still on sale.

    Raises FeedbackError: missing fields / bad rating (400), unknown product (404).
    """
    content = (content or "").strip() if isinstance(content, str) else ""
    if not product_id or not content or rating in (None, ""):
        raise FeedbackError("Missing required fields")

    rating = _parse_rating(rating)

    product = get_product(product_id) if isinstance(product_id, int) else None
    if product is None:
        raise FeedbackError("Product not found", status_code=404)

    feedback = Feedback(
        account_id=account_id,
        product_id=product.id,
        content=content,
        rating=rating,
    )
    db.session.add(feedback)
    db.session.commit()
    return feedback


def list_feedback(*, product_id: int | None = None) -> list[Feedback]:
    """Visible feedback, newest first."""
    query = db.session.query(Feedback).filter(Feedback.is_visible.is_(True))
    if product_id is not None:
        query = query.filter(Feedback.product_id == product_id)
    return query.order_by(Feedback.created_at.desc(), Feedback.id.desc()).all()


def hide_feedback(feedback_id: int) -> bool:
    """Hide a review from listings. Returns False if not found."""
    feedback = db.session.get(Feedback, feedback_id)
    if feedback is None:
        return False
    feedback.is_visible = False
    db.session.commit()
    return True
