"""Restaurant reviews and the denormalized rating on the restaurant record.

Every review write is followed by a recompute of the restaurant's mean rating
and review count. The two writes share no transaction: concurrent writers race
and the last recompute wins, and a failed recompute leaves the review in place.
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple

from exceptions import (
    NotAuthenticatedException,
    NotAuthorizedException,
    NotFoundException,
    ValidationException,
)
from schemas import Review

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000


def _is_valid_id(store, value) -> bool:
    check = getattr(store, "is_valid_id", None)
    return bool(value) and (check is None or check(value))


def _check_rating(rating) -> float:
    try:
        value = float(rating)
    except (TypeError, ValueError):
        raise ValidationException("Rating must be a number between 1 and 5")
    if not 1 <= value <= 5:
        raise ValidationException("Rating must be a number between 1 and 5")
    return value


def _check_comment(comment) -> str:
    text = str(comment or "").strip()
    if not text:
        raise ValidationException("Comment is required")
    if len(text) > MAX_COMMENT_LENGTH:
        raise ValidationException(f"Comment must be at most {MAX_COMMENT_LENGTH} characters")
    return text


def average_rating(ratings: List[float]) -> float:
    """Mean rounded half-up to one decimal."""
    mean = sum(ratings) / len(ratings)
    return float(Decimal(str(mean)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def recompute_restaurant_rating(store, restaurant_id: str) -> Optional[Tuple[float, int]]:
    """Write mean rating and review count back to the restaurant.

    With no reviews left the restaurant is not touched and None is returned.
    """
    reviews = store.get_documents("review", {"restaurant_id": restaurant_id})
    if not reviews:
        return None
    rating = average_rating([r["rating"] for r in reviews])
    count = len(reviews)
    if not store.update_document("restaurant", restaurant_id, {"rating": rating, "review_count": count}):
        logger.warning("Restaurant %s missing while updating rating", restaurant_id)
    return rating, count


def refresh_restaurant_rating(store, restaurant_id: str) -> Optional[Tuple[float, int]]:
    try:
        return recompute_restaurant_rating(store, restaurant_id)
    except Exception:
        logger.exception("Error updating restaurant rating for %s", restaurant_id)
        return None


def list_reviews(store, restaurant_id: str) -> List[dict]:
    if not _is_valid_id(store, restaurant_id):
        raise ValidationException("Invalid restaurant ID format")
    return store.get_documents("review", {"restaurant_id": restaurant_id}, limit=50, sort=[["created_at", -1]])


def _owned_review(store, user_id: Optional[str], review_id: str) -> dict:
    if not user_id:
        raise NotAuthenticatedException()
    if not review_id:
        raise ValidationException("Review ID is required")
    review = store.get_document_by_id("review", review_id)
    if not review:
        raise NotFoundException("review", review_id)
    if str(review.get("user_id")) != str(user_id):
        raise NotAuthorizedException("Not authorized to modify this review")
    return review


def create_review(
    store,
    user_id: Optional[str],
    restaurant_id: str,
    rating,
    comment,
    user_name: Optional[str] = None,
    user_avatar: Optional[str] = None,
) -> dict:
    if not user_id:
        raise NotAuthenticatedException()
    if not _is_valid_id(store, restaurant_id):
        raise ValidationException("Invalid restaurant ID format")
    review = Review(
        user_id=str(user_id),
        restaurant_id=restaurant_id,
        rating=_check_rating(rating),
        comment=_check_comment(comment),
        user_name=user_name or "Anonymous",
        user_avatar=user_avatar or "",
    )
    review_id = store.create_document("review", review)
    logger.info("Review %s created for restaurant %s", review_id, restaurant_id)
    refresh_restaurant_rating(store, restaurant_id)
    return {"_id": review_id, **review.model_dump()}


def update_review(store, user_id: Optional[str], review_id: str, rating, comment) -> dict:
    review = _owned_review(store, user_id, review_id)
    changes = {"rating": _check_rating(rating), "comment": _check_comment(comment)}
    if not store.update_document("review", review_id, changes):
        raise NotFoundException("review", review_id)
    refresh_restaurant_rating(store, review["restaurant_id"])
    return {**review, **changes}


def delete_review(store, user_id: Optional[str], review_id: str) -> dict:
    review = _owned_review(store, user_id, review_id)
    if not store.delete_document("review", review_id):
        raise NotFoundException("review", review_id)
    refresh_restaurant_rating(store, review["restaurant_id"])
    return review
