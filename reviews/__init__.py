"""Reviews module for buyer feedback on sellers.

A buyer reviews the seller of one of their orders. Every new review
triggers a full recompute of the seller's rating from the
`reviews:by-seller` index, stored rounded to one decimal on the seller's
User record.
"""
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from numbers import Real
from typing import Dict, List, Optional, Any

from auth.policy import authorize
from orders import OrderNotFoundError
from store import RecordStore, WriteConflictError, keys

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5

RATING_ATTEMPTS = 3

class ReviewError(Exception):
    """Base class for review-related errors."""
    pass

def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()

def clamp_rating(rating: Any) -> Real:
    """Clamp a rating into [1, 5].

    Raises:
        ReviewError: If the rating is not a number
    """
    if not isinstance(rating, Real) or isinstance(rating, bool):
        raise ReviewError("Rating must be a number")
    return max(MIN_RATING, min(MAX_RATING, rating))

def mean_rating(reviews: List[Dict[str, Any]]) -> float:
    """Arithmetic mean of review ratings rounded to one decimal, 0 when empty."""
    if not reviews:
        return 0
    mean = sum(review['rating'] for review in reviews) / len(reviews)
    return float(Decimal(str(mean)).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))

class ReviewManager:
    """Manages review creation and seller rating upkeep."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def create_review(
        self,
        actor: Dict[str, Any],
        order_id: str,
        rating: Any,
        text: Optional[str] = None
    ) -> Dict[str, Any]:
        """Review the seller of an order and recompute their rating.

        Args:
            actor: The caller's user record; must be the order's buyer
            order_id: Order being reviewed
            rating: Score, clamped into [1, 5]
            text: Optional review text

        Returns:
            The stored review record

        Raises:
            OrderNotFoundError: If the order doesn't exist
            PermissionDeniedError: If the caller is not the order's buyer
            ReviewError: If the rating is not a number
        """
        rating = clamp_rating(rating)

        order = await self.store.get(keys.order(order_id))
        if not order:
            raise OrderNotFoundError("Order not found")
        authorize('review:create', actor, order)

        seller_id = order['seller_id']
        review_id = str(uuid.uuid4())
        review = {
            'id': review_id,
            'order_id': order_id,
            'reviewer_id': actor['id'],
            'reviewee_id': seller_id,
            'rating': rating,
            'text': text,
            'created_at': utcnow(),
        }

        await self.store.put_indexed(
            keys.review(review_id),
            review,
            [keys.review_by_seller(seller_id, review_id)]
        )
        logger.info(f"Created review {review_id} for seller {seller_id} (rating {rating})")

        await self.recompute_rating(seller_id)
        return review

    async def recompute_rating(self, seller_id: str) -> Optional[float]:
        """Recompute a seller's rating from every review indexed under them.

        The User record is written with compare-and-set so a concurrent
        profile change is not lost. Returns the new rating, or None when the
        seller has no User record.
        """
        for attempt in range(1, RATING_ATTEMPTS + 1):
            reviews = await self.store.resolve_index(keys.reviews_by_seller(seller_id), keys.REVIEWS)
            rating = mean_rating(reviews)

            current = await self.store.get(keys.user(seller_id))
            if not current:
                logger.warning(f"Seller {seller_id} has reviews but no user record")
                return None

            user = dict(current)
            user['rating'] = rating
            try:
                await self.store.write_batch(
                    sets={keys.user(seller_id): user},
                    expected={keys.user(seller_id): current}
                )
            except WriteConflictError:
                logger.warning(f"User {seller_id} changed during rating update (attempt {attempt})")
                continue

            logger.debug(f"Seller {seller_id} rating is now {rating} over {len(reviews)} reviews")
            return rating

        raise ReviewError("Seller changed concurrently, please retry")

    async def get_seller_reviews(self, seller_id: str) -> List[Dict[str, Any]]:
        """Reviews of a seller, newest first, each with its reviewer's User record."""
        reviews = await self.store.resolve_index(keys.reviews_by_seller(seller_id), keys.REVIEWS)
        reviews.sort(key=lambda review: review.get('created_at') or '', reverse=True)

        reviewers = await self.store.get_records(
            [keys.user(review['reviewer_id']) for review in reviews]
        )
        return [
            {**review, 'reviewer': reviewers[keys.user(review['reviewer_id'])]}
            for review in reviews
        ]

# Export public interface
__all__ = [
    'ReviewManager',
    'ReviewError',
    'clamp_rating',
    'mean_rating',
    'MIN_RATING',
    'MAX_RATING'
]
