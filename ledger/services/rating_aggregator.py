"""
Rating Aggregator

Derives an educator's average rating and review count from the live review
set on every call. Nothing is stored or cached, so the summary cannot drift
from the reviews it describes.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from ledger.schemas import RatingSummary
from ledger.storage.base import StorageBackend

logger = logging.getLogger(__name__)


def summarize_ratings(review_count: int, rating_total: int) -> RatingSummary:
    """
    Build a rating summary from a review count and the sum of its ratings.

    The mean is computed at full precision and only rounded (half-up, one
    decimal place) for display. No reviews gives an average of 0.
    """
    if review_count == 0:
        return RatingSummary(average_rating=0.0, review_count=0)

    average = Decimal(rating_total) / Decimal(review_count)
    rounded = average.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return RatingSummary(average_rating=float(rounded), review_count=review_count)


class RatingAggregator:
    """Rating summaries read fresh from the backend"""

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def ratings_for(self, educator_id: int) -> RatingSummary:
        review_count, rating_total = await self.backend.review_totals(educator_id)
        summary = summarize_ratings(review_count, rating_total)
        logger.debug(
            f"Ratings for educator {educator_id}: "
            f"avg={summary.average_rating}, count={summary.review_count}"
        )
        return summary
