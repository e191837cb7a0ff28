"""Rating service: order ratings and the vendor running average."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from dormdash_service.models.account_models import AccountRole, AuthSession
from dormdash_service.models.order_models import OrderStatus, Review
from dormdash_service.models.result_models import ErrorKind, ServiceResult
from dormdash_service.models.vendor_models import Vendor
from dormdash_service.observability import traced
from dormdash_service.observability.metrics import record_rating_submitted
from dormdash_service.repositories.order_repositories import OrderRepository, ReviewRepository
from dormdash_service.repositories.vendor_repositories import VendorRepository

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def round_rating(value: Decimal) -> Decimal:
    """Round a rating half up to one decimal place."""
    return value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def compute_rating_update(
    rating: Decimal, total_reviews: int, new_value: int
) -> tuple[Decimal, int]:
    """Fold one more rating into a running average.

    Args:
        rating: Current average
        total_reviews: Number of ratings in the current average
        new_value: Rating being added

    Returns:
        Tuple of (new average rounded to one decimal, new review count)
    """
    new_count = total_reviews + 1
    new_rating = (Decimal(rating) * total_reviews + new_value) / new_count
    return round_rating(new_rating), new_count


def review_id_for(order_id: str) -> str:
    """Review identifier of an order; an order has at most one review."""
    return f"rev_{order_id}"


@dataclass
class RatingOutcome:
    """Result of an accepted rating.

    Attributes:
        order_id: Rated order
        vendor_id: Vendor whose average changed
        rating: Submitted value
        vendor_rating: Vendor average after the update
        total_reviews: Vendor review count after the update
    """

    order_id: str
    vendor_id: str
    rating: int
    vendor_rating: Decimal
    total_reviews: int


class RatingService:
    """Service for rating completed orders.

    A rating is written to the order at most once, appended as a review, and
    folded into the vendor's running average. All three writes commit in one
    optimistic-concurrency transaction: concurrent ratings of the same vendor
    are never lost, and a transaction that gives up leaves the order unrated
    so the student can submit again.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        review_repository: ReviewRepository,
        vendor_repository: VendorRepository,
        max_transaction_attempts: int = 5,
    ) -> None:
        """Initialize the RatingService.

        Args:
            order_repository: Repository for orders
            review_repository: Repository for reviews
            vendor_repository: Repository providing the vendor transaction
            max_transaction_attempts: Attempts before the vendor update gives up
        """
        self.order_repository = order_repository
        self.review_repository = review_repository
        self.vendor_repository = vendor_repository
        self.max_transaction_attempts = max_transaction_attempts

    @traced("submit_rating")
    async def submit_rating(
        self, session: AuthSession, order_id: str, rating: int
    ) -> ServiceResult[RatingOutcome]:
        """Rate a completed order.

        Args:
            session: Session of the student who placed the order
            order_id: Order being rated
            rating: Rating from 1 to 5

        Returns:
            ServiceResult with the vendor's updated aggregate
        """
        if not MIN_RATING <= rating <= MAX_RATING:
            return ServiceResult.fail(
                ErrorKind.VALIDATION, f"Rating must be between {MIN_RATING} and {MAX_RATING}."
            )

        order = self.order_repository.get_order(order_id)
        if order is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Order {order_id} not found")

        if session.role != AccountRole.STUDENT or order.student_id != session.uid:
            return ServiceResult.fail(ErrorKind.AUTHORIZATION, "You can only rate your own orders.")

        if order.status != OrderStatus.COMPLETED:
            return ServiceResult.fail(ErrorKind.VALIDATION, "Only completed orders can be rated.")

        if order.rating is not None:
            return ServiceResult.fail(ErrorKind.VALIDATION, "This order has already been rated.")

        review = Review(
            review_id=review_id_for(order_id),
            order_id=order_id,
            vendor_id=order.vendor_id,
            student_id=session.uid,
            rating=rating,
            created_at=datetime.now(UTC),
        )

        def fold_rating(vendor: Vendor) -> dict[str, Any]:
            new_rating, new_count = compute_rating_update(
                vendor.rating, vendor.total_reviews, rating
            )
            return {"rating": new_rating, "total_reviews": new_count}

        # Order rating, review and vendor aggregate commit together or not at all
        result = self.vendor_repository.run_transaction(
            order.vendor_id,
            fold_rating,
            max_attempts=self.max_transaction_attempts,
            companion_items=[
                self.order_repository.rating_write(order_id, rating),
                self.review_repository.review_put(review),
            ],
        )

        if not result.success:
            if result.not_found:
                return ServiceResult.fail(
                    ErrorKind.NOT_FOUND, f"Vendor {order.vendor_id} not found"
                )
            if result.rejected:
                return self._rejected_rating(order_id)
            logger.error(f"Vendor rating update failed for order {order_id}: {result.error_message}")
            return ServiceResult.fail(
                ErrorKind.CONFLICT, "Could not update the vendor rating. Please try again."
            )

        record_rating_submitted(rating)
        logger.info(
            f"Order {order_id} rated {rating}, vendor {order.vendor_id} now "
            f"{result.updates['rating']} over {result.updates['total_reviews']} reviews"
        )

        return ServiceResult.ok(
            RatingOutcome(
                order_id=order_id,
                vendor_id=order.vendor_id,
                rating=rating,
                vendor_rating=result.updates["rating"],
                total_reviews=result.updates["total_reviews"],
            )
        )

    def _rejected_rating(self, order_id: str) -> ServiceResult[RatingOutcome]:
        """Explain why the order refused the rating write."""
        latest = self.order_repository.get_order(order_id)

        if latest is not None and latest.rating is not None:
            return ServiceResult.fail(ErrorKind.VALIDATION, "This order has already been rated.")

        if latest is not None and latest.status != OrderStatus.COMPLETED:
            return ServiceResult.fail(ErrorKind.VALIDATION, "Only completed orders can be rated.")

        return ServiceResult.fail(ErrorKind.REMOTE, "Failed to submit your review.")
