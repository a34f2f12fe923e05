from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from apothecary.config import Config
from apothecary.errors import ConflictError, NotFoundError, ServiceError
from apothecary.models import Order, OrderItem, Product, ProductReview, ReviewVote, User
from apothecary.observability import increment_counter, record_event
from apothecary.schemas import ReviewCreate, ReviewUpdate

# sortBy query value -> ordering
REVIEW_SORTS = {
    "recent": (ProductReview.created_at.desc(), ProductReview.reviewID.desc()),
    "helpful": (ProductReview.helpful_count.desc(), ProductReview.created_at.desc()),
    "rating": (ProductReview.rating.desc(), ProductReview.created_at.desc()),
}


class ReviewService:
    """
    Customer reviews of catalog products and the helpful votes cast on them.

    One review per customer and product. Only approved reviews are listed or
    counted towards the product's rating.
    """

    def __init__(self, db_session: Session, config: type[Config] = Config) -> None:
        self.db = db_session
        self.config = config
        self.logger = logging.getLogger(__name__)

    def _approved(self, product_id: int):
        return self.db.query(ProductReview).filter(
            ProductReview.productID == product_id,
            ProductReview.is_approved.is_(True),
        )

    def has_purchased(self, user_id: int, product_id: int) -> bool:
        purchase = (
            self.db.query(OrderItem.orderItemID)
            .join(Order, Order.orderID == OrderItem.orderID)
            .filter(Order.userID == user_id, OrderItem.productID == product_id)
            .first()
        )
        return purchase is not None

    def create_review(self, user: User, product_id: int, payload: ReviewCreate) -> ProductReview:
        product = (
            self.db.query(Product)
            .filter(Product.productID == product_id, Product.is_active.is_(True))
            .first()
        )
        if product is None:
            raise NotFoundError("Product not found")

        existing = (
            self.db.query(ProductReview.reviewID)
            .filter(ProductReview.productID == product_id, ProductReview.userID == user.userID)
            .first()
        )
        if existing is not None:
            raise ConflictError("You have already reviewed this product")

        review = ProductReview(
            productID=product_id,
            userID=user.userID,
            rating=payload.rating,
            title=payload.title,
            comment=payload.comment,
            verified_purchase=self.has_purchased(user.userID, product_id),
        )
        self.db.add(review)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("You have already reviewed this product")

        increment_counter("product_reviews_created_total", labels={"rating": review.rating})
        record_event(
            "review_created",
            {"review_id": review.reviewID, "product_id": product_id, "user_id": user.userID},
        )
        self.logger.info(
            "Review %s created for product %s",
            review.reviewID,
            product_id,
            extra={"user_id": user.userID, "verified_purchase": review.verified_purchase},
        )
        return review

    def list_reviews(
        self,
        product_id: int,
        sort_by: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[ProductReview]:
        sort_by = sort_by or "recent"
        if sort_by not in REVIEW_SORTS:
            raise ServiceError(f"Unknown review sort: {sort_by}")

        limit = min(limit or self.config.REVIEW_PAGE_SIZE, self.config.REVIEW_MAX_PAGE_SIZE)
        return (
            self._approved(product_id)
            .order_by(*REVIEW_SORTS[sort_by])
            .offset(max(offset, 0))
            .limit(limit)
            .all()
        )

    def review_stats(self, product_id: int) -> Dict[str, Any]:
        average, count = (
            self._approved(product_id)
            .with_entities(func.avg(ProductReview.rating), func.count(ProductReview.reviewID))
            .one()
        )
        if not count:
            return {"average_rating": 0, "total_count": 0}
        return {"average_rating": round(float(average), 1), "total_count": count}

    def _own_review(self, user: User, review_id: int) -> ProductReview:
        review = (
            self.db.query(ProductReview)
            .filter(ProductReview.reviewID == review_id, ProductReview.userID == user.userID)
            .first()
        )
        if review is None:
            raise NotFoundError("Review not found")
        return review

    def update_review(self, user: User, review_id: int, payload: ReviewUpdate) -> ProductReview:
        review = self._own_review(user, review_id)
        for field, value in payload.model_dump(exclude_none=True).items():
            setattr(review, field, value)
        self.db.commit()

        self.logger.info("Review %s updated", review_id, extra={"user_id": user.userID})
        return review

    def delete_review(self, user: User, review_id: int) -> None:
        review = self._own_review(user, review_id)
        self.db.delete(review)
        self.db.commit()

        record_event("review_deleted", {"review_id": review_id, "user_id": user.userID})
        self.logger.info("Review %s deleted", review_id, extra={"user_id": user.userID})

    def vote(self, user: User, review_id: int, is_helpful: bool) -> Tuple[ReviewVote, ProductReview]:
        """Record or change the user's helpful vote and refresh the review's helpful count."""
        review = (
            self.db.query(ProductReview)
            .filter(ProductReview.reviewID == review_id, ProductReview.is_approved.is_(True))
            .with_for_update()
            .first()
        )
        if review is None:
            raise NotFoundError("Review not found")

        vote = (
            self.db.query(ReviewVote)
            .filter(ReviewVote.reviewID == review_id, ReviewVote.userID == user.userID)
            .first()
        )
        if vote is None:
            vote = ReviewVote(reviewID=review_id, userID=user.userID, is_helpful=is_helpful)
            self.db.add(vote)
        else:
            vote.is_helpful = is_helpful
        self.db.flush()

        review.helpful_count = (
            self.db.query(func.count(ReviewVote.voteID))
            .filter(ReviewVote.reviewID == review_id, ReviewVote.is_helpful.is_(True))
            .scalar()
        )
        self.db.commit()

        increment_counter("review_votes_total", labels={"helpful": str(is_helpful).lower()})
        return vote, review
