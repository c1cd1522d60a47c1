"""Review: a buyer's score and comment for the seller of a delivered order."""

from dataclasses import dataclass, field
from datetime import datetime

from src.mk_common.datetime_utils import utc_now
from src.mk_common.errors import ValidationError

MIN_SCORE = 1
MAX_SCORE = 5
MAX_COMMENT_LENGTH = 1000


@dataclass
class Review:
    id: str
    order_id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    score: int
    comment: str
    visible: bool = True
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def create(
        cls,
        review_id: str,
        order_id: str,
        listing_id: str,
        buyer_id: str,
        seller_id: str,
        score: int,
        comment: str,
    ) -> "Review":
        if not MIN_SCORE <= score <= MAX_SCORE:
            raise ValidationError(f"score must be between {MIN_SCORE} and {MAX_SCORE}")
        comment = comment.strip()
        if not comment:
            raise ValidationError("review comment must not be blank")
        if len(comment) > MAX_COMMENT_LENGTH:
            raise ValidationError(f"review comment exceeds {MAX_COMMENT_LENGTH} characters")
        return cls(
            id=review_id,
            order_id=order_id,
            listing_id=listing_id,
            buyer_id=buyer_id,
            seller_id=seller_id,
            score=score,
            comment=comment,
        )

    @property
    def stars(self) -> str:
        return "★" * self.score + "☆" * (MAX_SCORE - self.score)
