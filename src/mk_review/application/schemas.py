"""Pydantic schemas for review endpoints."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.mk_review.domain.models import MAX_COMMENT_LENGTH, MAX_SCORE, MIN_SCORE, Review
from src.mk_stats.domain.aggregator import EconomicStats


class CreateReviewRequest(BaseModel):
    order_id: str
    score: int = Field(..., ge=MIN_SCORE, le=MAX_SCORE)
    comment: str = Field(..., min_length=1, max_length=MAX_COMMENT_LENGTH)


class ReviewResponse(BaseModel):
    id: str
    order_id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    score: int
    stars: str
    comment: str
    created_at: str

    @classmethod
    def from_domain(cls, r: Review) -> "ReviewResponse":
        return cls(
            id=r.id,
            order_id=r.order_id,
            listing_id=r.listing_id,
            buyer_id=r.buyer_id,
            seller_id=r.seller_id,
            score=r.score,
            stars=r.stars,
            comment=r.comment,
            created_at=r.created_at.isoformat(),
        )


class ScoreSummary(BaseModel):
    average: Decimal
    min: int
    max: int
    count: int

    @classmethod
    def from_domain(cls, s: EconomicStats) -> "ScoreSummary":
        return cls(average=s.mean, min=int(s.min), max=int(s.max), count=s.count)


class ReviewSummaryResponse(BaseModel):
    scores: ScoreSummary
    recent: list[ReviewResponse]

    @classmethod
    def build(cls, stats: EconomicStats, recent: list[Review]) -> "ReviewSummaryResponse":
        return cls(
            scores=ScoreSummary.from_domain(stats),
            recent=[ReviewResponse.from_domain(r) for r in recent],
        )


class ReviewedResponse(BaseModel):
    listing_id: str
    reviewed: bool
