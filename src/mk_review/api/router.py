"""Review endpoints: submit as buyer, read per seller or per listing."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, respond
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel
from src.mk_review.application.schemas import (
    CreateReviewRequest,
    ReviewedResponse,
    ReviewResponse,
    ReviewSummaryResponse,
)
from src.mk_review.application.service import ReviewService

router = APIRouter(prefix="/reviews", tags=["reviews"])

_service = ReviewService()

CurrentUser = Annotated[UserModel, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_review(
    body: CreateReviewRequest, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    review = await _service.submit(
        db, str(current_user.id), body.order_id, body.score, body.comment
    )
    return respond(request, ReviewResponse.from_domain(review).model_dump(mode="json"))


@router.get("/sellers/{seller_id}")
async def seller_reviews(
    seller_id: str,
    db: DbSession,
    request: Request,
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    stats = await _service.seller_summary(db, seller_id)
    recent = await _service.list_for_seller(db, seller_id, limit)
    return respond(request, ReviewSummaryResponse.build(stats, recent).model_dump(mode="json"))


@router.get("/listings/{listing_id}")
async def listing_reviews(
    listing_id: str,
    db: DbSession,
    request: Request,
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    stats = await _service.listing_summary(db, listing_id)
    recent = await _service.list_for_listing(db, listing_id, limit)
    return respond(request, ReviewSummaryResponse.build(stats, recent).model_dump(mode="json"))


@router.get("/listings/{listing_id}/mine")
async def has_reviewed(
    listing_id: str, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    reviewed = await _service.has_reviewed(db, str(current_user.id), listing_id)
    return respond(
        request, ReviewedResponse(listing_id=listing_id, reviewed=reviewed).model_dump()
    )
