"""Bidding endpoints, nested under /listings/{listing_id}/bids."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_auction.application.schemas import (
    AcceptBidRequest,
    AcceptBidResponse,
    BidResponse,
    HighestBidResponse,
    PlaceBidRequest,
)
from src.mk_auction.application.service import AuctionService
from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, respond
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel

router = APIRouter(prefix="/listings/{listing_id}/bids", tags=["bids"])

_service = AuctionService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def place_bid(
    listing_id: str,
    body: PlaceBidRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    bid = await _service.place_bid(db, listing_id, str(current_user.id), body.amount)
    return respond(request, BidResponse.from_domain(bid).model_dump(mode="json"))


@router.get("")
async def list_bids(
    listing_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(50, ge=1, le=200),
    accepted_only: bool = Query(False),
) -> ApiResponse:
    bids = await _service.list_bids(db, listing_id, limit, accepted_only)
    return respond(request, [BidResponse.from_domain(b).model_dump(mode="json") for b in bids])


@router.get("/highest")
async def highest_bid(
    listing_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    bid = await _service.highest_bid(db, listing_id)
    data = HighestBidResponse(
        listing_id=listing_id, highest=BidResponse.from_domain(bid) if bid else None
    )
    return respond(request, data.model_dump(mode="json"))


@router.post("/accept")
async def accept_highest_bid(
    listing_id: str,
    body: AcceptBidRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    outcome = await _service.accept_highest_bid(
        db,
        listing_id,
        str(current_user.id),
        delivery_method=body.delivery_method,
        shipping_address=body.shipping_address,
    )
    data = AcceptBidResponse(
        listing_id=listing_id,
        order_id=outcome.order_id,
        already_accepted=outcome.already_accepted,
        winning_bid=BidResponse.from_domain(outcome.winning_bid) if outcome.winning_bid else None,
    )
    message = "Bid already accepted" if outcome.already_accepted else "Bid accepted"
    return respond(request, data.model_dump(mode="json"), message)
