"""mk_catalog REST API: listing CRUD subset needed by the transaction core."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_catalog.application.schemas import CreateListingRequest, ListingResponse
from src.mk_catalog.application.service import CatalogService
from src.mk_common.database import get_db_session
from src.mk_common.enums import ListingKind, ListingStatus
from src.mk_common.response import ApiResponse, respond
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel

router = APIRouter(prefix="/listings", tags=["listings"])

_service = CatalogService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_listing(
    body: CreateListingRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    listing = await _service.create_listing(
        db,
        str(current_user.id),
        body.title,
        body.category,
        body.price,
        body.kind,
        description=body.description,
    )
    return respond(request, ListingResponse.from_domain(listing).model_dump(mode="json"))


@router.get("")
async def list_listings(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    seller_id: str | None = Query(None),
    listing_status: ListingStatus | None = Query(None, alias="status"),
    kind: ListingKind | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    listings = await _service.list_listings(db, seller_id, listing_status, kind, limit)
    return respond(
        request, [ListingResponse.from_domain(x).model_dump(mode="json") for x in listings]
    )


@router.get("/{listing_id}")
async def get_listing(
    listing_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    listing = await _service.get_listing(db, listing_id)
    return respond(request, ListingResponse.from_domain(listing).model_dump(mode="json"))


@router.post("/{listing_id}/withdraw")
async def withdraw_listing(
    listing_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    listing = await _service.withdraw_listing(db, listing_id, str(current_user.id))
    return respond(request, ListingResponse.from_domain(listing).model_dump(mode="json"))
