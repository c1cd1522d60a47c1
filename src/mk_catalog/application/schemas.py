"""Pydantic schemas for mk_catalog API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.mk_catalog.domain.models import Listing
from src.mk_common.enums import Category, ListingKind
from src.mk_common.money import money_to_display


class CreateListingRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    category: Category = Category.OTHER
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    kind: ListingKind


class ListingResponse(BaseModel):
    id: str
    seller_id: str
    title: str
    description: str | None
    category: str
    price: Decimal
    price_display: str
    kind: str
    status: str
    created_at: str | None

    @classmethod
    def from_domain(cls, listing: Listing) -> "ListingResponse":
        return cls(
            id=listing.id,
            seller_id=listing.seller_id,
            title=listing.title,
            description=listing.description,
            category=listing.category.value,
            price=listing.price,
            price_display=money_to_display(listing.price),
            kind=listing.kind.value,
            status=listing.status.value,
            created_at=listing.created_at.isoformat() if listing.created_at else None,
        )
