"""Listing: the catalog item an order or auction refers to."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.mk_common.enums import Category, ListingKind, ListingStatus


@dataclass
class Listing:
    id: str
    seller_id: str
    title: str
    category: Category
    price: Decimal
    kind: ListingKind
    status: ListingStatus = ListingStatus.ACTIVE
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == ListingStatus.ACTIVE

    def is_owned_by(self, user_id: str) -> bool:
        return self.seller_id == user_id
