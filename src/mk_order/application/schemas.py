"""Pydantic schemas for mk_order API."""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from src.mk_common.enums import DeliveryMethod
from src.mk_common.money import money_to_display
from src.mk_order.domain.models import Order


class PurchaseRequest(BaseModel):
    listing_id: str
    quantity: int = Field(1, ge=1, le=100)
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    shipping_address: str | None = Field(None, max_length=500)


class GiftRequest(BaseModel):
    listing_id: str
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    shipping_address: str | None = Field(None, max_length=500)


class ExchangeAcceptRequest(BaseModel):
    listing_id: str
    counterparty_id: str
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    shipping_address: str | None = Field(None, max_length=500)


class TrackingRequest(BaseModel):
    tracking_number: str = Field(..., min_length=1, max_length=100)


class HandoffRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)


class ReasonRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


OrderRole = Literal["buyer", "seller"]


class OrderResponse(BaseModel):
    id: str
    buyer_id: str
    seller_id: str
    listing_id: str
    origin: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    total_price_display: str
    state: str
    paid: bool
    delivery_method: str
    shipping_address: str | None
    tracking_number: str | None
    notes: list[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            buyer_id=order.buyer_id,
            seller_id=order.seller_id,
            listing_id=order.listing_id,
            origin=order.origin.value,
            quantity=order.quantity,
            unit_price=order.unit_price,
            total_price=order.total_price,
            total_price_display=money_to_display(order.total_price),
            state=order.state.value,
            paid=order.paid,
            delivery_method=order.delivery_method.value,
            shipping_address=order.shipping_address,
            tracking_number=order.tracking_number,
            notes=order.notes,
            created_at=order.created_at.isoformat(),
            updated_at=order.updated_at.isoformat(),
        )


class ReissuedCodeResponse(BaseModel):
    order_id: str
    code: str
