"""mk_order REST API: creation paths and lifecycle actions.

The caller's id comes from the JWT and is passed explicitly to every
service call; role checks happen in OrderService.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.enums import OrderState
from src.mk_common.response import ApiResponse, respond
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel
from src.mk_order.application.schemas import (
    ExchangeAcceptRequest,
    GiftRequest,
    HandoffRequest,
    OrderResponse,
    OrderRole,
    PurchaseRequest,
    ReasonRequest,
    ReissuedCodeResponse,
    TrackingRequest,
)
from src.mk_order.application.service import OrderService
from src.mk_order.domain.models import Order

router = APIRouter(prefix="/orders", tags=["orders"])

_service = OrderService()

CurrentUser = Annotated[UserModel, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def _order_response(request: Request, order: Order) -> ApiResponse:
    return respond(request, OrderResponse.from_domain(order).model_dump(mode="json"))


@router.post("", status_code=status.HTTP_201_CREATED)
async def purchase(
    body: PurchaseRequest, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    order = await _service.purchase(
        db,
        str(current_user.id),
        body.listing_id,
        body.delivery_method,
        quantity=body.quantity,
        shipping_address=body.shipping_address,
    )
    return _order_response(request, order)


@router.post("/gift-requests", status_code=status.HTTP_201_CREATED)
async def request_gift(
    body: GiftRequest, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    order = await _service.request_gift(
        db,
        str(current_user.id),
        body.listing_id,
        body.delivery_method,
        shipping_address=body.shipping_address,
    )
    return _order_response(request, order)


@router.post("/exchanges", status_code=status.HTTP_201_CREATED)
async def accept_exchange(
    body: ExchangeAcceptRequest, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    order = await _service.accept_exchange(
        db,
        str(current_user.id),
        body.listing_id,
        body.counterparty_id,
        body.delivery_method,
        shipping_address=body.shipping_address,
    )
    return _order_response(request, order)


@router.get("")
async def list_orders(
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
    role: OrderRole | None = Query(None),
    state: OrderState | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    orders = await _service.list_for_user(db, str(current_user.id), role, state, limit)
    return respond(
        request, [OrderResponse.from_domain(o).model_dump(mode="json") for o in orders]
    )


@router.get("/{order_id}")
async def get_order(
    order_id: str, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    return _order_response(request, await _service.get(db, order_id, str(current_user.id)))


@router.post("/{order_id}/pay")
async def pay(
    order_id: str, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    return _order_response(request, await _service.pay(db, order_id, str(current_user.id)))


@router.post("/{order_id}/prepare")
async def prepare(
    order_id: str, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    return _order_response(request, await _service.prepare(db, order_id, str(current_user.id)))


@router.put("/{order_id}/tracking")
async def set_tracking(
    order_id: str,
    body: TrackingRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    order = await _service.set_tracking(
        db, order_id, str(current_user.id), body.tracking_number
    )
    return _order_response(request, order)


@router.post("/{order_id}/ready-for-pickup")
async def ready_for_pickup(
    order_id: str, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    order = await _service.ready_for_pickup(db, order_id, str(current_user.id))
    return _order_response(request, order)


@router.post("/{order_id}/in-transit")
async def mark_in_transit(
    order_id: str, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    order = await _service.mark_in_transit(db, order_id, str(current_user.id))
    return _order_response(request, order)


@router.post("/{order_id}/handoff")
async def confirm_handoff(
    order_id: str,
    body: HandoffRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    order = await _service.confirm_handoff(db, order_id, str(current_user.id), body.code)
    return _order_response(request, order)


@router.post("/{order_id}/cancel")
async def cancel(
    order_id: str,
    body: ReasonRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    order = await _service.cancel(db, order_id, str(current_user.id), body.reason)
    return _order_response(request, order)


@router.post("/{order_id}/refund")
async def refund(
    order_id: str,
    body: ReasonRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    order = await _service.refund(db, order_id, str(current_user.id), body.reason)
    return _order_response(request, order)


@router.post("/{order_id}/confirmation-code")
async def reissue_code(
    order_id: str, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    code = await _service.reissue_code(db, order_id, str(current_user.id))
    data = ReissuedCodeResponse(order_id=order_id, code=code)
    return respond(request, data.model_dump(), "New confirmation code issued")
