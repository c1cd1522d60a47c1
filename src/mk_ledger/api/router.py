"""mk_ledger REST API: balance, recharge, movement history, consistency check."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.enums import MovementType
from src.mk_common.money import money_to_display
from src.mk_common.response import ApiResponse, respond
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel
from src.mk_ledger.application.schemas import (
    MovementItem,
    RechargeRequest,
    RechargeResponse,
)
from src.mk_ledger.application.service import LedgerService

router = APIRouter(prefix="/account", tags=["account"])

_service = LedgerService()


@router.get("/balance")
async def get_balance(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, str(current_user.id))
    return respond(request, data.model_dump(mode="json"))


@router.post("/recharge")
async def recharge(
    body: RechargeRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    movement = await _service.recharge(db, str(current_user.id), body.amount, body.method)
    data = RechargeResponse(
        balance=movement.balance_after,
        balance_display=money_to_display(movement.balance_after),
        movement=MovementItem.from_domain(movement),
    )
    return respond(request, data.model_dump(mode="json"))


@router.get("/movements")
async def list_movements(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100),
    movement_type: MovementType | None = Query(None),
) -> ApiResponse:
    data = await _service.list_movements(
        db,
        str(current_user.id),
        cursor,
        limit,
        movement_type.value if movement_type else None,
    )
    return respond(request, data.model_dump(mode="json"))


@router.get("/consistency")
async def check_consistency(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.verify(db, str(current_user.id))
    return respond(request, data.model_dump(mode="json"))
