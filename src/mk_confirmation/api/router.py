"""Confirmation-code endpoints for the code holder.

Issuing happens when an order ships; re-issue lives on the order
(POST /orders/{id}/confirmation-code).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, respond
from src.mk_confirmation.application.schemas import PendingCodeResponse
from src.mk_confirmation.application.service import ConfirmationService
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel

router = APIRouter(prefix="/confirmation-codes", tags=["confirmation-codes"])

_service = ConfirmationService()


@router.get("")
async def list_active_codes(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _service.list_active_for_user(db, str(current_user.id))
    return respond(request, [item.model_dump() for item in items])


@router.get("/{target_id}/pending")
async def has_pending_code(
    target_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    pending = await _service.has_pending_code(db, str(current_user.id), target_id)
    return respond(request, PendingCodeResponse(target_id=target_id, pending=pending).model_dump())
