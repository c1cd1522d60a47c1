"""Read-only statistics endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, respond
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel
from src.mk_stats.application.schemas import (
    ActivityReportResponse,
    SalesGrouping,
    StatsResponse,
)
from src.mk_stats.application.service import StatsService

router = APIRouter(prefix="/stats", tags=["stats"])

_service = StatsService()


@router.get("/sales")
async def sales_stats(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    group_by: SalesGrouping = Query("none"),
    start: date | None = Query(None),
    end: date | None = Query(None),
) -> ApiResponse:
    if group_by == "none":
        stats = await _service.sales_stats(db, start, end)
        return respond(request, StatsResponse.from_domain(stats).model_dump(mode="json"))
    grouped = await _service.sales_stats_by(db, group_by, start, end)
    return respond(
        request,
        {k: StatsResponse.from_domain(v).model_dump(mode="json") for k, v in grouped.items()},
    )


@router.get("/movements")
async def movement_stats(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    start: date | None = Query(None),
    end: date | None = Query(None),
) -> ApiResponse:
    grouped = await _service.movement_stats(db, str(current_user.id), start, end)
    return respond(
        request,
        {k: StatsResponse.from_domain(v).model_dump(mode="json") for k, v in grouped.items()},
    )


@router.get("/report")
async def activity_report(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    start: date | None = Query(None),
    end: date | None = Query(None),
) -> ApiResponse:
    report = await _service.activity_report(db, start, end)
    return respond(request, ActivityReportResponse.from_domain(report).model_dump(mode="json"))
