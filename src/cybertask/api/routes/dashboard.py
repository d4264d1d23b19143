"""Dashboard endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query

from src.cybertask.api.dependencies import CurrentUser, DashboardServiceDep
from src.cybertask.schemas.common import ApiResponse
from src.cybertask.schemas.dashboard import DashboardActivity, DashboardStats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=ApiResponse[DashboardStats])
async def get_stats(
    current_user: CurrentUser, service: DashboardServiceDep
) -> ApiResponse[DashboardStats]:
    """Task counts over every project the caller owns or has joined."""
    return ApiResponse(message="Dashboard stats retrieved", data=await service.stats(current_user))


@router.get("/activity", response_model=ApiResponse[DashboardActivity])
async def get_activity(
    current_user: CurrentUser,
    service: DashboardServiceDep,
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> ApiResponse[DashboardActivity]:
    activity = await service.activity(current_user, limit)
    return ApiResponse(message="Recent activity retrieved", data=activity)
