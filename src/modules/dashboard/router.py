"""API for dashboard statistics."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_db
from src.modules.dashboard.schemas import DashboardStats
from src.modules.dashboard.service import DashboardService
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get(
    "/stats",
    response_model=ApiResponse[DashboardStats],
)
async def get_dashboard_stats(db: AsyncSession = Depends(get_db)):
    """
    Registration statistics for the main page.

    Totals, registrations in the last 7 days, and breakdowns by education
    level, tariff, language certificate and referral source.
    """
    service = DashboardService(db)
    return ApiResponse(data=await service.get_stats())
