"""Statistics endpoint."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.database import get_store
from app.models.time_record import Statistics
from app.services.stats_service import StatsService
from app.utils.auth import get_current_user_id


router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=Statistics)
async def get_statistics(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Aggregate statistics over completed records.

    - Requires authentication
    - Optional inclusive date range
    """
    service = StatsService(store)
    return await service.get_statistics(user_id=user_id, start_date=start_date, end_date=end_date)
