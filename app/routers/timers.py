"""Timer endpoints - start, inspect and stop the active timer."""
from typing import Any

from fastapi import APIRouter, Body, Depends, status

from app.database import get_store
from app.models.time_record import ActiveTimer, TimeRecord
from app.services.timer_service import TimerService
from app.utils.auth import get_current_user_id


router = APIRouter(prefix="/timers", tags=["timers"])


@router.post("/start", response_model=TimeRecord, status_code=status.HTTP_201_CREATED)
async def start_timer(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Start a new timer.

    - Requires authentication
    - Only one timer can run at a time (409 otherwise)
    - Project and tags are supplied when stopping
    """
    service = TimerService(store)
    return await service.start_timer(user_id=user_id)


@router.get("/active", response_model=ActiveTimer)
async def get_active_timer(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Get the currently running timer, if any.

    - Requires authentication
    - ``activeRecord`` is null when no timer is running
    """
    service = TimerService(store)
    return ActiveTimer(active_record=await service.get_active_timer(user_id=user_id))


@router.post("/{record_id}/stop", response_model=TimeRecord)
async def stop_timer(
    record_id: str,
    payload: Any = Body(None),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Stop the running timer and classify it.

    - Requires authentication
    - Body: ``{projectName, description?, tags?}``
    - Duration is computed from the stop time
    """
    service = TimerService(store)
    return await service.stop_timer(user_id=user_id, record_id=record_id, payload=payload)
