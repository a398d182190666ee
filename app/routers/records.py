"""Time record endpoints - CRUD over completed records."""
from datetime import date
from typing import Any, Literal, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from app.database import get_store
from app.models.time_record import DeleteResult, TimeRecord, TimeRecordList
from app.services.record_service import RecordService
from app.utils.auth import get_current_user_id


router = APIRouter(prefix="/time-records", tags=["time-records"])


@router.get("", response_model=TimeRecordList)
async def list_records(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    project_name: Optional[str] = Query(None, alias="projectName"),
    project: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    order: Literal["desc", "asc"] = Query("desc"),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    List completed time records for the authenticated user.

    - Requires authentication
    - Optional filters: startDate, endDate (inclusive), projectName
    - Results sorted newest first unless ``order=asc``
    - The running timer is never included
    """
    service = RecordService(store)
    records = await service.list_records(
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        project_name=project_name or project,
        limit=limit,
        newest_first=order == "desc",
    )
    return TimeRecordList(time_records=records, count=len(records))


@router.post("", response_model=TimeRecord, status_code=status.HTTP_201_CREATED)
async def create_record(
    payload: Any = Body(None),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Create a manual time record.

    - Requires authentication
    - Duration is calculated from startTime and endTime
    - Not idempotent: a retry after a timeout may create a duplicate
    """
    service = RecordService(store)
    return await service.create_record(user_id=user_id, payload=payload)


@router.get("/{record_id}", response_model=TimeRecord)
async def get_record(
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Get a specific time record by ID.

    - Requires authentication
    - User must own the record
    """
    service = RecordService(store)
    return await service.get_record(user_id=user_id, record_id=record_id)


@router.put("/{record_id}", response_model=TimeRecord)
async def update_record(
    record_id: str,
    payload: Any = Body(None),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Update a time record.

    - Requires authentication
    - Full payload, validated like create
    - Changing ``date`` moves the record but keeps its ID
    """
    service = RecordService(store)
    return await service.update_record(user_id=user_id, record_id=record_id, payload=payload)


@router.delete("/{record_id}", response_model=DeleteResult)
async def delete_record(
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Delete a time record.

    - Requires authentication
    - Deleting the running timer discards it
    - Hard delete (permanent)
    """
    service = RecordService(store)
    return await service.delete_record(user_id=user_id, record_id=record_id)
