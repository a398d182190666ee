"""Project and tag catalog endpoints, derived from logged time."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.database import get_store
from app.models.time_record import ProjectList, ProjectSuggestions, TagList
from app.services.stats_service import StatsService
from app.utils.auth import get_current_user_id


router = APIRouter(tags=["projects"])


@router.get("/projects", response_model=ProjectList)
async def list_projects(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    List projects the user has logged time against.

    - Requires authentication
    - Sorted by last use, most recent first
    """
    service = StatsService(store)
    return await service.list_projects(user_id=user_id)


@router.get("/projects/suggestions", response_model=ProjectSuggestions)
async def suggest_projects(
    q: Optional[str] = Query(None),
    limit: int = Query(10),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    Suggest project names for autocompletion.

    - Requires authentication
    - Case-insensitive substring match on ``q``
    """
    service = StatsService(store)
    return await service.suggest_projects(user_id=user_id, query=q, limit=limit)


@router.get("/tags", response_model=TagList)
async def list_tags(
    q: Optional[str] = Query(None),
    limit: int = Query(50),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """
    List distinct tags the user has applied.

    - Requires authentication
    - Case-insensitive substring match on ``q``; ``limit=0`` returns all
    """
    service = StatsService(store)
    return await service.list_tags(user_id=user_id, query=q, limit=limit)
