"""Goal router - API endpoints for SMART goal management."""
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.config import settings
from app.database import get_database
from app.dependencies import get_current_user_id
from app.models.common import GoalCategory, GoalPriority, GoalStatus
from app.models.criterion import CriteriaKind, ReadinessReport, TemplateApplyRequest
from app.models.goal import (
    Goal,
    GoalCreate,
    GoalDeleteResponse,
    GoalListResponse,
    GoalQuery,
    GoalSortField,
    GoalUpdate,
    SortDirection,
)
from app.models.validation import SmartScoreResult
from app.services.goal_service import GoalService
from app.utils.params import parse_enum, parse_enum_list, split_csv

router = APIRouter(prefix="/goals", tags=["goals"])

EXPORT_MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
    "markdown": "text/markdown",
}


@router.get("", response_model=GoalListResponse)
async def list_goals(
    status_filter: Optional[str] = Query(None, alias="status", description="Comma-separated statuses"),
    priority: Optional[str] = Query(None, description="Comma-separated priorities"),
    category: Optional[str] = Query(None, description="Comma-separated categories"),
    owner_id: Optional[str] = Query(None, alias="ownerId", description="Comma-separated owner IDs"),
    tags: Optional[str] = Query(None, description="Comma-separated tags (substring match)"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    search: Optional[str] = Query(None, description="Search title, description, objective, tags"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1),
    sort_field: str = Query("updatedAt", alias="sortField"),
    sort_direction: str = Query("desc", alias="sortDirection"),
    db=Depends(get_database),
):
    """
    List goals with filtering, sorting and pagination.

    Limit is capped at the configured maximum page size.

    Returns:
        Envelope with items, total, page, limit and hasMore
    """
    query = GoalQuery(
        status=parse_enum_list(status_filter, GoalStatus, "status"),
        priority=parse_enum_list(priority, GoalPriority, "priority"),
        category=parse_enum_list(category, GoalCategory, "category"),
        owner_id=split_csv(owner_id),
        tags=split_csv(tags),
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        limit=min(limit, settings.max_page_size),
        sort_field=parse_enum(sort_field, GoalSortField, "sortField"),
        sort_direction=parse_enum(sort_direction, SortDirection, "sortDirection"),
    )
    return await GoalService(db).list_goals(query)


@router.post("", response_model=Goal, status_code=status.HTTP_201_CREATED)
async def create_goal(
    goal: GoalCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Create a new goal.

    Args:
        goal: Goal creation data
        user_id: Acting user
        db: Database connection

    Returns:
        Created goal
    """
    return await GoalService(db).create_goal(user_id=user_id, goal_create=goal)


@router.get("/{goal_id}", response_model=Goal)
async def get_goal(goal_id: str, db=Depends(get_database)):
    """Get a goal. 404 if missing, 410 if soft-deleted."""
    return await GoalService(db).get_goal(goal_id)


@router.put("/{goal_id}", response_model=Goal)
async def replace_goal(
    goal_id: str,
    goal: GoalCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Replace a goal's editable fields."""
    return await GoalService(db).replace_goal(user_id=user_id, goal_id=goal_id, goal_create=goal)


@router.patch("/{goal_id}", response_model=Goal)
async def update_goal(
    goal_id: str,
    goal_update: GoalUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Partially update a goal.

    Args:
        goal_id: Goal ID
        goal_update: Fields to change
        user_id: Acting user
        db: Database connection

    Returns:
        Updated goal
    """
    return await GoalService(db).update_goal(user_id=user_id, goal_id=goal_id, goal_update=goal_update)


@router.delete("/{goal_id}", response_model=GoalDeleteResponse)
async def delete_goal(
    goal_id: str,
    permanent: bool = Query(False, description="Remove the goal and everything under it"),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Soft delete a goal, or remove it permanently with ?permanent=true."""
    return await GoalService(db).delete_goal(user_id=user_id, goal_id=goal_id, permanent=permanent)


@router.get("/{goal_id}/readiness", response_model=ReadinessReport)
async def get_readiness(goal_id: str, db=Depends(get_database)):
    """DoR and DoD scores and validation for a goal."""
    return await GoalService(db).get_readiness(goal_id)


@router.get("/{goal_id}/smart-score", response_model=SmartScoreResult)
async def get_smart_score(goal_id: str, db=Depends(get_database)):
    """SMART score with suggestions."""
    return await GoalService(db).get_smart_score(goal_id)


@router.get("/{goal_id}/criteria/export")
async def export_criteria(
    goal_id: str,
    kind: CriteriaKind = Query(CriteriaKind.DOR),
    fmt: Literal["json", "csv", "markdown"] = Query("json", alias="format"),
    db=Depends(get_database),
):
    """Export DoR or DoD criteria as JSON, CSV or markdown."""
    content = await GoalService(db).export_criteria(goal_id, kind, fmt)
    return Response(content=content, media_type=EXPORT_MEDIA_TYPES[fmt])


@router.post("/{goal_id}/criteria/template", response_model=Goal)
async def apply_criteria_template(
    goal_id: str,
    request: TemplateApplyRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Apply a DoR/DoD template to a goal."""
    return await GoalService(db).apply_criteria_template(user_id=user_id, goal_id=goal_id, request=request)
