"""Metric router - API endpoints for checkpoints and metric analytics."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from app.database import get_database
from app.dependencies import get_current_user_id
from app.models.metric import (
    CheckpointCreate,
    CheckpointStatistics,
    CheckpointUpdate,
    MetricAnalytics,
    MetricCheckpoint,
    ProgressAnalysis,
    TrendPoint,
)
from app.services.metric_service import MetricService

router = APIRouter(tags=["metrics"])


class DeleteAllResponse(BaseModel):
    """Number of checkpoints removed."""

    deleted_count: int


@router.get("/goals/{goal_id}/checkpoints", response_model=list[MetricCheckpoint])
async def list_checkpoints(goal_id: str, db=Depends(get_database)):
    """List a goal's checkpoints, newest first."""
    return await MetricService(db).list_checkpoints(goal_id)


@router.post(
    "/goals/{goal_id}/checkpoints",
    response_model=MetricCheckpoint,
    status_code=status.HTTP_201_CREATED,
)
async def create_checkpoint(
    goal_id: str,
    checkpoint: CheckpointCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Record a checkpoint.

    Args:
        goal_id: Goal ID
        checkpoint: Value, date and metadata
        user_id: Acting user
        db: Database connection

    Returns:
        Created checkpoint
    """
    return await MetricService(db).create_checkpoint(user_id, goal_id, checkpoint)


@router.post(
    "/goals/{goal_id}/checkpoints/bulk",
    response_model=list[MetricCheckpoint],
    status_code=status.HTTP_201_CREATED,
)
async def bulk_create_checkpoints(
    goal_id: str,
    checkpoints: list[CheckpointCreate],
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Record several checkpoints at once."""
    return await MetricService(db).bulk_create_checkpoints(user_id, goal_id, checkpoints)


@router.delete("/goals/{goal_id}/checkpoints", response_model=DeleteAllResponse)
async def delete_all_checkpoints(
    goal_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Remove every checkpoint of a goal."""
    count = await MetricService(db).delete_all_checkpoints(user_id, goal_id)
    return DeleteAllResponse(deleted_count=count)


@router.get("/checkpoints/{checkpoint_id}", response_model=MetricCheckpoint)
async def get_checkpoint(checkpoint_id: str, db=Depends(get_database)):
    """Get a checkpoint."""
    return await MetricService(db).get_checkpoint(checkpoint_id)


@router.patch("/checkpoints/{checkpoint_id}", response_model=MetricCheckpoint)
async def update_checkpoint(
    checkpoint_id: str,
    checkpoint_update: CheckpointUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Correct a checkpoint."""
    return await MetricService(db).update_checkpoint(user_id, checkpoint_id, checkpoint_update)


@router.delete("/checkpoints/{checkpoint_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_checkpoint(
    checkpoint_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Remove a checkpoint."""
    await MetricService(db).delete_checkpoint(user_id, checkpoint_id)


@router.get("/goals/{goal_id}/metrics/analytics", response_model=MetricAnalytics)
async def get_analytics(goal_id: str, db=Depends(get_database)):
    """Latest value, change versus previous checkpoint and estimated completion."""
    return await MetricService(db).get_analytics(goal_id)


@router.get("/goals/{goal_id}/metrics/analysis", response_model=ProgressAnalysis)
async def get_analysis(goal_id: str, db=Depends(get_database)):
    """Progress status against the goal's target date."""
    return await MetricService(db).get_analysis(goal_id)


@router.get("/goals/{goal_id}/metrics/trend", response_model=list[TrendPoint])
async def get_trend(
    goal_id: str,
    days: Optional[int] = Query(None, ge=1, description="Only the last N days"),
    db=Depends(get_database),
):
    """Chartable value series, oldest first."""
    return await MetricService(db).get_trend(goal_id, days)


@router.get("/goals/{goal_id}/metrics/statistics", response_model=CheckpointStatistics)
async def get_statistics(
    goal_id: str,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db=Depends(get_database),
):
    """Descriptive statistics over an optional date window."""
    return await MetricService(db).get_statistics(goal_id, start_date, end_date)


@router.get("/goals/{goal_id}/metrics/export")
async def export_checkpoints(goal_id: str, db=Depends(get_database)):
    """Checkpoints as CSV."""
    content = await MetricService(db).export_checkpoints(goal_id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="checkpoints-{goal_id}.csv"'},
    )
