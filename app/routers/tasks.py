"""Task router - API endpoints for tasks, subtasks and checklists."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.database import get_database
from app.dependencies import get_current_user_id
from app.models.common import GoalPriority, TaskStatus
from app.models.task import (
    BulkDeleteRequest,
    BulkDeleteResult,
    BulkStatusRequest,
    ChecklistItemCreate,
    ChecklistItemUpdate,
    ProgressUpdateRequest,
    StatusChangeConfirmation,
    StatusChangeRequest,
    Subtask,
    SubtaskCreate,
    SubtaskUpdate,
    Task,
    TaskCreate,
    TaskFilters,
    TaskProgress,
    TaskStats,
    TaskUpdate,
    TimeTrackingSummary,
)
from app.services.task_service import TaskService
from app.utils.params import parse_enum, parse_enum_list, split_csv

router = APIRouter(tags=["tasks"])


@router.get("/goals/{goal_id}/tasks", response_model=list[Task])
async def list_tasks(
    goal_id: str,
    status_filter: Optional[str] = Query(None, alias="status", description="Comma-separated statuses"),
    priority: Optional[str] = Query(None, description="Comma-separated priorities"),
    assigned_to: Optional[str] = Query(None, alias="assignedTo", description="Comma-separated assignees"),
    tags: Optional[str] = Query(None, description="Comma-separated tags"),
    due_start: Optional[datetime] = Query(None, alias="dueStart"),
    due_end: Optional[datetime] = Query(None, alias="dueEnd"),
    overdue: bool = Query(False),
    completed: Optional[bool] = Query(None),
    db=Depends(get_database),
):
    """
    List a goal's tasks in order, with subtasks attached.

    Returns:
        List of tasks
    """
    filters = TaskFilters(
        status=parse_enum_list(status_filter, TaskStatus, "status"),
        priority=parse_enum_list(priority, GoalPriority, "priority"),
        assigned_to=split_csv(assigned_to),
        tags=split_csv(tags),
        due_start=due_start,
        due_end=due_end,
        overdue=overdue,
        completed=completed,
    )
    return await TaskService(db).list_tasks(goal_id, filters)


@router.post("/goals/{goal_id}/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(
    goal_id: str,
    task: TaskCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Create a task under a goal.

    Args:
        goal_id: Parent goal ID
        task: Task creation data
        user_id: Acting user
        db: Database connection

    Returns:
        Created task
    """
    return await TaskService(db).create_task(user_id=user_id, goal_id=goal_id, task_create=task)


@router.get("/goals/{goal_id}/tasks/stats", response_model=TaskStats)
async def get_task_stats(goal_id: str, db=Depends(get_database)):
    """Aggregate statistics over a goal's tasks."""
    return await TaskService(db).get_stats(goal_id)


@router.get("/tasks/overdue", response_model=list[Task])
async def list_overdue_tasks(
    goal_id: Optional[str] = Query(None, alias="goalId"),
    db=Depends(get_database),
):
    """Open tasks past their due date."""
    return await TaskService(db).get_overdue_tasks(goal_id)


@router.post("/tasks/bulk/status", response_model=list[Task])
async def bulk_update_status(
    request: BulkStatusRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Move several tasks to one status; failures are skipped."""
    return await TaskService(db).bulk_update_status(user_id, request.ids, request.status)


@router.post("/tasks/bulk/delete", response_model=BulkDeleteResult)
async def bulk_delete(
    request: BulkDeleteRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Delete several tasks; failures are reported, not raised."""
    return await TaskService(db).bulk_delete(user_id, request.ids, request.permanent)


@router.get("/tasks/{task_id}", response_model=Task)
async def get_task(task_id: str, db=Depends(get_database)):
    """Get a task with its subtasks."""
    return await TaskService(db).get_task(task_id)


@router.patch("/tasks/{task_id}", response_model=Task)
async def update_task(
    task_id: str,
    task_update: TaskUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """
    Update a task.

    Args:
        task_id: Task ID
        task_update: Fields to change
        user_id: Acting user
        db: Database connection

    Returns:
        Updated task
    """
    return await TaskService(db).update_task(user_id=user_id, task_id=task_id, task_update=task_update)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    permanent: bool = Query(False),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Delete a task and its subtasks."""
    await TaskService(db).delete_task(user_id=user_id, task_id=task_id, permanent=permanent)


@router.put("/tasks/{task_id}/status", response_model=Task)
async def change_status(
    task_id: str,
    request: StatusChangeRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Move a task to a new status."""
    return await TaskService(db).change_status(user_id, task_id, request.status)


@router.get("/tasks/{task_id}/transitions", response_model=list[StatusChangeConfirmation])
async def list_transitions(task_id: str, db=Depends(get_database)):
    """Every status the task may move to next, with confirmation text."""
    return await TaskService(db).list_transitions(task_id)


@router.get("/tasks/{task_id}/transitions/{to_status}", response_model=StatusChangeConfirmation)
async def get_transition(task_id: str, to_status: str, db=Depends(get_database)):
    """Whether a transition is allowed and whether it needs confirmation."""
    return await TaskService(db).get_transition(task_id, parse_enum(to_status, TaskStatus, "status"))


@router.get("/tasks/{task_id}/progress", response_model=TaskProgress)
async def get_progress(task_id: str, db=Depends(get_database)):
    """Stored and computed progress."""
    return await TaskService(db).get_progress(task_id)


@router.put("/tasks/{task_id}/progress", response_model=Task)
async def set_progress(
    task_id: str,
    request: ProgressUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Set progress explicitly; status follows."""
    return await TaskService(db).set_progress(user_id, task_id, request.progress)


@router.get("/tasks/{task_id}/time-summary", response_model=TimeTrackingSummary)
async def get_time_summary(task_id: str, db=Depends(get_database)):
    """Estimated versus actual hours."""
    return await TaskService(db).get_time_summary(task_id)


@router.get("/tasks/{task_id}/subtasks", response_model=list[Subtask])
async def list_subtasks(task_id: str, db=Depends(get_database)):
    """List a task's subtasks in order."""
    return await TaskService(db).list_subtasks(task_id)


@router.post("/tasks/{task_id}/subtasks", response_model=Subtask, status_code=status.HTTP_201_CREATED)
async def create_subtask(
    task_id: str,
    subtask: SubtaskCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Create a subtask."""
    return await TaskService(db).create_subtask(user_id, task_id, subtask)


@router.get("/subtasks/{subtask_id}", response_model=Subtask)
async def get_subtask(subtask_id: str, db=Depends(get_database)):
    """Get a subtask."""
    return await TaskService(db).get_subtask(subtask_id)


@router.patch("/subtasks/{subtask_id}", response_model=Subtask)
async def update_subtask(
    subtask_id: str,
    subtask_update: SubtaskUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Update a subtask."""
    return await TaskService(db).update_subtask(user_id, subtask_id, subtask_update)


@router.delete("/subtasks/{subtask_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subtask(
    subtask_id: str,
    permanent: bool = Query(False),
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Delete a subtask."""
    await TaskService(db).delete_subtask(user_id, subtask_id, permanent)


@router.post("/tasks/{task_id}/checklist", response_model=Task, status_code=status.HTTP_201_CREATED)
async def add_checklist_item(
    task_id: str,
    item: ChecklistItemCreate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Append a checklist item."""
    return await TaskService(db).add_checklist_item(user_id, task_id, item)


@router.patch("/tasks/{task_id}/checklist/{item_id}", response_model=Task)
async def update_checklist_item(
    task_id: str,
    item_id: str,
    item_update: ChecklistItemUpdate,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Update a checklist item; completing it stamps who and when."""
    return await TaskService(db).update_checklist_item(user_id, task_id, item_id, item_update)


@router.delete("/tasks/{task_id}/checklist/{item_id}", response_model=Task)
async def remove_checklist_item(
    task_id: str,
    item_id: str,
    user_id: str = Depends(get_current_user_id),
    db=Depends(get_database),
):
    """Remove a checklist item."""
    return await TaskService(db).remove_checklist_item(user_id, task_id, item_id)
