"""Task progress, time tracking and urgency calculations."""
import math
from datetime import datetime
from typing import Optional

from app.models.common import TaskStatus
from app.models.task import Subtask, Task, TimeTrackingSummary, Urgency
from app.utils.dates import ensure_utc, utcnow
from app.utils.numbers import round_half_up

SUBTASK_WEIGHT = 0.7
CHECKLIST_WEIGHT = 0.3
IN_PROGRESS_DEFAULT = 25


def _subtask_progress(subtask: Subtask) -> float:
    return 100 if subtask.status == TaskStatus.COMPLETED else subtask.progress


def calculate_task_progress(task: Task) -> int:
    """
    Calculate a task's progress percentage (0-100).

    Completed tasks are 100 and todo tasks are 0. Otherwise subtasks (mean of
    their progress) and checklist (share of completed items) are combined
    70/30 when both exist, or used alone. With neither, the stored progress is
    used, falling back to 25 for in-progress tasks.

    Args:
        task: Task with subtasks and checklist attached

    Returns:
        Integer percentage
    """
    if task.status == TaskStatus.COMPLETED:
        return 100
    if task.status == TaskStatus.TODO:
        return 0

    subtasks = [s for s in task.subtasks if not s.deleted]
    checklist = task.checklist

    subtask_avg = (
        sum(_subtask_progress(s) for s in subtasks) / len(subtasks) if subtasks else None
    )
    checklist_pct = (
        100 * sum(1 for item in checklist if item.is_completed) / len(checklist)
        if checklist
        else None
    )

    if subtask_avg is not None and checklist_pct is not None:
        return round_half_up(subtask_avg * SUBTASK_WEIGHT + checklist_pct * CHECKLIST_WEIGHT)
    if subtask_avg is not None:
        return round_half_up(subtask_avg)
    if checklist_pct is not None:
        return round_half_up(checklist_pct)

    if task.progress:
        return task.progress
    return IN_PROGRESS_DEFAULT if task.status == TaskStatus.IN_PROGRESS else 0


def calculate_time_tracking_summary(task: Task) -> TimeTrackingSummary:
    """Sum estimated and actual hours over a task and its subtasks."""
    subtasks = [s for s in task.subtasks if not s.deleted]
    total_estimated = (task.estimated_hours or 0) + sum(s.estimated_hours or 0 for s in subtasks)
    total_actual = (task.actual_hours or 0) + sum(s.actual_hours or 0 for s in subtasks)

    overage = max(0.0, total_actual - total_estimated)
    return TimeTrackingSummary(
        total_estimated=total_estimated,
        total_actual=total_actual,
        total_remaining=max(0.0, total_estimated - total_actual),
        is_over_estimate=total_actual > total_estimated,
        overage_amount=overage,
        overage_percentage=(overage / total_estimated) * 100 if total_estimated > 0 else 0.0,
    )


def is_task_overdue(task: Task | Subtask, now: Optional[datetime] = None) -> bool:
    """A task is overdue when its due date has passed and it is still open."""
    if task.due_date is None or task.status in (TaskStatus.COMPLETED, TaskStatus.CANCELLED):
        return False
    return ensure_utc(task.due_date) < (ensure_utc(now) if now else utcnow())


def get_task_urgency(task: Task | Subtask, now: Optional[datetime] = None) -> Urgency:
    """Bucket a task by days until due."""
    if task.due_date is None:
        return "low"

    now = ensure_utc(now) if now else utcnow()
    days_until_due = math.ceil((ensure_utc(task.due_date) - now).total_seconds() / 86400)

    if days_until_due < 0:
        return "critical"
    if days_until_due <= 1:
        return "high"
    if days_until_due <= 3:
        return "medium"
    return "low"


def format_duration(hours: float) -> str:
    """
    Format hours for display.

    Examples:
        >>> format_duration(0.5)
        '30m'
        >>> format_duration(2)
        '2h'
        >>> format_duration(1.25)
        '1h 15m'
    """
    if hours < 1:
        return f"{round(hours * 60)}m"
    if hours % 1 == 0:
        return f"{int(hours)}h"
    whole = math.floor(hours)
    minutes = round((hours - whole) * 60)
    return f"{whole}h {minutes}m"
