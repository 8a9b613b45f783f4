"""Task, subtask and checklist model definitions."""
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.models.common import (
    AuditFields,
    GoalPriority,
    SoftDeleteFields,
    TaskStatus,
)
from app.utils.dates import UTCDateTime


class ChecklistItem(BaseModel):
    """Checklist entry embedded in a task or subtask."""

    id: str
    title: str
    description: Optional[str] = None
    is_required: bool = False
    is_completed: bool = False
    completed_at: Optional[UTCDateTime] = None
    completed_by: Optional[str] = None
    order: int = 0
    created_at: UTCDateTime
    updated_at: UTCDateTime
    created_by: str
    updated_by: str


class ChecklistItemCreate(BaseModel):
    """Checklist item creation model."""

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=300)
    is_required: bool = False


class ChecklistItemUpdate(BaseModel):
    """Checklist item update model - all fields optional."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=300)
    is_required: Optional[bool] = None
    is_completed: Optional[bool] = None
    order: Optional[int] = Field(default=None, ge=0)


class WorkItemBase(BaseModel):
    """Fields shared by tasks and subtasks."""

    title: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: GoalPriority = GoalPriority.MEDIUM
    assigned_to: Optional[str] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    due_date: Optional[UTCDateTime] = None
    start_date: Optional[UTCDateTime] = None
    completed_at: Optional[UTCDateTime] = None
    progress: int = Field(default=0, ge=0, le=100)
    tags: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    checklist: list[ChecklistItem] = Field(default_factory=list)
    notes: str = ""


class Subtask(WorkItemBase, AuditFields, SoftDeleteFields):
    """Child work item scoped to a parent task."""

    id: str = Field(alias="_id", serialization_alias="id")
    task_id: str
    order: int = 0

    model_config = {"populate_by_name": True}


class Task(WorkItemBase, AuditFields, SoftDeleteFields):
    """Full task model with storage fields and attached subtasks."""

    id: str = Field(alias="_id", serialization_alias="id")
    goal_id: str
    order: int = 0
    subtasks: list[Subtask] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class TaskCreate(BaseModel):
    """Task creation model."""

    title: str
    description: Optional[str] = None
    priority: GoalPriority = GoalPriority.MEDIUM
    assigned_to: Optional[str] = None
    estimated_hours: Optional[float] = None
    due_date: Optional[UTCDateTime] = None
    start_date: Optional[UTCDateTime] = None
    tags: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    order: Optional[int] = None


class TaskUpdate(BaseModel):
    """Task update model - all fields optional."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[GoalPriority] = None
    assigned_to: Optional[str] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    due_date: Optional[UTCDateTime] = None
    start_date: Optional[UTCDateTime] = None
    completed_at: Optional[UTCDateTime] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    tags: Optional[list[str]] = None
    dependencies: Optional[list[str]] = None
    order: Optional[int] = None
    notes: Optional[str] = None


class SubtaskCreate(BaseModel):
    """Subtask creation model."""

    title: str
    description: Optional[str] = None
    priority: GoalPriority = GoalPriority.MEDIUM
    assigned_to: Optional[str] = None
    estimated_hours: Optional[float] = None
    due_date: Optional[UTCDateTime] = None
    tags: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)


class SubtaskUpdate(BaseModel):
    """Subtask update model - all fields optional."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[GoalPriority] = None
    assigned_to: Optional[str] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    due_date: Optional[UTCDateTime] = None
    completed_at: Optional[UTCDateTime] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    tags: Optional[list[str]] = None
    dependencies: Optional[list[str]] = None
    notes: Optional[str] = None


class TaskFilters(BaseModel):
    """Filters for listing a goal's tasks."""

    status: list[TaskStatus] = Field(default_factory=list)
    priority: list[GoalPriority] = Field(default_factory=list)
    assigned_to: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    due_start: Optional[UTCDateTime] = None
    due_end: Optional[UTCDateTime] = None
    overdue: bool = False
    completed: Optional[bool] = None


class StatusChangeRequest(BaseModel):
    """Request body for a status transition."""

    status: TaskStatus


class ProgressUpdateRequest(BaseModel):
    """Request body for an explicit progress update."""

    progress: int


class BulkStatusRequest(BaseModel):
    """Request body for bulk status updates."""

    ids: list[str]
    status: TaskStatus


class BulkDeleteRequest(BaseModel):
    """Request body for bulk deletes."""

    ids: list[str]
    permanent: bool = False


class StatusChangeConfirmation(BaseModel):
    """Whether a transition needs user confirmation, and what to say."""

    from_status: TaskStatus
    to_status: TaskStatus
    is_allowed: bool
    requires_confirmation: bool
    confirmation_message: Optional[str] = None
    warning_message: Optional[str] = None


class TaskProgress(BaseModel):
    """Computed progress for a task."""

    task_id: str
    stored_progress: int
    calculated_progress: int


class TimeTrackingSummary(BaseModel):
    """Estimate versus actual hours for a task and its subtasks."""

    total_estimated: float
    total_actual: float
    total_remaining: float
    is_over_estimate: bool
    overage_amount: float
    overage_percentage: float


class TaskStats(BaseModel):
    """Aggregate statistics over a goal's tasks."""

    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    completion_rate: float
    average_progress: float
    overdue_count: int
    total_estimated_hours: float
    total_actual_hours: float


Urgency = Literal["low", "medium", "high", "critical"]


class BulkDeleteResult(BaseModel):
    """Outcome of a bulk delete; failures do not abort the batch."""

    deleted: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
