"""SMART goal model definitions."""
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.models.common import (
    AuditFields,
    GoalCategory,
    GoalPriority,
    GoalStatus,
    SoftDeleteFields,
)
from app.models.criterion import Criterion
from app.models.metric import MeasurableSpec
from app.utils.dates import UTCDateTime


class TimeboundSpec(BaseModel):
    """Goal timeline."""

    start_date: UTCDateTime
    target_date: UTCDateTime
    deadline: Optional[UTCDateTime] = None
    estimated_duration: int = 0  # days
    buffer_days: Optional[int] = None


class Achievability(BaseModel):
    """Achievability assessment."""

    score: float = Field(default=0, ge=0, le=1)
    required_resources: list[str] = Field(default_factory=list)
    required_skills: list[str] = Field(default_factory=list)


class Relevance(BaseModel):
    """Relevance assessment."""

    relevance_score: float = Field(default=0, ge=0, le=1)
    rationale: str = ""
    stakeholders: list[str] = Field(default_factory=list)


class Milestone(BaseModel):
    """Key milestone embedded in a goal."""

    id: str
    title: str
    description: Optional[str] = None
    target_date: UTCDateTime
    completed_at: Optional[UTCDateTime] = None
    is_completed: bool = False
    progress: int = Field(default=0, ge=0, le=100)
    order: int = 0
    is_critical: bool = False


class Outcome(BaseModel):
    """Expected outcome of a goal."""

    id: str
    description: str
    is_achieved: bool = False


Visibility = Literal["private", "team", "organization", "public"]


class GoalBase(BaseModel):
    """Base goal fields."""

    title: str
    description: str
    specific_objective: str = ""
    success_criteria: list[str] = Field(default_factory=list)
    category: GoalCategory = GoalCategory.OTHER
    tags: list[str] = Field(default_factory=list)
    measurable: MeasurableSpec
    timebound: TimeboundSpec
    achievability: Optional[Achievability] = None
    relevance: Optional[Relevance] = None
    status: GoalStatus = GoalStatus.DRAFT
    priority: GoalPriority = GoalPriority.MEDIUM
    owner_id: Optional[str] = None
    collaborators: list[str] = Field(default_factory=list)
    parent_goal_id: Optional[str] = None
    milestones: list[Milestone] = Field(default_factory=list)
    outcomes: list[Outcome] = Field(default_factory=list)
    dor_criteria: list[Criterion] = Field(default_factory=list)
    dod_criteria: list[Criterion] = Field(default_factory=list)
    progress: int = 0
    visibility: Visibility = "team"


class GoalCreate(GoalBase):
    """Goal creation model; also the body of a full replacement (PUT)."""

    pass


class GoalUpdate(BaseModel):
    """Goal update model - all fields optional."""

    title: Optional[str] = None
    description: Optional[str] = None
    specific_objective: Optional[str] = None
    success_criteria: Optional[list[str]] = None
    category: Optional[GoalCategory] = None
    tags: Optional[list[str]] = None
    measurable: Optional[MeasurableSpec] = None
    timebound: Optional[TimeboundSpec] = None
    achievability: Optional[Achievability] = None
    relevance: Optional[Relevance] = None
    status: Optional[GoalStatus] = None
    priority: Optional[GoalPriority] = None
    owner_id: Optional[str] = None
    collaborators: Optional[list[str]] = None
    parent_goal_id: Optional[str] = None
    milestones: Optional[list[Milestone]] = None
    outcomes: Optional[list[Outcome]] = None
    dor_criteria: Optional[list[Criterion]] = None
    dod_criteria: Optional[list[Criterion]] = None
    progress: Optional[int] = None
    visibility: Optional[Visibility] = None


class Goal(GoalBase, AuditFields, SoftDeleteFields):
    """Full goal model with storage fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    is_archived: bool = False

    model_config = {"populate_by_name": True}


class GoalSortField(str, Enum):
    """Fields a goal listing can be sorted by."""

    TITLE = "title"
    STATUS = "status"
    PRIORITY = "priority"
    CATEGORY = "category"
    PROGRESS = "progress"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class SortDirection(str, Enum):
    """Sort order."""

    ASC = "asc"
    DESC = "desc"


class GoalQuery(BaseModel):
    """Filter, sort and pagination parameters for listing goals."""

    status: list[GoalStatus] = Field(default_factory=list)
    priority: list[GoalPriority] = Field(default_factory=list)
    category: list[GoalCategory] = Field(default_factory=list)
    owner_id: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
    sort_field: GoalSortField = GoalSortField.UPDATED_AT
    sort_direction: SortDirection = SortDirection.DESC


class GoalListResponse(BaseModel):
    """Paginated goal listing envelope."""

    items: list[Goal]
    total: int
    page: int
    limit: int
    has_more: bool = Field(alias="hasMore")

    model_config = {"populate_by_name": True}


class GoalDeleteResponse(BaseModel):
    """Result of deleting a goal."""

    message: str
    id: str
    goal: Optional[Goal] = None
