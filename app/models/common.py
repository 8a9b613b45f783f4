"""Shared enums and audit fields."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from app.utils.dates import UTCDateTime


class GoalStatus(str, Enum):
    """Goal lifecycle states."""

    DRAFT = "draft"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    OVERDUE = "overdue"


class GoalPriority(str, Enum):
    """Priority levels shared by goals and tasks."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class GoalCategory(str, Enum):
    """Goal categories."""

    PERSONAL = "personal"
    PROFESSIONAL = "professional"
    HEALTH = "health"
    EDUCATION = "education"
    FINANCIAL = "financial"
    RELATIONSHIP = "relationship"
    CREATIVE = "creative"
    OTHER = "other"


class TaskStatus(str, Enum):
    """Task and subtask lifecycle states."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AuditFields(BaseModel):
    """Creation/update timestamps and actors carried by every entity."""

    created_at: UTCDateTime
    updated_at: UTCDateTime
    created_by: str
    updated_by: str


class SoftDeleteFields(BaseModel):
    """Soft-delete marker."""

    deleted: bool = False
    deleted_at: Optional[UTCDateTime] = None
    deleted_by: Optional[str] = None
