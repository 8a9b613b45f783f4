"""Definition of Ready / Definition of Done criteria."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from app.utils.dates import UTCDateTime


class CriteriaCategory(str, Enum):
    """Criterion weight class."""

    REQUIRED = "required"
    RECOMMENDED = "recommended"
    OPTIONAL = "optional"


class RuleType(str, Enum):
    """Kinds of validation rule attachable to a criterion."""

    REQUIRED = "required"
    DEPENDENCY = "dependency"
    CONDITIONAL = "conditional"


class CriteriaKind(str, Enum):
    """Which checklist a criterion belongs to."""

    DOR = "dor"
    DOD = "dod"


class ValidationRule(BaseModel):
    """Rule evaluated by validate_criteria."""

    type: RuleType
    message: str = ""
    depends_on: list[str] = Field(default_factory=list)
    condition: Optional[str] = None


class Criterion(BaseModel):
    """A single DoR/DoD criterion."""

    id: str
    description: str
    category: CriteriaCategory = CriteriaCategory.REQUIRED
    is_completed: bool = False
    validation_rule: Optional[ValidationRule] = None
    help_text: Optional[str] = None
    order: int = 0
    created_at: UTCDateTime
    updated_at: UTCDateTime


class CriterionTemplate(BaseModel):
    """Criterion blueprint inside a template."""

    description: str
    category: CriteriaCategory = CriteriaCategory.REQUIRED
    validation_rule: Optional[ValidationRule] = None
    help_text: Optional[str] = None


class DorDodTemplate(BaseModel):
    """Reusable set of DoR and DoD criteria."""

    name: str
    dor_criteria: list[CriterionTemplate] = Field(default_factory=list)
    dod_criteria: list[CriterionTemplate] = Field(default_factory=list)


class TemplateApplyMode(str, Enum):
    """How template criteria combine with existing ones."""

    REPLACE = "replace"
    MERGE = "merge"
    APPEND = "append"


class TemplateApplyRequest(BaseModel):
    """Request body for applying a template to a goal."""

    template: DorDodTemplate
    mode: TemplateApplyMode = TemplateApplyMode.APPEND
    category_filter: list[CriteriaCategory] = Field(default_factory=list)


class ProgressMetrics(BaseModel):
    """Weighted readiness and completion scores for a criteria set."""

    readiness_score: int
    completion_score: int
    required_items_completed: int
    total_required_items: int
    recommended_items_completed: int
    total_recommended_items: int
    optional_items_completed: int
    total_optional_items: int
    is_ready_to_start: bool
    is_ready_to_complete: bool


class CriteriaIssue(BaseModel):
    """Blocking error or non-blocking warning for a criterion."""

    criterion_id: str
    message: str
    type: str


class CriteriaValidationResult(BaseModel):
    """Outcome of validate_criteria."""

    is_valid: bool
    errors: list[CriteriaIssue] = Field(default_factory=list)
    warnings: list[CriteriaIssue] = Field(default_factory=list)
    blocking_criteria: list[str] = Field(default_factory=list)


class CriteriaReport(BaseModel):
    """Scores and validation for one checklist."""

    metrics: ProgressMetrics
    validation: CriteriaValidationResult


class ReadinessReport(BaseModel):
    """DoR and DoD reports for a goal."""

    goal_id: str
    dor: CriteriaReport
    dod: CriteriaReport
