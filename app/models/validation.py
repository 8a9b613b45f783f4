"""Request and result models for the validation rule sets."""
from enum import Enum
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, Field

from app.models.common import GoalPriority, TaskStatus
from app.utils.dates import UTCDateTime


class TaskFormData(BaseModel):
    """Task editor input with its field-level rules."""

    title: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    status: TaskStatus = TaskStatus.TODO
    priority: GoalPriority = GoalPriority.MEDIUM
    assigned_to: Optional[str] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0.1, le=1000)
    actual_hours: Optional[float] = Field(default=None, ge=0, le=2000)
    due_date: Optional[UTCDateTime] = None
    start_date: Optional[UTCDateTime] = None
    tags: list[Annotated[str, Field(min_length=1)]] = Field(default_factory=list, max_length=10)
    dependencies: list[str] = Field(default_factory=list, max_length=20)
    order: int = Field(default=0, ge=0)


class FormValidation(BaseModel):
    """Outcome of validating a whole form."""

    is_valid: bool
    errors: dict[str, list[str]] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    has_blocking_errors: bool = False


class FieldValidation(BaseModel):
    """Outcome of validating a single field."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class FieldValidationRequest(BaseModel):
    """A single field value plus the sibling fields it is checked against."""

    field: str
    value: Any = None
    context: dict[str, Any] = Field(default_factory=dict)


class AcceptanceCriteriaFormat(str, Enum):
    """How acceptance criteria text is written."""

    FREE_TEXT = "free_text"
    GHERKIN = "gherkin"


class AcceptanceCriteria(BaseModel):
    """Acceptance criteria block and its validation state."""

    format: AcceptanceCriteriaFormat = AcceptanceCriteriaFormat.GHERKIN
    content: str
    is_valid: bool = True
    validation_errors: Optional[list[str]] = None


GherkinKeyword = Literal["Given", "When", "Then", "And", "But"]


class GherkinStep(BaseModel):
    """One keyword line of a scenario."""

    keyword: GherkinKeyword
    text: str


class GherkinCriteria(BaseModel):
    """Parsed Gherkin scenario; ``steps`` keeps the original line order."""

    steps: list[GherkinStep] = Field(default_factory=list)

    def _texts(self, keyword: str) -> list[str]:
        return [step.text for step in self.steps if step.keyword == keyword]

    @property
    def given(self) -> list[str]:
        return self._texts("Given")

    @property
    def when(self) -> list[str]:
        return self._texts("When")

    @property
    def then(self) -> list[str]:
        return self._texts("Then")

    @property
    def and_(self) -> list[str]:
        return self._texts("And")

    @property
    def but(self) -> list[str]:
        return self._texts("But")

    @classmethod
    def from_clauses(
        cls,
        given: Optional[list[str]] = None,
        when: Optional[list[str]] = None,
        then: Optional[list[str]] = None,
        and_: Optional[list[str]] = None,
        but: Optional[list[str]] = None,
    ) -> "GherkinCriteria":
        """Build criteria from per-keyword lists, in Given/When/Then/And/But order."""
        steps = []
        for keyword, texts in (
            ("Given", given),
            ("When", when),
            ("Then", then),
            ("And", and_),
            ("But", but),
        ):
            steps.extend(GherkinStep(keyword=keyword, text=text) for text in texts or [])
        return cls(steps=steps)


class GherkinValidation(BaseModel):
    """Result of checking Gherkin syntax."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)


class GherkinRequest(BaseModel):
    """Request body for Gherkin validation."""

    content: str


class SmartScoreBreakdown(BaseModel):
    """Per-letter SMART points, each out of 20."""

    specific: int
    measurable: int
    achievable: int
    relevant: int
    time_bound: int
    total: int


class SmartScoreResult(BaseModel):
    """SMART score with improvement suggestions."""

    breakdown: SmartScoreBreakdown
    suggestions: list[str] = Field(default_factory=list)
    category: Literal["poor", "fair", "good", "excellent"]

