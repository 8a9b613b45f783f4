"""Measurable spec, metric checkpoint and analytics models."""
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.models.common import AuditFields
from app.utils.dates import UTCDateTime


class MetricType(str, Enum):
    """Kind of value a goal measures."""

    NUMBER = "number"
    PERCENTAGE = "percentage"
    CURRENCY = "currency"
    DURATION = "duration"
    BOOLEAN = "boolean"
    RATING = "rating"


class MetricDirection(str, Enum):
    """Which way the metric should move."""

    INCREASE = "increase"
    DECREASE = "decrease"
    MAINTAIN = "maintain"


class Frequency(str, Enum):
    """Measurement cadence."""

    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


class ProgressStatus(str, Enum):
    """Classification of metric progress."""

    NOT_STARTED = "not_started"
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    OFF_TRACK = "off_track"
    COMPLETED = "completed"


class MeasurableSpec(BaseModel):
    """Quantifiable target of a goal."""

    metric_type: MetricType = MetricType.NUMBER
    target_value: float
    current_value: float = 0
    unit: str = ""
    baseline_value: Optional[float] = None
    minimum_value: Optional[float] = None
    maximum_value: Optional[float] = None
    direction: MetricDirection = MetricDirection.INCREASE
    measurement_frequency: Optional[Frequency] = None

    @property
    def baseline(self) -> float:
        """Starting point for progress; explicit baseline, else minimum, else 0."""
        if self.baseline_value is not None:
            return self.baseline_value
        if self.minimum_value is not None:
            return self.minimum_value
        return 0.0


class CheckpointCreate(BaseModel):
    """Checkpoint creation model."""

    value: float
    recorded_date: Optional[UTCDateTime] = None
    note: Optional[str] = None
    is_automatic: bool = False
    source: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=1)


class CheckpointUpdate(BaseModel):
    """Checkpoint update model - all fields optional."""

    value: Optional[float] = None
    recorded_date: Optional[UTCDateTime] = None
    note: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=1)


class MetricCheckpoint(AuditFields):
    """Timestamped observation of a goal's metric."""

    id: str = Field(alias="_id", serialization_alias="id")
    goal_id: str
    value: float
    recorded_date: UTCDateTime
    note: Optional[str] = None
    is_automatic: bool = False
    source: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=1)

    model_config = {"populate_by_name": True}


class ProgressAnalysis(BaseModel):
    """Progress of a measurable spec judged against its checkpoints."""

    progress_percentage: float
    status: ProgressStatus
    trend: Literal["increasing", "decreasing", "stable", "unknown"]
    velocity: float
    required_velocity: Optional[float] = None
    estimated_completion: Optional[UTCDateTime] = None
    days_to_target: Optional[float] = None
    on_track_to_target: bool
    projection_confidence: float


class CheckpointStatistics(BaseModel):
    """Descriptive statistics over a checkpoint window."""

    count: int
    average: float
    minimum: float
    maximum: float
    standard_deviation: float
    trend_slope: float
    trend: Literal["increasing", "decreasing", "stable"]
    correlation: float
    moving_average: list[float] = Field(default_factory=list)
    outliers: list[MetricCheckpoint] = Field(default_factory=list)
    total_change: float = 0
    average_confidence: float = 0


class MetricAnalytics(BaseModel):
    """Snapshot of a goal's metric history."""

    goal_id: str
    total_checkpoints: int
    latest_value: float
    previous_value: float
    change_amount: float
    change_percentage: float
    trend: Literal["up", "down", "stable"]
    average_value: float
    min_value: float
    max_value: float
    progress_to_target: float
    velocity_per_day: float
    estimated_completion_date: Optional[UTCDateTime] = None


class TrendPoint(BaseModel):
    """One point of a chartable series."""

    date: str
    value: float
    target: Optional[float] = None
    note: Optional[str] = None


class MetricFormData(BaseModel):
    """Metric editor input, validated by validate_metric_form."""

    name: Optional[str] = None
    metric_type: Optional[MetricType] = None
    target_value: Optional[float] = None
    current_value: Optional[float] = None
    baseline_value: Optional[float] = None
    unit: Optional[str] = None
    direction: MetricDirection = MetricDirection.INCREASE
