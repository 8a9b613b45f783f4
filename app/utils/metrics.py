"""Metric progress analysis over checkpoint series."""
import math
from datetime import datetime, timedelta
from typing import Literal, Optional, Sequence

from app.models.metric import (
    CheckpointStatistics,
    MeasurableSpec,
    MetricAnalytics,
    MetricCheckpoint,
    MetricDirection,
    MetricFormData,
    MetricType,
    ProgressAnalysis,
    ProgressStatus,
)
from app.utils.dates import days_between, ensure_utc, utcnow

Trend = Literal["increasing", "decreasing", "stable"]


def _chronological(checkpoints: Sequence[MetricCheckpoint]) -> list[MetricCheckpoint]:
    return sorted(checkpoints, key=lambda cp: cp.recorded_date)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def calculate_progress_percentage(
    baseline: float,
    current: float,
    target: float,
    direction: MetricDirection,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
) -> float:
    """
    Percent of the way from baseline to target, clamped to 0-100.

    ``increase`` measures (current - baseline) / (target - baseline) and
    ``decrease`` the mirrored distance closed toward a lower target. For
    ``maintain`` a value inside the [minimum, maximum] band scores 100;
    otherwise the score falls with the distance from target relative to the
    band half-width (or to |target - baseline| without a band). A zero-width
    range scores 0.

    Examples:
        >>> calculate_progress_percentage(0, 50, 100, MetricDirection.INCREASE)
        50.0
        >>> calculate_progress_percentage(100, 80, 60, MetricDirection.DECREASE)
        50.0
        >>> calculate_progress_percentage(10, 25, 10, MetricDirection.INCREASE)
        0.0
    """
    direction = MetricDirection(direction)

    if direction == MetricDirection.MAINTAIN:
        if minimum is not None and maximum is not None and maximum > minimum:
            if minimum <= current <= maximum:
                return 100.0
            tolerance = (maximum - minimum) / 2
        else:
            tolerance = abs(target - baseline)
        if tolerance == 0:
            return 0.0
        return _clamp((1 - abs(current - target) / tolerance) * 100)

    if direction == MetricDirection.INCREASE:
        span = target - baseline
        if span == 0:
            return 0.0
        return _clamp((current - baseline) / span * 100)

    span = baseline - target
    if span == 0:
        return 0.0
    return _clamp((baseline - current) / span * 100)


def spec_progress(spec: MeasurableSpec, current: Optional[float] = None) -> float:
    """Progress percentage for a measurable spec, optionally at another current value."""
    return calculate_progress_percentage(
        spec.baseline,
        spec.current_value if current is None else current,
        spec.target_value,
        spec.direction,
        spec.minimum_value,
        spec.maximum_value,
    )


def calculate_velocity(
    checkpoints: Sequence[MetricCheckpoint],
    window: Optional[int] = None,
) -> float:
    """
    Value change per day between the earliest and latest checkpoint.

    Args:
        checkpoints: Checkpoints in any order
        window: Only consider the most recent N checkpoints

    Returns:
        Velocity per day; 0 with fewer than two checkpoints or when the
        extremes share a timestamp
    """
    ordered = _chronological(checkpoints)
    if window:
        ordered = ordered[-window:]
    if len(ordered) < 2:
        return 0.0

    first, last = ordered[0], ordered[-1]
    days = days_between(first.recorded_date, last.recorded_date)
    if days == 0:
        return 0.0
    return (last.value - first.value) / days


def directional_velocity(velocity: float, current: float, target: float) -> float:
    """Velocity measured toward the target (positive means closing in)."""
    return velocity if target >= current else -velocity


def calculate_required_velocity(
    current: float,
    target: float,
    days_to_target: Optional[float],
) -> Optional[float]:
    """
    Velocity needed to reach the target by the target date.

    Returns None without a target date and infinity once the date has passed.
    """
    if days_to_target is None:
        return None
    if days_to_target <= 0:
        return math.inf
    return abs(target - current) / days_to_target


def determine_progress_status(
    progress_percentage: float,
    velocity: float,
    required_velocity: Optional[float] = None,
    on_track_ratio: float = 1.0,
    at_risk_ratio: float = 0.5,
) -> ProgressStatus:
    """
    Classify progress.

    Completed at 100%, not started at 0%. Otherwise the actual velocity is
    compared with the required one: on track at or above ``on_track_ratio``
    of it, at risk at or above ``at_risk_ratio``, off track below. Without a
    required velocity (no target date) any partial progress is on track.
    """
    if progress_percentage >= 100:
        return ProgressStatus.COMPLETED
    if progress_percentage <= 0:
        return ProgressStatus.NOT_STARTED
    if required_velocity is None or required_velocity <= 0:
        return ProgressStatus.ON_TRACK

    if velocity >= required_velocity * on_track_ratio:
        return ProgressStatus.ON_TRACK
    if velocity >= required_velocity * at_risk_ratio:
        return ProgressStatus.AT_RISK
    return ProgressStatus.OFF_TRACK


def _regression_points(checkpoints: Sequence[MetricCheckpoint]) -> tuple[list[float], list[float]]:
    ordered = _chronological(checkpoints)
    origin = ordered[0].recorded_date
    xs = [days_between(origin, cp.recorded_date) for cp in ordered]
    ys = [cp.value for cp in ordered]
    return xs, ys


def calculate_linear_regression_slope(checkpoints: Sequence[MetricCheckpoint]) -> float:
    """Least-squares slope of value against elapsed days."""
    if len(checkpoints) < 2:
        return 0.0

    xs, ys = _regression_points(checkpoints)
    n = len(xs)
    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_xx = sum(x * x for x in xs)

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return 0.0
    return (n * sum_xy - sum_x * sum_y) / denominator


def calculate_correlation(checkpoints: Sequence[MetricCheckpoint]) -> float:
    """Pearson correlation of value against elapsed days."""
    if len(checkpoints) < 2:
        return 0.0

    xs, ys = _regression_points(checkpoints)
    n = len(xs)
    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_xx = sum(x * x for x in xs)
    sum_yy = sum(y * y for y in ys)

    numerator = n * sum_xy - sum_x * sum_y
    spread = (n * sum_xx - sum_x * sum_x) * (n * sum_yy - sum_y * sum_y)
    if spread <= 0:
        return 0.0
    return numerator / math.sqrt(spread)


def calculate_moving_average(values: Sequence[float], window: int) -> list[float]:
    """Simple trailing moving average."""
    if window < 2 or len(values) < window:
        return list(values)
    return [
        sum(values[i - window + 1:i + 1]) / window
        for i in range(window - 1, len(values))
    ]


def classify_trend(slope: float, epsilon: float = 0.01) -> Trend:
    """Sign of a slope, treating |slope| <= epsilon as stable."""
    if slope > epsilon:
        return "increasing"
    if slope < -epsilon:
        return "decreasing"
    return "stable"


def calculate_checkpoint_statistics(
    checkpoints: Sequence[MetricCheckpoint],
    outlier_multiplier: float = 2.0,
    trend_epsilon: float = 0.01,
) -> CheckpointStatistics:
    """
    Descriptive statistics over a checkpoint window.

    Outliers are values further than ``outlier_multiplier`` population
    standard deviations from the mean. They are reported, not removed.
    """
    if not checkpoints:
        return CheckpointStatistics(
            count=0,
            average=0,
            minimum=0,
            maximum=0,
            standard_deviation=0,
            trend_slope=0,
            trend="stable",
            correlation=0,
        )

    ordered = _chronological(checkpoints)
    values = [cp.value for cp in ordered]
    count = len(values)
    average = sum(values) / count
    variance = sum((v - average) ** 2 for v in values) / count
    std_dev = math.sqrt(variance)
    slope = calculate_linear_regression_slope(ordered)
    confidences = [cp.confidence if cp.confidence is not None else 1.0 for cp in ordered]

    return CheckpointStatistics(
        count=count,
        average=average,
        minimum=min(values),
        maximum=max(values),
        standard_deviation=std_dev,
        trend_slope=slope,
        trend=classify_trend(slope, trend_epsilon),
        correlation=calculate_correlation(ordered),
        moving_average=calculate_moving_average(values, min(5, count // 2)),
        outliers=[cp for cp in ordered if abs(cp.value - average) > outlier_multiplier * std_dev],
        total_change=values[-1] - values[0],
        average_confidence=sum(confidences) / count,
    )


def calculate_projection_confidence(checkpoints: Sequence[MetricCheckpoint]) -> float:
    """
    Confidence (0.1-1.0) in projections, falling as the data gets noisier.

    Fewer than three checkpoints gives a flat 0.3.
    """
    if len(checkpoints) < 3:
        return 0.3

    values = [cp.value for cp in checkpoints]
    mean = sum(values) / len(values)
    if mean == 0:
        return 0.1
    std_dev = math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))
    coefficient_of_variation = abs(std_dev / mean)
    return max(0.1, min(1.0, 1 - coefficient_of_variation))


def _estimate_completion(
    current: float,
    target: float,
    velocity: float,
    progress: float,
    now: datetime,
) -> Optional[datetime]:
    toward_target = directional_velocity(velocity, current, target)
    if progress >= 100 or toward_target <= 0:
        return None
    return now + timedelta(days=abs(target - current) / toward_target)


def analyze_progress(
    spec: MeasurableSpec,
    checkpoints: Sequence[MetricCheckpoint],
    target_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
    on_track_ratio: float = 1.0,
    at_risk_ratio: float = 0.5,
    velocity_window: Optional[int] = None,
    trend_epsilon: float = 0.01,
) -> ProgressAnalysis:
    """
    Judge a measurable spec's progress against its checkpoint history.

    Args:
        spec: Measurable spec; its current value is used as-is
        checkpoints: Checkpoint history in any order
        target_date: Date by which the target should be reached
        now: Reference time (defaults to current UTC time)
        on_track_ratio: Share of required velocity that counts as on track
        at_risk_ratio: Share of required velocity below which progress is off track
        velocity_window: Number of most recent checkpoints used for velocity
        trend_epsilon: Slope magnitude treated as stable

    Returns:
        ProgressAnalysis
    """
    now = ensure_utc(now) if now else utcnow()
    current = spec.current_value
    target = spec.target_value

    progress = spec_progress(spec)
    velocity = calculate_velocity(checkpoints, velocity_window)
    toward_target = directional_velocity(velocity, current, target)
    days_to_target = days_between(now, target_date) if target_date else None
    required = calculate_required_velocity(current, target, days_to_target)

    status = determine_progress_status(
        progress,
        toward_target,
        required,
        on_track_ratio=on_track_ratio,
        at_risk_ratio=at_risk_ratio,
    )

    ordered = _chronological(checkpoints)
    if velocity_window:
        ordered = ordered[-velocity_window:]
    trend = (
        classify_trend(calculate_linear_regression_slope(ordered), trend_epsilon)
        if len(ordered) >= 2
        else "unknown"
    )

    return ProgressAnalysis(
        progress_percentage=progress,
        status=status,
        trend=trend,
        velocity=velocity,
        required_velocity=required if required is not None and math.isfinite(required) else None,
        estimated_completion=_estimate_completion(current, target, velocity, progress, now),
        days_to_target=days_to_target,
        on_track_to_target=status in (ProgressStatus.ON_TRACK, ProgressStatus.COMPLETED),
        projection_confidence=calculate_projection_confidence(checkpoints),
    )


def calculate_metric_analytics(
    goal_id: str,
    spec: MeasurableSpec,
    checkpoints: Sequence[MetricCheckpoint],
    now: Optional[datetime] = None,
    trend_epsilon: float = 0.01,
) -> MetricAnalytics:
    """
    Snapshot of a goal's metric: change versus the preceding checkpoint,
    aggregates, velocity and an extrapolated completion date.

    Raises:
        ValueError: If there are no checkpoints
    """
    if not checkpoints:
        raise ValueError("No checkpoints found for goal")

    now = ensure_utc(now) if now else utcnow()
    latest_first = list(reversed(_chronological(checkpoints)))
    values = [cp.value for cp in latest_first]

    latest = values[0]
    previous = values[1] if len(values) > 1 else latest
    change = latest - previous

    if change > trend_epsilon:
        trend = "up"
    elif change < -trend_epsilon:
        trend = "down"
    else:
        trend = "stable"

    velocity = calculate_velocity(checkpoints)
    progress = spec_progress(spec, current=latest)

    return MetricAnalytics(
        goal_id=goal_id,
        total_checkpoints=len(values),
        latest_value=latest,
        previous_value=previous,
        change_amount=change,
        change_percentage=(change / previous) * 100 if previous != 0 else 0.0,
        trend=trend,
        average_value=sum(values) / len(values),
        min_value=min(values),
        max_value=max(values),
        progress_to_target=progress,
        velocity_per_day=velocity,
        estimated_completion_date=_estimate_completion(
            latest, spec.target_value, velocity, progress, now
        ),
    )


def validate_checkpoint(
    value: Optional[float],
    recorded_date: Optional[datetime],
    confidence: Optional[float] = None,
    now: Optional[datetime] = None,
) -> list[str]:
    """Field checks for a checkpoint; returns human-readable errors."""
    errors: list[str] = []
    now = ensure_utc(now) if now else utcnow()

    if value is None:
        errors.append("Value is required")
    elif isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        errors.append("Value must be a valid number")

    if recorded_date is None:
        errors.append("Date is required")
    elif ensure_utc(recorded_date) > now:
        errors.append("Date cannot be in the future")

    if confidence is not None and not 0 <= confidence <= 1:
        errors.append("Confidence must be between 0 and 1")

    return errors


def _is_number(value: Optional[float]) -> bool:
    return value is not None and not math.isnan(value)


def validate_metric_form(data: MetricFormData) -> dict[str, list[str]]:
    """
    Validate metric editor input.

    Returns:
        Mapping of field name to error messages; empty when valid
    """
    errors: dict[str, list[str]] = {}

    name = (data.name or "").strip()
    if not name:
        errors["name"] = ["Metric name is required"]
    elif len(name) < 3:
        errors["name"] = ["Metric name must be at least 3 characters"]
    elif len(name) > 100:
        errors["name"] = ["Metric name must be less than 100 characters"]

    if data.metric_type is None:
        errors["metric_type"] = ["Metric type is required"]

    if data.target_value is None:
        errors["target_value"] = ["Target value is required"]
    elif not _is_number(data.target_value):
        errors["target_value"] = ["Target value must be a valid number"]
    elif data.metric_type == MetricType.PERCENTAGE and not 0 <= data.target_value <= 100:
        errors["target_value"] = ["Invalid percentage format"]
    elif data.metric_type == MetricType.RATING and not 1 <= data.target_value <= 10:
        errors["target_value"] = ["Invalid rating format"]
    elif data.metric_type == MetricType.BOOLEAN and data.target_value not in (0, 1):
        errors["target_value"] = ["Invalid yes/no format"]

    if data.current_value is not None and not _is_number(data.current_value):
        errors["current_value"] = ["Current value must be a valid number"]

    if data.baseline_value is not None and not _is_number(data.baseline_value):
        errors["baseline_value"] = ["Baseline value must be a valid number"]

    if not (data.unit or "").strip():
        errors["unit"] = ["Unit is required"]

    return errors
