"""Tests for metric progress, velocity and statistics."""
import math
from datetime import datetime, timedelta, timezone

import pytest

from app.models.metric import (
    MeasurableSpec,
    MetricCheckpoint,
    MetricDirection,
    MetricFormData,
    MetricType,
    ProgressStatus,
)
from app.utils.metrics import (
    analyze_progress,
    calculate_checkpoint_statistics,
    calculate_correlation,
    calculate_linear_regression_slope,
    calculate_metric_analytics,
    calculate_moving_average,
    calculate_progress_percentage,
    calculate_projection_confidence,
    calculate_required_velocity,
    calculate_velocity,
    classify_trend,
    determine_progress_status,
    directional_velocity,
    validate_checkpoint,
    validate_metric_form,
)

START = datetime(2025, 3, 1, tzinfo=timezone.utc)


def checkpoint(value: float, day: float, confidence=None, cp_id=None) -> MetricCheckpoint:
    return MetricCheckpoint(
        _id=cp_id or f"cp-{day}",
        goal_id="goal-1",
        value=value,
        recorded_date=START + timedelta(days=day),
        confidence=confidence,
        created_at=START,
        updated_at=START,
        created_by="user-1",
        updated_by="user-1",
    )


class TestProgressPercentage:
    """Tests for calculate_progress_percentage."""

    def test_increase(self):
        assert calculate_progress_percentage(0, 50, 100, MetricDirection.INCREASE) == 50.0

    def test_decrease(self):
        assert calculate_progress_percentage(100, 80, 60, MetricDirection.DECREASE) == 50.0

    def test_clamped_above_target(self):
        assert calculate_progress_percentage(0, 150, 100, MetricDirection.INCREASE) == 100.0

    def test_clamped_below_baseline(self):
        assert calculate_progress_percentage(10, 5, 100, MetricDirection.INCREASE) == 0.0

    def test_zero_span(self):
        assert calculate_progress_percentage(10, 25, 10, MetricDirection.INCREASE) == 0.0
        assert calculate_progress_percentage(10, 5, 10, MetricDirection.DECREASE) == 0.0

    def test_maintain_inside_band(self):
        assert calculate_progress_percentage(
            0, 72, 70, MetricDirection.MAINTAIN, minimum=65, maximum=75
        ) == 100.0

    def test_maintain_outside_band(self):
        # tolerance is the band half-width (5); distance from target is 10
        assert calculate_progress_percentage(
            0, 80, 70, MetricDirection.MAINTAIN, minimum=65, maximum=75
        ) == 0.0
        assert calculate_progress_percentage(
            0, 62, 65, MetricDirection.MAINTAIN, minimum=65, maximum=75
        ) == pytest.approx(40.0)

    def test_maintain_without_band(self):
        assert calculate_progress_percentage(
            50, 60, 70, MetricDirection.MAINTAIN
        ) == pytest.approx(50.0)


class TestVelocity:
    """Tests for velocity calculations."""

    def test_velocity_over_two_weeks(self):
        cps = [checkpoint(40, 14), checkpoint(20, 7), checkpoint(10, 0)]

        assert calculate_velocity(cps) == pytest.approx(30 / 14)

    def test_single_checkpoint(self):
        assert calculate_velocity([checkpoint(10, 0)]) == 0.0

    def test_same_timestamp_is_zero(self):
        cps = [checkpoint(10, 3, cp_id="a"), checkpoint(50, 3, cp_id="b")]

        assert calculate_velocity(cps) == 0.0

    def test_window_uses_most_recent(self):
        cps = [checkpoint(0, 0), checkpoint(10, 10), checkpoint(30, 20)]

        assert calculate_velocity(cps, window=2) == pytest.approx(2.0)

    def test_directional_velocity(self):
        assert directional_velocity(2.0, 10, 50) == 2.0
        assert directional_velocity(-2.0, 50, 10) == 2.0

    def test_required_velocity(self):
        assert calculate_required_velocity(10, 40, 15) == pytest.approx(2.0)
        assert calculate_required_velocity(10, 40, None) is None
        assert calculate_required_velocity(10, 40, 0) == math.inf


class TestProgressStatus:
    """Tests for determine_progress_status."""

    def test_completed(self):
        assert determine_progress_status(100, 0, 5) == ProgressStatus.COMPLETED

    def test_not_started(self):
        assert determine_progress_status(0, 3, 1) == ProgressStatus.NOT_STARTED

    def test_on_track(self):
        assert determine_progress_status(40, 2.0, 2.0) == ProgressStatus.ON_TRACK

    def test_at_risk(self):
        assert determine_progress_status(40, 1.2, 2.0) == ProgressStatus.AT_RISK

    def test_off_track(self):
        assert determine_progress_status(40, 0.5, 2.0) == ProgressStatus.OFF_TRACK

    def test_no_required_velocity(self):
        assert determine_progress_status(40, 0, None) == ProgressStatus.ON_TRACK

    def test_custom_ratios(self):
        assert determine_progress_status(
            40, 1.5, 2.0, on_track_ratio=0.75, at_risk_ratio=0.25
        ) == ProgressStatus.ON_TRACK


class TestRegression:
    """Tests for slope, correlation and trend helpers."""

    def test_slope_of_linear_series(self):
        cps = [checkpoint(10 + 2 * d, d) for d in range(5)]

        assert calculate_linear_regression_slope(cps) == pytest.approx(2.0)
        assert calculate_correlation(cps) == pytest.approx(1.0)

    def test_flat_series(self):
        cps = [checkpoint(5, d) for d in range(4)]

        assert calculate_linear_regression_slope(cps) == pytest.approx(0.0)
        assert calculate_correlation(cps) == 0.0

    def test_too_few_points(self):
        assert calculate_linear_regression_slope([checkpoint(1, 0)]) == 0.0
        assert calculate_correlation([]) == 0.0

    def test_moving_average(self):
        assert calculate_moving_average([1, 2, 3, 4], 2) == [1.5, 2.5, 3.5]
        assert calculate_moving_average([1, 2], 1) == [1, 2]
        assert calculate_moving_average([1, 2], 3) == [1, 2]

    @pytest.mark.parametrize(
        "slope,expected",
        [(0.5, "increasing"), (-0.5, "decreasing"), (0.005, "stable"), (0, "stable")],
    )
    def test_classify_trend(self, slope, expected):
        assert classify_trend(slope) == expected


class TestCheckpointStatistics:
    """Tests for calculate_checkpoint_statistics."""

    def test_empty(self):
        stats = calculate_checkpoint_statistics([])

        assert stats.count == 0
        assert stats.trend == "stable"

    def test_basic_statistics(self):
        cps = [checkpoint(v, d) for d, v in enumerate([2, 4, 4, 4, 5, 5, 7, 9])]

        stats = calculate_checkpoint_statistics(cps)

        assert stats.count == 8
        assert stats.average == pytest.approx(5.0)
        assert stats.standard_deviation == pytest.approx(2.0)
        assert stats.minimum == 2
        assert stats.maximum == 9
        assert stats.total_change == 7
        assert stats.trend == "increasing"
        assert len(stats.moving_average) == 5
        assert stats.average_confidence == 1.0

    def test_outliers_reported(self):
        values = [10, 10, 10, 10, 10, 10, 10, 10, 10, 50]
        cps = [checkpoint(v, d) for d, v in enumerate(values)]

        stats = calculate_checkpoint_statistics(cps)

        assert [cp.value for cp in stats.outliers] == [50]
        assert stats.count == 10

    def test_projection_confidence(self):
        assert calculate_projection_confidence([checkpoint(1, 0), checkpoint(2, 1)]) == 0.3
        assert calculate_projection_confidence([checkpoint(0, d) for d in range(3)]) == 0.1
        assert calculate_projection_confidence([checkpoint(5, d) for d in range(3)]) == 1.0


class TestAnalyzeProgress:
    """Tests for analyze_progress."""

    def test_on_track_analysis(self):
        spec = MeasurableSpec(target_value=100, current_value=40, baseline_value=0)
        cps = [checkpoint(20, 0), checkpoint(40, 10)]
        now = START + timedelta(days=10)

        analysis = analyze_progress(spec, cps, target_date=now + timedelta(days=30), now=now)

        assert analysis.progress_percentage == 40.0
        assert analysis.velocity == pytest.approx(2.0)
        assert analysis.required_velocity == pytest.approx(2.0)
        assert analysis.status == ProgressStatus.ON_TRACK
        assert analysis.on_track_to_target is True
        assert analysis.trend == "increasing"
        assert analysis.estimated_completion == now + timedelta(days=30)

    def test_single_checkpoint_trend_unknown(self):
        spec = MeasurableSpec(target_value=100, current_value=10)

        analysis = analyze_progress(spec, [checkpoint(10, 0)], now=START)

        assert analysis.trend == "unknown"
        assert analysis.velocity == 0.0
        assert analysis.estimated_completion is None
        assert analysis.required_velocity is None

    def test_past_target_date(self):
        spec = MeasurableSpec(target_value=100, current_value=40)
        cps = [checkpoint(20, 0), checkpoint(40, 10)]
        now = START + timedelta(days=10)

        analysis = analyze_progress(spec, cps, target_date=now - timedelta(days=1), now=now)

        assert analysis.required_velocity is None
        assert analysis.status == ProgressStatus.OFF_TRACK

    def test_decreasing_metric(self):
        spec = MeasurableSpec(
            target_value=60, current_value=80, baseline_value=100, direction=MetricDirection.DECREASE
        )
        cps = [checkpoint(100, 0), checkpoint(80, 10)]
        now = START + timedelta(days=10)

        analysis = analyze_progress(spec, cps, target_date=now + timedelta(days=10), now=now)

        assert analysis.progress_percentage == 50.0
        assert analysis.velocity == pytest.approx(-2.0)
        assert analysis.status == ProgressStatus.ON_TRACK


class TestMetricAnalytics:
    """Tests for calculate_metric_analytics."""

    def test_snapshot(self):
        spec = MeasurableSpec(target_value=100)
        cps = [checkpoint(50, 10), checkpoint(40, 5), checkpoint(30, 0)]

        analytics = calculate_metric_analytics("goal-1", spec, cps, now=START + timedelta(days=10))

        assert analytics.total_checkpoints == 3
        assert analytics.latest_value == 50
        assert analytics.previous_value == 40
        assert analytics.change_amount == 10
        assert analytics.change_percentage == pytest.approx(25.0)
        assert analytics.trend == "up"
        assert analytics.average_value == pytest.approx(40.0)
        assert analytics.progress_to_target == 50.0
        assert analytics.velocity_per_day == pytest.approx(2.0)
        assert analytics.estimated_completion_date == START + timedelta(days=35)

    def test_single_checkpoint_is_stable(self):
        analytics = calculate_metric_analytics("goal-1", MeasurableSpec(target_value=10), [checkpoint(0, 0)])

        assert analytics.trend == "stable"
        assert analytics.change_percentage == 0.0

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            calculate_metric_analytics("goal-1", MeasurableSpec(target_value=10), [])


class TestValidateCheckpoint:
    """Tests for validate_checkpoint."""

    def test_valid(self):
        assert validate_checkpoint(5, START, 0.8, now=START + timedelta(days=1)) == []

    def test_missing_value(self):
        assert validate_checkpoint(None, START, now=START) == ["Value is required"]

    def test_future_date(self):
        errors = validate_checkpoint(5, START + timedelta(days=2), now=START)

        assert errors == ["Date cannot be in the future"]

    def test_confidence_range(self):
        assert validate_checkpoint(5, START, 1.5, now=START) == ["Confidence must be between 0 and 1"]

    def test_nan_value(self):
        assert validate_checkpoint(float("nan"), START, now=START) == ["Value must be a valid number"]


class TestValidateMetricForm:
    """Tests for validate_metric_form."""

    def test_valid_form(self):
        form = MetricFormData(name="Weekly distance", metric_type=MetricType.NUMBER, target_value=40, unit="km")

        assert validate_metric_form(form) == {}

    def test_missing_fields(self):
        errors = validate_metric_form(MetricFormData())

        assert errors["name"] == ["Metric name is required"]
        assert errors["metric_type"] == ["Metric type is required"]
        assert errors["target_value"] == ["Target value is required"]
        assert errors["unit"] == ["Unit is required"]

    def test_short_name(self):
        form = MetricFormData(name="ab", metric_type=MetricType.NUMBER, target_value=1, unit="x")

        assert validate_metric_form(form) == {"name": ["Metric name must be at least 3 characters"]}

    def test_percentage_range(self):
        form = MetricFormData(name="Coverage", metric_type=MetricType.PERCENTAGE, target_value=120, unit="%")

        assert validate_metric_form(form)["target_value"] == ["Invalid percentage format"]

    def test_rating_range(self):
        form = MetricFormData(name="Satisfaction", metric_type=MetricType.RATING, target_value=11, unit="pts")

        assert validate_metric_form(form)["target_value"] == ["Invalid rating format"]
