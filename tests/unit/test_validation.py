"""Tests for task form, field and goal validation."""
from datetime import datetime, timedelta, timezone

import pytest

from app.models.validation import TaskFormData
from app.utils.validation import validate_field, validate_goal_fields, validate_task_form


class TestValidateTaskForm:
    """Tests for whole-form task validation."""

    def test_valid_form(self):
        """A minimal valid form has no errors or warnings."""
        result = validate_task_form({"title": "Draft the plan"})

        assert result.is_valid is True
        assert result.errors == {}
        assert result.warnings == []
        assert result.has_blocking_errors is False

    def test_missing_title(self):
        """Missing title is reported against the title field."""
        result = validate_task_form({})

        assert result.is_valid is False
        assert result.has_blocking_errors is True
        assert result.errors["title"] == ["Title is required"]

    def test_title_too_short(self):
        """Titles under three characters are rejected."""
        result = validate_task_form({"title": "ab"})

        assert result.errors["title"] == ["Title must be at least 3 characters long"]

    def test_multiple_field_errors(self):
        """Every invalid field is reported."""
        result = validate_task_form({
            "title": "Valid title",
            "estimated_hours": 0,
            "actual_hours": -1,
            "priority": "urgent",
            "tags": ["ok", ""],
        })

        assert result.errors["estimated_hours"] == ["Estimated hours must be at least 0.1"]
        assert result.errors["actual_hours"] == ["Actual hours cannot be negative"]
        assert result.errors["priority"] == ["Please select a valid priority"]
        assert result.errors["tags"] == ["Tag cannot be empty"]

    def test_too_many_tags(self):
        """More than ten tags is an error."""
        result = validate_task_form({"title": "Valid title", "tags": [f"t{i}" for i in range(11)]})

        assert result.errors["tags"] == ["Maximum 10 tags allowed"]

    def test_due_before_start(self):
        """A due date before the start date is a blocking error."""
        start = datetime(2025, 5, 10, tzinfo=timezone.utc)
        result = validate_task_form({
            "title": "Valid title",
            "start_date": start,
            "due_date": start - timedelta(days=1),
        })

        assert result.is_valid is False
        assert result.errors == {"due_date": ["Due date cannot be before start date"]}

    def test_hours_overrun_warning(self):
        """Actual hours above 150% of the estimate warn without blocking."""
        result = validate_task_form({"title": "Valid title", "estimated_hours": 10, "actual_hours": 16})

        assert result.is_valid is True
        assert result.warnings == [
            "Actual hours significantly exceed estimate. Consider updating estimate."
        ]

    def test_hours_at_threshold_no_warning(self):
        """Exactly 150% of the estimate is not an overrun."""
        result = validate_task_form({"title": "Valid title", "estimated_hours": 10, "actual_hours": 15})

        assert result.warnings == []

    def test_completed_without_hours_warns(self):
        """Completed tasks without logged hours get a reminder."""
        result = validate_task_form(TaskFormData(title="Valid title", status="completed"))

        assert result.is_valid is True
        assert result.warnings == ["Consider logging actual hours for completed tasks."]


class TestValidateField:
    """Tests for single-field validation."""

    def test_short_title(self):
        """Field errors use the friendly message."""
        result = validate_field("title", "ab")

        assert result.is_valid is False
        assert result.errors == ["Title must be at least 3 characters long"]

    def test_valid_field(self):
        """A valid value passes."""
        assert validate_field("estimated_hours", 4).is_valid is True

    def test_unknown_field(self):
        """Unknown fields are rejected."""
        result = validate_field("colour", "red")

        assert result.is_valid is False
        assert result.errors == ["Unknown field: colour"]

    def test_due_date_against_context(self):
        """Due date is checked against the start date in context."""
        result = validate_field(
            "due_date",
            "2025-05-01T00:00:00Z",
            {"start_date": "2025-05-10T00:00:00Z"},
        )

        assert result.errors == ["Due date cannot be before start date"]

    def test_actual_hours_warning(self):
        """Actual hours well over the estimate warn."""
        result = validate_field("actual_hours", 16, {"estimated_hours": 10})

        assert result.is_valid is True
        assert result.warnings == ["Actual hours exceed estimate significantly"]

    def test_unparseable_context_ignored(self):
        """An invalid context value does not raise."""
        result = validate_field("due_date", "2025-05-01T00:00:00Z", {"start_date": "not a date"})

        assert result.is_valid is True


class TestValidateGoalFields:
    """Tests for goal business rules."""

    @pytest.fixture
    def goal(self, goal_payload):
        from app.models.goal import GoalCreate

        return GoalCreate(**goal_payload)

    def test_valid_goal(self, goal):
        """The sample goal passes every rule."""
        assert validate_goal_fields(goal) == []

    def test_blank_title_and_description(self, goal):
        """Whitespace-only text fields are rejected."""
        goal = goal.model_copy(update={"title": "  ", "description": ""})

        assert validate_goal_fields(goal) == ["Title cannot be empty", "Description cannot be empty"]

    def test_target_before_start(self, goal):
        """Target date must come after the start date."""
        timebound = goal.timebound.model_copy(update={"target_date": goal.timebound.start_date})
        goal = goal.model_copy(update={"timebound": timebound})

        assert validate_goal_fields(goal) == ["Start date must be before target date"]

    def test_measurable_values(self, goal):
        """Target must be positive and current non-negative."""
        measurable = goal.measurable.model_copy(update={"target_value": 0, "current_value": -1})
        goal = goal.model_copy(update={"measurable": measurable})

        assert validate_goal_fields(goal) == [
            "Target value must be greater than 0",
            "Current value cannot be negative",
        ]

    def test_progress_range(self, goal):
        """Progress outside 0-100 is rejected."""
        goal = goal.model_copy(update={"progress": 120})

        assert validate_goal_fields(goal) == ["Progress must be between 0 and 100"]
