"""Field-level and cross-field validation for task and goal input."""
from typing import Any, Optional, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.models.common import TaskStatus
from app.models.goal import GoalBase
from app.models.validation import FieldValidation, FormValidation, TaskFormData
from app.utils.dates import UTCDateTime

# Actual hours beyond this multiple of the estimate raise a warning.
HOURS_OVERRUN_RATIO = 1.5

_MESSAGES = {
    ("title", "missing"): "Title is required",
    ("title", "string_type"): "Title is required",
    ("title", "string_too_short"): "Title must be at least 3 characters long",
    ("title", "string_too_long"): "Title must be less than 100 characters",
    ("description", "string_too_long"): "Description must be less than 500 characters",
    ("status", "enum"): "Please select a valid status",
    ("priority", "enum"): "Please select a valid priority",
    ("estimated_hours", "greater_than_equal"): "Estimated hours must be at least 0.1",
    ("estimated_hours", "less_than_equal"): "Estimated hours must be less than 1000",
    ("actual_hours", "greater_than_equal"): "Actual hours cannot be negative",
    ("actual_hours", "less_than_equal"): "Actual hours must be less than 2000",
    ("tags", "string_too_short"): "Tag cannot be empty",
    ("tags", "too_long"): "Maximum 10 tags allowed",
    ("dependencies", "too_long"): "Maximum 20 dependencies allowed",
    ("order", "int_from_float"): "Order must be an integer",
    ("order", "greater_than_equal"): "Order cannot be negative",
}

_date_adapter = TypeAdapter(Optional[UTCDateTime])
_hours_adapter = TypeAdapter(Optional[float])


def _field_errors(exc: PydanticValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for issue in exc.errors():
        field = str(issue["loc"][0]) if issue["loc"] else "__root__"
        message = _MESSAGES.get((field, issue["type"]), issue["msg"])
        errors.setdefault(field, []).append(message)
    return errors


def _coerce(adapter: TypeAdapter, value: Any) -> Any:
    try:
        return adapter.validate_python(value)
    except PydanticValidationError:
        return None


def validate_task_form(data: Union[TaskFormData, dict[str, Any]]) -> FormValidation:
    """
    Validate task editor input.

    Field rules come from TaskFormData. If they pass, cross-field rules run:
    a due date before the start date is an error, while actual hours above
    150% of the estimate and a completed task without logged hours are
    warnings.

    Args:
        data: Raw form values or an already-parsed form

    Returns:
        FormValidation with errors keyed by field name
    """
    if isinstance(data, TaskFormData):
        form = data
    else:
        try:
            form = TaskFormData.model_validate(data)
        except PydanticValidationError as exc:
            return FormValidation(
                is_valid=False,
                errors=_field_errors(exc),
                warnings=[],
                has_blocking_errors=True,
            )

    errors: dict[str, list[str]] = {}
    warnings: list[str] = []

    if form.due_date and form.start_date and form.due_date < form.start_date:
        errors["due_date"] = ["Due date cannot be before start date"]

    if (
        form.estimated_hours
        and form.actual_hours
        and form.actual_hours > form.estimated_hours * HOURS_OVERRUN_RATIO
    ):
        warnings.append("Actual hours significantly exceed estimate. Consider updating estimate.")

    if form.status == TaskStatus.COMPLETED and not form.actual_hours:
        warnings.append("Consider logging actual hours for completed tasks.")

    return FormValidation(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        has_blocking_errors=bool(errors),
    )


def validate_field(
    field: str,
    value: Any,
    context: Optional[dict[str, Any]] = None,
) -> FieldValidation:
    """
    Validate one task form field, with sibling values as context.

    Examples:
        >>> validate_field("title", "ab").errors
        ['Title must be at least 3 characters long']
        >>> validate_field("actual_hours", 16, {"estimated_hours": 10}).warnings
        ['Actual hours exceed estimate significantly']
    """
    context = context or {}
    if field not in TaskFormData.model_fields:
        return FieldValidation(is_valid=False, errors=[f"Unknown field: {field}"])

    errors: list[str] = []
    warnings: list[str] = []

    # Only the field itself is validated; a placeholder title keeps the model happy.
    candidate = {"title": "placeholder", field: value}
    try:
        TaskFormData.model_validate(candidate)
    except PydanticValidationError as exc:
        errors.extend(_field_errors(exc).get(field, []))

    if field == "due_date" and value:
        due = _coerce(_date_adapter, value)
        start = _coerce(_date_adapter, context.get("start_date"))
        if due and start and due < start:
            errors.append("Due date cannot be before start date")

    if field == "actual_hours" and value:
        actual = _coerce(_hours_adapter, value)
        estimated = _coerce(_hours_adapter, context.get("estimated_hours"))
        if actual and estimated and actual > estimated * HOURS_OVERRUN_RATIO:
            warnings.append("Actual hours exceed estimate significantly")

    return FieldValidation(is_valid=not errors, errors=errors, warnings=warnings)


def validate_goal_fields(goal: GoalBase) -> list[str]:
    """
    Business rules for goal create/replace/update payloads.

    Returns:
        Human-readable errors; empty when the goal is valid
    """
    errors: list[str] = []

    if not goal.title.strip():
        errors.append("Title cannot be empty")
    if not goal.description.strip():
        errors.append("Description cannot be empty")

    if not 0 <= goal.progress <= 100:
        errors.append("Progress must be between 0 and 100")

    if goal.timebound.target_date <= goal.timebound.start_date:
        errors.append("Start date must be before target date")

    if goal.measurable.target_value <= 0:
        errors.append("Target value must be greater than 0")
    if goal.measurable.current_value < 0:
        errors.append("Current value cannot be negative")

    return errors
