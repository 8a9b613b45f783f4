"""Validation router - stateless checks for editor forms."""
from typing import Any

from fastapi import APIRouter, Body

from app.models.metric import MetricFormData
from app.models.validation import (
    AcceptanceCriteria,
    FieldValidation,
    FieldValidationRequest,
    FormValidation,
    GherkinCriteria,
    GherkinRequest,
    GherkinValidation,
)
from app.utils.gherkin import (
    parse_gherkin_content,
    validate_acceptance_criteria,
    validate_gherkin_syntax,
)
from app.utils.metrics import validate_metric_form
from app.utils.validation import validate_field, validate_task_form

router = APIRouter(prefix="/validation", tags=["validation"])


@router.post("/gherkin", response_model=GherkinValidation)
async def check_gherkin(request: GherkinRequest):
    """Check Gherkin acceptance-criteria syntax."""
    return validate_gherkin_syntax(request.content)


@router.post("/gherkin/parse", response_model=GherkinCriteria)
async def parse_gherkin(request: GherkinRequest):
    """Parse Gherkin text into ordered steps."""
    return parse_gherkin_content(request.content)


@router.post("/acceptance-criteria", response_model=AcceptanceCriteria)
async def check_acceptance_criteria(criteria: AcceptanceCriteria):
    """Validate free-text or Gherkin acceptance criteria."""
    return validate_acceptance_criteria(criteria)


@router.post("/task", response_model=FormValidation)
async def check_task_form(form: dict[str, Any] = Body(...)):
    """
    Validate task editor input.

    Field errors are returned in the body rather than as a 400 so editors
    can show them inline.
    """
    return validate_task_form(form)


@router.post("/task/field", response_model=FieldValidation)
async def check_task_field(request: FieldValidationRequest):
    """Validate one task field with its sibling values as context."""
    return validate_field(request.field, request.value, request.context)


@router.post("/metric", response_model=FormValidation)
async def check_metric_form(form: MetricFormData):
    """Validate metric editor input."""
    errors = validate_metric_form(form)
    return FormValidation(is_valid=not errors, errors=errors, has_blocking_errors=bool(errors))
