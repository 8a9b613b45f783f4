"""Gherkin-style acceptance criteria parsing and validation."""
from app.models.validation import (
    AcceptanceCriteria,
    AcceptanceCriteriaFormat,
    GherkinCriteria,
    GherkinStep,
    GherkinValidation,
)

KEYWORDS = ("Given", "When", "Then", "And", "But")
REQUIRED_CLAUSES = ("Given", "When", "Then")


def _lines(content: str) -> list[str]:
    return [line.strip() for line in content.split("\n") if line.strip()]


def _keyword(line: str):
    for keyword in KEYWORDS:
        if line.startswith(keyword + " "):
            return keyword
    return None


def validate_gherkin_syntax(content: str) -> GherkinValidation:
    """
    Check that every non-blank line starts with a Gherkin keyword and that
    the block has at least one Given, When and Then.

    Examples:
        >>> validate_gherkin_syntax("Given a user\\nWhen they log in").errors
        ['Missing "Then" clause']
    """
    errors: list[str] = []
    seen: set[str] = set()

    for line in _lines(content):
        keyword = _keyword(line)
        if keyword is None:
            errors.append(f'Line "{line}" doesn\'t start with a valid Gherkin keyword')
        else:
            seen.add(keyword)

    for clause in REQUIRED_CLAUSES:
        if clause not in seen:
            errors.append(f'Missing "{clause}" clause')

    return GherkinValidation(is_valid=not errors, errors=errors)


def parse_gherkin_content(content: str) -> GherkinCriteria:
    """Parse keyword lines into ordered steps. Lines without a keyword are skipped."""
    steps = []
    for line in _lines(content):
        keyword = _keyword(line)
        if keyword is not None:
            steps.append(GherkinStep(keyword=keyword, text=line[len(keyword) + 1:]))
    return GherkinCriteria(steps=steps)


def gherkin_to_content(criteria: GherkinCriteria) -> str:
    """Render parsed criteria back to text, one step per line in original order."""
    return "\n".join(f"{step.keyword} {step.text}" for step in criteria.steps)


def validate_acceptance_criteria(criteria: AcceptanceCriteria) -> AcceptanceCriteria:
    """Return a copy of the criteria with ``is_valid`` and ``validation_errors`` filled in."""
    errors: list[str] = []

    if not criteria.content.strip():
        errors.append("Acceptance criteria content cannot be empty")

    if criteria.format == AcceptanceCriteriaFormat.GHERKIN:
        errors.extend(validate_gherkin_syntax(criteria.content).errors)

    return criteria.model_copy(
        update={
            "is_valid": not errors,
            "validation_errors": errors or None,
        }
    )
