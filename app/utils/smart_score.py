"""SMART score: how completely a goal fills in each SMART dimension."""
from app.models.goal import GoalBase
from app.models.validation import SmartScoreBreakdown, SmartScoreResult

COMPONENT_POINTS = 20
CHECKS_PER_COMPONENT = 4


def _points(checks: list[bool]) -> int:
    per_check = COMPONENT_POINTS / CHECKS_PER_COMPONENT
    return round(sum(per_check for passed in checks if passed))


def _filled(text) -> bool:
    return bool(text and text.strip())


def _specific_checks(goal: GoalBase) -> dict[str, bool]:
    return {
        "Add a clear and concise title": _filled(goal.title),
        "Provide a detailed description": _filled(goal.description),
        "Define a specific objective": _filled(goal.specific_objective),
        "Add success criteria": bool(goal.success_criteria),
    }


def _measurable_checks(goal: GoalBase) -> dict[str, bool]:
    spec = goal.measurable
    return {
        "Add measurable specifications": spec is not None,
        "Set a target value": spec is not None and spec.target_value > 0,
        "Define measurement unit": spec is not None and _filled(spec.unit),
        "Set measurement frequency": spec is not None and spec.measurement_frequency is not None,
    }


def _achievable_checks(goal: GoalBase) -> dict[str, bool]:
    assessment = goal.achievability
    return {
        "Add achievability assessment": assessment is not None,
        "Improve achievability score or adjust goal scope": (
            assessment is not None and assessment.score >= 0.3
        ),
        "Identify required resources": assessment is not None and bool(assessment.required_resources),
        "List required skills": assessment is not None and bool(assessment.required_skills),
    }


def _relevant_checks(goal: GoalBase) -> dict[str, bool]:
    relevance = goal.relevance
    return {
        "Add relevance assessment": relevance is not None,
        "Improve relevance or align with strategic goals": (
            relevance is not None and relevance.relevance_score >= 0.6
        ),
        "Provide rationale for why this goal matters": (
            relevance is not None and _filled(relevance.rationale)
        ),
        "Identify affected stakeholders": relevance is not None and bool(relevance.stakeholders),
    }


def _time_bound_checks(goal: GoalBase) -> dict[str, bool]:
    timebound = goal.timebound
    return {
        "Add timebound specifications": timebound is not None,
        "Set a start date": timebound is not None and timebound.start_date is not None,
        "Set a target completion date": timebound is not None and timebound.target_date is not None,
        "Estimate duration for the goal": timebound is not None and timebound.estimated_duration > 0,
    }


def _suggestions(checks: dict[str, bool]) -> list[str]:
    """Suggestions for failed checks; a missing section yields only its own suggestion."""
    section_present, *details = checks.items()
    if not section_present[1]:
        return [section_present[0]]
    return [suggestion for suggestion, passed in details if not passed]


def get_score_category(total: int) -> str:
    """Bucket a 0-100 score into poor / fair / good / excellent."""
    if total >= 80:
        return "excellent"
    if total >= 60:
        return "good"
    if total >= 40:
        return "fair"
    return "poor"


def calculate_smart_score(goal: GoalBase) -> SmartScoreResult:
    """
    Score a goal out of 100, 20 points per SMART letter.

    Each letter has four checks worth 5 points. Suggestions list what to add
    for every letter that scored below 20.

    Args:
        goal: Goal to score

    Returns:
        SmartScoreResult with breakdown, suggestions and category
    """
    specific = _specific_checks(goal)
    measurable = _measurable_checks(goal)
    achievable = _achievable_checks(goal)
    relevant = _relevant_checks(goal)
    time_bound = _time_bound_checks(goal)

    # Specific has no section to be missing, so every failed check is suggested.
    suggestions = [text for text, passed in specific.items() if not passed]
    for checks in (measurable, achievable, relevant, time_bound):
        suggestions.extend(_suggestions(checks))

    scores = {
        "specific": _points(list(specific.values())),
        "measurable": _points(list(measurable.values())),
        "achievable": _points(list(achievable.values())),
        "relevant": _points(list(relevant.values())),
        "time_bound": _points(list(time_bound.values())),
    }
    breakdown = SmartScoreBreakdown(**scores, total=sum(scores.values()))

    return SmartScoreResult(
        breakdown=breakdown,
        suggestions=suggestions,
        category=get_score_category(breakdown.total),
    )
