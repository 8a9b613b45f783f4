"""Definition of Ready / Definition of Done scoring and validation."""
import csv
import io
import json
from datetime import datetime
from typing import Literal, Optional

from bson import ObjectId

from app.models.criterion import (
    CriteriaCategory,
    CriteriaIssue,
    CriteriaValidationResult,
    Criterion,
    CriterionTemplate,
    DorDodTemplate,
    ProgressMetrics,
    RuleType,
    TemplateApplyMode,
)
from app.utils.dates import utcnow
from app.utils.numbers import round_half_up

CATEGORY_WEIGHTS: dict[CriteriaCategory, int] = {
    CriteriaCategory.REQUIRED: 60,
    CriteriaCategory.RECOMMENDED: 30,
    CriteriaCategory.OPTIONAL: 10,
}

CATEGORY_ORDER: dict[CriteriaCategory, int] = {
    CriteriaCategory.REQUIRED: 0,
    CriteriaCategory.RECOMMENDED: 1,
    CriteriaCategory.OPTIONAL: 2,
}

CATEGORY_LABELS: dict[CriteriaCategory, str] = {
    CriteriaCategory.REQUIRED: "Required",
    CriteriaCategory.RECOMMENDED: "Recommended",
    CriteriaCategory.OPTIONAL: "Optional",
}


def _in_category(criteria: list[Criterion], category: CriteriaCategory) -> list[Criterion]:
    return [c for c in criteria if c.category == category]


def calculate_progress_metrics(criteria: list[Criterion]) -> ProgressMetrics:
    """
    Compute weighted readiness and completion scores.

    Readiness weights required/recommended/optional at 60/30/10. A category
    with no criteria counts as fully satisfied. Completion is the share of all
    criteria completed, 100 when there are none.

    Examples:
        Four required criteria with two complete and nothing else defined
        score 60 * 2/4 + 30 + 10 = 70.
    """
    counts: dict[CriteriaCategory, tuple[int, int]] = {}
    readiness = 0.0
    for category, weight in CATEGORY_WEIGHTS.items():
        items = _in_category(criteria, category)
        completed = sum(1 for c in items if c.is_completed)
        counts[category] = (completed, len(items))
        readiness += weight * (completed / len(items)) if items else weight

    total = len(criteria)
    completed_total = sum(1 for c in criteria if c.is_completed)
    required_done, required_total = counts[CriteriaCategory.REQUIRED]
    recommended_done, recommended_total = counts[CriteriaCategory.RECOMMENDED]
    optional_done, optional_total = counts[CriteriaCategory.OPTIONAL]

    return ProgressMetrics(
        readiness_score=round_half_up(readiness),
        completion_score=round_half_up(completed_total / total * 100) if total else 100,
        required_items_completed=required_done,
        total_required_items=required_total,
        recommended_items_completed=recommended_done,
        total_recommended_items=recommended_total,
        optional_items_completed=optional_done,
        total_optional_items=optional_total,
        is_ready_to_start=required_done == required_total,
        is_ready_to_complete=required_done == required_total and completed_total == total,
    )


def get_category_progress(criteria: list[Criterion], category: CriteriaCategory) -> int:
    """Completion percentage within one category; 100 when the category is empty."""
    items = _in_category(criteria, category)
    if not items:
        return 100
    completed = sum(1 for c in items if c.is_completed)
    return round_half_up(completed / len(items) * 100)


def validate_criteria(criteria: list[Criterion]) -> CriteriaValidationResult:
    """
    Evaluate criterion rules.

    A ``required`` rule blocks while its criterion is incomplete. A
    ``dependency`` rule blocks when its criterion is complete but one of the
    criteria it depends on is not. Incomplete recommended criteria produce
    warnings only. ``conditional`` rules are carried but not evaluated.
    """
    errors: list[CriteriaIssue] = []
    warnings: list[CriteriaIssue] = []
    blocking: list[str] = []
    by_id = {c.id: c for c in criteria}

    for criterion in criteria:
        rule = criterion.validation_rule
        if rule is None:
            continue

        if rule.type == RuleType.REQUIRED:
            if not criterion.is_completed:
                errors.append(
                    CriteriaIssue(
                        criterion_id=criterion.id,
                        message=rule.message or f'"{criterion.description}" must be completed',
                        type=RuleType.REQUIRED.value,
                    )
                )
                blocking.append(criterion.id)

        elif rule.type == RuleType.DEPENDENCY:
            if criterion.is_completed and rule.depends_on:
                unmet = [
                    dep_id
                    for dep_id in rule.depends_on
                    if dep_id in by_id and not by_id[dep_id].is_completed
                ]
                if unmet:
                    errors.append(
                        CriteriaIssue(
                            criterion_id=criterion.id,
                            message=f"Depends on: {', '.join(unmet)}",
                            type=RuleType.DEPENDENCY.value,
                        )
                    )
                    blocking.append(criterion.id)

    for criterion in criteria:
        if criterion.category == CriteriaCategory.RECOMMENDED and not criterion.is_completed:
            warnings.append(
                CriteriaIssue(
                    criterion_id=criterion.id,
                    message="Recommended criterion not completed",
                    type="recommendation",
                )
            )

    return CriteriaValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        blocking_criteria=blocking,
    )


def sort_criteria(criteria: list[Criterion]) -> list[Criterion]:
    """Order by explicit order, then category precedence, then creation time."""
    return sorted(
        criteria,
        key=lambda c: (c.order, CATEGORY_ORDER[c.category], c.created_at),
    )


def generate_criterion_id() -> str:
    """New criterion identifier."""
    return f"criterion-{ObjectId()}"


def _from_template(
    templates: list[CriterionTemplate],
    start_order: int,
    now: datetime,
) -> list[Criterion]:
    return [
        Criterion(
            id=generate_criterion_id(),
            description=tc.description,
            category=tc.category,
            validation_rule=tc.validation_rule,
            help_text=tc.help_text,
            is_completed=False,
            order=start_order + index + 1,
            created_at=now,
            updated_at=now,
        )
        for index, tc in enumerate(templates)
    ]


def apply_template(
    template: DorDodTemplate,
    current_dor: list[Criterion],
    current_dod: list[Criterion],
    mode: TemplateApplyMode = TemplateApplyMode.APPEND,
    category_filter: Optional[list[CriteriaCategory]] = None,
    now: Optional[datetime] = None,
) -> tuple[list[Criterion], list[Criterion]]:
    """
    Combine a template's criteria with a goal's existing DoR/DoD lists.

    ``replace`` discards existing criteria; ``merge`` numbers new criteria
    after the highest existing order; ``append`` numbers them after the
    existing count. An optional category filter applies to the result.

    Returns:
        (dor_criteria, dod_criteria), each sorted
    """
    now = now or utcnow()

    if mode == TemplateApplyMode.REPLACE:
        dor = _from_template(template.dor_criteria, 0, now)
        dod = _from_template(template.dod_criteria, 0, now)
    elif mode == TemplateApplyMode.MERGE:
        max_dor = max([0] + [c.order for c in current_dor])
        max_dod = max([0] + [c.order for c in current_dod])
        dor = list(current_dor) + _from_template(template.dor_criteria, max_dor, now)
        dod = list(current_dod) + _from_template(template.dod_criteria, max_dod, now)
    else:
        dor = list(current_dor) + _from_template(template.dor_criteria, len(current_dor), now)
        dod = list(current_dod) + _from_template(template.dod_criteria, len(current_dod), now)

    if category_filter:
        dor = [c for c in dor if c.category in category_filter]
        dod = [c for c in dod if c.category in category_filter]

    return sort_criteria(dor), sort_criteria(dod)


ExportFormat = Literal["json", "csv", "markdown"]


def export_criteria(criteria: list[Criterion], fmt: ExportFormat) -> str:
    """
    Render criteria as JSON, CSV or a markdown checklist grouped by category.

    Raises:
        ValueError: If the format is not supported
    """
    if fmt == "json":
        return json.dumps([c.model_dump(mode="json") for c in criteria], indent=2)

    if fmt == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        writer.writerow(["Description", "Category", "Completed", "Help Text", "Order"])
        for c in criteria:
            writer.writerow([
                c.description,
                c.category.value,
                "Yes" if c.is_completed else "No",
                c.help_text or "",
                c.order,
            ])
        return buffer.getvalue().rstrip("\n")

    if fmt == "markdown":
        sections = []
        for category in CriteriaCategory:
            items = _in_category(criteria, category)
            if not items:
                continue
            lines = [f"## {CATEGORY_LABELS[category]}", ""]
            for item in items:
                checkbox = "[x]" if item.is_completed else "[ ]"
                lines.append(f"- {checkbox} {item.description}")
                if item.help_text:
                    lines.append(f"  > {item.help_text}")
            sections.append("\n".join(lines))
        return "\n\n".join(sections) + ("\n" if sections else "")

    raise ValueError(f"Unsupported export format: {fmt}")
