"""Tests for DoR/DoD scoring, rule validation, templates and export."""
import json
from datetime import datetime, timedelta, timezone

import pytest

from app.models.criterion import (
    CriteriaCategory,
    Criterion,
    CriterionTemplate,
    DorDodTemplate,
    RuleType,
    TemplateApplyMode,
    ValidationRule,
)
from app.utils.readiness import (
    apply_template,
    calculate_progress_metrics,
    export_criteria,
    get_category_progress,
    sort_criteria,
    validate_criteria,
)

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def criterion(cid: str, category=CriteriaCategory.REQUIRED, done=False, order=0, rule=None, **kwargs) -> Criterion:
    return Criterion(
        id=cid,
        description=f"Criterion {cid}",
        category=category,
        is_completed=done,
        order=order,
        validation_rule=rule,
        created_at=kwargs.pop("created_at", NOW),
        updated_at=NOW,
        **kwargs,
    )


class TestProgressMetrics:
    """Tests for calculate_progress_metrics."""

    def test_half_required_complete_scores_70(self):
        criteria = [
            criterion("r1", done=True),
            criterion("r2", done=True),
            criterion("r3"),
            criterion("r4"),
        ]

        metrics = calculate_progress_metrics(criteria)

        assert metrics.readiness_score == 70
        assert metrics.completion_score == 50
        assert metrics.is_ready_to_start is False
        assert metrics.total_required_items == 4
        assert metrics.required_items_completed == 2

    def test_empty_list_is_fully_ready(self):
        metrics = calculate_progress_metrics([])

        assert metrics.readiness_score == 100
        assert metrics.completion_score == 100
        assert metrics.is_ready_to_start is True
        assert metrics.is_ready_to_complete is True

    def test_mixed_categories(self):
        criteria = [
            criterion("r1", done=True),
            criterion("rec1", CriteriaCategory.RECOMMENDED),
            criterion("opt1", CriteriaCategory.OPTIONAL, done=True),
        ]

        metrics = calculate_progress_metrics(criteria)

        assert metrics.readiness_score == 70
        assert metrics.is_ready_to_start is True
        assert metrics.is_ready_to_complete is False

    def test_category_progress(self):
        criteria = [criterion("r1", done=True), criterion("r2"), criterion("r3")]

        assert get_category_progress(criteria, CriteriaCategory.REQUIRED) == 33
        assert get_category_progress(criteria, CriteriaCategory.OPTIONAL) == 100


class TestValidateCriteria:
    """Tests for validate_criteria."""

    def test_required_rule_blocks(self):
        rule = ValidationRule(type=RuleType.REQUIRED)
        result = validate_criteria([criterion("r1", rule=rule)])

        assert result.is_valid is False
        assert result.blocking_criteria == ["r1"]
        assert result.errors[0].message == '"Criterion r1" must be completed'

    def test_required_rule_custom_message(self):
        rule = ValidationRule(type=RuleType.REQUIRED, message="Sign-off needed")
        result = validate_criteria([criterion("r1", rule=rule)])

        assert result.errors[0].message == "Sign-off needed"

    def test_dependency_rule(self):
        rule = ValidationRule(type=RuleType.DEPENDENCY, depends_on=["a", "missing"])
        criteria = [criterion("a"), criterion("b", done=True, rule=rule)]

        result = validate_criteria(criteria)

        assert result.is_valid is False
        assert result.errors[0].message == "Depends on: a"
        assert result.blocking_criteria == ["b"]

    def test_dependency_satisfied(self):
        rule = ValidationRule(type=RuleType.DEPENDENCY, depends_on=["a"])
        criteria = [criterion("a", done=True), criterion("b", done=True, rule=rule)]

        assert validate_criteria(criteria).is_valid is True

    def test_conditional_rule_is_ignored(self):
        rule = ValidationRule(type=RuleType.CONDITIONAL, condition="always")

        assert validate_criteria([criterion("c", rule=rule)]).is_valid is True

    def test_recommended_incomplete_warns(self):
        result = validate_criteria([criterion("rec", CriteriaCategory.RECOMMENDED)])

        assert result.is_valid is True
        assert len(result.warnings) == 1
        assert result.warnings[0].type == "recommendation"


class TestSortAndTemplates:
    """Tests for ordering and template application."""

    def test_sort_criteria(self):
        criteria = [
            criterion("opt", CriteriaCategory.OPTIONAL, order=1),
            criterion("late", order=1, created_at=NOW + timedelta(hours=1)),
            criterion("req", order=1),
            criterion("first", CriteriaCategory.OPTIONAL, order=0),
        ]

        assert [c.id for c in sort_criteria(criteria)] == ["first", "req", "late", "opt"]

    def _template(self) -> DorDodTemplate:
        return DorDodTemplate(
            name="Default",
            dor_criteria=[
                CriterionTemplate(description="Scope agreed"),
                CriterionTemplate(description="Nice to have", category=CriteriaCategory.OPTIONAL),
            ],
            dod_criteria=[CriterionTemplate(description="Reviewed")],
        )

    def test_replace_mode(self):
        dor, dod = apply_template(
            self._template(), [criterion("old", order=5)], [], TemplateApplyMode.REPLACE, now=NOW
        )

        assert [c.description for c in dor] == ["Scope agreed", "Nice to have"]
        assert [c.order for c in dor] == [1, 2]
        assert len(dod) == 1
        assert all(c.id.startswith("criterion-") for c in dor + dod)

    def test_merge_mode_orders_after_max(self):
        dor, _ = apply_template(
            self._template(), [criterion("old", order=5)], [], TemplateApplyMode.MERGE, now=NOW
        )

        assert [c.order for c in dor] == [5, 6, 7]

    def test_append_mode_orders_after_count(self):
        dor, _ = apply_template(
            self._template(), [criterion("old", order=5)], [], TemplateApplyMode.APPEND, now=NOW
        )

        assert sorted(c.order for c in dor) == [2, 3, 5]

    def test_category_filter(self):
        dor, dod = apply_template(
            self._template(),
            [],
            [],
            TemplateApplyMode.APPEND,
            category_filter=[CriteriaCategory.REQUIRED],
            now=NOW,
        )

        assert [c.description for c in dor] == ["Scope agreed"]
        assert [c.description for c in dod] == ["Reviewed"]


class TestExport:
    """Tests for export_criteria."""

    def test_json(self):
        data = json.loads(export_criteria([criterion("r1", done=True)], "json"))

        assert data[0]["id"] == "r1"
        assert data[0]["is_completed"] is True

    def test_csv(self):
        out = export_criteria([criterion("r1", done=True, help_text="See wiki")], "csv")

        lines = out.split("\n")
        assert lines[0] == "Description,Category,Completed,Help Text,Order"
        assert lines[1] == "Criterion r1,required,Yes,See wiki,0"

    def test_markdown_groups_by_category(self):
        out = export_criteria(
            [criterion("r1", done=True), criterion("o1", CriteriaCategory.OPTIONAL)],
            "markdown",
        )

        assert "## Required" in out
        assert "- [x] Criterion r1" in out
        assert "## Optional" in out
        assert "- [ ] Criterion o1" in out
        assert "## Recommended" not in out

    def test_unsupported_format(self):
        with pytest.raises(ValueError):
            export_criteria([], "xml")
