"""Tests for SMART scoring."""
import pytest

from app.models.goal import GoalCreate
from app.utils.smart_score import calculate_smart_score, get_score_category


@pytest.fixture
def goal(goal_payload):
    return GoalCreate(**goal_payload)


class TestCalculateSmartScore:
    """Tests for calculate_smart_score."""

    def test_partial_goal(self, goal):
        """Specific, measurable and time-bound are complete; A and R are missing."""
        result = calculate_smart_score(goal)

        assert result.breakdown.specific == 20
        assert result.breakdown.measurable == 20
        assert result.breakdown.time_bound == 20
        assert result.breakdown.achievable == 0
        assert result.breakdown.relevant == 0
        assert result.breakdown.total == 60
        assert result.category == "good"
        assert result.suggestions == ["Add achievability assessment", "Add relevance assessment"]

    def test_complete_goal_scores_100(self, goal):
        """Filling every dimension gives full marks and no suggestions."""
        data = goal.model_dump()
        data["achievability"] = {
            "score": 0.8,
            "required_resources": ["Running shoes"],
            "required_skills": ["Pacing"],
        }
        data["relevance"] = {
            "relevance_score": 0.9,
            "rationale": "Health",
            "stakeholders": ["Coach"],
        }
        goal = GoalCreate.model_validate(data)

        result = calculate_smart_score(goal)

        assert result.breakdown.total == 100
        assert result.category == "excellent"
        assert result.suggestions == []

    def test_low_scores_suggest_improvement(self, goal):
        """Assessments below threshold produce targeted suggestions."""
        data = goal.model_dump()
        data["achievability"] = {"score": 0.2}
        data["relevance"] = {"relevance_score": 0.5, "rationale": "Because"}
        result = calculate_smart_score(GoalCreate.model_validate(data))

        assert result.breakdown.achievable == 5
        assert result.breakdown.relevant == 10
        assert "Improve achievability score or adjust goal scope" in result.suggestions
        assert "Improve relevance or align with strategic goals" in result.suggestions
        assert "Identify affected stakeholders" in result.suggestions

    def test_sparse_specific_section(self, goal):
        """Each missing specific field is suggested."""
        data = goal.model_dump()
        data.update({"specific_objective": "", "success_criteria": []})
        data["measurable"]["unit"] = ""
        data["measurable"]["measurement_frequency"] = None
        data["timebound"]["estimated_duration"] = 0

        result = calculate_smart_score(GoalCreate.model_validate(data))

        assert result.breakdown.specific == 10
        assert result.breakdown.measurable == 10
        assert result.breakdown.time_bound == 15
        assert result.suggestions[:2] == ["Define a specific objective", "Add success criteria"]
        assert "Define measurement unit" in result.suggestions
        assert "Estimate duration for the goal" in result.suggestions


@pytest.mark.parametrize(
    "total,expected",
    [(100, "excellent"), (80, "excellent"), (79, "good"), (60, "good"), (40, "fair"), (39, "poor"), (0, "poor")],
)
def test_score_category(total, expected):
    assert get_score_category(total) == expected
