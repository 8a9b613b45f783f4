"""Tests for shared numeric helpers."""
from datetime import datetime, timezone

import pytest

from app.utils.numbers import round_half_up

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestRoundHalfUp:
    """Tests for round_half_up."""

    @pytest.mark.parametrize(
        "value,expected",
        [(62.5, 63), (0.5, 1), (2.5, 3), (49.4, 49), (0.0, 0), (-2.5, -2), (-2.6, -3)],
    )
    def test_halves_round_up(self, value, expected):
        """Test halves always round toward positive infinity."""
        assert round_half_up(value) == expected

    def test_progress_and_readiness_agree(self):
        """Test task progress and criteria progress round 12.5% the same way."""
        from app.models.common import TaskStatus
        from app.models.criterion import CriteriaCategory, Criterion
        from app.models.task import ChecklistItem, Task
        from app.utils.progress import calculate_task_progress
        from app.utils.readiness import get_category_progress

        stamps = {"created_at": NOW, "updated_at": NOW}
        items = [
            ChecklistItem(
                id=str(i),
                title=f"Item {i}",
                is_completed=i == 0,
                order=i,
                created_by="user-1",
                updated_by="user-1",
                **stamps,
            )
            for i in range(8)
        ]
        task = Task(
            _id="task-1",
            goal_id="goal-1",
            title="Pack race kit",
            status=TaskStatus.IN_PROGRESS,
            checklist=items,
            created_by="user-1",
            updated_by="user-1",
            **stamps,
        )
        criteria = [
            Criterion(
                id=str(i),
                description=f"Criterion {i}",
                category=CriteriaCategory.REQUIRED,
                is_completed=i == 0,
                **stamps,
            )
            for i in range(8)
        ]

        assert calculate_task_progress(task) == 13
        assert get_category_progress(criteria, CriteriaCategory.REQUIRED) == 13
