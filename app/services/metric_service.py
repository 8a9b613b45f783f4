"""Metric service - checkpoints and progress analytics for a goal's metric."""
import csv
import io
import logging
from datetime import datetime, timedelta
from typing import Optional

from app.config import settings
from app.errors import NotFoundError, ValidationError
from app.models.goal import Goal
from app.models.metric import (
    CheckpointCreate,
    CheckpointStatistics,
    CheckpointUpdate,
    MetricAnalytics,
    MetricCheckpoint,
    ProgressAnalysis,
    TrendPoint,
)
from app.repositories.base import new_id
from app.services.goal_service import GoalService
from app.utils.dates import ensure_utc, utcnow
from app.utils.logging import get_logger, log_with_context
from app.utils.metrics import (
    analyze_progress,
    calculate_checkpoint_statistics,
    calculate_metric_analytics,
    validate_checkpoint,
)

logger = get_logger(__name__)


class MetricService:
    """Service for handling metric checkpoints and analytics."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.checkpoints = db["checkpoints"]

    def _doc_to_checkpoint(self, doc: dict) -> MetricCheckpoint:
        """Convert a stored document to a MetricCheckpoint model."""
        return MetricCheckpoint.model_validate(doc)

    def _checkpoint_to_doc(self, checkpoint: MetricCheckpoint) -> dict:
        doc = checkpoint.model_dump(exclude={"id"})
        doc["_id"] = checkpoint.id
        return doc

    async def _goal(self, goal_id: str) -> Goal:
        return await GoalService(self.db).get_goal(goal_id)

    async def _find(self, checkpoint_id: str) -> dict:
        doc = await self.checkpoints.get(checkpoint_id)
        if not doc:
            raise NotFoundError("Checkpoint", checkpoint_id)
        return doc

    async def list_checkpoints(self, goal_id: str) -> list[MetricCheckpoint]:
        """
        List a goal's checkpoints, newest first.

        Raises:
            NotFoundError: If the goal does not exist
            GoneError: If the goal is deleted
        """
        await self._goal(goal_id)
        docs = await self.checkpoints.list({"goal_id": goal_id})
        checkpoints = [self._doc_to_checkpoint(doc) for doc in docs]
        return sorted(checkpoints, key=lambda cp: cp.recorded_date, reverse=True)

    async def get_checkpoint(self, checkpoint_id: str) -> MetricCheckpoint:
        """Get a single checkpoint."""
        return self._doc_to_checkpoint(await self._find(checkpoint_id))

    async def create_checkpoint(
        self, user_id: str, goal_id: str, checkpoint_create: CheckpointCreate
    ) -> MetricCheckpoint:
        """
        Record a checkpoint for a goal.

        The recorded date defaults to now and may not be in the future.

        Raises:
            NotFoundError: If the goal does not exist
            ValidationError: If the value, date or confidence is invalid
        """
        await self._goal(goal_id)

        now = utcnow()
        recorded_date = checkpoint_create.recorded_date or now
        errors = validate_checkpoint(
            checkpoint_create.value, recorded_date, checkpoint_create.confidence, now=now
        )
        if errors:
            raise ValidationError(errors)

        checkpoint = MetricCheckpoint(
            _id=new_id(),
            goal_id=goal_id,
            value=checkpoint_create.value,
            recorded_date=recorded_date,
            note=checkpoint_create.note,
            is_automatic=checkpoint_create.is_automatic,
            source=checkpoint_create.source,
            confidence=checkpoint_create.confidence,
            created_at=now,
            updated_at=now,
            created_by=user_id,
            updated_by=user_id,
        )
        stored = await self.checkpoints.create(self._checkpoint_to_doc(checkpoint))
        log_with_context(
            logger, logging.INFO, "Checkpoint recorded",
            checkpoint_id=stored["_id"], goal_id=goal_id, value=checkpoint.value,
        )
        return self._doc_to_checkpoint(stored)

    async def bulk_create_checkpoints(
        self, user_id: str, goal_id: str, requests: list[CheckpointCreate]
    ) -> list[MetricCheckpoint]:
        """
        Record several checkpoints.

        Every request is validated before any is stored, so one bad entry
        rejects the whole batch.
        """
        await self._goal(goal_id)

        now = utcnow()
        errors = []
        for index, request in enumerate(requests):
            for message in validate_checkpoint(
                request.value, request.recorded_date or now, request.confidence, now=now
            ):
                errors.append(f"Checkpoint {index + 1}: {message}")
        if errors:
            raise ValidationError(errors)

        return [await self.create_checkpoint(user_id, goal_id, request) for request in requests]

    async def update_checkpoint(
        self, user_id: str, checkpoint_id: str, checkpoint_update: CheckpointUpdate
    ) -> MetricCheckpoint:
        """
        Correct a checkpoint.

        Raises:
            NotFoundError: If the checkpoint does not exist
            ValidationError: If the corrected date or confidence is invalid
        """
        existing = self._doc_to_checkpoint(await self._find(checkpoint_id))
        changes = checkpoint_update.model_dump(exclude_unset=True, exclude_none=True)
        updated = existing.model_copy(update={**changes, "updated_at": utcnow(), "updated_by": user_id})

        errors = validate_checkpoint(updated.value, updated.recorded_date, updated.confidence)
        if errors:
            raise ValidationError(errors)

        stored = await self.checkpoints.update(checkpoint_id, self._checkpoint_to_doc(updated))
        return self._doc_to_checkpoint(stored)

    async def delete_checkpoint(self, user_id: str, checkpoint_id: str) -> None:
        """Remove a checkpoint."""
        await self._find(checkpoint_id)
        await self.checkpoints.delete(checkpoint_id)
        log_with_context(
            logger, logging.INFO, "Checkpoint deleted", checkpoint_id=checkpoint_id, user_id=user_id
        )

    async def delete_all_checkpoints(self, user_id: str, goal_id: str) -> int:
        """Remove every checkpoint of a goal. Returns the number removed."""
        await self._goal(goal_id)
        count = await self.checkpoints.delete_many({"goal_id": goal_id})
        log_with_context(
            logger, logging.INFO, "Checkpoints cleared", goal_id=goal_id, count=count, user_id=user_id
        )
        return count

    async def get_analytics(self, goal_id: str) -> MetricAnalytics:
        """
        Snapshot of the goal's metric.

        Raises:
            NotFoundError: If the goal has no checkpoints
        """
        goal = await self._goal(goal_id)
        checkpoints = await self.list_checkpoints(goal_id)
        if not checkpoints:
            raise NotFoundError("Checkpoint", message="No checkpoints found for goal")

        return calculate_metric_analytics(
            goal_id, goal.measurable, checkpoints, trend_epsilon=settings.trend_epsilon
        )

    async def get_analysis(self, goal_id: str) -> ProgressAnalysis:
        """
        Judge the goal's progress toward its target date.

        The latest checkpoint, when there is one, supplies the current value.
        """
        goal = await self._goal(goal_id)
        checkpoints = await self.list_checkpoints(goal_id)

        spec = goal.measurable
        if checkpoints:
            spec = spec.model_copy(update={"current_value": checkpoints[0].value})

        return analyze_progress(
            spec,
            checkpoints,
            target_date=goal.timebound.target_date,
            on_track_ratio=settings.on_track_velocity_ratio,
            at_risk_ratio=settings.at_risk_velocity_ratio,
            velocity_window=settings.velocity_window,
            trend_epsilon=settings.trend_epsilon,
        )

    async def get_trend(self, goal_id: str, days: Optional[int] = None) -> list[TrendPoint]:
        """Chartable series, oldest first, optionally limited to the last N days."""
        goal = await self._goal(goal_id)
        checkpoints = await self.list_checkpoints(goal_id)

        if days:
            cutoff = utcnow() - timedelta(days=days)
            checkpoints = [cp for cp in checkpoints if cp.recorded_date >= cutoff]

        return [
            TrendPoint(
                date=cp.recorded_date.date().isoformat(),
                value=cp.value,
                target=goal.measurable.target_value,
                note=cp.note,
            )
            for cp in sorted(checkpoints, key=lambda cp: cp.recorded_date)
        ]

    async def get_statistics(
        self,
        goal_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> CheckpointStatistics:
        """Descriptive statistics over checkpoints inside an optional date window."""
        checkpoints = await self.list_checkpoints(goal_id)

        if start_date:
            checkpoints = [cp for cp in checkpoints if cp.recorded_date >= ensure_utc(start_date)]
        if end_date:
            checkpoints = [cp for cp in checkpoints if cp.recorded_date <= ensure_utc(end_date)]

        return calculate_checkpoint_statistics(
            checkpoints,
            outlier_multiplier=settings.outlier_std_multiplier,
            trend_epsilon=settings.trend_epsilon,
        )

    async def export_checkpoints(self, goal_id: str) -> str:
        """Render a goal's checkpoints as CSV, newest first."""
        checkpoints = await self.list_checkpoints(goal_id)

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(["Date", "Value", "Note", "Source", "Confidence", "Automatic"])
        for cp in checkpoints:
            writer.writerow([
                cp.recorded_date.isoformat(),
                cp.value,
                cp.note or "",
                cp.source or "",
                cp.confidence if cp.confidence is not None else 1,
                "Yes" if cp.is_automatic else "No",
            ])
        return buffer.getvalue().rstrip("\n")
