"""Goal service - business logic for SMART goal management."""
import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from app.errors import GoneError, NotFoundError, ValidationError
from app.models.common import GoalPriority, GoalStatus
from app.models.criterion import CriteriaKind, CriteriaReport, ReadinessReport, TemplateApplyRequest
from app.models.goal import (
    Goal,
    GoalCreate,
    GoalDeleteResponse,
    GoalListResponse,
    GoalQuery,
    GoalSortField,
    GoalUpdate,
    SortDirection,
)
from app.models.validation import SmartScoreResult
from app.repositories.base import new_id
from app.utils.dates import utcnow
from app.utils.logging import get_logger, log_with_context
from app.utils.readiness import (
    ExportFormat,
    apply_template,
    calculate_progress_metrics,
    export_criteria,
    validate_criteria,
)
from app.utils.smart_score import calculate_smart_score
from app.utils.status import is_valid_goal_status_transition
from app.utils.validation import validate_goal_fields

logger = get_logger(__name__)

PRIORITY_RANK = {
    GoalPriority.LOW: 0,
    GoalPriority.MEDIUM: 1,
    GoalPriority.HIGH: 2,
    GoalPriority.CRITICAL: 3,
}

# Storage and audit fields a client can never overwrite.
PROTECTED_FIELDS = (
    "_id",
    "created_at",
    "created_by",
    "deleted",
    "deleted_at",
    "deleted_by",
    "is_archived",
)


def _sort_key(field: GoalSortField):
    def key(goal: Goal) -> Any:
        if field == GoalSortField.PRIORITY:
            return PRIORITY_RANK[goal.priority]
        value = getattr(goal, field.value)
        if isinstance(value, str):
            return value.lower()
        return value

    return key


def _matches(goal: Goal, query: GoalQuery) -> bool:
    if query.status and goal.status not in query.status:
        return False
    if query.priority and goal.priority not in query.priority:
        return False
    if query.category and goal.category not in query.category:
        return False
    if query.owner_id and goal.owner_id not in query.owner_id:
        return False

    if query.tags:
        wanted = [tag.lower() for tag in query.tags]
        if not any(w in tag.lower() for w in wanted for tag in goal.tags):
            return False

    if query.start_date and goal.created_at < query.start_date:
        return False
    if query.end_date and goal.created_at > query.end_date:
        return False

    if query.search:
        haystack = " ".join(
            [goal.title, goal.description, goal.specific_objective, *goal.tags, *goal.success_criteria]
        ).lower()
        if query.search.lower() not in haystack:
            return False

    return True


class GoalService:
    """Service for handling goal operations."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.goals = db["goals"]
        self.tasks = db["tasks"]
        self.subtasks = db["subtasks"]
        self.checkpoints = db["checkpoints"]

    def _doc_to_goal(self, doc: dict) -> Goal:
        """Convert a stored document to a Goal model."""
        return Goal.model_validate(doc)

    def _goal_to_doc(self, goal: Goal) -> dict:
        """Convert a Goal model to its stored document."""
        doc = goal.model_dump(exclude={"id"})
        doc["_id"] = goal.id
        return doc

    def _validated(self, doc: dict) -> Goal:
        """Build a Goal from a candidate document, enforcing goal business rules."""
        try:
            goal = Goal.model_validate(doc)
        except PydanticValidationError as exc:
            raise ValidationError(
                [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
            )

        errors = validate_goal_fields(goal)
        if errors:
            raise ValidationError(errors)
        return goal

    async def _find(self, goal_id: str) -> dict:
        doc = await self.goals.get(goal_id)
        if not doc:
            raise NotFoundError("Goal", goal_id)
        return doc

    async def _find_active(self, goal_id: str, deleted_message: str = "Goal has been deleted") -> dict:
        doc = await self._find(goal_id)
        if doc.get("deleted"):
            raise GoneError("Goal", deleted_message)
        return doc

    def _check_transition(self, current: GoalStatus, requested: GoalStatus) -> None:
        if current != requested and not is_valid_goal_status_transition(current, requested):
            raise ValidationError(
                f'Cannot change goal status from "{current.value}" to "{requested.value}"',
                code="INVALID_STATUS_TRANSITION",
            )

    async def list_goals(self, query: GoalQuery) -> GoalListResponse:
        """
        List non-deleted goals with filtering, sorting and pagination.

        Args:
            query: Filters, sort and page parameters

        Returns:
            Paginated listing envelope
        """
        docs = await self.goals.list({"deleted": False})
        goals = [g for g in (self._doc_to_goal(doc) for doc in docs) if _matches(g, query)]

        goals.sort(
            key=_sort_key(query.sort_field),
            reverse=query.sort_direction == SortDirection.DESC,
        )

        start = (query.page - 1) * query.limit
        end = start + query.limit

        return GoalListResponse(
            items=goals[start:end],
            total=len(goals),
            page=query.page,
            limit=query.limit,
            has_more=end < len(goals),
        )

    async def create_goal(self, user_id: str, goal_create: GoalCreate) -> Goal:
        """
        Create a new goal.

        Args:
            user_id: Acting user, recorded in audit fields
            goal_create: Goal creation data

        Returns:
            Created goal

        Raises:
            ValidationError: If the goal violates a business rule
        """
        now = utcnow()
        doc = goal_create.model_dump()
        doc.update(
            {
                "_id": new_id(),
                "owner_id": goal_create.owner_id or user_id,
                "created_at": now,
                "updated_at": now,
                "created_by": user_id,
                "updated_by": user_id,
                "deleted": False,
                "deleted_at": None,
                "deleted_by": None,
                "is_archived": False,
            }
        )
        goal = self._validated(doc)

        stored = await self.goals.create(self._goal_to_doc(goal))
        log_with_context(logger, logging.INFO, "Goal created", goal_id=stored["_id"], user_id=user_id)
        return self._doc_to_goal(stored)

    async def get_goal(self, goal_id: str) -> Goal:
        """
        Get a single goal.

        Raises:
            NotFoundError: If the goal does not exist
            GoneError: If the goal is soft-deleted
        """
        return self._doc_to_goal(await self._find_active(goal_id))

    async def replace_goal(self, user_id: str, goal_id: str, goal_create: GoalCreate) -> Goal:
        """
        Replace every client-editable field of a goal (PUT).

        Identity, creation audit fields and deletion state are preserved.
        """
        existing = await self._find_active(goal_id, "Cannot update a deleted goal")
        self._check_transition(GoalStatus(existing["status"]), goal_create.status)

        doc = goal_create.model_dump()
        doc.update({field: existing.get(field) for field in PROTECTED_FIELDS})
        doc.update({"updated_at": utcnow(), "updated_by": user_id})
        goal = self._validated(doc)

        stored = await self.goals.update(goal_id, self._goal_to_doc(goal))
        log_with_context(logger, logging.INFO, "Goal replaced", goal_id=goal_id, user_id=user_id)
        return self._doc_to_goal(stored)

    async def update_goal(self, user_id: str, goal_id: str, goal_update: GoalUpdate) -> Goal:
        """
        Partially update a goal (PATCH).

        Only fields present in the request change. A status change must be
        a legal goal transition.

        Raises:
            NotFoundError: If the goal does not exist
            GoneError: If the goal is soft-deleted
            ValidationError: If the merged goal breaks a rule or the status change is illegal
        """
        existing = await self._find_active(goal_id, "Cannot update a deleted goal")
        changes = goal_update.model_dump(exclude_unset=True)

        if changes.get("status") is not None:
            self._check_transition(GoalStatus(existing["status"]), GoalStatus(changes["status"]))

        for field in PROTECTED_FIELDS:
            changes.pop(field, None)

        merged = {**existing, **changes, "updated_at": utcnow(), "updated_by": user_id}
        goal = self._validated(merged)

        stored = await self.goals.update(goal_id, self._goal_to_doc(goal))
        log_with_context(
            logger, logging.INFO, "Goal updated", goal_id=goal_id, user_id=user_id, fields=sorted(changes)
        )
        return self._doc_to_goal(stored)

    async def delete_goal(self, user_id: str, goal_id: str, permanent: bool = False) -> GoalDeleteResponse:
        """
        Delete a goal.

        A soft delete flags the goal. A permanent delete removes it together
        with its tasks, their subtasks and its checkpoints.

        Raises:
            NotFoundError: If the goal does not exist
            GoneError: If a soft delete targets an already deleted goal
        """
        existing = await self._find(goal_id)

        if permanent:
            tasks = await self.tasks.list({"goal_id": goal_id})
            for task in tasks:
                await self.subtasks.delete_many({"task_id": task["_id"]})
            await self.tasks.delete_many({"goal_id": goal_id})
            await self.checkpoints.delete_many({"goal_id": goal_id})
            await self.goals.delete(goal_id)
            log_with_context(
                logger, logging.INFO, "Goal permanently deleted",
                goal_id=goal_id, user_id=user_id, tasks=len(tasks),
            )
            return GoalDeleteResponse(message="Goal permanently deleted", id=goal_id)

        if existing.get("deleted"):
            raise GoneError("Goal", "Goal is already deleted")

        now = utcnow()
        stored = await self.goals.update(
            goal_id,
            {
                "deleted": True,
                "deleted_at": now,
                "deleted_by": user_id,
                "updated_at": now,
                "updated_by": user_id,
            },
        )
        log_with_context(logger, logging.INFO, "Goal soft deleted", goal_id=goal_id, user_id=user_id)
        return GoalDeleteResponse(message="Goal soft deleted", id=goal_id, goal=self._doc_to_goal(stored))

    async def get_readiness(self, goal_id: str) -> ReadinessReport:
        """Score and validate a goal's Definition of Ready and Definition of Done."""
        goal = await self.get_goal(goal_id)
        return ReadinessReport(
            goal_id=goal.id,
            dor=CriteriaReport(
                metrics=calculate_progress_metrics(goal.dor_criteria),
                validation=validate_criteria(goal.dor_criteria),
            ),
            dod=CriteriaReport(
                metrics=calculate_progress_metrics(goal.dod_criteria),
                validation=validate_criteria(goal.dod_criteria),
            ),
        )

    async def get_smart_score(self, goal_id: str) -> SmartScoreResult:
        """Score how completely a goal covers each SMART dimension."""
        return calculate_smart_score(await self.get_goal(goal_id))

    async def export_criteria(self, goal_id: str, kind: CriteriaKind, fmt: ExportFormat) -> str:
        """
        Export a goal's DoR or DoD criteria.

        Raises:
            ValidationError: If the format is not supported
        """
        goal = await self.get_goal(goal_id)
        criteria = goal.dor_criteria if kind == CriteriaKind.DOR else goal.dod_criteria
        try:
            return export_criteria(criteria, fmt)
        except ValueError as exc:
            raise ValidationError(str(exc))

    async def apply_criteria_template(
        self, user_id: str, goal_id: str, request: TemplateApplyRequest
    ) -> Goal:
        """Apply a DoR/DoD template to a goal and store the resulting criteria."""
        goal = await self.get_goal(goal_id)
        dor, dod = apply_template(
            request.template,
            goal.dor_criteria,
            goal.dod_criteria,
            mode=request.mode,
            category_filter=request.category_filter or None,
        )

        stored = await self.goals.update(
            goal_id,
            {
                "dor_criteria": [c.model_dump() for c in dor],
                "dod_criteria": [c.model_dump() for c in dod],
                "updated_at": utcnow(),
                "updated_by": user_id,
            },
        )
        log_with_context(
            logger, logging.INFO, "Criteria template applied",
            goal_id=goal_id, template=request.template.name, mode=request.mode.value,
        )
        return self._doc_to_goal(stored)
