"""Task service - business logic for tasks, subtasks and checklists."""
import logging
from typing import Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.errors import AppError, NotFoundError, ValidationError
from app.models.common import GoalPriority, TaskStatus
from app.models.task import (
    BulkDeleteResult,
    ChecklistItem,
    ChecklistItemCreate,
    ChecklistItemUpdate,
    StatusChangeConfirmation,
    Subtask,
    SubtaskCreate,
    SubtaskUpdate,
    Task,
    TaskCreate,
    TaskFilters,
    TaskProgress,
    TaskStats,
    TaskUpdate,
    TimeTrackingSummary,
)
from app.models.validation import TaskFormData
from app.repositories.base import StorageError, new_id
from app.services.goal_service import GoalService
from app.utils.dates import utcnow
from app.utils.logging import get_logger, log_with_context
from app.utils.progress import (
    calculate_task_progress,
    calculate_time_tracking_summary,
    is_task_overdue,
)
from app.utils.status import get_status_change_confirmation, is_valid_status_transition
from app.utils.validation import validate_task_form

logger = get_logger(__name__)

# Fields the update path never takes from the client.
IMMUTABLE_FIELDS = ("_id", "created_at", "created_by", "goal_id", "task_id", "deleted", "deleted_at", "deleted_by")


def _check_transition(current: TaskStatus, requested: TaskStatus) -> None:
    if current != requested and not is_valid_status_transition(current, requested):
        raise ValidationError(
            f'Cannot change task status from "{current.value}" to "{requested.value}"',
            code="INVALID_STATUS_TRANSITION",
        )


def _status_for_progress(progress: int) -> TaskStatus:
    if progress == 100:
        return TaskStatus.COMPLETED
    if progress > 0:
        return TaskStatus.IN_PROGRESS
    return TaskStatus.TODO


def _apply_changes(existing: dict, changes: dict, user_id: str) -> dict:
    """
    Merge changes into a stored task or subtask document.

    Completing stamps ``completed_at`` and forces progress to 100.
    """
    now = utcnow()
    current = TaskStatus(existing["status"])
    requested = TaskStatus(changes["status"]) if changes.get("status") is not None else current
    _check_transition(current, requested)

    for field in IMMUTABLE_FIELDS:
        changes.pop(field, None)

    is_completing = requested == TaskStatus.COMPLETED and current != TaskStatus.COMPLETED
    completed_at = now if is_completing else (changes.get("completed_at") or existing.get("completed_at"))

    if requested == TaskStatus.COMPLETED:
        progress = 100
    elif changes.get("progress") is not None:
        progress = changes["progress"]
    else:
        progress = existing.get("progress", 0)

    return {
        **existing,
        **changes,
        "status": requested,
        "completed_at": completed_at,
        "progress": progress,
        "updated_at": now,
        "updated_by": user_id,
    }


def _validated(model: type[BaseModel], doc: dict):
    """Build a task or subtask model, reporting bad field values as a 400."""
    try:
        return model.model_validate(doc)
    except PydanticValidationError as exc:
        raise ValidationError(
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        )


def _check_form(doc: dict) -> None:
    """Run task form rules over a candidate document."""
    fields = {name: doc[name] for name in TaskFormData.model_fields if name in doc}
    result = validate_task_form(fields)
    if result.has_blocking_errors:
        raise ValidationError([msg for messages in result.errors.values() for msg in messages])


class TaskService:
    """Service for handling task operations."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.tasks = db["tasks"]
        self.subtasks = db["subtasks"]

    def _doc_to_subtask(self, doc: dict) -> Subtask:
        """Convert a stored document to a Subtask model."""
        return Subtask.model_validate(doc)

    def _doc_to_task(self, doc: dict, subtasks: Optional[list[dict]] = None) -> Task:
        """Convert a stored document to a Task model with subtasks sorted by order."""
        children = sorted((self._doc_to_subtask(s) for s in subtasks or []), key=lambda s: s.order)
        return Task.model_validate({**doc, "subtasks": children})

    def _to_doc(self, item: Task | Subtask) -> dict:
        doc = item.model_dump(exclude={"id", "subtasks"})
        doc["_id"] = item.id
        return doc

    async def _active_subtask_docs(self, task_id: str) -> list[dict]:
        return await self.subtasks.list({"task_id": task_id, "deleted": False})

    async def _find_task(self, task_id: str) -> dict:
        doc = await self.tasks.get(task_id)
        if not doc or doc.get("deleted"):
            raise NotFoundError("Task", task_id)
        return doc

    async def _find_subtask(self, subtask_id: str) -> dict:
        doc = await self.subtasks.get(subtask_id)
        if not doc or doc.get("deleted"):
            raise NotFoundError("Subtask", subtask_id)
        return doc

    async def _with_subtasks(self, doc: dict) -> Task:
        return self._doc_to_task(doc, await self._active_subtask_docs(doc["_id"]))

    async def list_tasks(self, goal_id: str, filters: Optional[TaskFilters] = None) -> list[Task]:
        """
        List a goal's non-deleted tasks, sorted by order, with subtasks attached.

        Args:
            goal_id: Parent goal ID
            filters: Optional status, priority, assignee, tag and due-date filters

        Returns:
            List of tasks

        Raises:
            NotFoundError: If the goal does not exist
            GoneError: If the goal is deleted
        """
        await GoalService(self.db).get_goal(goal_id)

        filters = filters or TaskFilters()
        now = utcnow()
        docs = await self.tasks.list({"goal_id": goal_id, "deleted": False})
        tasks = [await self._with_subtasks(doc) for doc in docs]

        if filters.status:
            tasks = [t for t in tasks if t.status in filters.status]
        if filters.priority:
            tasks = [t for t in tasks if t.priority in filters.priority]
        if filters.assigned_to:
            tasks = [t for t in tasks if t.assigned_to and t.assigned_to in filters.assigned_to]
        if filters.tags:
            tasks = [t for t in tasks if any(tag in t.tags for tag in filters.tags)]
        if filters.due_start or filters.due_end:
            tasks = [
                t for t in tasks
                if t.due_date
                and (filters.due_start is None or t.due_date >= filters.due_start)
                and (filters.due_end is None or t.due_date <= filters.due_end)
            ]
        if filters.overdue:
            tasks = [t for t in tasks if is_task_overdue(t, now)]
        if filters.completed is not None:
            tasks = [t for t in tasks if (t.status == TaskStatus.COMPLETED) == filters.completed]

        return sorted(tasks, key=lambda t: t.order)

    async def get_task(self, task_id: str) -> Task:
        """
        Get a single task with its subtasks.

        Raises:
            NotFoundError: If the task does not exist or is deleted
        """
        return await self._with_subtasks(await self._find_task(task_id))

    async def create_task(self, user_id: str, goal_id: str, task_create: TaskCreate) -> Task:
        """
        Create a task under a goal.

        Args:
            user_id: Acting user
            goal_id: Parent goal, which must exist and not be deleted
            task_create: Task creation data

        Returns:
            Created task

        Raises:
            NotFoundError: If the goal does not exist
            GoneError: If the goal is deleted
            ValidationError: If the task breaks a form rule
        """
        await GoalService(self.db).get_goal(goal_id)

        now = utcnow()
        doc = task_create.model_dump()
        if doc["order"] is None:
            doc["order"] = len(await self.tasks.list({"goal_id": goal_id})) + 1
        doc.update(
            {
                "_id": new_id(),
                "goal_id": goal_id,
                "status": TaskStatus.TODO,
                "progress": 0,
                "created_at": now,
                "updated_at": now,
                "created_by": user_id,
                "updated_by": user_id,
            }
        )
        _check_form(doc)
        task = _validated(Task, doc)

        stored = await self.tasks.create(self._to_doc(task))
        log_with_context(logger, logging.INFO, "Task created", task_id=stored["_id"], goal_id=goal_id)
        return self._doc_to_task(stored)

    async def update_task(self, user_id: str, task_id: str, task_update: TaskUpdate) -> Task:
        """
        Update a task.

        Identity, creation fields and the parent goal never change. A status
        change must be a legal transition; completing a task stamps
        ``completed_at`` and sets progress to 100.

        Raises:
            NotFoundError: If the task does not exist
            ValidationError: If the status change is illegal or a form rule fails
        """
        existing = await self._find_task(task_id)
        merged = _apply_changes(existing, task_update.model_dump(exclude_unset=True), user_id)
        _check_form(merged)
        task = _validated(Task, merged)

        stored = await self.tasks.update(task_id, self._to_doc(task))
        log_with_context(logger, logging.INFO, "Task updated", task_id=task_id, status=task.status.value)
        return await self._with_subtasks(stored)

    async def change_status(self, user_id: str, task_id: str, status: TaskStatus) -> Task:
        """Move a task to a new status."""
        return await self.update_task(user_id, task_id, TaskUpdate(status=status))

    async def get_transition(self, task_id: str, to_status: TaskStatus) -> StatusChangeConfirmation:
        """Describe moving a task to ``to_status`` without changing it."""
        task = await self.get_task(task_id)
        return get_status_change_confirmation(task.status, to_status)

    async def list_transitions(self, task_id: str) -> list[StatusChangeConfirmation]:
        """Describe every status the task can move to next."""
        task = await self.get_task(task_id)
        return [
            get_status_change_confirmation(task.status, status)
            for status in TaskStatus
            if is_valid_status_transition(task.status, status)
        ]

    async def set_progress(self, user_id: str, task_id: str, progress: int) -> Task:
        """
        Set a task's progress and derive its status.

        100 completes the task, anything above 0 marks it in progress and 0
        returns it to todo. The derived status must be a legal transition.

        Raises:
            ValidationError: If progress is outside 0-100 or the derived transition is illegal
        """
        if not 0 <= progress <= 100:
            raise ValidationError("Progress must be between 0 and 100")
        return await self.update_task(
            user_id,
            task_id,
            TaskUpdate(progress=progress, status=_status_for_progress(progress)),
        )

    async def get_progress(self, task_id: str) -> TaskProgress:
        """Stored versus computed progress for a task."""
        task = await self.get_task(task_id)
        return TaskProgress(
            task_id=task.id,
            stored_progress=task.progress,
            calculated_progress=calculate_task_progress(task),
        )

    async def get_time_summary(self, task_id: str) -> TimeTrackingSummary:
        """Estimated versus actual hours for a task and its subtasks."""
        return calculate_time_tracking_summary(await self.get_task(task_id))

    async def delete_task(self, user_id: str, task_id: str, permanent: bool = False) -> None:
        """
        Delete a task and its subtasks, softly or permanently.

        Raises:
            NotFoundError: If the task does not exist or is already deleted
        """
        await self._find_task(task_id)

        if permanent:
            await self.subtasks.delete_many({"task_id": task_id})
            await self.tasks.delete(task_id)
        else:
            now = utcnow()
            tombstone = {
                "deleted": True,
                "deleted_at": now,
                "deleted_by": user_id,
                "updated_at": now,
                "updated_by": user_id,
            }
            await self.tasks.update(task_id, tombstone)
            for subtask in await self.subtasks.list({"task_id": task_id}):
                await self.subtasks.update(subtask["_id"], tombstone)

        log_with_context(
            logger, logging.INFO, "Task deleted", task_id=task_id, permanent=permanent, user_id=user_id
        )

    # Subtasks

    async def list_subtasks(self, task_id: str) -> list[Subtask]:
        """List a task's non-deleted subtasks in order."""
        await self._find_task(task_id)
        docs = await self._active_subtask_docs(task_id)
        return sorted((self._doc_to_subtask(doc) for doc in docs), key=lambda s: s.order)

    async def get_subtask(self, subtask_id: str) -> Subtask:
        """Get a single subtask."""
        return self._doc_to_subtask(await self._find_subtask(subtask_id))

    async def create_subtask(self, user_id: str, task_id: str, subtask_create: SubtaskCreate) -> Subtask:
        """
        Create a subtask under a task.

        Raises:
            NotFoundError: If the parent task does not exist
        """
        await self._find_task(task_id)

        now = utcnow()
        doc = subtask_create.model_dump()
        doc.update(
            {
                "_id": new_id(),
                "task_id": task_id,
                "status": TaskStatus.TODO,
                "progress": 0,
                "order": len(await self.subtasks.list({"task_id": task_id})) + 1,
                "created_at": now,
                "updated_at": now,
                "created_by": user_id,
                "updated_by": user_id,
            }
        )
        _check_form(doc)
        subtask = _validated(Subtask, doc)

        stored = await self.subtasks.create(self._to_doc(subtask))
        log_with_context(logger, logging.INFO, "Subtask created", subtask_id=stored["_id"], task_id=task_id)
        return self._doc_to_subtask(stored)

    async def update_subtask(self, user_id: str, subtask_id: str, subtask_update: SubtaskUpdate) -> Subtask:
        """Update a subtask under the same rules as a task."""
        existing = await self._find_subtask(subtask_id)
        merged = _apply_changes(existing, subtask_update.model_dump(exclude_unset=True), user_id)
        _check_form(merged)
        subtask = _validated(Subtask, merged)

        stored = await self.subtasks.update(subtask_id, self._to_doc(subtask))
        return self._doc_to_subtask(stored)

    async def delete_subtask(self, user_id: str, subtask_id: str, permanent: bool = False) -> None:
        """Delete a subtask, softly or permanently."""
        await self._find_subtask(subtask_id)
        if permanent:
            await self.subtasks.delete(subtask_id)
            return

        now = utcnow()
        await self.subtasks.update(
            subtask_id,
            {
                "deleted": True,
                "deleted_at": now,
                "deleted_by": user_id,
                "updated_at": now,
                "updated_by": user_id,
            },
        )

    # Checklist

    async def _save_checklist(self, user_id: str, task: Task, checklist: list[ChecklistItem]) -> Task:
        stored = await self.tasks.update(
            task.id,
            {
                "checklist": [item.model_dump() for item in checklist],
                "updated_at": utcnow(),
                "updated_by": user_id,
            },
        )
        return await self._with_subtasks(stored)

    def _find_item(self, task: Task, item_id: str) -> ChecklistItem:
        for item in task.checklist:
            if item.id == item_id:
                return item
        raise NotFoundError("Checklist item", item_id)

    async def add_checklist_item(self, user_id: str, task_id: str, item_create: ChecklistItemCreate) -> Task:
        """Append a checklist item to a task."""
        task = await self.get_task(task_id)
        now = utcnow()
        item = ChecklistItem(
            id=new_id(),
            title=item_create.title,
            description=item_create.description,
            is_required=item_create.is_required,
            order=len(task.checklist) + 1,
            created_at=now,
            updated_at=now,
            created_by=user_id,
            updated_by=user_id,
        )
        return await self._save_checklist(user_id, task, [*task.checklist, item])

    async def update_checklist_item(
        self, user_id: str, task_id: str, item_id: str, item_update: ChecklistItemUpdate
    ) -> Task:
        """
        Update a checklist item.

        Completing an item records who completed it and when; reopening clears both.

        Raises:
            NotFoundError: If the task or item does not exist
        """
        task = await self.get_task(task_id)
        item = self._find_item(task, item_id)
        changes = item_update.model_dump(exclude_unset=True, exclude_none=True)
        now = utcnow()

        if "is_completed" in changes and changes["is_completed"] != item.is_completed:
            changes["completed_at"] = now if changes["is_completed"] else None
            changes["completed_by"] = user_id if changes["is_completed"] else None

        updated = item.model_copy(update={**changes, "updated_at": now, "updated_by": user_id})
        checklist = [updated if i.id == item_id else i for i in task.checklist]
        return await self._save_checklist(user_id, task, checklist)

    async def remove_checklist_item(self, user_id: str, task_id: str, item_id: str) -> Task:
        """Remove a checklist item from a task."""
        task = await self.get_task(task_id)
        self._find_item(task, item_id)
        checklist = [i for i in task.checklist if i.id != item_id]
        return await self._save_checklist(user_id, task, checklist)

    # Reporting

    async def get_stats(self, goal_id: str) -> TaskStats:
        """Aggregate counts, completion rate, progress and hours over a goal's tasks."""
        tasks = await self.list_tasks(goal_id)
        total = len(tasks)
        now = utcnow()

        by_status = {s.value: sum(1 for t in tasks if t.status == s) for s in TaskStatus}
        by_priority = {p.value: sum(1 for t in tasks if t.priority == p) for p in GoalPriority}

        return TaskStats(
            total=total,
            by_status=by_status,
            by_priority=by_priority,
            completion_rate=(by_status[TaskStatus.COMPLETED.value] / total) * 100 if total else 0.0,
            average_progress=sum(t.progress for t in tasks) / total if total else 0.0,
            overdue_count=sum(1 for t in tasks if is_task_overdue(t, now)),
            total_estimated_hours=sum(t.estimated_hours or 0 for t in tasks),
            total_actual_hours=sum(t.actual_hours or 0 for t in tasks),
        )

    async def get_overdue_tasks(self, goal_id: Optional[str] = None) -> list[Task]:
        """Open tasks whose due date has passed, optionally for one goal."""
        query = {"deleted": False}
        if goal_id:
            query["goal_id"] = goal_id
        now = utcnow()
        tasks = [await self._with_subtasks(doc) for doc in await self.tasks.list(query)]
        return sorted((t for t in tasks if is_task_overdue(t, now)), key=lambda t: t.order)

    # Bulk operations

    async def bulk_update_status(self, user_id: str, ids: list[str], status: TaskStatus) -> list[Task]:
        """
        Move several tasks to one status.

        Tasks that fail (missing, illegal transition, storage error) are
        logged and skipped.

        Returns:
            The tasks that were updated
        """
        updated = []
        for task_id in ids:
            try:
                updated.append(await self.change_status(user_id, task_id, status))
            except (AppError, StorageError) as exc:
                log_with_context(
                    logger, logging.WARNING, "Bulk status update skipped task",
                    task_id=task_id, reason=str(exc),
                )
        return updated

    async def bulk_delete(self, user_id: str, ids: list[str], permanent: bool = False) -> BulkDeleteResult:
        """Delete several tasks, logging and skipping failures."""
        result = BulkDeleteResult()
        for task_id in ids:
            try:
                await self.delete_task(user_id, task_id, permanent)
                result.deleted.append(task_id)
            except (AppError, StorageError) as exc:
                log_with_context(
                    logger, logging.WARNING, "Bulk delete skipped task",
                    task_id=task_id, reason=str(exc),
                )
                result.failed.append(task_id)
        return result
