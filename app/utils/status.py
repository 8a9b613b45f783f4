"""Lifecycle transition tables for tasks and goals."""
from typing import Mapping, TypeVar

from app.models.common import GoalStatus, TaskStatus
from app.models.task import StatusChangeConfirmation

S = TypeVar("S")


TASK_STATUS_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.TODO: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED}),
    TaskStatus.IN_PROGRESS: frozenset(
        {TaskStatus.BLOCKED, TaskStatus.COMPLETED, TaskStatus.TODO, TaskStatus.CANCELLED}
    ),
    TaskStatus.BLOCKED: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED}),
    TaskStatus.COMPLETED: frozenset(),  # terminal
    TaskStatus.CANCELLED: frozenset(),  # terminal
}

GOAL_STATUS_TRANSITIONS: dict[GoalStatus, frozenset[GoalStatus]] = {
    GoalStatus.DRAFT: frozenset({GoalStatus.ACTIVE, GoalStatus.CANCELLED}),
    GoalStatus.ACTIVE: frozenset(
        {GoalStatus.ON_HOLD, GoalStatus.COMPLETED, GoalStatus.CANCELLED, GoalStatus.OVERDUE}
    ),
    GoalStatus.ON_HOLD: frozenset({GoalStatus.ACTIVE, GoalStatus.CANCELLED}),
    GoalStatus.OVERDUE: frozenset({GoalStatus.ACTIVE, GoalStatus.COMPLETED, GoalStatus.CANCELLED}),
    GoalStatus.COMPLETED: frozenset(),
    GoalStatus.CANCELLED: frozenset(),
}


def check_transition_table(table: Mapping[S, frozenset[S]], states: type) -> None:
    """
    Verify a transition table covers every state and only targets known states.

    Raises:
        RuntimeError: If the table is incomplete or references unknown states
    """
    known = set(states)
    missing = known - set(table)
    if missing:
        names = ", ".join(sorted(s.value for s in missing))
        raise RuntimeError(f"Transition table for {states.__name__} missing states: {names}")
    for source, targets in table.items():
        unknown = set(targets) - known
        if unknown:
            raise RuntimeError(f"Transition table for {states.__name__} has unknown targets from {source}")


check_transition_table(TASK_STATUS_TRANSITIONS, TaskStatus)
check_transition_table(GOAL_STATUS_TRANSITIONS, GoalStatus)


def is_valid_status_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """
    Check whether a task may move from one status to another.

    Examples:
        >>> is_valid_status_transition(TaskStatus.TODO, TaskStatus.IN_PROGRESS)
        True
        >>> is_valid_status_transition(TaskStatus.TODO, TaskStatus.COMPLETED)
        False
    """
    return TaskStatus(to_status) in TASK_STATUS_TRANSITIONS[TaskStatus(from_status)]


def get_allowed_status_transitions(status: TaskStatus) -> list[TaskStatus]:
    """Statuses reachable from the given task status, in declaration order."""
    allowed = TASK_STATUS_TRANSITIONS[TaskStatus(status)]
    return [s for s in TaskStatus if s in allowed]


def get_status_change_confirmation(
    from_status: TaskStatus,
    to_status: TaskStatus,
) -> StatusChangeConfirmation:
    """
    Describe a transition: whether it is allowed, needs confirmation, and what to tell the user.

    Any transition into completed or cancelled requires confirmation.
    """
    from_status = TaskStatus(from_status)
    to_status = TaskStatus(to_status)

    confirmation_message = None
    warning_message = None

    if to_status == TaskStatus.COMPLETED:
        confirmation_message = "Are you sure you want to mark this task as completed?"
    elif to_status == TaskStatus.CANCELLED:
        confirmation_message = "Are you sure you want to cancel this task?"
        warning_message = "Cancelled tasks cannot be reopened and their progress will be lost."
    elif to_status == TaskStatus.BLOCKED and from_status == TaskStatus.IN_PROGRESS:
        warning_message = "Task will be blocked. Consider adding a reason."

    return StatusChangeConfirmation(
        from_status=from_status,
        to_status=to_status,
        is_allowed=is_valid_status_transition(from_status, to_status),
        requires_confirmation=to_status in (TaskStatus.COMPLETED, TaskStatus.CANCELLED),
        confirmation_message=confirmation_message,
        warning_message=warning_message,
    )


def is_valid_goal_status_transition(from_status: GoalStatus, to_status: GoalStatus) -> bool:
    """Check whether a goal may move from one status to another."""
    return GoalStatus(to_status) in GOAL_STATUS_TRANSITIONS[GoalStatus(from_status)]
