"""Assignment resolution: who may complete a task and when it is satisfied for the day.

Room assignment always takes precedence over task-level assignees. Every
caller goes through ``resolve_effective_assignees`` so the precedence lives
in one place.
"""

from collections.abc import Sequence

from src.domain.completion import CompletionState, TaskCompletion
from src.domain.room import Room
from src.domain.task import AssignmentMode, Task
from src.domain.user import User, UserRole
from src.models.service_models import AssigneeSource, EffectiveAssignees


def resolve_effective_assignees(
    task: Task,
    room: Room | None,
    child_user_ids: Sequence[str] = (),
) -> EffectiveAssignees:
    """Compute the users currently permitted to complete ``task``.

    Precedence: the room's assigned user, then the task's own assignees, then
    every child when the task is reserved for children. Otherwise the set is
    empty, meaning anyone may complete the task.

    Args:
        task: Task with its assignee list loaded
        room: Owning room (None if it could not be loaded)
        child_user_ids: IDs of child users, used only for children-reserved tasks

    Returns:
        EffectiveAssignees describing the set and where it came from
    """
    if room is not None and room.assigned_user_id:
        return EffectiveAssignees(user_ids=[room.assigned_user_id], source=AssigneeSource.ROOM)

    if task.assignees:
        return EffectiveAssignees(user_ids=task.assignee_ids, source=AssigneeSource.TASK)

    if task.assigned_to_children and child_user_ids:
        return EffectiveAssignees(user_ids=list(child_user_ids), source=AssigneeSource.CHILDREN)

    return EffectiveAssignees(user_ids=[], source=AssigneeSource.UNRESTRICTED)


def is_permitted(user: User, effective: EffectiveAssignees) -> bool:
    """Admins and members act as overseers; others must be in a restricted set."""
    if user.role.is_privileged:
        return True
    return not effective.is_restricted or effective.includes(user.id)


def can_complete(task: Task, room: Room | None, user: User, child_user_ids: Sequence[str] = ()) -> bool:
    """Return True if ``user`` is allowed to mark ``task`` done.

    A children-reserved task with no other assignment admits any child even
    when the caller did not supply the child list.
    """
    effective = resolve_effective_assignees(task, room, child_user_ids)
    if effective.source == AssigneeSource.UNRESTRICTED and task.assigned_to_children:
        return user.role.is_privileged or user.role == UserRole.CHILD
    return is_permitted(user, effective)


def completion_state(
    task: Task,
    effective: EffectiveAssignees,
    completions_today: Sequence[TaskCompletion],
) -> CompletionState:
    """State of ``task`` for the current day given today's completions.

    In first mode any completion finishes the task. In shared and custom
    modes the task is done only once every effective assignee has completed
    it; an unrestricted task is done after any completion.
    """
    if not completions_today:
        return CompletionState.OPEN

    if task.assignment_mode == AssignmentMode.FIRST or not effective.is_restricted:
        return CompletionState.DONE

    covered = {completion.user_id for completion in completions_today}
    if covered.issuperset(effective.user_ids):
        return CompletionState.DONE
    return CompletionState.PARTIALLY_DONE


def is_satisfied_today(
    task: Task,
    effective: EffectiveAssignees,
    completions_today: Sequence[TaskCompletion],
) -> bool:
    """Return True once no further completions are expected today."""
    return completion_state(task, effective, completions_today) == CompletionState.DONE
