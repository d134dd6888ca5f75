"""Task assignment guard: creates, cancels, completes and ticks off tasks.

Every mutation runs under the admin's lock as one read-modify-write cycle:
the admin is re-read from the directory, a copy of its task list is changed,
and the copy is saved in a single call. Nothing is applied when validation,
the unfinished-task check, or the save fails.
"""

import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence, Union

from .clock import Clock, SystemClock
from .errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    RepositoryError,
    ValidationError,
)
from .locks import AdminLocks
from .models import (
    AdminMember,
    AdminRole,
    ContentRecord,
    Task,
    TaskStatus,
    TaskType,
    Timestamp,
    TodoItem,
    parse_timestamp,
)
from .progress import compute_progress
from .repositories import AdminDirectory, SecurityLog

logger = logging.getLogger(__name__)

DEFAULT_MANAGER_ROLES = (AdminRole.REGULATOR.value, AdminRole.CO_FOUNDER.value)

AdminRef = Union[AdminMember, str]


def admin_id_of(admin: AdminRef) -> str:
    return admin.id if isinstance(admin, AdminMember) else str(admin)


@dataclass
class TaskDraft:
    """Manager input for a new task.

    ``items`` may be a list of lines or one multi-line string; blank lines
    are dropped.
    """

    title: str
    type: TaskType = TaskType.TARGET
    deadline: Optional[Timestamp] = None
    target: Optional[int] = None
    items: Union[str, Sequence[str], None] = field(default=None)

    def item_texts(self) -> List[str]:
        raw = self.items or []
        if isinstance(raw, str):
            raw = raw.splitlines()
        texts = []
        for item in raw:
            text = item.text if isinstance(item, TodoItem) else str(item)
            text = text.strip()
            if text:
                texts.append(text)
        return texts


def validate_draft(draft: TaskDraft, now: datetime) -> None:
    """Raise ``ValidationError`` for the first malformed field of ``draft``."""
    if not (draft.title or "").strip():
        raise ValidationError("title", "title is required")
    if draft.deadline is None:
        raise ValidationError("deadline", "deadline is required")
    if parse_timestamp(draft.deadline) <= now:
        raise ValidationError("deadline", "deadline must be in the future")
    try:
        task_type = TaskType(draft.type)
    except ValueError as error:
        raise ValidationError("type", f"unknown task type: {draft.type!r}") from error
    if task_type == TaskType.TARGET:
        if draft.target is None or isinstance(draft.target, bool):
            raise ValidationError("target", "target count is required")
        if isinstance(draft.target, float) and not draft.target.is_integer():
            raise ValidationError("target", "target must be a whole number")
        try:
            target = int(draft.target)
        except (TypeError, ValueError) as error:
            raise ValidationError("target", "target must be an integer") from error
        if target < 1:
            raise ValidationError("target", "target must be at least 1")
    elif not draft.item_texts():
        raise ValidationError("items", "todo list needs at least one item")


def ensure_manager(actor: Optional[AdminMember], manager_roles: Iterable[str]) -> None:
    """Refuse task management by an actor whose role is not a manager role."""
    if actor is None:
        return
    if actor.role.value not in set(manager_roles):
        raise PermissionDeniedError(actor.name, actor.role.value)


class AssignmentGuard:
    """Enforces one unfinished task per admin and applies task mutations."""

    def __init__(
        self,
        directory: AdminDirectory,
        clock: Optional[Clock] = None,
        locks: Optional[AdminLocks] = None,
        security_log: Optional[SecurityLog] = None,
        manager_roles: Iterable[str] = DEFAULT_MANAGER_ROLES,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.directory = directory
        self.clock = clock or SystemClock()
        self.locks = locks or AdminLocks()
        self.security_log = security_log
        self.manager_roles = tuple(manager_roles)
        self._new_id = id_factory

    # ── Operations ────────────────────────────────────────────

    def assign_task(self, admin: AdminRef, draft: TaskDraft, actor: Optional[AdminMember] = None) -> Task:
        ensure_manager(actor, self.manager_roles)
        admin_id = admin_id_of(admin)
        now = self.clock.now()
        validate_draft(draft, now)

        with self.locks.lock_for(admin_id):
            current = self.directory.get_admin(admin_id)
            unfinished = current.unfinished_task()
            if unfinished is not None:
                raise ConflictError(current.name, unfinished.id)

            task_type = TaskType(draft.type)
            task = Task(
                id=self._new_id(),
                title=draft.title.strip(),
                type=task_type,
                status=TaskStatus.ACTIVE,
                start_date=now,
                deadline=parse_timestamp(draft.deadline),
                target=int(draft.target) if task_type == TaskType.TARGET else None,
                items=[TodoItem(text) for text in draft.item_texts()] if task_type == TaskType.TODO else None,
            )
            tasks = copy.deepcopy(current.tasks)
            tasks.append(task)
            self._commit(admin, current, tasks)

        logger.info("Assigned %s task %s to %s", task.type.value, task.id, current.name)
        self._audit(f'Set task "{task.title}" for {current.name}.')
        return task

    def cancel_task(self, admin: AdminRef, task_id: str, actor: Optional[AdminMember] = None) -> Task:
        ensure_manager(actor, self.manager_roles)

        def cancel(task: Task, now: datetime) -> None:
            if not task.is_unfinished:
                raise InvalidStateError(task.id, f"cannot cancel a {task.status.value} task")
            task.status = TaskStatus.CANCELLED
            task.end_date = now

        task, name = self._mutate(admin, task_id, cancel)
        logger.info("Cancelled task %s for %s", task.id, name)
        self._audit(f'Cancelled task "{task.title}" for {name}.')
        return task

    def complete_task(self, admin: AdminRef, task_id: str, actor: Optional[AdminMember] = None) -> Task:
        """Manager action: mark an unfinished task Completed regardless of progress."""
        ensure_manager(actor, self.manager_roles)

        def complete(task: Task, now: datetime) -> None:
            if not task.is_unfinished:
                raise InvalidStateError(task.id, f"cannot complete a {task.status.value} task")
            task.status = TaskStatus.COMPLETED
            task.end_date = now

        task, name = self._mutate(admin, task_id, complete)
        logger.info("Completed task %s for %s", task.id, name)
        self._audit(f'Completed task "{task.title}" for {name}.')
        return task

    def toggle_todo_item(self, admin: AdminRef, task_id: str, item_index: int, completed: bool) -> Task:
        def toggle(task: Task, now: datetime) -> None:
            if task.type != TaskType.TODO:
                raise InvalidStateError(task.id, "only todo tasks have items")
            if task.status != TaskStatus.ACTIVE:
                raise InvalidStateError(task.id, f"cannot edit items of a {task.status.value} task")
            items = task.items or []
            if isinstance(item_index, bool) or not 0 <= item_index < len(items):
                raise NotFoundError("todo item", item_index)
            items[item_index].completed = bool(completed)

        task, _ = self._mutate(admin, task_id, toggle)
        return task

    def complete_reached_tasks(self, admin: AdminRef, records: Iterable[ContentRecord]) -> int:
        """Mark every unfinished task whose goal is met as Completed.

        Active and Incompleted tasks both qualify, overdue or not. Returns the
        number of tasks changed; at most one save and one audit entry per call.
        """
        records = list(records)
        admin_id = admin_id_of(admin)
        with self.locks.lock_for(admin_id):
            current = self.directory.get_admin(admin_id)
            now = self.clock.now()
            tasks = copy.deepcopy(current.tasks)
            changed = 0
            for task in tasks:
                if not task.is_unfinished:
                    continue
                progress = compute_progress(task, current.name, records, current.id)
                if not progress.reached:
                    continue
                task.status = TaskStatus.COMPLETED
                task.end_date = now
                changed += 1
                logger.info(
                    "Task %s for %s reached its goal (%d/%d)",
                    task.id, current.name, progress.completed, progress.target,
                )
            if not changed:
                return 0
            self._commit(admin, current, tasks)

        self._audit(f"Task status automatically updated for {current.name}.")
        return changed

    # ── Internals ─────────────────────────────────────────────

    def _mutate(self, admin: AdminRef, task_id: str, change: Callable[[Task, datetime], None]):
        admin_id = admin_id_of(admin)
        with self.locks.lock_for(admin_id):
            current = self.directory.get_admin(admin_id)
            tasks = copy.deepcopy(current.tasks)
            for task in tasks:
                if task.id == task_id:
                    break
            else:
                raise NotFoundError("task", task_id)
            change(task, self.clock.now())
            self._commit(admin, current, tasks)
        return task, current.name

    def _commit(self, admin: AdminRef, current: AdminMember, tasks: List[Task]) -> None:
        self.directory.save_admin_tasks(current.id, tasks)
        current.tasks = tasks
        if isinstance(admin, AdminMember) and admin is not current:
            admin.tasks = tasks

    def _audit(self, message: str) -> None:
        if self.security_log is None:
            return
        try:
            self.security_log.record(message)
        except RepositoryError as error:
            # The task change is already saved; only the audit line is lost.
            logger.error("Security log write failed: %s", error)
