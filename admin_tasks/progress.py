"""Progress of a task against live upload data. Pure functions only."""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from .completion import is_completed_upload
from .models import ContentRecord, Progress, Task, TaskType


def is_owned_by(record: ContentRecord, admin_name: str, admin_id: Optional[str] = None) -> bool:
    """Match an upload to an admin by current name or by permanent id."""
    if not record.uploaded_by:
        return False
    if record.uploaded_by == admin_name:
        return True
    return admin_id is not None and record.uploaded_by == admin_id


def qualifying_uploads(
    task: Task,
    admin_name: str,
    records: Iterable[ContentRecord],
    admin_id: Optional[str] = None,
) -> List[ContentRecord]:
    """Completed uploads by the admin created strictly after the task started."""
    return [
        record for record in records
        if is_owned_by(record, admin_name, admin_id)
        and record.created_at is not None
        and record.created_at > task.start_date
        and is_completed_upload(record)
    ]


def compute_progress(
    task: Task,
    admin_name: str,
    records: Iterable[ContentRecord],
    admin_id: Optional[str] = None,
) -> Progress:
    """Derive ``completed``/``target`` for a task.

    Target tasks count qualifying uploads against ``task.target``. Todo
    tasks count checked items against ``len(task.items)``.
    """
    if task.type == TaskType.TODO:
        items = task.items or []
        return Progress(completed=sum(1 for item in items if item.completed), target=len(items))
    uploads = qualifying_uploads(task, admin_name, records, admin_id)
    return Progress(completed=len(uploads), target=task.target or 0)


def progress_percent(progress: Progress) -> float:
    return progress.percent


def time_remaining(task: Task, now: datetime) -> timedelta:
    """Time left until the deadline, zero once it has passed."""
    remaining = task.deadline - now
    if remaining <= timedelta(0):
        return timedelta(0)
    return remaining


def is_overdue(task: Task, now: datetime) -> bool:
    return now > task.deadline
