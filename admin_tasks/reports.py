"""Per-admin upload statistics and team listing rows."""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from .completion import is_completed_upload
from .models import AdminMember, ContentRecord, Progress, Task
from .progress import compute_progress, is_owned_by
from .scoring import DEFAULT_WEIGHTS, ScoreWeights, compute_score
from .wallet import Wallet, compute_wallet, month_bounds, week_bounds


@dataclass(frozen=True)
class UploadStats:
    completed: int
    pending: int
    this_week: int
    this_month: int

    @property
    def all_time(self) -> int:
        return self.completed


@dataclass(frozen=True)
class TeamRow:
    admin: AdminMember
    task: Optional[Task]
    progress: Optional[Progress]
    score: float
    wallet: Wallet


def upload_stats(admin: AdminMember, records: Iterable[ContentRecord], now: datetime) -> UploadStats:
    """Completed vs pending uploads, and completed uploads this week / month."""
    week_start, week_end = week_bounds(now)
    month_start, month_end = month_bounds(now)
    completed = pending = this_week = this_month = 0
    for record in records:
        if not is_owned_by(record, admin.name, admin.id):
            continue
        if not is_completed_upload(record):
            pending += 1
            continue
        completed += 1
        if record.created_at is None:
            continue
        if week_start <= record.created_at < week_end:
            this_week += 1
        if month_start <= record.created_at < month_end:
            this_month += 1
    return UploadStats(completed=completed, pending=pending, this_week=this_week, this_month=this_month)


def current_task(admin: AdminMember) -> Optional[Task]:
    """The unfinished task if there is one, else the most recent task."""
    unfinished = admin.unfinished_task()
    if unfinished is not None:
        return unfinished
    return admin.tasks[-1] if admin.tasks else None


def build_team_report(
    admins: Iterable[AdminMember],
    records: Iterable[ContentRecord],
    now: datetime,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> List[TeamRow]:
    records = list(records)
    rows = []
    for admin in admins:
        task = current_task(admin)
        progress = compute_progress(task, admin.name, records, admin.id) if task else None
        rows.append(TeamRow(
            admin=admin,
            task=task,
            progress=progress,
            score=compute_score(admin, records, now, weights),
            wallet=compute_wallet(admin, records, now),
        ))
    rows.sort(key=lambda row: row.score, reverse=True)
    return rows
