"""Performance score: latest task outcome, upload volume and recent activity.

The score is derived on every call and never stored. Terms are summed
unclamped; only the total is clamped to [0, 10] and rounded to one decimal.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from .completion import is_completed_upload
from .models import AdminMember, ContentRecord, Task, TaskStatus, TaskType
from .progress import is_owned_by

MAX_SCORE = 10.0


@dataclass(frozen=True)
class ScoreWeights:
    completed_task_points: float = 6.0
    incompleted_task_points: float = -4.0
    volume_target: int = 50
    volume_points: float = 3.0
    recency_target: int = 5
    recency_points: float = 1.0
    recency_days: int = 7


DEFAULT_WEIGHTS = ScoreWeights()


@dataclass(frozen=True)
class ScoreBreakdown:
    task_term: float
    volume_term: float
    recency_term: float
    completed_uploads: int
    recent_uploads: int

    @property
    def raw(self) -> float:
        return self.task_term + self.volume_term + self.recency_term

    @property
    def score(self) -> float:
        return float(round(max(0.0, min(MAX_SCORE, self.raw)), 1))


def latest_target_task(admin: AdminMember) -> Optional[Task]:
    """Most recently assigned Target task, by list order."""
    for task in reversed(admin.tasks):
        if task.type == TaskType.TARGET:
            return task
    return None


def completed_uploads(admin: AdminMember, records: Iterable[ContentRecord]) -> List[ContentRecord]:
    return [
        record for record in records
        if is_owned_by(record, admin.name, admin.id) and is_completed_upload(record)
    ]


def _task_term(admin: AdminMember, weights: ScoreWeights) -> float:
    task = latest_target_task(admin)
    if task is None:
        return 0.0
    if task.status == TaskStatus.COMPLETED:
        return weights.completed_task_points
    if task.status == TaskStatus.INCOMPLETED:
        return weights.incompleted_task_points
    return 0.0


def _capped_ratio(count: int, target: int, points: float) -> float:
    if target <= 0:
        return 0.0
    return min(points, count / target * points)


def score_breakdown(
    admin: AdminMember,
    records: Iterable[ContentRecord],
    now: Optional[datetime] = None,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> ScoreBreakdown:
    now = now or datetime.now(timezone.utc)
    uploads = completed_uploads(admin, records)
    window_start = now - timedelta(days=weights.recency_days)
    recent = [
        record for record in uploads
        if record.created_at is not None and window_start <= record.created_at <= now
    ]
    return ScoreBreakdown(
        task_term=_task_term(admin, weights),
        volume_term=_capped_ratio(len(uploads), weights.volume_target, weights.volume_points),
        recency_term=_capped_ratio(len(recent), weights.recency_target, weights.recency_points),
        completed_uploads=len(uploads),
        recent_uploads=len(recent),
    )


def compute_score(
    admin: AdminMember,
    records: Iterable[ContentRecord],
    now: Optional[datetime] = None,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> float:
    """Performance score in [0, 10], one decimal place."""
    return score_breakdown(admin, records, now, weights).score
