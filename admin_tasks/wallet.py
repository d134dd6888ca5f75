"""Upload earnings per admin, derived from content records on demand."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Tuple

from .completion import count_valid_links, is_completed_upload
from .models import AdminMember, ContentRecord, ContentType, TaskStatus
from .progress import is_owned_by

# Uploads created before this instant earn the legacy flat rate.
WALLET_CUTOVER = datetime(2025, 11, 4, tzinfo=timezone.utc)
LEGACY_RATE = 0.50
MOVIE_RATE_PER_PAIR = 0.15
MOVIE_CAP = 0.40
SERIES_RATE_PER_PAIR = 0.30
INCOMPLETED_TASK_PENALTY = 0.50


@dataclass(frozen=True)
class Wallet:
    total: float
    monthly: float
    weekly: float


def week_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """Sunday-to-Sunday week containing ``now``."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start = midnight - timedelta(days=(now.weekday() + 1) % 7)
    return start, start + timedelta(days=7)


def month_bounds(now: datetime) -> Tuple[datetime, datetime]:
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def upload_earnings(record: ContentRecord, cutover: datetime = WALLET_CUTOVER) -> float:
    if record.created_at is None or not is_completed_upload(record):
        return 0.0
    if record.created_at < cutover:
        return LEGACY_RATE
    pairs = count_valid_links(record) // 2
    if record.content_type == ContentType.MOVIE:
        return min(pairs * MOVIE_RATE_PER_PAIR, MOVIE_CAP)
    return pairs * SERIES_RATE_PER_PAIR


def compute_wallet(admin: AdminMember, records: Iterable[ContentRecord], now: datetime) -> Wallet:
    """All-time, this-month and this-week earnings.

    The all-time total loses a fixed penalty for every Incompleted task.
    """
    week_start, week_end = week_bounds(now)
    month_start, month_end = month_bounds(now)
    total = monthly = weekly = 0.0
    for record in records:
        if record.created_at is None or not is_owned_by(record, admin.name, admin.id):
            continue
        earned = upload_earnings(record)
        total += earned
        if month_start <= record.created_at < month_end:
            monthly += earned
        if week_start <= record.created_at < week_end:
            weekly += earned

    incompleted = sum(1 for task in admin.tasks if task.status == TaskStatus.INCOMPLETED)
    total -= incompleted * INCOMPLETED_TASK_PENALTY
    return Wallet(total=round(total, 2), monthly=round(monthly, 2), weekly=round(weekly, 2))
