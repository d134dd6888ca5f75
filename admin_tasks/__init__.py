"""Admin task assignment and performance tracking engine."""

__version__ = "1.0.0"

from .assignment import AssignmentGuard, TaskDraft
from .clock import Clock, FixedClock, SystemClock
from .completion import is_completed_upload
from .engine import TaskEngine
from .errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    RepositoryError,
    TaskEngineError,
    ValidationError,
)
from .models import (
    AdminMember,
    AdminRole,
    ContentRecord,
    ContentType,
    DownloadLink,
    Episode,
    Progress,
    Task,
    TaskStatus,
    TaskType,
    TodoItem,
)
from .progress import compute_progress
from .repositories import InMemoryAdminDirectory, InMemoryContentRepository, InMemorySecurityLog
from .scanner import OverdueScanner
from .scoring import compute_score

__all__ = [
    "AssignmentGuard",
    "TaskDraft",
    "Clock",
    "FixedClock",
    "SystemClock",
    "is_completed_upload",
    "TaskEngine",
    "ConflictError",
    "InvalidStateError",
    "NotFoundError",
    "PermissionDeniedError",
    "RepositoryError",
    "TaskEngineError",
    "ValidationError",
    "AdminMember",
    "AdminRole",
    "ContentRecord",
    "ContentType",
    "DownloadLink",
    "Episode",
    "Progress",
    "Task",
    "TaskStatus",
    "TaskType",
    "TodoItem",
    "compute_progress",
    "InMemoryAdminDirectory",
    "InMemoryContentRepository",
    "InMemorySecurityLog",
    "OverdueScanner",
    "compute_score",
]
