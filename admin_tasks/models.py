"""Task, admin and content records shared by every engine component."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .errors import ValidationError


class TaskType(str, Enum):
    TARGET = "target"
    TODO = "todo"


class TaskStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    INCOMPLETED = "incompleted"
    CANCELLED = "cancelled"


# Active or Incompleted: at most one per admin at any time.
UNFINISHED_STATUSES = frozenset({TaskStatus.ACTIVE, TaskStatus.INCOMPLETED})


class AdminRole(str, Enum):
    REGULATOR = "Regulator"
    CO_FOUNDER = "Co-Founder"
    ADMIN = "Admin"
    UPLOADER = "Uploader"


class ContentType(str, Enum):
    MOVIE = "movie"
    SERIES = "series"


Timestamp = Union[datetime, str]


def parse_timestamp(value: Timestamp) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError as error:
            raise ValidationError("timestamp", f"not an ISO-8601 value: {value!r}") from error
    elif not isinstance(value, datetime):
        raise ValidationError("timestamp", f"expected an ISO-8601 string, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return parse_timestamp(value).isoformat()


@dataclass
class TodoItem:
    text: str
    completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "completed": self.completed}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TodoItem":
        return cls(text=str(data.get("text", "")), completed=bool(data.get("completed", False)))


@dataclass
class Task:
    """A unit of assigned work.

    ``type`` decides the populated variant: Target tasks carry ``target``,
    Todo tasks carry ``items``. The pairing is checked on construction so
    no read site has to second-guess it.
    """

    id: str
    title: str
    type: TaskType
    start_date: datetime
    deadline: datetime
    status: TaskStatus = TaskStatus.ACTIVE
    end_date: Optional[datetime] = None
    target: Optional[int] = None
    items: Optional[List[TodoItem]] = None

    def __post_init__(self):
        self.type = TaskType(self.type)
        self.status = TaskStatus(self.status)
        self.start_date = parse_timestamp(self.start_date)
        self.deadline = parse_timestamp(self.deadline)
        if self.end_date is not None:
            self.end_date = parse_timestamp(self.end_date)

        if self.type == TaskType.TARGET:
            if self.target is None or self.items is not None:
                raise ValidationError("target", "target tasks need a target count and no items")
            self.target = int(self.target)
        else:
            if self.items is None or self.target is not None:
                raise ValidationError("items", "todo tasks need an item list and no target")
        if self.start_date > self.deadline:
            raise ValidationError("deadline", "deadline is before the start date")

    @property
    def is_unfinished(self) -> bool:
        return self.status in UNFINISHED_STATUSES

    @property
    def goal(self) -> int:
        """Target count for Target tasks, item count for Todo tasks."""
        if self.type == TaskType.TODO:
            return len(self.items or [])
        return self.target or 0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "type": self.type.value,
            "status": self.status.value,
            "startDate": format_timestamp(self.start_date),
            "deadline": format_timestamp(self.deadline),
            "endDate": format_timestamp(self.end_date),
        }
        if self.type == TaskType.TARGET:
            data["target"] = self.target
        else:
            data["items"] = [item.to_dict() for item in self.items or []]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        task_type = TaskType(data.get("type", TaskType.TARGET.value))
        items = None
        target = None
        if task_type == TaskType.TODO:
            items = [TodoItem.from_dict(raw) for raw in data.get("items") or []]
        else:
            target = data.get("target", 0)
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            type=task_type,
            status=TaskStatus(data.get("status", TaskStatus.ACTIVE.value)),
            start_date=data["startDate"],
            deadline=data["deadline"],
            end_date=data.get("endDate"),
            target=target,
            items=items,
        )


@dataclass
class AdminMember:
    """One administrator; ``tasks`` is append-only history."""

    id: str
    name: str
    role: AdminRole = AdminRole.UPLOADER
    tasks: List[Task] = field(default_factory=list)
    joined_at: Optional[datetime] = None

    def __post_init__(self):
        self.role = AdminRole(self.role)
        if self.joined_at is not None:
            self.joined_at = parse_timestamp(self.joined_at)

    def find_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def unfinished_task(self) -> Optional[Task]:
        for task in self.tasks:
            if task.is_unfinished:
                return task
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role.value,
            "joinedAt": format_timestamp(self.joined_at),
            "tasks": [task.to_dict() for task in self.tasks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdminMember":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            role=AdminRole(data.get("role", AdminRole.UPLOADER.value)),
            tasks=[Task.from_dict(raw) for raw in data.get("tasks") or []],
            joined_at=data.get("joinedAt"),
        )


def _entries(raw: Any) -> List[Dict[str, Any]]:
    """Object entries of a JSON array; null or scalar entries are dropped."""
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, dict)]


@dataclass
class DownloadLink:
    url: str
    quality: str = ""
    size: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DownloadLink":
        return cls(url=str(data.get("url") or ""), quality=str(data.get("quality") or ""), size=data.get("size"))


@dataclass
class Episode:
    title: str = ""
    episode_number: int = 0
    download_links: List[DownloadLink] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Episode":
        return cls(
            title=str(data.get("title") or ""),
            episode_number=int(data.get("episodeNumber") or 0),
            download_links=[DownloadLink.from_dict(raw) for raw in _entries(data.get("downloadLinks"))],
        )


@dataclass
class ContentRecord:
    """An uploaded content record. Read-only to the engine."""

    id: str
    uploaded_by: str
    created_at: Optional[datetime] = None
    content_type: ContentType = ContentType.MOVIE
    download_links: List[DownloadLink] = field(default_factory=list)
    episodes: List[Episode] = field(default_factory=list)
    season_download_links: List[DownloadLink] = field(default_factory=list)

    def __post_init__(self):
        self.content_type = ContentType(self.content_type)
        if self.created_at is not None:
            self.created_at = parse_timestamp(self.created_at)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentRecord":
        return cls(
            id=str(data["id"]),
            uploaded_by=str(data.get("uploadedBy") or ""),
            created_at=data.get("createdAt"),
            content_type=ContentType(data.get("contentType", ContentType.MOVIE.value)),
            download_links=[DownloadLink.from_dict(raw) for raw in _entries(data.get("downloadLinks"))],
            episodes=[Episode.from_dict(raw) for raw in _entries(data.get("episodes"))],
            season_download_links=[
                DownloadLink.from_dict(raw) for raw in _entries(data.get("seasonDownloadLinks"))
            ],
        )


@dataclass(frozen=True)
class Progress:
    completed: int
    target: int

    @property
    def percent(self) -> float:
        if self.target <= 0:
            return 0.0
        return min(100.0, self.completed / self.target * 100)

    @property
    def reached(self) -> bool:
        return self.target > 0 and self.completed >= self.target
