"""Collaborator stores: content repository, admin directory and security log.

Each store has an abstract interface, an in-memory implementation used for
tests and embedding, and a JSON-file implementation used by the CLI.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .errors import NotFoundError, RepositoryError, ValidationError
from .models import AdminMember, ContentRecord, Task

logger = logging.getLogger(__name__)

ADMINS_FILE = "admins.json"
CONTENT_FILE = "content.json"
SECURITY_LOG_FILE = "security_log.txt"


class ContentRepository(ABC):
    """Read-only view of uploaded content records."""

    @abstractmethod
    def list_records(self) -> List[ContentRecord]:
        pass


class AdminDirectory(ABC):
    """Administrator identities and their task lists.

    The engine only ever writes task lists back through ``save_admin_tasks``.
    """

    @abstractmethod
    def list_admins(self) -> List[AdminMember]:
        pass

    @abstractmethod
    def get_admin(self, admin_id: str) -> AdminMember:
        """Return the admin or raise ``NotFoundError``."""
        pass

    @abstractmethod
    def save_admin_tasks(self, admin_id: str, tasks: List[Task]) -> None:
        pass

    def find_by_name(self, name: str) -> AdminMember:
        for admin in self.list_admins():
            if admin.name == name:
                return admin
        raise NotFoundError("admin", name)


class SecurityLog(ABC):
    """Append-only audit trail of task management actions."""

    @abstractmethod
    def record(self, message: str) -> None:
        pass

    @abstractmethod
    def entries(self) -> List[Tuple[datetime, str]]:
        pass


# ── In-memory implementations ─────────────────────────────


class InMemoryContentRepository(ContentRepository):
    def __init__(self, records: Optional[Iterable[ContentRecord]] = None):
        self._records: List[ContentRecord] = list(records or [])
        self._lock = threading.Lock()

    def add(self, record: ContentRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list_records(self) -> List[ContentRecord]:
        with self._lock:
            return list(self._records)


class InMemoryAdminDirectory(AdminDirectory):
    """Admin directory held in process memory.

    Stored admins are the objects passed to ``add_admin``; saving a task
    list replaces the stored admin's ``tasks`` attribute.
    """

    def __init__(self, admins: Optional[Iterable[AdminMember]] = None):
        self._admins: Dict[str, AdminMember] = {}
        self._lock = threading.RLock()
        for admin in admins or []:
            self.add_admin(admin)

    def add_admin(self, admin: AdminMember) -> None:
        with self._lock:
            self._admins[admin.id] = admin

    def list_admins(self) -> List[AdminMember]:
        with self._lock:
            return list(self._admins.values())

    def get_admin(self, admin_id: str) -> AdminMember:
        with self._lock:
            admin = self._admins.get(admin_id)
        if admin is None:
            raise NotFoundError("admin", admin_id)
        return admin

    def save_admin_tasks(self, admin_id: str, tasks: List[Task]) -> None:
        with self._lock:
            admin = self._admins.get(admin_id)
            if admin is None:
                raise NotFoundError("admin", admin_id)
            admin.tasks = list(tasks)


class InMemorySecurityLog(SecurityLog):
    def __init__(self):
        self._entries: List[Tuple[datetime, str]] = []
        self._lock = threading.Lock()

    def record(self, message: str) -> None:
        with self._lock:
            self._entries.append((datetime.now(timezone.utc), message))

    def entries(self) -> List[Tuple[datetime, str]]:
        with self._lock:
            return list(self._entries)

    def messages(self) -> List[str]:
        return [message for _, message in self.entries()]


# ── JSON file implementations ─────────────────────────────


def _read_json(path: Path, operation: str) -> Any:
    if not path.exists():
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as error:
        logger.error("%s: cannot read %s: %s", operation, path, error)
        raise RepositoryError(operation, str(error), str(path)) from error


def _write_json(path: Path, data: Any, operation: str, entity_id: Optional[str] = None) -> None:
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        tmp_path.replace(path)
    except OSError as error:
        logger.error("%s: cannot write %s: %s", operation, path, error)
        raise RepositoryError(operation, str(error), entity_id) from error


class JsonContentRepository(ContentRepository):
    """Content records read from ``<data-dir>/content.json``."""

    def __init__(self, data_dir: Union[str, Path]):
        self.path = Path(data_dir).expanduser() / CONTENT_FILE

    def list_records(self) -> List[ContentRecord]:
        raw = _read_json(self.path, "list_records")
        try:
            return [ContentRecord.from_dict(item) for item in raw]
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as error:
            raise RepositoryError("list_records", f"malformed record: {error}", str(self.path)) from error


class JsonAdminDirectory(AdminDirectory):
    """Admins stored as a JSON list in ``<data-dir>/admins.json``."""

    def __init__(self, data_dir: Union[str, Path]):
        self.path = Path(data_dir).expanduser() / ADMINS_FILE
        self._lock = threading.RLock()

    def _load(self, operation: str) -> List[AdminMember]:
        raw = _read_json(self.path, operation)
        try:
            return [AdminMember.from_dict(item) for item in raw]
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as error:
            raise RepositoryError(operation, f"malformed admin: {error}", str(self.path)) from error

    def add_admin(self, admin: AdminMember) -> None:
        with self._lock:
            admins = [a for a in self._load("add_admin") if a.id != admin.id]
            admins.append(admin)
            _write_json(self.path, [a.to_dict() for a in admins], "add_admin", admin.id)

    def list_admins(self) -> List[AdminMember]:
        with self._lock:
            return self._load("list_admins")

    def get_admin(self, admin_id: str) -> AdminMember:
        with self._lock:
            for admin in self._load("get_admin"):
                if admin.id == admin_id:
                    return admin
        raise NotFoundError("admin", admin_id)

    def save_admin_tasks(self, admin_id: str, tasks: List[Task]) -> None:
        with self._lock:
            admins = self._load("save_admin_tasks")
            for admin in admins:
                if admin.id == admin_id:
                    admin.tasks = list(tasks)
                    break
            else:
                raise NotFoundError("admin", admin_id)
            _write_json(self.path, [a.to_dict() for a in admins], "save_admin_tasks", admin_id)


class FileSecurityLog(SecurityLog):
    """Tab-separated ``timestamp<TAB>message`` lines in ``<data-dir>/security_log.txt``."""

    def __init__(self, data_dir: Union[str, Path]):
        self.path = Path(data_dir).expanduser() / SECURITY_LOG_FILE
        self._lock = threading.Lock()

    def record(self, message: str) -> None:
        stamp = datetime.now(timezone.utc).isoformat()
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(f"{stamp}\t{message}\n")
            except OSError as error:
                raise RepositoryError("record_security_event", str(error)) from error

    def entries(self) -> List[Tuple[datetime, str]]:
        if not self.path.exists():
            return []
        result = []
        with self._lock:
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    lines = f.read().splitlines()
            except OSError as error:
                raise RepositoryError("list_security_events", str(error)) from error
        for line in lines:
            stamp, _, message = line.partition("\t")
            try:
                result.append((datetime.fromisoformat(stamp), message))
            except ValueError:
                continue
        return result
