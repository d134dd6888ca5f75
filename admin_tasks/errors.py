"""Structured error types for the task engine."""

from typing import Optional


class TaskEngineError(Exception):
    """Base error for all task engine operations."""
    pass


class ValidationError(TaskEngineError):
    """Raised when a task draft or argument is malformed."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class ConflictError(TaskEngineError):
    """Raised when an admin already holds an unfinished task."""

    def __init__(self, admin_name: str, task_id: str):
        self.admin_name = admin_name
        self.task_id = task_id
        super().__init__(f"{admin_name} already has an unfinished task ({task_id}).")


class NotFoundError(TaskEngineError):
    """Raised for an unknown admin, task or todo item index."""

    def __init__(self, kind: str, key: object):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class InvalidStateError(TaskEngineError):
    """Raised when a task's type or status forbids the operation."""

    def __init__(self, task_id: str, message: str):
        self.task_id = task_id
        super().__init__(f"Task {task_id}: {message}")


class PermissionDeniedError(TaskEngineError):
    """Raised when the acting admin's role may not manage tasks."""

    def __init__(self, actor_name: str, role: str):
        self.actor_name = actor_name
        self.role = role
        super().__init__(f"{actor_name} ({role}) is not allowed to manage tasks.")


class RepositoryError(TaskEngineError):
    """Raised when a collaborator store fails to read or write."""

    def __init__(self, operation: str, message: str, entity_id: Optional[str] = None):
        self.operation = operation
        self.entity_id = entity_id
        target = f" [{entity_id}]" if entity_id else ""
        super().__init__(f"{operation}{target} failed: {message}")
