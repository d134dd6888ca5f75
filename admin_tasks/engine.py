"""TaskEngine: wires repositories, clock and configuration to the components."""

from pathlib import Path
from typing import Iterable, List, Optional, Union

from .assignment import AdminRef, AssignmentGuard, TaskDraft
from .clock import Clock, SystemClock
from .config import Config
from .locks import AdminLocks
from .models import AdminMember, ContentRecord, Progress, Task
from .progress import compute_progress
from .reports import TeamRow, UploadStats, build_team_report, upload_stats
from .repositories import (
    AdminDirectory,
    ContentRepository,
    FileSecurityLog,
    JsonAdminDirectory,
    JsonContentRepository,
    SecurityLog,
)
from .scanner import OverdueScanner
from .scoring import ScoreBreakdown, score_breakdown
from .wallet import Wallet, compute_wallet


class TaskEngine:
    """Entry point for hosts: task mutations, overdue scans, progress and scores.

    Nothing here schedules work. Hosts call ``refresh_statuses`` (or its two
    halves) when they want fresh statuses, e.g. before rendering a team
    listing or from a cron.
    """

    def __init__(
        self,
        directory: AdminDirectory,
        content: ContentRepository,
        clock: Optional[Clock] = None,
        config: Optional[Config] = None,
        security_log: Optional[SecurityLog] = None,
    ):
        self.directory = directory
        self.content = content
        self.clock = clock or SystemClock()
        self.config = config or Config()
        self.security_log = security_log
        locks = AdminLocks()
        self.guard = AssignmentGuard(
            directory,
            clock=self.clock,
            locks=locks,
            security_log=security_log,
            manager_roles=self.config.manager_roles,
        )
        self.scanner = OverdueScanner(
            directory,
            clock=self.clock,
            locks=locks,
            security_log=security_log,
            end_date_mode=self.config.incomplete_end_date,
        )

    @classmethod
    def from_config(cls, config: Config, clock: Optional[Clock] = None) -> "TaskEngine":
        """Engine over the JSON-file stores in ``config.data_dir``."""
        data_dir = Path(config.data_dir).expanduser()
        return cls(
            JsonAdminDirectory(data_dir),
            JsonContentRepository(data_dir),
            clock=clock,
            config=config,
            security_log=FileSecurityLog(data_dir),
        )

    # ── Task mutations ────────────────────────────────────────

    def assign_task(self, admin: AdminRef, draft: TaskDraft, actor: Optional[AdminMember] = None) -> Task:
        return self.guard.assign_task(admin, draft, actor=actor)

    def cancel_task(self, admin: AdminRef, task_id: str, actor: Optional[AdminMember] = None) -> Task:
        return self.guard.cancel_task(admin, task_id, actor=actor)

    def complete_task(self, admin: AdminRef, task_id: str, actor: Optional[AdminMember] = None) -> Task:
        return self.guard.complete_task(admin, task_id, actor=actor)

    def toggle_todo_item(self, admin: AdminRef, task_id: str, item_index: int, completed: bool) -> Task:
        return self.guard.toggle_todo_item(admin, task_id, item_index, completed)

    def scan_overdue_tasks(
        self,
        admins: Optional[Iterable[AdminMember]] = None,
        records: Optional[Iterable[ContentRecord]] = None,
    ) -> int:
        """Run the overdue scan over the given snapshot, or over the stores."""
        if admins is None:
            admins = self.directory.list_admins()
        if records is None:
            records = self.content.list_records()
        return self.scanner.scan(admins, records)

    def complete_reached_tasks(
        self,
        admins: Optional[Iterable[AdminMember]] = None,
        records: Optional[Iterable[ContentRecord]] = None,
    ) -> int:
        """Complete every unfinished task whose goal is met. Returns how many changed."""
        if admins is None:
            admins = self.directory.list_admins()
        records = list(self.content.list_records() if records is None else records)
        return sum(self.guard.complete_reached_tasks(admin, records) for admin in admins)

    def refresh_statuses(self) -> int:
        """Complete reached tasks, then demote expired unmet ones."""
        records = self.content.list_records()
        completed = self.complete_reached_tasks(records=records)
        return completed + self.scan_overdue_tasks(records=records)

    # ── Derived reads ─────────────────────────────────────────

    def compute_progress(self, task: Task, admin: Union[AdminMember, str]) -> Progress:
        """Progress of ``task``; ``admin`` is an AdminMember or an admin name."""
        records = self.content.list_records()
        if isinstance(admin, AdminMember):
            return compute_progress(task, admin.name, records, admin.id)
        return compute_progress(task, admin, records)

    def compute_score(self, admin: AdminRef) -> float:
        return self.score_breakdown(admin).score

    def score_breakdown(self, admin: AdminRef) -> ScoreBreakdown:
        member = self._resolve(admin)
        return score_breakdown(
            member, self.content.list_records(), self.clock.now(), self.config.score_weights()
        )

    def upload_stats(self, admin: AdminRef) -> UploadStats:
        return upload_stats(self._resolve(admin), self.content.list_records(), self.clock.now())

    def wallet(self, admin: AdminRef) -> Wallet:
        return compute_wallet(self._resolve(admin), self.content.list_records(), self.clock.now())

    def team_report(self, scan_first: bool = True) -> List[TeamRow]:
        """Rows for every admin, best score first."""
        if scan_first:
            self.refresh_statuses()
        records = self.content.list_records()
        admins = self.directory.list_admins()
        return build_team_report(admins, records, self.clock.now(), self.config.score_weights())

    def _resolve(self, admin: AdminRef) -> AdminMember:
        if isinstance(admin, AdminMember):
            return admin
        return self.directory.get_admin(admin)
