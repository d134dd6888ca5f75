"""Overdue scanner: demotes expired Active tasks to Incompleted."""

import copy
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from .clock import Clock, SystemClock
from .errors import RepositoryError
from .locks import AdminLocks
from .models import AdminMember, ContentRecord, TaskStatus
from .progress import compute_progress
from .repositories import AdminDirectory, SecurityLog

logger = logging.getLogger(__name__)

END_DATE_MODES = {"deadline", "now"}


class OverdueScanner:
    """Sweeps Active tasks and moves those past their deadline to Incompleted.

    A task whose progress already reached its target is left Active for the
    guard's completion pass or a manager to complete. Transitions are
    compare-and-set on the freshly read task status under the admin's lock,
    so a second scan (concurrent or not) finds nothing left to do.
    """

    def __init__(
        self,
        directory: AdminDirectory,
        clock: Optional[Clock] = None,
        locks: Optional[AdminLocks] = None,
        security_log: Optional[SecurityLog] = None,
        end_date_mode: str = "deadline",
    ):
        if end_date_mode not in END_DATE_MODES:
            raise ValueError(f"end_date_mode must be one of {sorted(END_DATE_MODES)}")
        self.directory = directory
        self.clock = clock or SystemClock()
        self.locks = locks or AdminLocks()
        self.security_log = security_log
        self.end_date_mode = end_date_mode

    def scan(self, admins: Iterable[AdminMember], records: Iterable[ContentRecord]) -> int:
        """Transition every expired, unmet Active task. Returns how many changed."""
        records = list(records)
        now = self.clock.now()
        updated = 0
        for admin in admins:
            if not any(t.status == TaskStatus.ACTIVE and now > t.deadline for t in admin.tasks):
                continue
            updated += self._scan_admin(admin, records, now)
        if updated:
            logger.info("Overdue scan moved %d task(s) to incompleted", updated)
        return updated

    def _scan_admin(self, admin: AdminMember, records: List[ContentRecord], now: datetime) -> int:
        with self.locks.lock_for(admin.id):
            current = self.directory.get_admin(admin.id)
            tasks = copy.deepcopy(current.tasks)
            changed = 0
            for task in tasks:
                if task.status != TaskStatus.ACTIVE or not now > task.deadline:
                    continue
                progress = compute_progress(task, current.name, records, current.id)
                if progress.reached:
                    logger.info(
                        "Task %s for %s is past its deadline with target reached (%d/%d); awaiting completion",
                        task.id, current.name, progress.completed, progress.target,
                    )
                    continue
                task.status = TaskStatus.INCOMPLETED
                task.end_date = task.deadline if self.end_date_mode == "deadline" else now
                changed += 1
                logger.info(
                    "Task %s for %s incompleted at deadline (%d/%d)",
                    task.id, current.name, progress.completed, progress.target,
                )
            if not changed:
                return 0
            self.directory.save_admin_tasks(current.id, tasks)
            current.tasks = tasks
            if admin is not current:
                admin.tasks = tasks

        if self.security_log is not None:
            try:
                self.security_log.record(f"Task status automatically updated for {current.name}.")
            except RepositoryError as error:
                logger.error("Security log write failed: %s", error)
        return changed
