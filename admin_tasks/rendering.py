"""Console rendering for task cards, score breakdowns and team listings."""

from datetime import datetime, timedelta
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import AdminMember, Progress, Task, TaskStatus, TaskType
from .progress import time_remaining
from .reports import TeamRow, UploadStats
from .scoring import ScoreBreakdown
from .wallet import Wallet

SUCCESS = "#57DB9C"
ERROR = "#D97F7F"
INFO = "#7FA6D9"
DIM = "dim"

# Status display: (icon_char, color, label)
_STATUS_DISPLAY = {
    TaskStatus.ACTIVE:      ("▸", INFO,    "active"),
    TaskStatus.COMPLETED:   ("✓", SUCCESS, "completed"),
    TaskStatus.INCOMPLETED: ("✗", ERROR,   "incompleted"),
    TaskStatus.CANCELLED:   ("–", DIM,     "cancelled"),
}


def format_remaining(delta: timedelta) -> str:
    """Compact countdown like ``2d 03h 15m``; ``overdue`` at zero."""
    seconds = int(delta.total_seconds())
    if seconds <= 0:
        return "overdue"
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes = seconds // 60
    if days:
        return f"{days}d {hours:02d}h {minutes:02d}m"
    return f"{hours:02d}h {minutes:02d}m"


def status_text(status: TaskStatus) -> Text:
    icon, color, label = _STATUS_DISPLAY[status]
    return Text(f"{icon} {label}", style=color)


def progress_bar(progress: Progress, width: int = 20) -> Text:
    filled = int(round(progress.percent / 100 * width))
    color = SUCCESS if progress.reached else INFO
    bar = Text("█" * filled, style=color)
    bar.append("░" * (width - filled), style=DIM)
    bar.append(f" {progress.completed}/{progress.target} ({progress.percent:.0f}%)")
    return bar


def render_task(console: Console, task: Task, progress: Progress, now: datetime) -> None:
    body = Table.grid(padding=(0, 2))
    body.add_column(style=DIM)
    body.add_column()
    body.add_row("Status", status_text(task.status))
    body.add_row("Type", task.type.value)
    body.add_row("Deadline", task.deadline.strftime("%Y-%m-%d %H:%M UTC"))
    if task.status == TaskStatus.ACTIVE:
        body.add_row("Remaining", format_remaining(time_remaining(task, now)))
    body.add_row("Progress", progress_bar(progress))
    if task.type == TaskType.TODO:
        for index, item in enumerate(task.items or []):
            mark = f"[{SUCCESS}]✓[/{SUCCESS}]" if item.completed else "○"
            body.add_row(f"  {index}", Text.from_markup(f"{mark} ") + Text(item.text))
    console.print(Panel(body, title=Text(task.title, style="bold"), subtitle=Text(task.id, style=DIM)))


def render_score(
    console: Console,
    admin: AdminMember,
    breakdown: ScoreBreakdown,
    stats: Optional[UploadStats] = None,
    wallet: Optional[Wallet] = None,
) -> None:
    table = Table(title=f"{admin.name} · {admin.role.value}", show_header=False, box=None)
    table.add_column(style=DIM)
    table.add_column(justify="right")
    table.add_row("Latest task", f"{breakdown.task_term:+.1f}")
    table.add_row(f"Volume ({breakdown.completed_uploads} uploads)", f"{breakdown.volume_term:+.2f}")
    table.add_row(f"Recent ({breakdown.recent_uploads} uploads)", f"{breakdown.recency_term:+.2f}")
    table.add_row("[bold]Score[/bold]", f"[bold]{breakdown.score:.1f}[/bold] / 10")
    if stats is not None:
        table.add_row("Pending uploads", str(stats.pending))
        table.add_row("This week / month", f"{stats.this_week} / {stats.this_month}")
    if wallet is not None:
        table.add_row("Wallet", f"₹{wallet.total:.2f} (week ₹{wallet.weekly:.2f})")
    console.print(table)


def render_team_table(console: Console, rows: List[TeamRow]) -> None:
    table = Table(title="Team", header_style="bold")
    table.add_column("Admin")
    table.add_column("Role", style=DIM)
    table.add_column("Task")
    table.add_column("Status")
    table.add_column("Progress")
    table.add_column("Score", justify="right")
    table.add_column("Wallet", justify="right")
    for row in rows:
        if row.task is None or row.progress is None:
            task_cell, status_cell, progress_cell = Text("-", style=DIM), Text(""), Text("")
        else:
            task_cell = Text(row.task.title)
            status_cell = status_text(row.task.status)
            progress_cell = progress_bar(row.progress, width=10)
        table.add_row(
            row.admin.name,
            row.admin.role.value,
            task_cell,
            status_cell,
            progress_cell,
            f"{row.score:.1f}",
            f"₹{row.wallet.total:.2f}",
        )
    if not rows:
        table.add_row("[dim](no admins)[/dim]", "", "", "", "", "", "")
    console.print(table)
