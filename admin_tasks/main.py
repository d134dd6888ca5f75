"""
admin-tasks: assign upload quotas, track progress and score administrators.

Command: admin-tasks
"""

import functools
import sys
from datetime import timedelta

import click
from rich.console import Console
from rich.markup import escape

from . import __version__
from .assignment import TaskDraft
from .config import CONFIG_FIELDS, Config
from .engine import TaskEngine
from .errors import NotFoundError, TaskEngineError
from .logger import setup_logger
from .models import AdminMember, TaskType
from .rendering import render_score, render_task, render_team_table

console = Console()


def _handle_errors(func):
    """Print engine errors in red and exit non-zero instead of a traceback."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except TaskEngineError as error:
            console.print(f"[red]Error: {escape(str(error))}[/red]")
            sys.exit(1)
    return wrapper


def _lookup_admin(engine: TaskEngine, ref: str) -> AdminMember:
    """Resolve an admin by id, falling back to name."""
    try:
        return engine.directory.get_admin(ref)
    except NotFoundError:
        return engine.directory.find_by_name(ref)


def _actor(engine: TaskEngine, ref):
    return _lookup_admin(engine, ref) if ref else None


@click.group()
@click.version_option(__version__, prog_name="admin-tasks")
@click.option("--project-dir", "-d", default=".", help="Project directory holding .tasks.conf.yml")
@click.option("--data-dir", default=None, help="Override the data directory")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx, project_dir, data_dir, verbose):
    """admin-tasks: upload quotas and performance for the admin team."""
    config = Config.load(project_dir)
    if data_dir:
        config.data_dir = data_dir
    if verbose:
        config.verbose = True
    setup_logger(config)
    ctx.obj = {"config": config, "engine": TaskEngine.from_config(config)}


@cli.command()
@click.argument("admin")
@click.option("--title", "-t", required=True, help="Task title")
@click.option("--target", type=int, default=None, help="Upload target (target task)")
@click.option("--item", "items", multiple=True, help="Checklist item (todo task, repeatable)")
@click.option("--deadline", default=None, help="ISO-8601 deadline")
@click.option("--days", type=int, default=None, help="Deadline as days from now")
@click.option("--actor", default=None, help="Acting manager id or name")
@click.pass_obj
@_handle_errors
def assign(obj, admin, title, target, items, deadline, days, actor):
    """Assign a new task to ADMIN."""
    engine: TaskEngine = obj["engine"]
    if deadline is None and days is not None:
        deadline = engine.clock.now() + timedelta(days=days)
    draft = TaskDraft(
        title=title,
        type=TaskType.TODO if items else TaskType.TARGET,
        deadline=deadline,
        target=target,
        items=list(items) or None,
    )
    member = _lookup_admin(engine, admin)
    task = engine.assign_task(member, draft, actor=_actor(engine, actor))
    console.print(f"  [green]✓[/green] Assigned [bold]{escape(task.title)}[/bold] to {member.name} [dim]({task.id})[/dim]")


@cli.command()
@click.argument("admin")
@click.argument("task_id")
@click.option("--actor", default=None, help="Acting manager id or name")
@click.pass_obj
@_handle_errors
def cancel(obj, admin, task_id, actor):
    """Cancel ADMIN's unfinished task TASK_ID."""
    engine: TaskEngine = obj["engine"]
    member = _lookup_admin(engine, admin)
    task = engine.cancel_task(member, task_id, actor=_actor(engine, actor))
    console.print(f"  [green]✓[/green] Cancelled [bold]{escape(task.title)}[/bold] for {member.name}")


@cli.command()
@click.argument("admin")
@click.argument("task_id")
@click.option("--actor", default=None, help="Acting manager id or name")
@click.pass_obj
@_handle_errors
def complete(obj, admin, task_id, actor):
    """Mark ADMIN's task TASK_ID as completed."""
    engine: TaskEngine = obj["engine"]
    member = _lookup_admin(engine, admin)
    task = engine.complete_task(member, task_id, actor=_actor(engine, actor))
    console.print(f"  [green]✓[/green] Completed [bold]{escape(task.title)}[/bold] for {member.name}")


@cli.command()
@click.argument("admin")
@click.argument("task_id")
@click.argument("index", type=int)
@click.option("--undo", is_flag=True, help="Uncheck the item instead")
@click.pass_obj
@_handle_errors
def toggle(obj, admin, task_id, index, undo):
    """Check (or uncheck) todo item INDEX of ADMIN's task TASK_ID."""
    engine: TaskEngine = obj["engine"]
    member = _lookup_admin(engine, admin)
    task = engine.toggle_todo_item(member, task_id, index, not undo)
    render_task(console, task, engine.compute_progress(task, member), engine.clock.now())


@cli.command()
@click.pass_obj
@_handle_errors
def scan(obj):
    """Complete tasks that met their goal, then mark expired ones incompleted."""
    engine: TaskEngine = obj["engine"]
    records = engine.content.list_records()
    completed = engine.complete_reached_tasks(records=records)
    incompleted = engine.scan_overdue_tasks(records=records)
    console.print(f"  [green]✓[/green] {completed} completed, {incompleted} incompleted")


@cli.command()
@click.argument("admin")
@click.pass_obj
@_handle_errors
def progress(obj, admin):
    """Show ADMIN's current task and its progress."""
    engine: TaskEngine = obj["engine"]
    member = _lookup_admin(engine, admin)
    task = member.unfinished_task() or (member.tasks[-1] if member.tasks else None)
    if task is None:
        console.print(f"  [dim]{member.name} has no tasks.[/dim]")
        return
    render_task(console, task, engine.compute_progress(task, member), engine.clock.now())


@cli.command()
@click.argument("admin")
@click.pass_obj
@_handle_errors
def score(obj, admin):
    """Show ADMIN's performance score breakdown."""
    engine: TaskEngine = obj["engine"]
    member = _lookup_admin(engine, admin)
    render_score(
        console,
        member,
        engine.score_breakdown(member),
        stats=engine.upload_stats(member),
        wallet=engine.wallet(member),
    )


@cli.command()
@click.option("--no-scan", is_flag=True, help="Skip the overdue scan before listing")
@click.pass_obj
@_handle_errors
def team(obj, no_scan):
    """List every admin with task, score and wallet."""
    engine: TaskEngine = obj["engine"]
    render_team_table(console, engine.team_report(scan_first=not no_scan))


@cli.command("config")
@click.option("--set", "assignments", multiple=True, metavar="KEY=VALUE", help="Set and save a value")
@click.option("--reset", "resets", multiple=True, metavar="KEY", help="Reset a value to its default")
@click.pass_obj
def config_cmd(obj, assignments, resets):
    """Show or change configuration."""
    config: Config = obj["config"]
    for assignment in assignments:
        key, _, value = assignment.partition("=")
        ok, message = config.set_config_value(key.strip(), value.strip())
        if not ok:
            console.print(f"[red]{escape(key)}: {escape(message)}[/red]")
            sys.exit(1)
    for key in resets:
        ok, message = config.reset_config_value(key.strip())
        if not ok:
            console.print(f"[red]{escape(message)}[/red]")
            sys.exit(1)

    for key, value in config.summary().items():
        console.print(f"  [dim]{key}:[/dim] {value}")
    for key, spec in CONFIG_FIELDS.items():
        if spec.value_type in ("int", "float"):
            console.print(f"  [dim]{key}:[/dim] {config.get_config_value(key)}")


if __name__ == "__main__":
    cli()
