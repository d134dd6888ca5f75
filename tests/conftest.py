"""Shared fixtures for admin-task-engine tests."""

import os
from datetime import datetime, timedelta, timezone

import pytest
import yaml

from admin_tasks.clock import FixedClock
from admin_tasks.config import Config
from admin_tasks.engine import TaskEngine
from admin_tasks.models import (
    AdminMember,
    AdminRole,
    ContentRecord,
    ContentType,
    DownloadLink,
    Episode,
    Task,
    TaskStatus,
    TaskType,
    TodoItem,
)
from admin_tasks.repositories import (
    InMemoryAdminDirectory,
    InMemoryContentRepository,
    InMemorySecurityLog,
)

NOW = datetime(2025, 12, 10, 12, 0, tzinfo=timezone.utc)  # a Wednesday


def make_record(
    id,
    uploaded_by="alice",
    created_at=None,
    url="https://cdn.example/file.mkv",
    content_type=ContentType.MOVIE,
    links=1,
):
    """A movie record with ``links`` download links all pointing at ``url``."""
    if content_type == ContentType.SERIES:
        return ContentRecord(
            id=id,
            uploaded_by=uploaded_by,
            created_at=created_at or NOW - timedelta(hours=1),
            content_type=ContentType.SERIES,
            episodes=[Episode(title="E1", episode_number=1,
                              download_links=[DownloadLink(url=url) for _ in range(links)])],
        )
    return ContentRecord(
        id=id,
        uploaded_by=uploaded_by,
        created_at=created_at or NOW - timedelta(hours=1),
        download_links=[DownloadLink(url=url, quality="1080p") for _ in range(links)],
    )


def make_target_task(id="t1", target=10, status=TaskStatus.ACTIVE, start=None, deadline=None):
    start = start or NOW - timedelta(days=5)
    return Task(
        id=id,
        title=f"Upload {target}",
        type=TaskType.TARGET,
        status=status,
        start_date=start,
        deadline=deadline or start + timedelta(days=7),
        target=target,
    )


def make_todo_task(id="todo1", texts=("a", "b", "c"), status=TaskStatus.ACTIVE, start=None, deadline=None):
    start = start or NOW - timedelta(days=1)
    return Task(
        id=id,
        title="Checklist",
        type=TaskType.TODO,
        status=status,
        start_date=start,
        deadline=deadline or start + timedelta(days=7),
        items=[TodoItem(text) for text in texts],
    )


@pytest.fixture
def tmp_dir(tmp_path):
    """Provide a temporary directory and cd into it."""
    orig = os.getcwd()
    os.chdir(tmp_path)
    yield tmp_path
    os.chdir(orig)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def alice():
    return AdminMember(id="a1", name="alice", role=AdminRole.UPLOADER)


@pytest.fixture
def boss():
    return AdminMember(id="m1", name="boss", role=AdminRole.REGULATOR)


@pytest.fixture
def directory(alice, boss):
    return InMemoryAdminDirectory([alice, boss])


@pytest.fixture
def content():
    return InMemoryContentRepository()


@pytest.fixture
def security_log():
    return InMemorySecurityLog()


@pytest.fixture
def engine(directory, content, clock, security_log):
    return TaskEngine(directory, content, clock=clock, config=Config(), security_log=security_log)


@pytest.fixture
def sample_config_data():
    """Minimal .tasks.conf.yml data dict."""
    return {
        "data-dir": "data",
        "verbose": False,
        "log-file": "",
        "volume-target": 40,
        "recency-days": 14,
        "incomplete-end-date": "now",
        "manager-roles": ["Regulator"],
    }


@pytest.fixture
def config_yaml_file(tmp_dir, sample_config_data):
    """Write a config YAML to tmp_dir and return its Path."""
    path = tmp_dir / ".tasks.conf.yml"
    with open(path, "w") as f:
        yaml.dump(sample_config_data, f, default_flow_style=False)
    return path
