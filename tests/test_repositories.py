"""Tests for the in-memory and JSON-backed stores."""

import json
from datetime import timedelta

import pytest

from admin_tasks.completion import is_completed_upload
from admin_tasks.errors import NotFoundError, RepositoryError
from admin_tasks.models import AdminMember, AdminRole, ContentType, TaskStatus
from admin_tasks.repositories import (
    FileSecurityLog,
    InMemoryAdminDirectory,
    JsonAdminDirectory,
    JsonContentRepository,
)

from .conftest import NOW, make_target_task, make_todo_task


class TestInMemoryDirectory:

    def test_find_by_name(self, directory):
        assert directory.find_by_name("boss").id == "m1"
        with pytest.raises(NotFoundError):
            directory.find_by_name("nobody")

    def test_save_unknown_admin(self):
        with pytest.raises(NotFoundError):
            InMemoryAdminDirectory().save_admin_tasks("ghost", [])


class TestJsonAdminDirectory:

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonAdminDirectory(tmp_path).list_admins() == []

    def test_save_and_reload(self, tmp_path):
        store = JsonAdminDirectory(tmp_path)
        store.add_admin(AdminMember(id="a1", name="alice"))
        store.add_admin(AdminMember(id="m1", name="boss", role=AdminRole.CO_FOUNDER))

        todo = make_todo_task()
        todo.items[2].completed = True
        tasks = [make_target_task(status=TaskStatus.CANCELLED), todo]
        tasks[0].end_date = NOW
        store.save_admin_tasks("a1", tasks)

        reloaded = JsonAdminDirectory(tmp_path).get_admin("a1")
        assert [t.id for t in reloaded.tasks] == ["t1", "todo1"]
        assert reloaded.tasks[0].end_date == NOW
        assert reloaded.tasks[0].target == 10
        assert [i.completed for i in reloaded.tasks[1].items] == [False, False, True]
        assert JsonAdminDirectory(tmp_path).get_admin("m1").role == AdminRole.CO_FOUNDER

    def test_file_uses_camel_case_keys(self, tmp_path):
        store = JsonAdminDirectory(tmp_path)
        store.add_admin(AdminMember(id="a1", name="alice", tasks=[make_target_task()]))
        data = json.loads((tmp_path / "admins.json").read_text())
        task = data[0]["tasks"][0]
        assert {"startDate", "deadline", "endDate", "target"} <= set(task)
        assert "items" not in task

    def test_save_unknown_admin(self, tmp_path):
        with pytest.raises(NotFoundError):
            JsonAdminDirectory(tmp_path).save_admin_tasks("ghost", [])

    def test_malformed_json(self, tmp_path):
        (tmp_path / "admins.json").write_text("{not json")
        with pytest.raises(RepositoryError) as info:
            JsonAdminDirectory(tmp_path).list_admins()
        assert info.value.operation == "list_admins"

    def test_malformed_admin(self, tmp_path):
        (tmp_path / "admins.json").write_text(json.dumps([{"name": "no id"}]))
        with pytest.raises(RepositoryError):
            JsonAdminDirectory(tmp_path).get_admin("a1")


class TestJsonContentRepository:

    def test_reads_records(self, tmp_path):
        created = (NOW - timedelta(days=1)).isoformat().replace("+00:00", "Z")
        (tmp_path / "content.json").write_text(json.dumps([
            {
                "id": "m1",
                "uploadedBy": "alice",
                "createdAt": created,
                "contentType": "movie",
                "downloadLinks": [{"url": "https://x/1", "quality": "720p"}],
            },
            {
                "id": "s1",
                "uploadedBy": "bob",
                "contentType": "series",
                "episodes": [{"title": "Pilot", "episodeNumber": 1, "downloadLinks": []}],
                "seasonDownloadLinks": [{"url": "https://x/s"}],
            },
        ]))
        movie, series = JsonContentRepository(tmp_path).list_records()
        assert movie.created_at == NOW - timedelta(days=1)
        assert movie.download_links[0].quality == "720p"
        assert series.content_type == ContentType.SERIES
        assert series.created_at is None
        assert series.season_download_links[0].url == "https://x/s"

    def test_bad_content_type(self, tmp_path):
        (tmp_path / "content.json").write_text(json.dumps([{"id": "x", "contentType": "podcast"}]))
        with pytest.raises(RepositoryError):
            JsonContentRepository(tmp_path).list_records()


class TestFileSecurityLog:

    def test_append_and_read(self, tmp_path):
        log = FileSecurityLog(tmp_path / "nested")
        log.record('Set task "A" for alice.')
        log.record("Task status automatically updated for alice.")
        messages = [message for _, message in log.entries()]
        assert messages == ['Set task "A" for alice.', "Task status automatically updated for alice."]

    def test_empty(self, tmp_path):
        assert FileSecurityLog(tmp_path).entries() == []


class TestTolerantContentParsing:

    def test_null_link_entries_skipped(self, tmp_path):
        (tmp_path / "content.json").write_text(json.dumps([
            {"id": "m1", "uploadedBy": "alice", "downloadLinks": [None, {"url": "https://x"}]},
            {
                "id": "s1",
                "uploadedBy": "alice",
                "contentType": "series",
                "episodes": [None, {"episodeNumber": 2, "downloadLinks": [None]}],
                "seasonDownloadLinks": [None],
            },
        ]))
        movie, series = JsonContentRepository(tmp_path).list_records()
        assert [link.url for link in movie.download_links] == ["https://x"]
        assert is_completed_upload(movie)
        assert len(series.episodes) == 1
        assert series.episodes[0].download_links == []
        assert not is_completed_upload(series)

    def test_epoch_created_at_is_repository_error(self, tmp_path):
        (tmp_path / "content.json").write_text(json.dumps([{"id": "m1", "createdAt": 1700000000}]))
        with pytest.raises(RepositoryError) as info:
            JsonContentRepository(tmp_path).list_records()
        assert info.value.operation == "list_records"

    def test_numeric_task_date_is_repository_error(self, tmp_path):
        task = make_target_task().to_dict()
        task["startDate"] = 1700000000
        (tmp_path / "admins.json").write_text(json.dumps([{"id": "a1", "name": "alice", "tasks": [task]}]))
        with pytest.raises(RepositoryError):
            JsonAdminDirectory(tmp_path).get_admin("a1")
