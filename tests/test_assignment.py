"""Tests for the assignment guard: assign, cancel, complete and todo toggles."""

import threading
from datetime import timedelta

import pytest

from admin_tasks.assignment import AssignmentGuard, TaskDraft, validate_draft
from admin_tasks.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    RepositoryError,
    ValidationError,
)
from admin_tasks.models import TaskStatus, TaskType
from admin_tasks.repositories import InMemoryAdminDirectory

from .conftest import NOW, make_record, make_target_task, make_todo_task


def _target_draft(target=10, days=7, title="Upload ten"):
    return TaskDraft(title=title, type=TaskType.TARGET, deadline=NOW + timedelta(days=days), target=target)


def _todo_draft(items=("Fix poster", "Add trailer", "Check links")):
    return TaskDraft(title="Cleanup", type=TaskType.TODO, deadline=NOW + timedelta(days=3), items=list(items))


@pytest.fixture
def guard(directory, clock, security_log):
    return AssignmentGuard(directory, clock=clock, security_log=security_log)


class TestDraftValidation:

    def test_empty_title(self):
        with pytest.raises(ValidationError) as info:
            validate_draft(TaskDraft(title="  ", deadline=NOW + timedelta(days=1), target=1), NOW)
        assert info.value.field == "title"

    def test_missing_deadline(self):
        with pytest.raises(ValidationError):
            validate_draft(TaskDraft(title="t", target=1), NOW)

    def test_deadline_must_be_strictly_future(self):
        with pytest.raises(ValidationError):
            validate_draft(TaskDraft(title="t", deadline=NOW, target=1), NOW)

    @pytest.mark.parametrize("target", [0, -3, None])
    def test_target_below_one(self, target):
        with pytest.raises(ValidationError):
            validate_draft(_target_draft(target=target), NOW)

    @pytest.mark.parametrize("target", [2.5, "2.5", "ten"])
    def test_target_must_be_whole(self, target):
        with pytest.raises(ValidationError) as info:
            validate_draft(_target_draft(target=target), NOW)
        assert info.value.field == "target"

    def test_whole_float_target_accepted(self, guard):
        assert guard.assign_task("a1", _target_draft(target=4.0)).target == 4

    def test_unknown_type(self):
        draft = TaskDraft(title="t", type="quota", deadline=NOW + timedelta(days=1), target=1)
        with pytest.raises(ValidationError) as info:
            validate_draft(draft, NOW)
        assert info.value.field == "type"

    def test_todo_blank_lines_only(self):
        with pytest.raises(ValidationError):
            validate_draft(_todo_draft(items=["", "   "]), NOW)

    def test_todo_items_from_text_block(self):
        draft = TaskDraft(title="t", type=TaskType.TODO, deadline=NOW + timedelta(days=1),
                          items="first\n\n  second  \n")
        validate_draft(draft, NOW)
        assert draft.item_texts() == ["first", "second"]


class TestAssign:

    def test_assign_target_task(self, guard, directory, security_log):
        task = guard.assign_task("a1", _target_draft(target=10))
        assert task.status == TaskStatus.ACTIVE
        assert task.start_date == NOW
        assert task.target == 10
        assert task.items is None
        assert directory.get_admin("a1").tasks == [task]
        assert security_log.messages() == ['Set task "Upload ten" for alice.']

    def test_assign_todo_task(self, guard):
        task = guard.assign_task("a1", _todo_draft())
        assert [item.text for item in task.items] == ["Fix poster", "Add trailer", "Check links"]
        assert not any(item.completed for item in task.items)
        assert task.target is None

    def test_conflict_when_active_task_exists(self, guard, directory):
        guard.assign_task("a1", _target_draft())
        with pytest.raises(ConflictError):
            guard.assign_task("a1", _target_draft(title="Another"))
        assert len(directory.get_admin("a1").tasks) == 1

    def test_conflict_when_incompleted_task_exists(self, guard, alice):
        alice.tasks = [make_target_task(status=TaskStatus.INCOMPLETED)]
        with pytest.raises(ConflictError):
            guard.assign_task(alice, _target_draft())

    def test_assign_after_cancel(self, guard, alice):
        first = guard.assign_task(alice, _target_draft())
        guard.cancel_task(alice, first.id)
        second = guard.assign_task(alice, _target_draft(title="Second"))
        assert [t.status for t in alice.tasks] == [TaskStatus.CANCELLED, TaskStatus.ACTIVE]
        assert alice.unfinished_task() is second

    def test_unknown_admin(self, guard):
        with pytest.raises(NotFoundError):
            guard.assign_task("ghost", _target_draft())

    def test_validation_before_store(self, guard, directory):
        with pytest.raises(ValidationError):
            guard.assign_task("a1", _target_draft(target=0))
        assert directory.get_admin("a1").tasks == []

    def test_non_manager_actor_refused(self, guard, alice):
        with pytest.raises(PermissionDeniedError):
            guard.assign_task("m1", _target_draft(), actor=alice)

    def test_manager_actor_allowed(self, guard, boss):
        task = guard.assign_task("a1", _target_draft(), actor=boss)
        assert task.status == TaskStatus.ACTIVE

    def test_concurrent_assignments_leave_one_unfinished(self, guard, directory):
        errors = []

        def attempt(n):
            try:
                guard.assign_task("a1", _target_draft(title=f"T{n}"))
            except ConflictError as error:
                errors.append(error)

        threads = [threading.Thread(target=attempt, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        tasks = directory.get_admin("a1").tasks
        assert len(tasks) == 1
        assert len(errors) == 7

    def test_failed_save_changes_nothing(self, clock, alice):
        class BrokenDirectory(InMemoryAdminDirectory):
            def save_admin_tasks(self, admin_id, tasks):
                raise RepositoryError("save_admin_tasks", "disk full", admin_id)

        guard = AssignmentGuard(BrokenDirectory([alice]), clock=clock)
        with pytest.raises(RepositoryError) as info:
            guard.assign_task("a1", _target_draft())
        assert info.value.entity_id == "a1"
        assert alice.tasks == []


class TestCancel:

    def test_cancel_active(self, guard, clock, security_log):
        task = guard.assign_task("a1", _target_draft())
        clock.advance(timedelta(hours=2))
        cancelled = guard.cancel_task("a1", task.id)
        assert cancelled.status == TaskStatus.CANCELLED
        assert cancelled.end_date == NOW + timedelta(hours=2)
        assert security_log.messages()[-1] == 'Cancelled task "Upload ten" for alice.'

    def test_cancel_incompleted(self, guard, alice):
        alice.tasks = [make_target_task(status=TaskStatus.INCOMPLETED)]
        assert guard.cancel_task(alice, "t1").status == TaskStatus.CANCELLED

    @pytest.mark.parametrize("status", [TaskStatus.COMPLETED, TaskStatus.CANCELLED])
    def test_cancel_finished_refused(self, guard, alice, status):
        alice.tasks = [make_target_task(status=status)]
        with pytest.raises(InvalidStateError):
            guard.cancel_task(alice, "t1")
        assert alice.tasks[0].status == status

    def test_cancel_unknown_task(self, guard):
        with pytest.raises(NotFoundError):
            guard.cancel_task("a1", "missing")

    def test_cancel_requires_manager_actor(self, guard, alice):
        task = guard.assign_task("a1", _target_draft())
        with pytest.raises(PermissionDeniedError):
            guard.cancel_task("a1", task.id, actor=alice)


class TestComplete:

    def test_complete_active(self, guard):
        task = guard.assign_task("a1", _target_draft())
        done = guard.complete_task("a1", task.id)
        assert done.status == TaskStatus.COMPLETED
        assert done.end_date == NOW

    def test_complete_incompleted(self, guard, alice):
        alice.tasks = [make_target_task(status=TaskStatus.INCOMPLETED)]
        assert guard.complete_task(alice, "t1").status == TaskStatus.COMPLETED

    def test_complete_cancelled_refused(self, guard, alice):
        alice.tasks = [make_target_task(status=TaskStatus.CANCELLED)]
        with pytest.raises(InvalidStateError):
            guard.complete_task(alice, "t1")


class TestToggle:

    def test_toggle_item(self, guard, directory):
        task = guard.assign_task("a1", _todo_draft())
        updated = guard.toggle_todo_item("a1", task.id, 1, True)
        assert [i.completed for i in updated.items] == [False, True, False]
        stored = directory.get_admin("a1").find_task(task.id)
        assert stored.items[1].completed
        assert stored.status == TaskStatus.ACTIVE
        assert stored.goal == 3

    def test_untoggle_item(self, guard):
        task = guard.assign_task("a1", _todo_draft())
        guard.toggle_todo_item("a1", task.id, 0, True)
        updated = guard.toggle_todo_item("a1", task.id, 0, False)
        assert not updated.items[0].completed

    def test_toggle_all_does_not_complete(self, guard):
        task = guard.assign_task("a1", _todo_draft(items=["only"]))
        updated = guard.toggle_todo_item("a1", task.id, 0, True)
        assert updated.status == TaskStatus.ACTIVE

    @pytest.mark.parametrize("index", [3, -1])
    def test_bad_index(self, guard, index):
        task = guard.assign_task("a1", _todo_draft())
        with pytest.raises(NotFoundError):
            guard.toggle_todo_item("a1", task.id, index, True)

    def test_target_task_refused(self, guard):
        task = guard.assign_task("a1", _target_draft())
        with pytest.raises(InvalidStateError):
            guard.toggle_todo_item("a1", task.id, 0, True)

    def test_inactive_todo_refused(self, guard, alice):
        alice.tasks = [make_todo_task(status=TaskStatus.INCOMPLETED)]
        with pytest.raises(InvalidStateError):
            guard.toggle_todo_item(alice, "todo1", 0, True)
        assert not alice.tasks[0].items[0].completed

    def test_unknown_task(self, guard):
        with pytest.raises(NotFoundError):
            guard.toggle_todo_item("a1", "missing", 0, True)


class TestCompleteReached:

    def test_reached_active_task_completed(self, guard, alice, security_log):
        alice.tasks = [make_target_task(target=2, start=NOW - timedelta(days=1))]
        records = [make_record("r1"), make_record("r2")]
        assert guard.complete_reached_tasks(alice, records) == 1
        assert alice.tasks[0].status == TaskStatus.COMPLETED
        assert alice.tasks[0].end_date == NOW
        assert security_log.messages() == ["Task status automatically updated for alice."]

    def test_incompleted_task_completed_once_goal_met(self, guard, alice):
        alice.tasks = [make_target_task(target=1, status=TaskStatus.INCOMPLETED, start=NOW - timedelta(days=9))]
        assert guard.complete_reached_tasks(alice, [make_record("late")]) == 1
        assert alice.tasks[0].status == TaskStatus.COMPLETED

    def test_unmet_task_untouched(self, guard, alice, security_log):
        alice.tasks = [make_target_task(target=3, start=NOW - timedelta(days=1))]
        assert guard.complete_reached_tasks(alice, [make_record("r1")]) == 0
        assert alice.tasks[0].status == TaskStatus.ACTIVE
        assert security_log.messages() == []

    @pytest.mark.parametrize("status", [TaskStatus.CANCELLED, TaskStatus.COMPLETED])
    def test_finished_tasks_ignored(self, guard, alice, status):
        alice.tasks = [make_target_task(target=1, status=status, start=NOW - timedelta(days=1))]
        assert guard.complete_reached_tasks(alice, [make_record("r1")]) == 0
        assert alice.tasks[0].status == status

    def test_fully_checked_todo_completed(self, guard, alice):
        todo = make_todo_task(texts=("a", "b"))
        for item in todo.items:
            item.completed = True
        alice.tasks = [todo]
        assert guard.complete_reached_tasks("a1", []) == 1
        assert alice.tasks[0].status == TaskStatus.COMPLETED

    def test_second_call_is_noop(self, guard, alice):
        alice.tasks = [make_target_task(target=1, start=NOW - timedelta(days=1))]
        records = [make_record("r1")]
        assert guard.complete_reached_tasks(alice, records) == 1
        assert guard.complete_reached_tasks(alice, records) == 0
