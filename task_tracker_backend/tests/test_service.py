from datetime import datetime, timedelta, timezone

import pytest

from src.tasktracker.errors import TaskNotFound, ValidationError
from src.tasktracker.models import (
    CreateTaskInput,
    ListTasksInput,
    Task,
    TaskStatus,
    UpdateParams,
    UpdateTaskInput,
)
from src.tasktracker.repositories import Repository
from src.tasktracker.service import (
    DEFAULT_LIMIT,
    DEFAULT_PRIORITY,
    MAX_LIMIT,
    MAX_TITLE_LENGTH,
    TaskService,
)

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
# Well-formed values whose UTC form is outside the datetime range
BEFORE_MIN_UTC = datetime(1, 1, 1, 1, tzinfo=timezone(timedelta(hours=2)))
AFTER_MAX_UTC = datetime(9999, 12, 31, 23, tzinfo=timezone(timedelta(hours=-5)))


def make_task(task_id=1, **overrides):
    fields = dict(
        id=task_id,
        title="Task",
        description="",
        status=TaskStatus.NEW,
        priority=3,
        due_at=None,
        created_at=NOW,
        updated_at=NOW,
    )
    fields.update(overrides)
    return Task(**fields)


class RecordingRepository(Repository):
    """Records every call and returns canned results or raises a canned error."""

    def __init__(self, result=None, error=None):
        self.result = result if result is not None else make_task()
        self.error = error
        self.calls = []

    def _record(self, name, *args):
        self.calls.append((name, args))
        if self.error is not None:
            raise self.error
        return self.result

    def create(self, params, *, ctx=None):
        return self._record("create", params)

    def get_by_id(self, task_id, *, ctx=None):
        return self._record("get_by_id", task_id)

    def list(self, task_filter, *, ctx=None):
        self._record("list", task_filter)
        return [self.result]

    def update(self, task_id, params, *, ctx=None):
        return self._record("update", task_id, params)

    def delete(self, task_id, *, ctx=None):
        self._record("delete", task_id)

    def last_args(self, name):
        matching = [args for call, args in self.calls if call == name]
        assert matching, f"expected repository.{name} to be called"
        return matching[-1]


@pytest.fixture
def recorder():
    return RecordingRepository()


@pytest.fixture
def service(recorder):
    return TaskService(recorder)


class TestCreate:
    def test_defaults_and_trims(self, service, recorder):
        got = service.create(CreateTaskInput(title="  Do work  ", description="  important  "))

        (params,) = recorder.last_args("create")
        assert params.title == "Do work"
        assert params.description == "important"
        assert params.status is TaskStatus.NEW
        assert params.priority == DEFAULT_PRIORITY
        assert params.due_at is None
        assert got is recorder.result

    @pytest.mark.parametrize(
        "data, field",
        [
            (CreateTaskInput(title="  "), "title"),
            (CreateTaskInput(title=""), "title"),
            (CreateTaskInput(title="a" * (MAX_TITLE_LENGTH + 1)), "title"),
            (CreateTaskInput(title="ok", status="bad"), "status"),
            (CreateTaskInput(title="ok", status=" donee "), "status"),
            (CreateTaskInput(title="ok", priority=6), "priority"),
            (CreateTaskInput(title="ok", priority=-1), "priority"),
            (CreateTaskInput(title="ok", priority=0), "priority"),
            (CreateTaskInput(title="ok", due_at=datetime.min), "due_at"),
            (CreateTaskInput(title="ok", due_at=datetime.min.replace(tzinfo=timezone.utc)), "due_at"),
            (CreateTaskInput(title="ok", due_at=BEFORE_MIN_UTC), "due_at"),
            (CreateTaskInput(title="ok", due_at=AFTER_MAX_UTC), "due_at"),
            (CreateTaskInput(title="ok", priority=2.5), "priority"),
        ],
    )
    def test_validation_errors_never_reach_repository(self, service, recorder, data, field):
        with pytest.raises(ValidationError) as excinfo:
            service.create(data)
        assert excinfo.value.field == field
        assert recorder.calls == []

    def test_title_at_limit_after_trim_is_accepted(self, service, recorder):
        service.create(CreateTaskInput(title="  " + "a" * MAX_TITLE_LENGTH + "  "))
        (params,) = recorder.last_args("create")
        assert len(params.title) == MAX_TITLE_LENGTH

    def test_explicit_fields_are_normalized(self, service, recorder):
        due = datetime(2030, 5, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))
        service.create(CreateTaskInput(title="ok", status=" DONE ", priority=5, due_at=due))

        (params,) = recorder.last_args("create")
        assert params.status is TaskStatus.DONE
        assert params.priority == 5
        assert params.due_at == due
        assert params.due_at.tzinfo == timezone.utc
        assert params.due_at.hour == 8

    def test_naive_due_at_is_taken_as_utc(self, service, recorder):
        service.create(CreateTaskInput(title="ok", due_at=datetime(2030, 1, 1, 9, 30)))
        (params,) = recorder.last_args("create")
        assert params.due_at == datetime(2030, 1, 1, 9, 30, tzinfo=timezone.utc)


class TestGetByID:
    @pytest.mark.parametrize("task_id", [0, -3])
    def test_rejects_non_positive_id(self, service, recorder, task_id):
        with pytest.raises(ValidationError) as excinfo:
            service.get_by_id(task_id)
        assert excinfo.value.field == "id"
        assert recorder.calls == []

    def test_passes_through(self, service, recorder):
        assert service.get_by_id(7) is recorder.result
        assert recorder.last_args("get_by_id") == (7,)


class TestList:
    def test_invalid_status(self, service, recorder):
        with pytest.raises(ValidationError) as excinfo:
            service.list(ListTasksInput(status="bad"))
        assert excinfo.value.field == "status"
        assert recorder.calls == []

    def test_negative_offset(self, service, recorder):
        with pytest.raises(ValidationError) as excinfo:
            service.list(ListTasksInput(offset=-1))
        assert excinfo.value.field == "offset"
        assert recorder.calls == []

    def test_normalizes_filter(self, service, recorder):
        service.list(ListTasksInput(status=" done ", query="  search text  ", limit=999, offset=5))

        (task_filter,) = recorder.last_args("list")
        assert task_filter.status is TaskStatus.DONE
        assert task_filter.query == "search text"
        assert task_filter.limit == MAX_LIMIT
        assert task_filter.offset == 5

    @pytest.mark.parametrize("limit, expected", [(0, DEFAULT_LIMIT), (-5, DEFAULT_LIMIT), (100, 100), (101, MAX_LIMIT), (7, 7)])
    def test_limit_clamping(self, service, recorder, limit, expected):
        service.list(ListTasksInput(limit=limit))
        (task_filter,) = recorder.last_args("list")
        assert task_filter.limit == expected

    def test_blank_inputs_mean_no_filters(self, service, recorder):
        service.list(ListTasksInput(status="", query="   "))
        (task_filter,) = recorder.last_args("list")
        assert task_filter.status is None
        assert task_filter.query == ""


class TestUpdate:
    @pytest.mark.parametrize(
        "task_id, data, field",
        [
            (1, UpdateTaskInput(title="  "), "title"),
            (1, UpdateTaskInput(title="a" * (MAX_TITLE_LENGTH + 1)), "title"),
            (1, UpdateTaskInput(due_at=NOW, clear_due_at=True), "due_at"),
            (1, UpdateTaskInput(due_at=datetime.min), "due_at"),
            (1, UpdateTaskInput(due_at=AFTER_MAX_UTC), "due_at"),
            (0, UpdateTaskInput(status="done"), "id"),
            (1, UpdateTaskInput(), "body"),
            (1, UpdateTaskInput(status="broken"), "status"),
            (1, UpdateTaskInput(status=""), "status"),
            (1, UpdateTaskInput(priority=6), "priority"),
            (1, UpdateTaskInput(priority=0), "priority"),
            (1, UpdateTaskInput(priority=3.0), "priority"),
        ],
    )
    def test_validation_errors_never_reach_repository(self, service, recorder, task_id, data, field):
        with pytest.raises(ValidationError) as excinfo:
            service.update(task_id, data)
        assert excinfo.value.field == field
        assert recorder.calls == []

    def test_clear_due_at_only(self, service, recorder):
        service.update(8, UpdateTaskInput(clear_due_at=True))
        task_id, params = recorder.last_args("update")
        assert task_id == 8
        assert params == UpdateParams(clear_due_at=True)

    def test_transforms_every_field(self, service, recorder):
        due = datetime(2031, 3, 3, 3, 3, tzinfo=timezone(timedelta(hours=-5)))
        service.update(
            9,
            UpdateTaskInput(
                title="  Updated title  ",
                description="  Updated description  ",
                status="in_progress",
                priority=5,
                due_at=due,
            ),
        )

        task_id, params = recorder.last_args("update")
        assert task_id == 9
        assert params.title == "Updated title"
        assert params.description == "Updated description"
        assert params.status is TaskStatus.IN_PROGRESS
        assert params.priority == 5
        assert params.due_at == due
        assert params.due_at.tzinfo == timezone.utc
        assert params.clear_due_at is False

    def test_empty_description_is_a_change(self, service, recorder):
        service.update(3, UpdateTaskInput(description="   "))
        _, params = recorder.last_args("update")
        assert params == UpdateParams(description="")


class TestDelete:
    def test_rejects_zero_id(self, service, recorder):
        with pytest.raises(ValidationError):
            service.delete(0)
        assert recorder.calls == []

    def test_passes_through(self, service, recorder):
        assert service.delete(12) is None
        assert recorder.last_args("delete") == (12,)


class TestRepositoryErrorsArePropagated:
    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.create(CreateTaskInput(title="task")),
            lambda s: s.get_by_id(1),
            lambda s: s.list(ListTasksInput()),
            lambda s: s.update(1, UpdateTaskInput(status="done")),
            lambda s: s.delete(1),
        ],
    )
    def test_store_error_is_not_translated(self, call):
        error = RuntimeError("store failed")
        svc = TaskService(RecordingRepository(error=error))
        with pytest.raises(RuntimeError) as excinfo:
            call(svc)
        assert excinfo.value is error

    def test_not_found_passes_through(self):
        svc = TaskService(RecordingRepository(error=TaskNotFound(42)))
        with pytest.raises(TaskNotFound):
            svc.update(42, UpdateTaskInput(status="done"))
