from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from .context import RequestContext
from .errors import ValidationError
from .models import (
    CreateParams,
    CreateTaskInput,
    ListFilter,
    ListTasksInput,
    Task,
    TaskStatus,
    UpdateParams,
    UpdateTaskInput,
)
from .repositories import Repository

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 3
MIN_PRIORITY = 1
MAX_PRIORITY = 5
DEFAULT_LIMIT = 20
MAX_LIMIT = 100
MAX_TITLE_LENGTH = 255


def parse_title(raw: str) -> str:
    title = raw.strip()
    if not title:
        raise ValidationError("title", "must not be empty")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError("title", f"must be at most {MAX_TITLE_LENGTH} characters")
    return title


def parse_status(raw: str) -> TaskStatus:
    """Parse a status case-insensitively, ignoring surrounding whitespace."""
    try:
        return TaskStatus(raw.strip().lower())
    except ValueError:
        raise ValidationError(
            "status", "must be one of: " + ", ".join(s.value for s in TaskStatus)
        ) from None


def parse_priority(raw: int) -> int:
    if not isinstance(raw, int) or isinstance(raw, bool) or not MIN_PRIORITY <= raw <= MAX_PRIORITY:
        raise ValidationError("priority", f"must be between {MIN_PRIORITY} and {MAX_PRIORITY}")
    return raw


def normalize_due_at(raw: Optional[datetime]) -> Optional[datetime]:
    """
    Return the due date converted to UTC, or None when absent.

    datetime.min is the zero timestamp and is rejected. Naive values are
    interpreted as UTC.
    """
    if raw is None:
        return None
    if raw.replace(tzinfo=None) == datetime.min:
        raise ValidationError("due_at", "must be a valid timestamp")
    if raw.tzinfo is None:
        return raw.replace(tzinfo=timezone.utc)
    try:
        return raw.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # The UTC form falls outside the datetime range.
        raise ValidationError("due_at", "must be a valid timestamp") from None


def _check_id(task_id: int) -> None:
    if task_id <= 0:
        raise ValidationError("id", "must be greater than 0")


def build_list_filter(data: ListTasksInput) -> ListFilter:
    """Validate raw list input and return the filter handed to the repository."""
    status = parse_status(data.status) if data.status else None

    limit = data.limit
    if limit <= 0:
        limit = DEFAULT_LIMIT
    if limit > MAX_LIMIT:
        limit = MAX_LIMIT
    if data.offset < 0:
        raise ValidationError("offset", "must be greater or equal to 0")

    return ListFilter(
        limit=limit,
        offset=data.offset,
        status=status,
        query=(data.query or "").strip(),
    )


# PUBLIC_INTERFACE
class TaskService:
    """
    Validates and normalizes caller input before delegating to a Repository.

    Every ValidationError is raised before the repository is touched. Errors
    from the repository, TaskNotFound included, propagate unchanged.
    """

    def __init__(self, repo: Repository) -> None:
        self.repo = repo

    def create(self, data: CreateTaskInput, *, ctx: Optional[RequestContext] = None) -> Task:
        title = parse_title(data.title)
        status = parse_status(data.status) if data.status else TaskStatus.NEW
        priority = parse_priority(data.priority) if data.priority is not None else DEFAULT_PRIORITY
        due_at = normalize_due_at(data.due_at)

        task = self.repo.create(
            CreateParams(
                title=title,
                description=(data.description or "").strip(),
                status=status,
                priority=priority,
                due_at=due_at,
            ),
            ctx=ctx,
        )
        logger.info("task created id=%s status=%s", task.id, task.status.value)
        return task

    def get_by_id(self, task_id: int, *, ctx: Optional[RequestContext] = None) -> Task:
        _check_id(task_id)
        return self.repo.get_by_id(task_id, ctx=ctx)

    def list(self, data: ListTasksInput, *, ctx: Optional[RequestContext] = None) -> List[Task]:
        task_filter = build_list_filter(data)
        logger.debug(
            "listing tasks status=%s query=%r limit=%s offset=%s",
            task_filter.status.value if task_filter.status else None,
            task_filter.query,
            task_filter.limit,
            task_filter.offset,
        )
        return self.repo.list(task_filter, ctx=ctx)

    def update(
        self, task_id: int, data: UpdateTaskInput, *, ctx: Optional[RequestContext] = None
    ) -> Task:
        _check_id(task_id)

        if data.clear_due_at and data.due_at is not None:
            raise ValidationError("due_at", "cannot be provided when clear_due_at is true")

        params = UpdateParams(
            title=parse_title(data.title) if data.title is not None else None,
            description=data.description.strip() if data.description is not None else None,
            status=parse_status(data.status) if data.status is not None else None,
            priority=parse_priority(data.priority) if data.priority is not None else None,
            due_at=normalize_due_at(data.due_at),
            clear_due_at=data.clear_due_at,
        )

        if params == UpdateParams():
            raise ValidationError("body", "at least one field must be provided for update")

        task = self.repo.update(task_id, params, ctx=ctx)
        logger.info("task updated id=%s", task.id)
        return task

    def delete(self, task_id: int, *, ctx: Optional[RequestContext] = None) -> None:
        _check_id(task_id)
        self.repo.delete(task_id, ctx=ctx)
        logger.info("task deleted id=%s", task_id)
