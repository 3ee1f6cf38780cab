from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock, RLock
from typing import Dict, List, Optional

from .context import RequestContext
from .errors import TaskNotFound
from .models import CreateParams, ListFilter, Task, UpdateParams
from .settings import get_settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Abstract repository contract for task storage backends.

    Implementations receive validated params and never re-validate them.
    Missing ids raise TaskNotFound; any other store failure propagates as-is.
    """

    @abstractmethod
    def create(self, params: CreateParams, *, ctx: Optional[RequestContext] = None) -> Task:
        """Persist a new task and return it with store-assigned id and timestamps."""

    @abstractmethod
    def get_by_id(self, task_id: int, *, ctx: Optional[RequestContext] = None) -> Task:
        """Return the task with the given id or raise TaskNotFound."""

    @abstractmethod
    def list(self, task_filter: ListFilter, *, ctx: Optional[RequestContext] = None) -> List[Task]:
        """
        Return one page of tasks, newest created first.
        - Optional status equality filter
        - Optional substring match against title or description
        - limit/offset pagination
        """

    @abstractmethod
    def update(
        self, task_id: int, params: UpdateParams, *, ctx: Optional[RequestContext] = None
    ) -> Task:
        """Apply only the supplied fields and return the refreshed task. Raises TaskNotFound."""

    @abstractmethod
    def delete(self, task_id: int, *, ctx: Optional[RequestContext] = None) -> None:
        """Hard-delete a task. Raises TaskNotFound."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository used by tests and the "memory" backend.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[int, Task] = {}
        self._next_id = 1

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _allocate_id(self) -> int:
        with self._lock:
            i = self._next_id
            self._next_id += 1
            return i

    def create(self, params: CreateParams, *, ctx: Optional[RequestContext] = None) -> Task:
        (ctx or RequestContext()).raise_if_done()
        now = self._now()
        task = Task(
            id=self._allocate_id(),
            title=params.title,
            description=params.description,
            status=params.status,
            priority=params.priority,
            due_at=params.due_at,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._items[task.id] = task
        logger.debug("memory insert id=%s", task.id)
        return task

    def get_by_id(self, task_id: int, *, ctx: Optional[RequestContext] = None) -> Task:
        (ctx or RequestContext()).raise_if_done()
        with self._lock:
            task = self._items.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return task

    def list(self, task_filter: ListFilter, *, ctx: Optional[RequestContext] = None) -> List[Task]:
        (ctx or RequestContext()).raise_if_done()
        with self._lock:
            items = list(self._items.values())

        if task_filter.status is not None:
            items = [t for t in items if t.status == task_filter.status]

        if task_filter.query:
            # Mirrors SQLite LIKE, which is case-insensitive for ASCII.
            s = task_filter.query.lower()
            items = [t for t in items if s in t.title.lower() or s in t.description.lower()]

        items.sort(key=lambda t: (t.created_at, t.id), reverse=True)
        start = task_filter.offset
        return items[start:start + task_filter.limit]

    def update(
        self, task_id: int, params: UpdateParams, *, ctx: Optional[RequestContext] = None
    ) -> Task:
        (ctx or RequestContext()).raise_if_done()
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                raise TaskNotFound(task_id)

            changes = {}
            if params.title is not None:
                changes["title"] = params.title
            if params.description is not None:
                changes["description"] = params.description
            if params.status is not None:
                changes["status"] = params.status
            if params.priority is not None:
                changes["priority"] = params.priority
            if params.due_at is not None:
                changes["due_at"] = params.due_at
            if params.clear_due_at:
                changes["due_at"] = None

            updated = replace(existing, updated_at=max(self._now(), existing.updated_at), **changes)
            self._items[task_id] = updated
            return updated

    def delete(self, task_id: int, *, ctx: Optional[RequestContext] = None) -> None:
        (ctx or RequestContext()).raise_if_done()
        with self._lock:
            if self._items.pop(task_id, None) is None:
                raise TaskNotFound(task_id)


_repository: Optional[Repository] = None
_repository_lock = Lock()


# PUBLIC_INTERFACE
def get_repository() -> Repository:
    """
    Return the process-wide repository for the configured backend, building it on first use.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository at settings.sqlite_db_path
    """
    global _repository
    with _repository_lock:
        if _repository is None:
            _repository = _build_repository()
        return _repository


def _build_repository() -> Repository:
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        logger.info("using sqlite repository at %s", settings.sqlite_db_path)
        return SQLiteRepository(settings.sqlite_db_path)
    logger.info("using in-memory repository")
    return InMemoryRepository()
