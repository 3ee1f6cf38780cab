from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


# PUBLIC_INTERFACE
class TaskStatus(str, Enum):
    """Lifecycle state of a task."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    DONE = "done"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Task:
    """
    The single persisted entity of the tracker.

    Fields:
    - id: Store-assigned identifier, immutable after creation
    - title: Trimmed title (1..255 chars)
    - description: Trimmed description; empty string when absent
    - status: One of TaskStatus
    - priority: Integer in 1..5
    - due_at: Optional due timestamp, UTC-aware
    - created_at: Store-assigned creation timestamp, UTC-aware
    - updated_at: Store-maintained last update timestamp, UTC-aware
    """

    id: int
    title: str
    description: str
    status: TaskStatus
    priority: int
    due_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


# Raw caller data. Nothing here has been validated yet.


@dataclass(frozen=True)
class CreateTaskInput:
    title: str
    description: str = ""
    status: Optional[str] = None
    priority: Optional[int] = None
    due_at: Optional[datetime] = None


@dataclass(frozen=True)
class UpdateTaskInput:
    """
    Partial update request. None means "not supplied"; clear_due_at removes
    the due date and cannot be combined with due_at.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[int] = None
    due_at: Optional[datetime] = None
    clear_due_at: bool = False


@dataclass(frozen=True)
class ListTasksInput:
    status: Optional[str] = None
    query: str = ""
    limit: int = 0
    offset: int = 0


# Validated, normalized data accepted by repositories as-is.


@dataclass(frozen=True)
class CreateParams:
    title: str
    description: str
    status: TaskStatus
    priority: int
    due_at: Optional[datetime] = None


@dataclass(frozen=True)
class UpdateParams:
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[int] = None
    due_at: Optional[datetime] = None
    clear_due_at: bool = False


@dataclass(frozen=True)
class ListFilter:
    """
    Query parameters for listing tasks.
    """

    limit: int
    offset: int = 0
    status: Optional[TaskStatus] = None
    query: str = ""
