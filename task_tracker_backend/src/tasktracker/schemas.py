from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import CreateTaskInput, Task, TaskStatus, UpdateTaskInput

# Shared type for incoming due_at which can be a date, datetime, or ISO8601 string
DueAtInput = Union[date, datetime, str]


def _parse_due_at(value: Optional[DueAtInput]) -> Optional[datetime]:
    """
    Internal helper to coerce due_at input into a datetime.
    - Strings are parsed as ISO8601; a trailing 'Z' means UTC, a bare date means 00:00 UTC.
    - A date (not datetime) becomes midnight UTC.
    - A datetime is returned as-is; UTC normalization happens in the service.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, str):
        s = value.strip()
        try:
            return datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            try:
                d = date.fromisoformat(s)
                return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
            except ValueError as e:
                raise ValueError(
                    "Invalid due_at format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00Z')."
                ) from e

    raise ValueError("Invalid type for due_at; expected date, datetime, or ISO8601 string.")


# PUBLIC_INTERFACE
class TaskCreateRequest(BaseModel):
    """
    Request body for creating a task. Content rules (trimming, ranges, enum
    values) are enforced by the service, not here.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Write release notes",
                "description": "Cover the new filters",
                "status": "new",
                "priority": 2,
                "due_at": "2025-02-01T09:00:00Z",
            }
        }
    )

    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    status: Optional[str] = Field(default=None, description="One of new, in_progress, done")
    priority: Optional[int] = Field(default=None, description="Priority 1..5, defaults to 3")
    due_at: Optional[datetime] = Field(
        default=None,
        description="Due timestamp. Accepts ISO8601 date or datetime; stored in UTC",
    )

    @field_validator("due_at", mode="before")
    @classmethod
    def parse_due_at(cls, v: Optional[DueAtInput]) -> Optional[datetime]:
        return _parse_due_at(v)

    def to_input(self) -> CreateTaskInput:
        return CreateTaskInput(
            title=self.title,
            description=self.description or "",
            status=self.status,
            priority=self.priority,
            due_at=self.due_at,
        )


# PUBLIC_INTERFACE
class TaskUpdateRequest(BaseModel):
    """
    Request body for partially updating a task.
    Omitted (or null) fields are left unchanged; clear_due_at removes the due date.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "in_progress",
                "priority": 4,
                "clear_due_at": True,
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Detailed description")
    status: Optional[str] = Field(default=None, description="One of new, in_progress, done")
    priority: Optional[int] = Field(default=None, description="Priority 1..5")
    due_at: Optional[datetime] = Field(default=None, description="New due timestamp")
    clear_due_at: bool = Field(default=False, description="Remove the due date")

    @field_validator("due_at", mode="before")
    @classmethod
    def parse_due_at(cls, v: Optional[DueAtInput]) -> Optional[datetime]:
        return _parse_due_at(v)

    def to_input(self) -> UpdateTaskInput:
        return UpdateTaskInput(
            title=self.title,
            description=self.description,
            status=self.status,
            priority=self.priority,
            due_at=self.due_at,
            clear_due_at=self.clear_due_at,
        )


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 123,
                "title": "Write release notes",
                "description": "Cover the new filters",
                "status": "new",
                "priority": 3,
                "due_at": None,
                "created_at": "2025-01-25T10:15:30.123000Z",
                "updated_at": "2025-01-26T09:00:00.000000Z",
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    description: str = Field(..., description="Detailed description, empty when absent")
    status: TaskStatus = Field(..., description="Current status")
    priority: int = Field(..., description="Priority 1..5")
    due_at: Optional[datetime] = Field(default=None, description="Due timestamp in UTC")
    created_at: datetime = Field(..., description="Creation timestamp in UTC")
    updated_at: datetime = Field(..., description="Last update timestamp in UTC")

    @classmethod
    def from_task(cls, task: Task) -> "TaskOut":
        return cls(**asdict(task))
