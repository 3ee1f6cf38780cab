from __future__ import annotations


# PUBLIC_INTERFACE
class ValidationError(Exception):
    """
    Caller input was rejected before reaching the store.

    Attributes:
        field: Name of the offending input field (e.g. "title", "body").
        message: Human-readable reason, safe to return to the client.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"invalid {field}: {message}")
        self.field = field
        self.message = message


# PUBLIC_INTERFACE
class TaskNotFound(LookupError):
    """The requested task id does not exist in the store."""

    def __init__(self, task_id: int) -> None:
        super().__init__("task not found")
        self.task_id = task_id
