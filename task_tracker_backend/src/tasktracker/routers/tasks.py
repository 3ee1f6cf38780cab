from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..context import RequestContext
from ..models import ListTasksInput
from ..repositories import get_repository
from ..schemas import TaskCreateRequest, TaskOut, TaskUpdateRequest
from ..service import TaskService
from ..settings import get_settings

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["tasks"],
)

_settings = get_settings()


def get_service() -> TaskService:
    """
    Dependency returning a TaskService bound to the process-wide repository.
    """
    return TaskService(get_repository())


def get_request_context() -> RequestContext:
    """
    Dependency returning a fresh context carrying the configured request deadline.
    """
    return RequestContext.with_timeout(_settings.request_timeout_seconds)


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task and return the stored resource.",
    responses={
        201: {"description": "Task created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_task(
    payload: TaskCreateRequest,
    service: TaskService = Depends(get_service),
    ctx: RequestContext = Depends(get_request_context),
) -> TaskOut:
    """Create a task. Returns 201 with the stored task."""
    created = service.create(payload.to_input(), ctx=ctx)
    return TaskOut.from_task(created)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[TaskOut],
    summary="List Tasks",
    description=(
        "List tasks, newest first.\n\n"
        "Query parameters:\n"
        "- status: filter by status (new, in_progress, done)\n"
        "- q: substring search across title and description\n"
        "- limit: page size; values <= 0 mean 20, values above 100 are capped\n"
        "- offset: number of items to skip (>=0)"
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        422: {"description": "Invalid query parameters"},
    },
)
def list_tasks(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    q: str = Query("", description="Search text for title/description"),
    limit: int = Query(0, description="Maximum number of items to return"),
    offset: int = Query(0, description="Number of items to skip"),
    service: TaskService = Depends(get_service),
    ctx: RequestContext = Depends(get_request_context),
) -> List[TaskOut]:
    """List tasks newest first, filtered and paginated by the query parameters."""
    tasks = service.list(
        ListTasksInput(status=status_filter, query=q, limit=limit, offset=offset),
        ctx=ctx,
    )
    return [TaskOut.from_task(t) for t in tasks]


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get a single task by ID.",
    responses={
        200: {"description": "Task found"},
        404: {"description": "Task not found"},
    },
)
def get_task(
    task_id: int,
    service: TaskService = Depends(get_service),
    ctx: RequestContext = Depends(get_request_context),
) -> TaskOut:
    """Get a task by id. Returns 404 if not found."""
    return TaskOut.from_task(service.get_by_id(task_id, ctx=ctx))


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description="Partially update fields of a task. At least one field must be supplied.",
    responses={
        200: {"description": "Task updated"},
        404: {"description": "Task not found"},
        422: {"description": "Validation error"},
    },
)
def patch_task(
    task_id: int,
    payload: TaskUpdateRequest,
    service: TaskService = Depends(get_service),
    ctx: RequestContext = Depends(get_request_context),
) -> TaskOut:
    """Apply a partial update. Returns the refreshed task, 404 if not found."""
    updated = service.update(task_id, payload.to_input(), ctx=ctx)
    return TaskOut.from_task(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete Task",
    description="Delete a task by ID.",
    responses={
        204: {"description": "Task deleted"},
        404: {"description": "Task not found"},
    },
)
def delete_task(
    task_id: int,
    service: TaskService = Depends(get_service),
    ctx: RequestContext = Depends(get_request_context),
) -> None:
    """
    Delete a task. Returns 204 on success, 404 if not found.
    """
    service.delete(task_id, ctx=ctx)
    return None
