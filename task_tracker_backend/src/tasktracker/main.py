import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import TaskNotFound, ValidationError
from .logging_config import configure_logging
from .routers import tasks as tasks_router
from .settings import get_settings

_settings = get_settings()
configure_logging(_settings)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "tasks",
        "description": "CRUD operations for tasks with status/text filtering and pagination.",
    },
]

app = FastAPI(
    title="Task Tracker Backend",
    description="Backend API service for tracking tasks with pluggable storage backends.",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

# Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request parsing errors.

    Response format:
        {
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": [... pydantic/fastapi error details ...]
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """
    Map service-level input rejections onto the same envelope, naming the field.
    """
    logger.debug("rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": exc.message,
            "field": exc.field,
        },
    )


@app.exception_handler(TaskNotFound)
async def not_found_exception_handler(request: Request, exc: TaskNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Task not found"})


def _health_payload() -> dict:
    return {
        "service": _settings.app_name,
        "status": "ok",
        "backend": _settings.persistence_backend,
    }


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health and the active storage backend.
    """
    return _health_payload()


@app.get("/health", summary="Health Check", tags=["health"])
def health():
    return _health_payload()


@app.get("/ping", summary="Ping", tags=["health"])
def ping():
    return {"status": "ok"}


# Include routers
app.include_router(tasks_router.router)

logger.info(
    "app_startup: env=%s backend=%s log_level=%s",
    _settings.app_env,
    _settings.persistence_backend,
    logging.getLevelName(_settings.log_level),
)
