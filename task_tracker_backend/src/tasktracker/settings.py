from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - APP_NAME: service name reported by health endpoints (default: 'TaskTracker')
    - APP_ENV: deployment environment; 'local' (default) and 'dev' enable debug logging
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/tasks.db'
    - REQUEST_TIMEOUT_SECONDS: per-request store deadline; <= 0 disables it (default: 5)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: explicit logging level name, overrides the APP_ENV default
    """

    app_name: str
    app_env: str
    persistence_backend: str
    sqlite_db_path: str
    request_timeout_seconds: Optional[float]
    cors_allow_origins: List[str]
    log_level: int


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_float(value: str, default: float) -> float:
    try:
        return float(value.strip())
    except ValueError:
        return default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _parse_log_level(raw: Optional[str], app_env: str) -> int:
    default = logging.DEBUG if app_env in {"local", "dev"} else logging.INFO
    if not raw:
        return default
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else default


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables (and a .env file if present)."""
    env_path = find_dotenv(usecwd=True)
    if env_path:
        load_dotenv(dotenv_path=env_path, override=False)

    app_env = _get_env("APP_ENV", "local").strip().lower()

    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    timeout = _parse_float(_get_env("REQUEST_TIMEOUT_SECONDS", "5"), 5.0)

    return Settings(
        app_name=_get_env("APP_NAME", "TaskTracker"),
        app_env=app_env,
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/tasks.db").strip(),
        request_timeout_seconds=timeout if timeout > 0 else None,
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_parse_log_level(os.getenv("LOG_LEVEL"), app_env),
    )
