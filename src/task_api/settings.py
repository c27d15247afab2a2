from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/tasks.db' (':memory:' allowed)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - API_PREFIX: path prefix for the task routes, e.g. '/api'. Empty by default
    - LOG_LEVEL: logging level name. Default 'INFO'
    - API_HOST / API_PORT: bind address for `python -m task_api`. Default 0.0.0.0:8000
    - TASK_API_BASE_URL: base URL used by the Python client. Default 'http://127.0.0.1:8000'
    - TASK_API_TIMEOUT: client request timeout in seconds. Default 10
    """

    persistence_backend: str = "memory"
    sqlite_db_path: str = "./data/tasks.db"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    api_prefix: str = ""
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    client_base_url: str = "http://127.0.0.1:8000"
    client_timeout: float = 10.0


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_number(name: str, default: float) -> float:
    raw = _get_env(name, str(default)).strip()
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


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


def _parse_prefix(value: str) -> str:
    p = value.strip().rstrip("/")
    if p and not p.startswith("/"):
        p = "/" + p
    return p


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/tasks.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        api_prefix=_parse_prefix(_get_env("API_PREFIX", "")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        api_host=_get_env("API_HOST", "0.0.0.0").strip(),
        api_port=int(_parse_number("API_PORT", 8000)),
        client_base_url=_get_env("TASK_API_BASE_URL", "http://127.0.0.1:8000").strip().rstrip("/"),
        client_timeout=_parse_number("TASK_API_TIMEOUT", 10.0),
    )
