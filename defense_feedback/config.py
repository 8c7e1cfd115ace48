"""Configuration utilities for the feedback service and client session.

This module loads application configuration with the following rules:
- Primary source: `feedback_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
PROJECT_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_MIGRATIONS_DIR = str(PROJECT_ROOT / "migrations")
ROOT_FEEDBACK_CONFIG = Path("feedback_config.json")
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_migrations: bool = Field(default=True)
    migrations_dir: str = Field(default=DEFAULT_MIGRATIONS_DIR)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class FeedbackConfig(BaseModel):
    autosave_quiet_seconds: float = Field(default=1.2, gt=0)
    api_base_url: str = Field(default="http://localhost:8000/api")

    @field_validator("api_base_url")
    @classmethod
    def base_url_must_be_http(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("feedback.api_base_url must be an http(s) URL")
        return v.rstrip("/")


class HttpConfig(BaseModel):
    timeout_seconds: float = Field(default=10.0, gt=0)


class AppConfig(BaseModel):
    database: DatabaseConfig
    feedback: FeedbackConfig
    http: HttpConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def _truthy(text: Optional[str]) -> bool:
    return str(text).strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) feedback_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_FEEDBACK_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    # Database
    dsn = (
        _env("TEST_DATABASE_URL")
        or _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or "sqlite+pysqlite:///:memory:"
    )
    auto_apply_text = _env("AUTO_APPLY_MIGRATIONS") or _read_config_file("database.auto_apply_migrations") or _base("database.auto_apply_migrations", "true")
    migrations_dir = _env("MIGRATIONS_DIR") or _base("database.migrations_dir", DEFAULT_MIGRATIONS_DIR)

    # Feedback engine
    quiet_text = _env("FEEDBACK_AUTOSAVE_QUIET_SECONDS") or _read_config_file("feedback.autosave_quiet_seconds") or _base("feedback.autosave_quiet_seconds", "1.2")
    base_url = _env("FEEDBACK_API_BASE_URL") or _read_config_file("feedback.api_base_url") or _base("feedback.api_base_url", "http://localhost:8000/api")

    # HTTP client
    timeout_text = _env("FEEDBACK_HTTP_TIMEOUT_SECONDS") or _read_config_file("http.timeout_seconds") or _base("http.timeout_seconds", "10")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(
                dsn=dsn,
                auto_apply_migrations=_truthy(auto_apply_text),
                migrations_dir=str(migrations_dir),
            ),
            feedback=FeedbackConfig(
                autosave_quiet_seconds=float(str(quiet_text).strip()),
                api_base_url=str(base_url).strip(),
            ),
            http=HttpConfig(timeout_seconds=float(str(timeout_text).strip())),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "FeedbackConfig",
    "HttpConfig",
    "load_config",
]
