"""Configuration for the Quiz Funnel service.

Every setting is looked up in three places, first hit wins:

1. an environment variable (``DATABASE_URL``, ``PUBLISH_WEBHOOK_URL``, ...)
2. a one-line text file under ``config/`` named after the dotted key
3. ``quiz_funnel_config.json`` at the project root, by dotted path

and falls back to a development default. The result is validated by pydantic;
an invalid configuration is logged and raised.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("quiz_funnel_config.json")
DEFAULT_DSN = "sqlite+pysqlite:///:memory:"
logger = logging.getLogger(__name__)


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_migrations: bool = Field(default=False)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.dsn.startswith("sqlite")


class PublishingConfig(BaseModel):
    frontend_url: str = Field(default="http://localhost:3000")
    webhook_url: Optional[str] = None
    timeout_seconds: float = Field(default=5.0, gt=0)

    @field_validator("frontend_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class HttpConfig(BaseModel):
    # Empty means any origin, without credentials
    cors_origins: List[str] = Field(default_factory=list)


class AppConfig(BaseModel):
    database: DatabaseConfig
    publishing: PublishingConfig
    http: HttpConfig = Field(default_factory=HttpConfig)


class _Sources:
    """Resolve a setting from env, ``config/`` files and the root JSON file."""

    def __init__(self, config_dir: Path = CONFIG_DIR, root_config: Path = ROOT_CONFIG) -> None:
        self.config_dir = config_dir
        self.base = self._read_json(root_config)

    @staticmethod
    def _read_json(path: Path) -> dict:
        try:
            if path.exists():
                return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("config.json_unreadable path=%s error=%s", path, e)
        return {}

    def _from_file(self, key: str) -> Optional[str]:
        path = self.config_dir / key
        try:
            if path.exists():
                return path.read_text(encoding="utf-8").strip() or None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("config.override_unreadable path=%s error=%s", path, e)
        return None

    def _from_json(self, key: str) -> Optional[str]:
        cur: object = self.base
        for part in key.split("."):
            if not isinstance(cur, dict) or part not in cur:
                return None
            cur = cur[part]
        if cur is None:
            return None
        if isinstance(cur, list):
            return ",".join(str(item) for item in cur)
        return str(cur)

    def get(self, key: str, *env_names: str, default: Optional[str] = None) -> Optional[str]:
        for name in env_names:
            value = os.environ.get(name)
            if value:
                return value
        return self._from_file(key) or self._from_json(key) or default


def _truthy(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def _split_csv(value: Optional[str]) -> List[str]:
    return [item.strip() for item in str(value or "").split(",") if item.strip()]


def load_config() -> AppConfig:
    """Load and validate the application configuration."""
    src = _Sources()
    try:
        return AppConfig(
            database=DatabaseConfig(
                dsn=src.get("database.dsn", "TEST_DATABASE_URL", "DATABASE_URL", default=DEFAULT_DSN),
                auto_apply_migrations=_truthy(
                    src.get("database.auto_apply_migrations", "AUTO_APPLY_MIGRATIONS", default="false")
                ),
            ),
            publishing=PublishingConfig(
                frontend_url=src.get("publishing.frontend_url", "FRONTEND_URL", default="http://localhost:3000"),
                webhook_url=src.get("publishing.webhook_url", "PUBLISH_WEBHOOK_URL"),
                timeout_seconds=float(
                    str(src.get("publishing.timeout_seconds", "PUBLISH_TIMEOUT_SECONDS", default="5")).strip()
                ),
            ),
            http=HttpConfig(cors_origins=_split_csv(src.get("http.cors_origins", "CORS_ORIGINS"))),
        )
    except (PydanticValidationError, ValueError) as e:
        logger.error("config.invalid error=%s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "HttpConfig",
    "PublishingConfig",
    "load_config",
]
