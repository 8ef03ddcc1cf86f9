from __future__ import annotations

import os
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator


class StoreBackend(str, Enum):
    """Storage engines selectable through configuration."""

    MEMORY = "memory"
    SQLITE = "sqlite"
    POSTGRES = "postgres"


_SCHEME_BACKENDS = {
    "sqlite": StoreBackend.SQLITE,
    "postgres": StoreBackend.POSTGRES,
    "postgresql": StoreBackend.POSTGRES,
}


def env_field(default: Any, env: str, **kwargs):
    extra = kwargs.pop("json_schema_extra", {}) or {}
    extra = {**extra, "env": env}
    return Field(default, json_schema_extra=extra, **kwargs)


class Settings(BaseModel):
    """Runtime settings read from the environment and an optional ``.env`` file."""

    database_url: str = env_field(
        "sqlite:///data/imanage.db",
        "DATABASE_URL",
        description="sqlite:///path or postgresql://... DSN",
    )
    use_memory_store: bool = env_field(False, "USE_MEMORY_STORE")
    test_mode: bool = env_field(
        False,
        "TEST_MODE",
        description="Toggle deterministic testing behaviors",
    )
    cors_allow_origins: list[str] = env_field(
        ["http://localhost:3000", "http://127.0.0.1:3000"],
        "CORS_ALLOW_ORIGINS",
        description="Comma separated list of allowed origins",
    )
    cors_allow_credentials: bool = env_field(False, "CORS_ALLOW_CREDENTIALS")
    build_sha: str = env_field("dev", "BUILD_SHA")

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_env(cls) -> "Settings":
        env_file_values = dotenv_values(".env")
        merged: dict[str, Any] = {}
        for name, field in cls.model_fields.items():
            extra = field.json_schema_extra or {}
            env_key = extra.get("env") if isinstance(extra, dict) else None
            env_name = env_key or name.upper()
            if env_name in os.environ:
                merged[name] = os.environ[env_name]
            elif env_name in env_file_values:
                merged[name] = env_file_values[env_name]
        return cls(**merged)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def store_backend(self) -> StoreBackend:
        """Backend implied by ``use_memory_store`` and the URL scheme."""
        if self.use_memory_store:
            return StoreBackend.MEMORY
        scheme = urlparse(self.database_url).scheme.lower()
        backend = _SCHEME_BACKENDS.get(scheme)
        if backend is None:
            raise ValueError(f"unsupported DATABASE_URL scheme: {scheme or '<none>'}")
        return backend

    @property
    def sqlite_path(self) -> str:
        # sqlite:///relative/path and sqlite:////absolute/path
        prefix = "sqlite:///"
        if not self.database_url.startswith(prefix):
            raise ValueError("DATABASE_URL is not a sqlite URL")
        return self.database_url[len(prefix):]


def get_settings() -> Settings:
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = Settings.from_env()
    return _settings_cache


_settings_cache: Settings | None = None


def reset_settings_cache() -> None:
    """Clear cached settings so future calls re-read the environment."""

    global _settings_cache
    _settings_cache = None
