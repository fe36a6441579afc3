"""Configuration for the task client."""

import threading
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """Process settings read from the environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TESSERA_",
        extra="ignore",
    )

    # Transport
    transport: Literal["tcp", "http"] = Field(default="tcp")
    default_host: str = Field(default="127.0.0.1")
    default_port: int = Field(default=3001, ge=1, le=65535)
    connect_timeout_seconds: float = Field(default=10.0, gt=0)
    http_path: str = Field(default="/messages")

    # Queue new tasks are submitted to
    queue: str = Field(default="default")

    # Modules imported by the worker so their tasks register
    task_modules: list[str] = Field(default_factory=list)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="console")


def get_settings() -> Settings:
    """Get a settings instance."""
    return Settings()


class Config(BaseModel):
    """Connection target and local execution parameters.

    Every field is optional. Unset fields are left out of the canonical form
    so the connection and the engine can apply their own defaults.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str | None = None
    port: int | None = None
    thread_count: int | None = None
    ready_signal: bool | None = None

    def to_canonical_form(self) -> dict[str, Any]:
        """Return only the fields that were set."""
        return self.model_dump(exclude_none=True)


class Configurable:
    """Holds the process-wide configuration."""

    def __init__(self):
        self._config: Config | None = None
        self._lock = threading.Lock()

    def configure(self, **fields: Any) -> Config:
        """Replace the stored configuration with a fresh one."""
        config = Config(**fields)
        with self._lock:
            self._config = config
        return config

    @property
    def config(self) -> Config:
        with self._lock:
            if self._config is None:
                raise ConfigurationError("tessera is not configured, call configure() first")
            return self._config

    def reset_config(self) -> None:
        """Forget the stored configuration."""
        with self._lock:
            self._config = None


_configurable = Configurable()


def configure(**fields: Any) -> Config:
    return _configurable.configure(**fields)


def get_config() -> Config:
    return _configurable.config


def reset_config() -> None:
    _configurable.reset_config()
