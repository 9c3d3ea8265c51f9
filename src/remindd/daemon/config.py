"""Daemon configuration models and the YAML loader."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from remindd.protocol.framer import DEFAULT_MAX_FRAME_BYTES
from remindd.provider.memory import DEFAULT_LIST

CONFIG_ENV_VAR = "REMINDD_CONFIG"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when a config file fails parsing or validation."""


class TelemetrySettings(BaseModel):
    """Optional telemetry configuration."""

    enabled: bool = False
    otlp_endpoint: str | None = None


class DaemonConfig(BaseModel):
    """Effective daemon configuration."""

    backend: Literal["memory", "file"] = "memory"
    store_path: Path | None = None
    default_list: str = Field(default=DEFAULT_LIST, min_length=1)
    lists: list[str] = Field(
        default_factory=list,
        description="Extra lists created by the memory backend.",
    )
    grant_access: bool = Field(
        default=True,
        description="Answer the bundled backends give to authorization requests.",
    )
    authorize_on_start: bool = True
    require_authorization: bool = Field(
        default=False,
        description="Exit at startup when authorization is denied.",
    )
    grace_period: float = Field(default=5.0, ge=0)
    max_frame_bytes: int = Field(default=DEFAULT_MAX_FRAME_BYTES, gt=0)
    log_level: str = "INFO"
    pid_file: Path | None = None
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            msg = f"log_level must be one of {', '.join(_LOG_LEVELS)}"
            raise ValueError(msg)
        return level

    @model_validator(mode="after")
    def _file_backend_needs_path(self) -> DaemonConfig:
        if self.backend == "file" and self.store_path is None:
            msg = "backend 'file' requires 'store_path'"
            raise ValueError(msg)
        return self

    def with_overrides(self, **overrides: Any) -> DaemonConfig:
        """Return a validated copy with non-``None`` *overrides* applied."""
        data = self.model_dump()
        data.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return DaemonConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc


class ConfigLoader:
    """Load and validate a YAML config file into a :class:`DaemonConfig`."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @classmethod
    def from_env(cls) -> ConfigLoader | None:
        """Loader for ``$REMINDD_CONFIG``, or ``None`` when unset."""
        value = os.environ.get(CONFIG_ENV_VAR)
        return cls(Path(value)) if value else None

    def load(self) -> DaemonConfig:
        """Read YAML, interpolate env vars, and validate.

        Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
        using :func:`os.path.expandvars` before YAML parsing.  An empty file
        yields the defaults.

        Raises:
            ConfigError: On read errors, YAML parse errors or schema
                validation failures.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read {self._path}: {exc}") from exc

        expanded = os.path.expandvars(raw)

        try:
            data: Any = yaml.safe_load(expanded)
        except yaml.YAMLError as exc:
            raise ConfigError(f"YAML parse error: {exc}") from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Config YAML must be a mapping")

        try:
            return DaemonConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc


def load_config(path: Path | None = None) -> DaemonConfig:
    """Load *path*, else ``$REMINDD_CONFIG``, else the defaults."""
    loader = ConfigLoader(path) if path is not None else ConfigLoader.from_env()
    if loader is None:
        return DaemonConfig()
    return loader.load()
