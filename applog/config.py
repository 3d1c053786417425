"""Configuration module: frozen dataclass loaded from YAML and environment variables."""

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

import yaml

from applog.models import RuntimeMode

logger = logging.getLogger(__name__)

SINK_TYPES = ("stub", "http")

_ENV_VARS = {
    "max_logs": "APPLOG_MAX_LOGS",
    "remote_endpoint": "APPLOG_REMOTE_ENDPOINT",
    "remote_api_key": "APPLOG_REMOTE_API_KEY",
    "mode": "APPLOG_MODE",
    "sink": "APPLOG_SINK",
    "sink_timeout": "APPLOG_SINK_TIMEOUT",
    "sink_retries": "APPLOG_SINK_RETRIES",
}


class ConfigError(ValueError):
    """Raised when a configuration value is out of range or unparseable."""


@dataclass(frozen=True)
class LoggerConfig:
    max_logs: int = 1000
    remote_endpoint: Optional[str] = None
    remote_api_key: Optional[str] = None
    mode: RuntimeMode = RuntimeMode.DEVELOPMENT
    sink: str = "stub"
    sink_timeout: float = 10.0
    sink_retries: int = 0

    def __post_init__(self):
        try:
            object.__setattr__(self, "mode", RuntimeMode.parse(self.mode))
        except ValueError as exc:
            raise ConfigError(str(exc)) from None
        if isinstance(self.max_logs, bool) or not isinstance(self.max_logs, int) or self.max_logs <= 0:
            raise ConfigError(f"max_logs must be a positive integer, got {self.max_logs!r}")
        if self.sink not in SINK_TYPES:
            raise ConfigError(f"sink must be one of {SINK_TYPES}, got {self.sink!r}")
        if self.sink_timeout <= 0:
            raise ConfigError(f"sink_timeout must be positive, got {self.sink_timeout!r}")
        if self.sink_retries < 0:
            raise ConfigError(f"sink_retries must be >= 0, got {self.sink_retries!r}")

    @property
    def remote_enabled(self) -> bool:
        return bool(self.remote_endpoint)

    def with_overrides(self, **overrides) -> "LoggerConfig":
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


def _coerce(name: str, value):
    """Convert a raw YAML/env value to the type of the named field."""
    if value is None or value == "":
        return None
    try:
        if name in ("max_logs", "sink_retries"):
            return int(value)
        if name == "sink_timeout":
            return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid value for {name}: {value!r}") from None
    if name == "sink":
        return str(value).strip().lower()
    return value if name == "mode" else str(value)


def _load_yaml_section(path: str) -> dict:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.info("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as exc:
        logger.warning("Invalid YAML in %s, using defaults: %s", path, exc)
        return {}

    if not isinstance(data, dict):
        return {}
    section = data.get("logging", data)
    return section if isinstance(section, dict) else {}


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> LoggerConfig:
    """Build LoggerConfig from defaults <- YAML ``logging:`` section <- env vars."""
    if env is None:
        env = os.environ

    known = {f.name for f in fields(LoggerConfig)}
    kwargs: dict = {}

    if path is not None:
        for key, value in _load_yaml_section(path).items():
            key = str(key).replace("-", "_")
            if key not in known:
                logger.warning("Ignoring unknown config key %r in %s", key, path)
                continue
            coerced = _coerce(key, value)
            if coerced is not None:
                kwargs[key] = coerced

    for name, var in _ENV_VARS.items():
        coerced = _coerce(name, env.get(var))
        if coerced is not None:
            kwargs[name] = coerced

    return LoggerConfig(**kwargs)
