"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

import datetime
import os
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from review_counter.core.types import MetricKind, Severity

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

# Environment variable → (section, field) overrides applied after YAML load.
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "REVIEW_COUNTER_GITHUB_USERNAME": ("github", "username"),
    "REVIEW_COUNTER_GITHUB_TOKEN": ("github", "token"),
    "REVIEW_COUNTER_MATRIX_TOKEN": ("matrix", "access_token"),
    "REVIEW_COUNTER_MATRIX_ROOM_ID": ("matrix", "room_id"),
    "REVIEW_COUNTER_WEBHOOK_SECRET": ("server", "webhook_secret"),
}


class GitHubConfig(BaseModel):
    """GitHub REST API (metrics source) configuration."""

    base_url: str = "https://api.github.com"
    username: str = ""
    token: SecretStr = SecretStr("")
    user_agent: str = "review-counter"
    accept: str = "application/vnd.github.inertia-preview+json"
    timeout_secs: float = 10.0


class MatrixConfig(BaseModel):
    """Matrix client-server API (state sink) configuration."""

    base_url: str = "https://matrix.org"
    access_token: SecretStr = SecretStr("")
    room_id: str = ""
    state_event_type: str = "re.jki.counter"
    msgtype: str = "m.notice"
    timeout_secs: float = 10.0


class MetricQueryConfig(BaseModel):
    """One named count to fetch from the metrics source."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: MetricKind = MetricKind.SEARCH
    path: str = "/search/issues"
    params: dict[str, str] = Field(default_factory=dict)


class StateConfig(BaseModel):
    """One state key pushed to the room, derived from one or more metrics."""

    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    link: str = ""
    metrics: list[str]
    severity: Severity = Severity.WARNING
    alert_above: int | None = None
    blocking: bool = False

    @field_validator("metrics")
    @classmethod
    def _metrics_not_empty(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("state must reference at least one metric")
        return v


class DigestConfig(BaseModel):
    """Daily digest message configuration."""

    enabled: bool = True
    trigger_time: datetime.time = datetime.time(9, 55)
    timezone: str = "Europe/London"
    review_metric: str = "reviews"
    review_link: str = "https://github.com/pulls/review-requested"

    @field_validator("trigger_time", mode="before")
    @classmethod
    def _quoted_trigger_time(cls, v: Any) -> Any:
        # YAML 1.1 reads an unquoted 10:00 as the sexagesimal integer 600.
        if isinstance(v, int):
            raise ValueError("trigger_time must be a quoted 'HH:MM' string")
        return v

    @field_validator("timezone")
    @classmethod
    def _valid_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown time zone: {v}") from exc
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class SchedulerConfig(BaseModel):
    """Periodic check loop configuration."""

    interval_secs: float = 30.0
    fail_fast: bool = True


class ServerConfig(BaseModel):
    """Inbound trigger server configuration."""

    host: str = "127.0.0.1"
    port: int = 8080
    webhook_delay_secs: float = 3.0
    webhook_secret: SecretStr = SecretStr("")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    github: GitHubConfig = GitHubConfig()
    matrix: MatrixConfig = MatrixConfig()
    metrics: list[MetricQueryConfig] = Field(default_factory=list)
    states: list[StateConfig] = Field(default_factory=list)
    digest: DigestConfig = DigestConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()

    @model_validator(mode="after")
    def _check_references(self) -> Settings:
        metric_ids = [m.id for m in self.metrics]
        if len(set(metric_ids)) != len(metric_ids):
            raise ValueError("metric ids must be unique")

        state_keys = [s.key for s in self.states]
        if len(set(state_keys)) != len(state_keys):
            raise ValueError("state keys must be unique")

        known = set(metric_ids)
        for state in self.states:
            missing = [m for m in state.metrics if m not in known]
            if missing:
                raise ValueError(f"state {state.key!r} references unknown metrics: {missing}")

        if self.digest.enabled and self.metrics and self.digest.review_metric not in known:
            raise ValueError(
                f"digest review_metric {self.digest.review_metric!r} is not a configured metric"
            )
        return self


def _apply_env_overrides(data: dict[str, Any]) -> None:
    for env_var, (section, field) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if not value:
            continue
        target = data.get(section)
        if not isinstance(target, dict):
            target = {}
            data[section] = target
        target[field] = value


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Credentials may be supplied through the ``REVIEW_COUNTER_*`` environment
    variables instead of the YAML file; environment values win.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _apply_env_overrides(data)
    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
