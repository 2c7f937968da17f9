"""Core module — config, types, logging."""

from review_counter.core.config import Settings, get_settings, load_settings, reset_settings
from review_counter.core.logging import setup_logging
from review_counter.core.types import (
    CycleReport,
    DigestMessage,
    MetricKind,
    MetricResult,
    Severity,
    StateUpdate,
)

__all__ = [
    "CycleReport",
    "DigestMessage",
    "MetricKind",
    "MetricResult",
    "Settings",
    "Severity",
    "StateUpdate",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
