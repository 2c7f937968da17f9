"""Check cycle, digest gate, timer and webhook trigger."""

from review_counter.monitor.cycle import CheckCycle, MetricSource, StateSink
from review_counter.monitor.digest import build_digest, build_state_update, severity_for
from review_counter.monitor.exceptions import CycleError
from review_counter.monitor.factory import create_check_stack
from review_counter.monitor.gate import DailyDigestGate
from review_counter.monitor.scheduler import CheckScheduler
from review_counter.monitor.web import create_web_app, start_web_server

__all__ = [
    "CheckCycle",
    "CheckScheduler",
    "CycleError",
    "DailyDigestGate",
    "MetricSource",
    "StateSink",
    "build_digest",
    "build_state_update",
    "create_check_stack",
    "create_web_app",
    "severity_for",
    "start_web_server",
]
