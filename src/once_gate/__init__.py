"""Run-at-most-on-a-schedule gate for client side actions."""

from once_gate.core.policy import (
    DailyOnWeekdayChange,
    Interval,
    Monthly,
    OnBuildChange,
    OnSpecificMonth,
    OnVersionChange,
    RunOnce,
)
from once_gate.services.runner import OnceRunner, get_runner

__all__ = [
    "DailyOnWeekdayChange",
    "Interval",
    "Monthly",
    "OnBuildChange",
    "OnSpecificMonth",
    "OnVersionChange",
    "OnceRunner",
    "RunOnce",
    "get_runner",
]
