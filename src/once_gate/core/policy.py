"""Scheduling policies accepted by the runner.

A policy decides which namespace its key lives in and which kind of
entry it persists. Policies are plain frozen dataclasses; the decision
logic lives in `once_gate.services.evaluator`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from once_gate.core.constants import (
    BUILD_PREFIX,
    KEY_PREFIX,
    MONTHLY_CODE,
    NEW_DAY_CODE,
    RUN_ONCE_CODE,
    VERSION_PREFIX,
)
from once_gate.core.entry import EntryKind

__all__ = [
    "DailyOnWeekdayChange",
    "Interval",
    "Monthly",
    "OnBuildChange",
    "OnSpecificMonth",
    "OnVersionChange",
    "Policy",
    "RunOnce",
    "policy_from_duration",
]


@dataclass(frozen=True)
class Policy:
    """Base class for all policies."""

    entry_kind: ClassVar[EntryKind]
    prefix: ClassVar[str] = KEY_PREFIX


@dataclass(frozen=True)
class RunOnce(Policy):
    """Fire exactly one time ever."""

    entry_kind: ClassVar[EntryKind] = EntryKind.SENTINEL


@dataclass(frozen=True)
class Monthly(Policy):
    """Fire once, then again every calendar month after the stored due time."""

    entry_kind: ClassVar[EntryKind] = EntryKind.TIMESTAMP


@dataclass(frozen=True)
class DailyOnWeekdayChange(Policy):
    """Fire whenever the weekday differs from the last recorded one.

    Two calls exactly a week apart share a weekday and do not re-fire.
    """

    entry_kind: ClassVar[EntryKind] = EntryKind.WEEKDAY


@dataclass(frozen=True)
class OnSpecificMonth(Policy):
    """Fire when the stored month marker differs from `month`."""

    month: int
    entry_kind: ClassVar[EntryKind] = EntryKind.MONTH

    def __post_init__(self) -> None:
        if isinstance(self.month, bool) or not isinstance(self.month, int):
            raise ValueError(f"month must be an int, got {self.month!r}")
        if not 1 <= self.month < 12:
            raise ValueError(f"month must satisfy 1 <= month < 12, got {self.month}")


@dataclass(frozen=True)
class Interval(Policy):
    """Fire when strictly more than `duration_ms` elapsed since the last run."""

    duration_ms: int
    entry_kind: ClassVar[EntryKind] = EntryKind.TIMESTAMP

    def __post_init__(self) -> None:
        if isinstance(self.duration_ms, bool) or not isinstance(self.duration_ms, int):
            raise ValueError(f"duration_ms must be an int, got {self.duration_ms!r}")
        if self.duration_ms < 0:
            raise ValueError(f"duration_ms must be non-negative, got {self.duration_ms}")


@dataclass(frozen=True)
class OnVersionChange(Policy):
    """Fire when the application version number increases."""

    entry_kind: ClassVar[EntryKind] = EntryKind.VERSION
    prefix: ClassVar[str] = VERSION_PREFIX


@dataclass(frozen=True)
class OnBuildChange(Policy):
    """Fire when the application build number increases."""

    entry_kind: ClassVar[EntryKind] = EntryKind.BUILD
    prefix: ClassVar[str] = BUILD_PREFIX


def policy_from_duration(code: int) -> Policy:
    """Translate a legacy integer duration code into a policy.

    `-2` is once-ever, `-1` monthly, `-3` on weekday change, `1..11` a
    specific month and any other non-negative value an interval in ms.
    """
    if code == RUN_ONCE_CODE:
        return RunOnce()
    if code == MONTHLY_CODE:
        return Monthly()
    if code == NEW_DAY_CODE:
        return DailyOnWeekdayChange()
    if 0 < code < 12:
        return OnSpecificMonth(code)
    if code >= 0:
        return Interval(code)
    raise ValueError(f"Unknown duration code: {code}")
