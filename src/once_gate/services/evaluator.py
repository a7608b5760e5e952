"""Policy evaluation.

`evaluate_entry` is the pure decision: given a policy, the previously
stored entry and the current moment it says whether the policy is due and
which entry (if any) should be persisted. `PolicyEvaluator` wraps it with
the store reads and writes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from once_gate.core.entry import Entry, EntryKind
from once_gate.core.errors import CorruptStateError, VersionFormatError
from once_gate.core.policy import (
    DailyOnWeekdayChange,
    Interval,
    Monthly,
    OnBuildChange,
    OnSpecificMonth,
    OnVersionChange,
    Policy,
    RunOnce,
)
from once_gate.core.time import Moment, month_length_ms
from once_gate.services.store import PreferenceStore

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"[^\d]+")

__all__ = ["Evaluation", "PolicyEvaluator", "evaluate_entry", "numeric_strip"]


@dataclass(frozen=True)
class Evaluation:
    """Outcome of one policy check.

    Attributes:
        due: Whether the primary action should run.
        entry: Entry to persist, or None when nothing changes.
    """

    due: bool
    entry: Entry | None = None


def numeric_strip(value: str) -> str:
    """Remove every non-digit character (``"1.2.0" -> "120"``)."""
    return _NON_DIGITS.sub("", value)


def _current_number(value: str | None, kind: EntryKind) -> int:
    digits = numeric_strip(value or "")
    if not digits:
        raise VersionFormatError(f"Current {kind.value} {value!r} contains no digits")
    return int(digits)


def _stored_number(entry: Entry, key: str | None) -> int:
    digits = numeric_strip(str(entry.value))
    if not digits:
        raise CorruptStateError(
            key, f"stored {entry.kind.value} {entry.value!r} contains no digits"
        )
    return int(digits)


def evaluate_entry(
    policy: Policy,
    previous: Entry | None,
    moment: Moment,
    current: str | None = None,
    *,
    key: str | None = None,
) -> Evaluation:
    """Decide whether `policy` is due.

    Args:
        policy: The caller's policy.
        previous: Entry currently stored for the key, or None.
        moment: Calendar facts about now.
        current: Current version or build string (version/build policies only).
        key: Storage key, used in error messages.

    Returns:
        The due decision and the entry to persist.

    Raises:
        CorruptStateError: If a stored version/build has no digits.
        VersionFormatError: If `current` has no digits.
    """
    if isinstance(policy, RunOnce):
        if previous is None:
            return Evaluation(True, Entry.sentinel())
        return Evaluation(False)

    if isinstance(policy, Monthly):
        # Month length comes from the month being evaluated, not the stored one.
        month_ms = month_length_ms(moment.year, moment.month)
        if previous is None:
            return Evaluation(True, Entry.timestamp(moment.now_ms + month_ms))
        scheduled = int(previous.value)
        if scheduled <= moment.now_ms:
            # Roll forward from the scheduled time so the schedule does not drift.
            return Evaluation(True, Entry.timestamp(scheduled + month_ms))
        return Evaluation(False)

    if isinstance(policy, DailyOnWeekdayChange):
        if previous is None or previous.value != moment.weekday:
            return Evaluation(True, Entry.weekday(moment.weekday))
        return Evaluation(False)

    if isinstance(policy, OnSpecificMonth):
        if previous is None or previous.value != policy.month:
            return Evaluation(True, Entry.month(policy.month))
        return Evaluation(False)

    if isinstance(policy, Interval):
        if previous is None or moment.now_ms - int(previous.value) > policy.duration_ms:
            return Evaluation(True, Entry.timestamp(moment.now_ms))
        return Evaluation(False)

    if isinstance(policy, (OnVersionChange, OnBuildChange)):
        kind = policy.entry_kind
        current_number = _current_number(current, kind)
        new_entry = Entry(kind, current or "")
        if previous is None:
            # First observation only records the value.
            return Evaluation(False, new_entry)
        if current_number > _stored_number(previous, key):
            return Evaluation(True, new_entry)
        return Evaluation(False)

    raise TypeError(f"Unsupported policy: {policy!r}")


class PolicyEvaluator:
    """Reads, evaluates and commits entries against a store."""

    def __init__(self, store: PreferenceStore) -> None:
        self.store = store

    async def load(self, storage_key: str, kind: EntryKind) -> Entry | None:
        """Return the decoded entry stored under `storage_key`, if any."""
        raw = await self.store.get(storage_key)
        if raw is None:
            return None
        return Entry.decode(kind, raw, key=storage_key)

    async def evaluate(
        self,
        storage_key: str,
        policy: Policy,
        moment: Moment,
        current: str | None = None,
    ) -> Evaluation:
        previous = await self.load(storage_key, policy.entry_kind)
        evaluation = evaluate_entry(policy, previous, moment, current, key=storage_key)
        logger.debug(
            "Evaluated %s under %s: due=%s", storage_key, type(policy).__name__, evaluation.due
        )
        return evaluation

    async def commit(self, storage_key: str, evaluation: Evaluation) -> None:
        """Persist the evaluation's entry. No-op when it carries none."""
        entry = evaluation.entry
        if entry is None:
            return
        value = entry.encode()
        if entry.kind.stored_as_int:
            await self.store.set_int(storage_key, int(value))
        else:
            await self.store.set_string(storage_key, str(value))
