"""Typed view over the untyped values kept in the preference store."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from once_gate.core.constants import ONCE_SENTINEL
from once_gate.core.errors import CorruptStateError

StoredValue = int | str


class EntryKind(enum.Enum):
    SENTINEL = "sentinel"
    TIMESTAMP = "timestamp"
    WEEKDAY = "weekday"
    MONTH = "month"
    VERSION = "version"
    BUILD = "build"

    @property
    def stored_as_int(self) -> bool:
        return self in _INT_KINDS


_INT_KINDS = frozenset({EntryKind.TIMESTAMP, EntryKind.WEEKDAY, EntryKind.MONTH})
_RANGES: dict[EntryKind, tuple[int, int]] = {
    EntryKind.WEEKDAY: (1, 7),
    EntryKind.MONTH: (1, 11),
}


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Entry:
    """A persisted value tagged with the kind of policy that owns it."""

    kind: EntryKind
    value: StoredValue

    @classmethod
    def sentinel(cls) -> Entry:
        return cls(EntryKind.SENTINEL, ONCE_SENTINEL)

    @classmethod
    def timestamp(cls, ms: int) -> Entry:
        return cls(EntryKind.TIMESTAMP, ms)

    @classmethod
    def weekday(cls, day: int) -> Entry:
        return cls(EntryKind.WEEKDAY, day)

    @classmethod
    def month(cls, month: int) -> Entry:
        return cls(EntryKind.MONTH, month)

    @classmethod
    def version(cls, version: str) -> Entry:
        return cls(EntryKind.VERSION, version)

    @classmethod
    def build(cls, build: str) -> Entry:
        return cls(EntryKind.BUILD, build)

    @classmethod
    def decode(cls, kind: EntryKind, raw: object, key: str | None = None) -> Entry:
        """Validate a raw stored value against `kind`.

        Raises:
            CorruptStateError: If `raw` does not have the shape `kind` requires.
        """
        if kind.stored_as_int:
            if not _is_int(raw):
                raise CorruptStateError(key, f"expected an integer {kind.value}, got {raw!r}")
            bounds = _RANGES.get(kind)
            if bounds is not None and not bounds[0] <= raw <= bounds[1]:
                raise CorruptStateError(key, f"{kind.value} {raw} outside {bounds[0]}..{bounds[1]}")
            return cls(kind, raw)

        if not isinstance(raw, str):
            raise CorruptStateError(key, f"expected a string {kind.value}, got {raw!r}")
        if kind is EntryKind.SENTINEL and raw != ONCE_SENTINEL:
            raise CorruptStateError(key, f"unexpected run-once marker {raw!r}")
        return cls(kind, raw)

    def encode(self) -> StoredValue:
        """Return the untyped value handed to the store."""
        return self.value
