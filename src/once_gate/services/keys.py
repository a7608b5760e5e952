"""Storage key namespacing and legacy key migration.

Older installs stored time/count entries under the caller's raw key. New
entries live under ``ONCE_PACKAGE_<key>``; a legacy entry is moved to its
namespaced key the first time the key is evaluated.
"""

from __future__ import annotations

import logging

from once_gate.core.constants import KEY_PREFIX, ONCE_SENTINEL
from once_gate.core.entry import StoredValue
from once_gate.core.errors import CorruptStateError
from once_gate.services.store import PreferenceStore

logger = logging.getLogger(__name__)

__all__ = ["migrate_legacy_value", "namespaced", "normalize_key"]


def namespaced(prefix: str, key: str) -> str:
    """Return the storage key for `key` in the `prefix` namespace."""
    return f"{prefix}{key}"


def migrate_legacy_value(raw_key: str, legacy_value: object) -> tuple[str, StoredValue]:
    """Map a legacy unprefixed entry to its namespaced key and value.

    The run-once sentinel stays a string; anything else must be an integer
    (or a string holding one) and is returned as an int.

    Raises:
        CorruptStateError: If the value is neither the sentinel nor an integer.
    """
    new_key = namespaced(KEY_PREFIX, raw_key)
    if legacy_value == ONCE_SENTINEL:
        return new_key, ONCE_SENTINEL
    if isinstance(legacy_value, bool):
        raise CorruptStateError(raw_key, f"cannot migrate legacy value {legacy_value!r}")
    if isinstance(legacy_value, int):
        return new_key, legacy_value
    if isinstance(legacy_value, str):
        try:
            return new_key, int(legacy_value.strip())
        except ValueError as exc:
            raise CorruptStateError(
                raw_key, f"cannot migrate legacy value {legacy_value!r}"
            ) from exc
    raise CorruptStateError(raw_key, f"cannot migrate legacy value {legacy_value!r}")


async def normalize_key(store: PreferenceStore, raw_key: str) -> str:
    """Resolve `raw_key` to its storage key, migrating a legacy entry if needed."""
    if not await store.contains_key(raw_key):
        return namespaced(KEY_PREFIX, raw_key)
    if KEY_PREFIX in raw_key:
        return raw_key

    storage_key = namespaced(KEY_PREFIX, raw_key)
    if await store.contains_key(storage_key):
        return storage_key

    _, value = migrate_legacy_value(raw_key, await store.get(raw_key))
    if isinstance(value, str):
        await store.set_string(storage_key, value)
    else:
        await store.set_int(storage_key, value)
    await store.remove(raw_key)
    logger.info("Migrated legacy key %s to %s", raw_key, storage_key)
    return storage_key
