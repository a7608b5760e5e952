"""Persistent key-value stores holding gate entries.

Every backend exposes the same small typed key-value surface used by the
runner. Values are either integers or strings; which one a key holds is
decided by the policy that owns it.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Final, cast

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

try:  # pragma: no cover - optional dependency
    import redis
except Exception:  # pragma: no cover
    redis = cast("Any", None)

from once_gate.core.entry import StoredValue
from once_gate.core.errors import CorruptStateError, MissingDependencyError
from once_gate.core.settings import settings
from once_gate.models import Preference

logger = logging.getLogger(__name__)

__all__ = [
    "InMemoryPreferenceStore",
    "PreferenceStore",
    "RedisPreferenceStore",
    "SqlPreferenceStore",
    "get_store",
]


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class PreferenceStore(ABC):
    """Abstract typed key-value store scoped to one application install."""

    @abstractmethod
    async def get(self, key: str) -> StoredValue | None:
        """Return the raw stored value, or None if absent."""

    @abstractmethod
    async def set_int(self, key: str, value: int) -> None:
        """Store an integer under `key`, replacing any previous value."""

    @abstractmethod
    async def set_string(self, key: str, value: str) -> None:
        """Store a string under `key`, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete `key`. No-op if it does not exist."""

    @abstractmethod
    async def get_keys(self) -> set[str]:
        """Return every key currently stored."""

    async def contains_key(self, key: str) -> bool:
        return await self.get(key) is not None

    async def get_int(self, key: str) -> int | None:
        """Return the integer under `key`.

        Raises:
            CorruptStateError: If the key holds a non-integer value.
        """
        value = await self.get(key)
        if value is None or _is_int(value):
            return value
        raise CorruptStateError(key, f"expected an integer, got {value!r}")

    async def get_string(self, key: str) -> str | None:
        """Return the string under `key`.

        Raises:
            CorruptStateError: If the key holds a non-string value.
        """
        value = await self.get(key)
        if value is None or isinstance(value, str):
            return value
        raise CorruptStateError(key, f"expected a string, got {value!r}")


class InMemoryPreferenceStore(PreferenceStore):
    """Process-local store, mostly useful for tests."""

    def __init__(self, initial: dict[str, StoredValue] | None = None) -> None:
        self._data: dict[str, StoredValue] = dict(initial or {})

    async def get(self, key: str) -> StoredValue | None:
        return self._data.get(key)

    async def set_int(self, key: str, value: int) -> None:
        self._data[key] = int(value)

    async def set_string(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def get_keys(self) -> set[str]:
        return set(self._data)

    def snapshot(self) -> dict[str, StoredValue]:
        """Return a copy of the stored data."""
        return dict(self._data)


class SqlPreferenceStore(PreferenceStore):
    """Store backed by the `once_preference` table.

    Blocking database calls run in a worker thread via `asyncio.to_thread`.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        if session_factory is None:
            from once_gate.db.session import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, url: str, *, create: bool = False) -> SqlPreferenceStore:
        """Build a store on its own engine, optionally creating the table."""
        from once_gate.db.session import create_tables, make_engine, make_session_factory

        bound = make_engine(url)
        if create:
            create_tables(bound)
        return cls(make_session_factory(bound))

    def _read(self, key: str) -> StoredValue | None:
        with self._session_factory() as session:
            try:
                row = session.get(Preference, key)
            except SQLAlchemyError as exc:
                raise MissingDependencyError(f"Failed to read {key!r}: {exc}") from exc
            return None if row is None else row.value

    def _write(self, key: str, *, int_value: int | None, str_value: str | None) -> None:
        with self._session_factory() as session:
            try:
                session.merge(Preference(key=key, int_value=int_value, str_value=str_value))
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise MissingDependencyError(f"Failed to write {key!r}: {exc}") from exc

    def _delete(self, key: str) -> None:
        with self._session_factory() as session:
            try:
                row = session.get(Preference, key)
                if row is not None:
                    session.delete(row)
                    session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise MissingDependencyError(f"Failed to remove {key!r}: {exc}") from exc

    def _keys(self) -> set[str]:
        with self._session_factory() as session:
            try:
                return set(session.scalars(select(Preference.key)))
            except SQLAlchemyError as exc:
                raise MissingDependencyError(f"Failed to list keys: {exc}") from exc

    async def get(self, key: str) -> StoredValue | None:
        return await asyncio.to_thread(self._read, key)

    async def set_int(self, key: str, value: int) -> None:
        await asyncio.to_thread(self._write, key, int_value=int(value), str_value=None)

    async def set_string(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, int_value=None, str_value=str(value))

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    async def get_keys(self) -> set[str]:
        return await asyncio.to_thread(self._keys)


_INT_TAG: Final[str] = "i:"
_STR_TAG: Final[str] = "s:"
_REDIS_ERRORS: tuple[type[Exception], ...] = (ConnectionError, OSError)
if redis is not None:
    _REDIS_ERRORS += (redis.RedisError,)


class RedisPreferenceStore(PreferenceStore):
    """Store backed by a single Redis hash.

    Field values carry a type tag so integers and strings survive the trip
    through Redis, which only stores strings. Client calls run in a worker
    thread.
    """

    def __init__(self, client: Any | None = None, hash_key: str | None = None) -> None:
        if client is None:
            if redis is None:
                raise MissingDependencyError("The redis package is not installed")
            client = redis.from_url(settings.redis_url, decode_responses=True)
        self._redis = client
        self._hash_key = hash_key or settings.redis_hash_key

    def _call(self, method: str, *args: Any) -> Any:
        try:
            return getattr(self._redis, method)(self._hash_key, *args)
        except _REDIS_ERRORS as exc:
            raise MissingDependencyError(f"Redis {method} failed: {exc}") from exc

    @staticmethod
    def _decode(key: str, raw: Any) -> StoredValue:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            if raw.startswith(_STR_TAG):
                return raw[len(_STR_TAG):]
            if raw.startswith(_INT_TAG):
                try:
                    return int(raw[len(_INT_TAG):])
                except ValueError:
                    pass
        raise CorruptStateError(key, f"unreadable redis value {raw!r}")

    async def get(self, key: str) -> StoredValue | None:
        raw = await asyncio.to_thread(self._call, "hget", key)
        return None if raw is None else self._decode(key, raw)

    async def contains_key(self, key: str) -> bool:
        return bool(await asyncio.to_thread(self._call, "hexists", key))

    async def set_int(self, key: str, value: int) -> None:
        await asyncio.to_thread(self._call, "hset", key, f"{_INT_TAG}{int(value)}")

    async def set_string(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._call, "hset", key, f"{_STR_TAG}{value}")

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._call, "hdel", key)

    async def get_keys(self) -> set[str]:
        fields = await asyncio.to_thread(self._call, "hkeys")
        return {field.decode("utf-8") if isinstance(field, bytes) else field for field in fields}


def get_store(backend: str | None = None) -> PreferenceStore:
    """Return a store for the configured (or given) backend.

    The SQL backend binds to `settings.effective_database_url` and creates the
    `once_preference` table when it is missing.
    """
    backend = backend or settings.store_backend
    logger.debug("Creating %s preference store", backend)
    if backend == "memory":
        return InMemoryPreferenceStore()
    if backend == "sql":
        return SqlPreferenceStore.from_url(settings.effective_database_url, create=True)
    if backend == "redis":
        return RedisPreferenceStore()
    raise ValueError(f"Unknown store backend: {backend!r}")
