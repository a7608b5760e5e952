# tests/test_store.py
"""Tests for the preference store backends."""

from unittest.mock import MagicMock

import pytest
import redis

from once_gate.core.errors import CorruptStateError, MissingDependencyError
from once_gate.models import Preference
from once_gate.services.store import (
    InMemoryPreferenceStore,
    RedisPreferenceStore,
    SqlPreferenceStore,
    get_store,
)


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_typed_getters(self, memory_store) -> None:
        await memory_store.set_int("n", 5)
        await memory_store.set_string("s", "once")

        assert await memory_store.get_int("n") == 5
        assert await memory_store.get_string("s") == "once"
        assert await memory_store.get_int("missing") is None
        assert await memory_store.contains_key("n")
        assert not await memory_store.contains_key("missing")

    @pytest.mark.asyncio
    async def test_typed_getters_reject_wrong_type(self, memory_store) -> None:
        await memory_store.set_string("s", "once")
        await memory_store.set_int("n", 5)

        with pytest.raises(CorruptStateError, match="expected an integer"):
            await memory_store.get_int("s")
        with pytest.raises(CorruptStateError, match="expected a string"):
            await memory_store.get_string("n")

    @pytest.mark.asyncio
    async def test_remove_and_keys(self, memory_store) -> None:
        await memory_store.set_int("a", 1)
        await memory_store.set_int("b", 2)
        await memory_store.remove("a")
        await memory_store.remove("never-there")
        assert await memory_store.get_keys() == {"b"}


class TestSqlStore:
    @pytest.mark.asyncio
    async def test_round_trip_keeps_types(self, sql_store) -> None:
        await sql_store.set_int("ONCE_PACKAGE_ts", 1_792_312_215_123)
        await sql_store.set_string("ONCE_PACKAGE_once", "once")

        assert await sql_store.get("ONCE_PACKAGE_ts") == 1_792_312_215_123
        assert await sql_store.get("ONCE_PACKAGE_once") == "once"
        assert await sql_store.get("missing") is None

    @pytest.mark.asyncio
    async def test_overwrite_switches_type(self, sql_store, session_factory) -> None:
        await sql_store.set_int("k", 3)
        await sql_store.set_string("k", "1.0.0")

        assert await sql_store.get("k") == "1.0.0"
        with session_factory() as session:
            row = session.get(Preference, "k")
            assert row.int_value is None
            assert row.str_value == "1.0.0"

    @pytest.mark.asyncio
    async def test_remove_and_keys(self, sql_store) -> None:
        await sql_store.set_int("a", 1)
        await sql_store.set_int("b", 2)
        await sql_store.remove("a")
        await sql_store.remove("never-there")
        assert await sql_store.get_keys() == {"b"}

    @pytest.mark.asyncio
    async def test_missing_table_is_a_dependency_error(self) -> None:
        store = SqlPreferenceStore.from_url("sqlite://")
        with pytest.raises(MissingDependencyError):
            await store.get("k")

    @pytest.mark.asyncio
    async def test_from_url_creates_table(self, tmp_path) -> None:
        url = f"sqlite:///{tmp_path / 'once.db'}"
        store = SqlPreferenceStore.from_url(url, create=True)
        await store.set_string("ONCE_PACKAGE_a", "once")

        reopened = SqlPreferenceStore.from_url(url)
        assert await reopened.get_string("ONCE_PACKAGE_a") == "once"

    def test_drop_tables(self, tmp_path) -> None:
        from sqlalchemy import inspect

        from once_gate.db.session import create_tables, drop_tables, make_engine

        engine = make_engine(f"sqlite:///{tmp_path / 'schema.db'}")
        create_tables(engine)
        assert inspect(engine).has_table("once_preference")
        drop_tables(engine)
        assert not inspect(engine).has_table("once_preference")
        engine.dispose()


class TestRedisStore:
    @pytest.mark.asyncio
    async def test_values_are_type_tagged(self) -> None:
        client = MagicMock()
        store = RedisPreferenceStore(client, hash_key="prefs")

        await store.set_int("a", 5)
        client.hset.assert_called_with("prefs", "a", "i:5")
        await store.set_string("b", "once")
        client.hset.assert_called_with("prefs", "b", "s:once")

        client.hget.return_value = "i:5"
        assert await store.get("a") == 5
        client.hget.return_value = b"s:once"
        assert await store.get("b") == "once"
        client.hget.return_value = None
        assert await store.get("c") is None

    @pytest.mark.asyncio
    async def test_untagged_value_is_corrupt(self) -> None:
        client = MagicMock()
        client.hget.return_value = "5"
        with pytest.raises(CorruptStateError):
            await RedisPreferenceStore(client, hash_key="prefs").get("a")

    @pytest.mark.asyncio
    async def test_keys_and_remove(self) -> None:
        client = MagicMock()
        client.hkeys.return_value = [b"ONCE_PACKAGE_a", "ON_NEW_BUILD_build_key"]
        client.hexists.return_value = 1
        store = RedisPreferenceStore(client, hash_key="prefs")

        assert await store.get_keys() == {"ONCE_PACKAGE_a", "ON_NEW_BUILD_build_key"}
        assert await store.contains_key("ONCE_PACKAGE_a") is True
        await store.remove("ONCE_PACKAGE_a")
        client.hdel.assert_called_once_with("prefs", "ONCE_PACKAGE_a")

    @pytest.mark.asyncio
    async def test_connection_failure_surfaces(self) -> None:
        client = MagicMock()
        client.hget.side_effect = redis.ConnectionError("connection refused")
        with pytest.raises(MissingDependencyError, match="hget"):
            await RedisPreferenceStore(client, hash_key="prefs").get("a")


def test_get_store_backends() -> None:
    assert isinstance(get_store("memory"), InMemoryPreferenceStore)
    assert isinstance(get_store("sql"), SqlPreferenceStore)
    with pytest.raises(ValueError, match="Unknown store backend"):
        get_store("etcd")


@pytest.mark.asyncio
async def test_get_store_creates_table_on_fresh_database(tmp_path) -> None:
    from unittest.mock import patch

    from once_gate.core.settings import settings

    with patch.object(settings, "database_url", f"sqlite:///{tmp_path / 'fresh.db'}"):
        store = get_store("sql")

    await store.set_string("ONCE_PACKAGE_welcome", "once")
    assert await store.get_keys() == {"ONCE_PACKAGE_welcome"}


@pytest.mark.asyncio
async def test_in_memory_sql_store_is_shared_across_worker_threads() -> None:
    store = SqlPreferenceStore.from_url("sqlite://", create=True)
    await store.set_int("ONCE_PACKAGE_poll", 5)
    assert await store.get_int("ONCE_PACKAGE_poll") == 5
