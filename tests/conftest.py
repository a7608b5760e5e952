# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from datetime import UTC, datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")

from once_gate.core.time import FixedClock
from once_gate.db.session import Base, make_session_factory
from once_gate.services.app_info import StaticAppInfo
from once_gate.services.runner import OnceRunner
from once_gate.services.store import InMemoryPreferenceStore, SqlPreferenceStore

TEST_DB_URL = "sqlite://"

# Saturday 2026-01-10 12:00 UTC
START = datetime(2026, 1, 10, 12, 0, tzinfo=UTC)


class Recorder:
    """Callback/fallback pair that remembers which one ran."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def callback(self) -> str:
        self.calls.append("callback")
        return "callback"

    def fallback(self) -> str:
        self.calls.append("fallback")
        return "fallback"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    factory = make_session_factory(engine)
    try:
        yield factory
    finally:
        # Ensure each test sees a clean database.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def sql_store(session_factory: sessionmaker[Session]) -> SqlPreferenceStore:
    return SqlPreferenceStore(session_factory)


@pytest.fixture()
def memory_store() -> InMemoryPreferenceStore:
    return InMemoryPreferenceStore()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(START)


@pytest.fixture()
def app_info() -> StaticAppInfo:
    return StaticAppInfo("1.2.0", "10")


@pytest.fixture()
def runner(
    memory_store: InMemoryPreferenceStore, app_info: StaticAppInfo, clock: FixedClock
) -> OnceRunner:
    """Runner over an in-memory store with debug mode off."""
    return OnceRunner(memory_store, app_info, clock, debug_flag=lambda: False)


@pytest.fixture()
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture()
def debug_runner(
    memory_store: InMemoryPreferenceStore, app_info: StaticAppInfo, clock: FixedClock
) -> OnceRunner:
    return OnceRunner(memory_store, app_info, clock, debug_flag=lambda: True)
