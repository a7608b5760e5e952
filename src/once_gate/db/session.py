"""Engine and session factory for the SQL preference store."""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from once_gate.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import once_gate.models  # noqa: E402,F401


def make_engine(url: str | None = None, *, echo: bool | None = None) -> Engine:
    """Create an engine for `url` (default: the configured database)."""
    url = url or settings.effective_database_url
    options: dict[str, Any] = {}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        # In-memory databases live on one connection shared by every thread.
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
    return create_engine(
        url,
        pool_pre_ping=True,
        echo=settings.sql_debug if echo is None else echo,
        **options,
    )


def make_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)


engine = make_engine()
SessionLocal = make_session_factory(engine)


def create_tables(bind: Engine | None = None) -> None:
    """Create the gate's tables if they do not exist."""
    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind: Engine | None = None) -> None:
    """Drop the gate's tables."""
    Base.metadata.drop_all(bind=bind or engine)
