# tests/test_app_info.py
"""Tests for app metadata providers and settings."""

from importlib import metadata
from unittest.mock import patch

import pytest

from once_gate.core.errors import MissingDependencyError
from once_gate.core.settings import Settings, settings
from once_gate.services.app_info import DistributionAppInfo, StaticAppInfo, get_app_info


@pytest.mark.asyncio
async def test_static_app_info() -> None:
    info = StaticAppInfo("2.0.1", "77")
    assert await info.version() == "2.0.1"
    assert await info.build_number() == "77"


@pytest.mark.asyncio
async def test_static_app_info_from_settings() -> None:
    with patch.object(settings, "app_version", "3.1.0"), patch.object(settings, "build_number", "9"):
        info = StaticAppInfo.from_settings()
    assert await info.version() == "3.1.0"
    assert await info.build_number() == "9"


@pytest.mark.asyncio
async def test_distribution_version_and_local_build() -> None:
    with patch("once_gate.services.app_info.metadata.version", return_value="1.4.0+52"):
        info = DistributionAppInfo("host-app")
        assert await info.version() == "1.4.0"
        assert await info.build_number() == "52"


@pytest.mark.asyncio
async def test_distribution_without_local_segment_uses_fallback() -> None:
    with patch("once_gate.services.app_info.metadata.version", return_value="1.4.0"):
        info = DistributionAppInfo("host-app", fallback_build="8")
        assert await info.build_number() == "8"


@pytest.mark.asyncio
async def test_missing_distribution() -> None:
    with patch(
        "once_gate.services.app_info.metadata.version",
        side_effect=metadata.PackageNotFoundError("host-app"),
    ):
        with pytest.raises(MissingDependencyError, match="host-app"):
            await DistributionAppInfo("host-app").version()


def test_get_app_info_prefers_distribution() -> None:
    with patch.object(settings, "app_distribution", "host-app"):
        assert isinstance(get_app_info(), DistributionAppInfo)
    with patch.object(settings, "app_distribution", None):
        assert isinstance(get_app_info(), StaticAppInfo)


class TestSettings:
    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DEBUG", "true")
        monkeypatch.setenv("ONCE_STORE_BACKEND", "memory")
        monkeypatch.setenv("APP_VERSION", "5.0.0")

        configured = Settings(_env_file=None)

        assert configured.debug is True
        assert configured.store_backend == "memory"
        assert configured.app_version == "5.0.0"

    def test_testing_database_override(self) -> None:
        configured = Settings(
            _env_file=None,
            database_url="postgresql+asyncpg://db/once",
            test_database_url="sqlite://",
            use_testing_database=True,
        )
        assert configured.effective_database_url == "sqlite://"

    def test_sync_url_conversion(self) -> None:
        configured = Settings(_env_file=None, database_url="postgresql+asyncpg://db/once")
        assert configured.database_url_sync == "postgresql+psycopg://db/once"

    def test_unknown_backend_rejected(self) -> None:
        with pytest.raises(ValueError):
            Settings(_env_file=None, store_backend="etcd")

    def test_only_version_and_build_describe_the_app(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_NAME", "ignored")
        configured = Settings(_env_file=None)
        assert "app_name" not in Settings.model_fields
        assert not hasattr(configured, "app_name")
