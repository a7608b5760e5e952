"""Providers of the running application's version and build number."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from importlib import metadata

from once_gate.core.errors import MissingDependencyError
from once_gate.core.settings import settings

logger = logging.getLogger(__name__)

__all__ = ["AppInfoProvider", "DistributionAppInfo", "StaticAppInfo", "get_app_info"]


class AppInfoProvider(ABC):
    """Supplies the semantic version and build number of the host app."""

    @abstractmethod
    async def version(self) -> str:
        """Return the current version string, e.g. ``"1.2.0"``."""

    @abstractmethod
    async def build_number(self) -> str:
        """Return the current build number string, e.g. ``"42"``."""


class StaticAppInfo(AppInfoProvider):
    """Fixed version and build values."""

    def __init__(self, version: str, build_number: str) -> None:
        self._version = version
        self._build_number = build_number

    @classmethod
    def from_settings(cls) -> StaticAppInfo:
        return cls(settings.app_version, settings.build_number)

    async def version(self) -> str:
        return self._version

    async def build_number(self) -> str:
        return self._build_number


class DistributionAppInfo(AppInfoProvider):
    """Reads the version of an installed distribution.

    The build number is the local version segment (``1.4.0+52`` -> ``52``);
    when the version carries none, `fallback_build` is used.
    """

    def __init__(self, distribution: str, fallback_build: str | None = None) -> None:
        self.distribution = distribution
        if fallback_build is None:
            fallback_build = settings.build_number
        self.fallback_build = fallback_build

    def _raw_version(self) -> str:
        try:
            return metadata.version(self.distribution)
        except metadata.PackageNotFoundError as exc:
            raise MissingDependencyError(
                f"Distribution {self.distribution!r} is not installed"
            ) from exc

    async def version(self) -> str:
        return self._raw_version().split("+", 1)[0]

    async def build_number(self) -> str:
        _, sep, local = self._raw_version().partition("+")
        return local if sep and local else self.fallback_build


def get_app_info() -> AppInfoProvider:
    """Return the provider configured in settings."""
    if settings.app_distribution:
        logger.debug("Reading app version from distribution %s", settings.app_distribution)
        return DistributionAppInfo(settings.app_distribution)
    return StaticAppInfo.from_settings()
