# src/once_gate/services/__init__.py
"""Services making up the once gate."""

from .app_info import AppInfoProvider, DistributionAppInfo, StaticAppInfo
from .runner import OnceRunner
from .store import (
    InMemoryPreferenceStore,
    PreferenceStore,
    RedisPreferenceStore,
    SqlPreferenceStore,
)

__all__ = [
    "AppInfoProvider",
    "DistributionAppInfo",
    "StaticAppInfo",
    "OnceRunner",
    "InMemoryPreferenceStore",
    "PreferenceStore",
    "RedisPreferenceStore",
    "SqlPreferenceStore",
]
