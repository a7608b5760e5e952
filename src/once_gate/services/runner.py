"""Public entry points of the once gate.

`OnceRunner` ties the pieces together: debug overrides are checked first,
then the key is namespaced (migrating legacy entries), the policy is
evaluated against the stored entry, the new entry is committed and exactly
one of the caller's actions runs.

Read, decide and write are not atomic. Two concurrent calls on the same
key may both observe "due" and both fire; callers needing exclusivity
across tasks or processes must coordinate themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from once_gate.core.constants import DAY, HOUR, KEY_PREFIX, WEEK
from once_gate.core.policy import (
    DailyOnWeekdayChange,
    Interval,
    Monthly,
    OnBuildChange,
    OnSpecificMonth,
    OnVersionChange,
    Policy,
    RunOnce,
    policy_from_duration,
)
from once_gate.core.settings import settings
from once_gate.core.time import Clock, SystemClock
from once_gate.services.app_info import AppInfoProvider, get_app_info
from once_gate.services.dispatcher import Action, dispatch
from once_gate.services.evaluator import PolicyEvaluator
from once_gate.services.keys import namespaced, normalize_key
from once_gate.services.store import PreferenceStore, get_store

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = ["OnceRunner", "get_runner"]


def _settings_debug() -> bool:
    return settings.debug


class OnceRunner:
    """Gate actions behind persisted run-at-most-on-a-schedule policies."""

    def __init__(
        self,
        store: PreferenceStore,
        app_info: AppInfoProvider | None = None,
        clock: Clock | None = None,
        debug_flag: Callable[[], bool] = _settings_debug,
    ) -> None:
        self.store = store
        self.app_info = app_info
        self.clock = clock or SystemClock()
        self.debug_flag = debug_flag
        self.evaluator = PolicyEvaluator(store)

    def _app_info(self) -> AppInfoProvider:
        if self.app_info is None:
            self.app_info = get_app_info()
        return self.app_info

    async def run(
        self,
        key: str,
        policy: Policy | int,
        callback: Action[T],
        fallback: Action[T] | None = None,
        *,
        debug_callback: bool = False,
        debug_fallback: bool = False,
    ) -> T | None:
        """Run `callback` if `policy` is due for `key`, else `fallback`.

        Args:
            key: Caller-chosen unique key for this gate.
            policy: A policy instance or a legacy integer duration code.
            callback: Primary action.
            fallback: Action run when the policy is not due.
            debug_callback: In debug mode, always run `callback`.
            debug_fallback: In debug mode, always run `fallback`.

        Returns:
            The result of whichever action ran, or None.
        """
        if isinstance(policy, int):
            policy = policy_from_duration(policy)
        if isinstance(policy, (OnVersionChange, OnBuildChange)):
            raise TypeError("Use run_on_new_version / run_on_new_build for version policies")

        async def decide() -> bool:
            storage_key = await normalize_key(self.store, key)
            evaluation = await self.evaluator.evaluate(storage_key, policy, self.clock.moment())
            await self.evaluator.commit(storage_key, evaluation)
            return evaluation.due

        return await dispatch(
            callback,
            fallback,
            decide,
            debug_callback=debug_callback,
            debug_fallback=debug_fallback,
            debug_mode=self.debug_flag(),
        )

    async def _run_on_change(
        self,
        policy: OnVersionChange | OnBuildChange,
        key: str,
        callback: Action[T],
        fallback: Action[T] | None,
        debug_callback: bool,
        debug_fallback: bool,
    ) -> T | None:
        async def decide() -> bool:
            storage_key = namespaced(policy.prefix, key)
            app_info = self._app_info()
            if isinstance(policy, OnVersionChange):
                current = await app_info.version()
            else:
                current = await app_info.build_number()
            evaluation = await self.evaluator.evaluate(
                storage_key, policy, self.clock.moment(), current
            )
            await self.evaluator.commit(storage_key, evaluation)
            return evaluation.due

        return await dispatch(
            callback,
            fallback,
            decide,
            debug_callback=debug_callback,
            debug_fallback=debug_fallback,
            debug_mode=self.debug_flag(),
        )

    async def run_on_new_version(
        self,
        callback: Action[T],
        fallback: Action[T] | None = None,
        *,
        key: str | None = None,
        debug_callback: bool = False,
        debug_fallback: bool = False,
    ) -> T | None:
        """Run `callback` when the app version increased since the last call.

        The first call for a key only records the version and runs `fallback`.
        Use distinct keys to gate several places independently.
        """
        return await self._run_on_change(
            OnVersionChange(),
            settings.default_version_key if key is None else key,
            callback,
            fallback,
            debug_callback,
            debug_fallback,
        )

    async def run_on_new_build(
        self,
        callback: Action[T],
        fallback: Action[T] | None = None,
        *,
        key: str | None = None,
        debug_callback: bool = False,
        debug_fallback: bool = False,
    ) -> T | None:
        """Run `callback` when the app build number increased since the last call."""
        return await self._run_on_change(
            OnBuildChange(),
            settings.default_build_key if key is None else key,
            callback,
            fallback,
            debug_callback,
            debug_fallback,
        )

    async def clear(self, key: str) -> None:
        """Forget the state stored for `key`."""
        await self.store.remove(namespaced(KEY_PREFIX, key))
        logger.info("Cleared once state for %s", key)

    async def clear_all(self) -> None:
        """Forget every time/count entry. Version and build entries are kept."""
        removed = 0
        for storage_key in await self.store.get_keys():
            if KEY_PREFIX in storage_key:
                await self.store.remove(storage_key)
                removed += 1
        logger.info("Cleared %d once entries", removed)

    # --- Named schedules ------------------------------------------------------------
    async def run_once(
        self, key: str, callback: Action[T], fallback: Action[T] | None = None, **debug: bool
    ) -> T | None:
        return await self.run(key, RunOnce(), callback, fallback, **debug)

    async def run_monthly(
        self, key: str, callback: Action[T], fallback: Action[T] | None = None, **debug: bool
    ) -> T | None:
        return await self.run(key, Monthly(), callback, fallback, **debug)

    async def run_on_every_new_day(
        self, key: str, callback: Action[T], fallback: Action[T] | None = None, **debug: bool
    ) -> T | None:
        return await self.run(key, DailyOnWeekdayChange(), callback, fallback, **debug)

    async def run_on_month(
        self,
        key: str,
        month: int,
        callback: Action[T],
        fallback: Action[T] | None = None,
        **debug: bool,
    ) -> T | None:
        return await self.run(key, OnSpecificMonth(month), callback, fallback, **debug)

    async def run_custom(
        self,
        key: str,
        duration_ms: int,
        callback: Action[T],
        fallback: Action[T] | None = None,
        **debug: bool,
    ) -> T | None:
        return await self.run(key, Interval(duration_ms), callback, fallback, **debug)

    async def run_hourly(
        self, key: str, callback: Action[T], fallback: Action[T] | None = None, **debug: bool
    ) -> T | None:
        return await self.run_custom(key, HOUR, callback, fallback, **debug)

    async def run_every_12_hours(
        self, key: str, callback: Action[T], fallback: Action[T] | None = None, **debug: bool
    ) -> T | None:
        return await self.run_custom(key, 12 * HOUR, callback, fallback, **debug)

    async def run_daily(
        self, key: str, callback: Action[T], fallback: Action[T] | None = None, **debug: bool
    ) -> T | None:
        return await self.run_custom(key, DAY, callback, fallback, **debug)

    async def run_weekly(
        self, key: str, callback: Action[T], fallback: Action[T] | None = None, **debug: bool
    ) -> T | None:
        return await self.run_custom(key, WEEK, callback, fallback, **debug)


def get_runner() -> OnceRunner:
    """Return a runner wired to the configured store and app info provider."""
    return OnceRunner(get_store(), get_app_info(), SystemClock())
