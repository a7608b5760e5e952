"""Chooses and invokes at most one of the caller's actions."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Action = Callable[[], T | Awaitable[T]]

__all__ = ["Action", "dispatch", "invoke"]


async def invoke(action: Action[T] | None) -> T | None:
    """Call `action`, awaiting its result when it returns an awaitable."""
    if action is None:
        return None
    result = action()
    if inspect.isawaitable(result):
        return await result
    return result


async def dispatch(
    callback: Action[T],
    fallback: Action[T] | None,
    decide: Callable[[], Awaitable[bool]],
    *,
    debug_callback: bool = False,
    debug_fallback: bool = False,
    debug_mode: bool = False,
) -> T | None:
    """Run the callback or the fallback.

    Debug overrides win when `debug_mode` is set; `decide` is then never
    awaited, so no state is read or written. Otherwise `decide` picks the
    callback (True) or the fallback (False). A missing fallback yields None.
    """
    if debug_mode and debug_callback:
        logger.debug("Debug override: running callback without checking state")
        return await invoke(callback)
    if debug_mode and debug_fallback:
        logger.debug("Debug override: running fallback without checking state")
        return await invoke(fallback)

    if await decide():
        return await invoke(callback)
    return await invoke(fallback)
