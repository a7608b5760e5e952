"""Durations and on-disk key constants."""

from typing import Final

MILLISECONDS_PER_SECOND: Final[int] = 1000
SECOND: Final[int] = MILLISECONDS_PER_SECOND
MINUTE: Final[int] = 60 * SECOND
HOUR: Final[int] = 60 * MINUTE
DAY: Final[int] = 24 * HOUR
WEEK: Final[int] = 7 * DAY

# Persisted key namespaces. These strings are part of the storage format.
KEY_PREFIX: Final[str] = "ONCE_PACKAGE_"
VERSION_PREFIX: Final[str] = "ON_NEW_VERSION_"
BUILD_PREFIX: Final[str] = "ON_NEW_BUILD_"

# Stored under a RunOnce key after the callback has fired.
ONCE_SENTINEL: Final[str] = "once"

# Legacy integer duration codes.
RUN_ONCE_CODE: Final[int] = -2
MONTHLY_CODE: Final[int] = -1
NEW_DAY_CODE: Final[int] = -3
