"""Exception hierarchy for the once gate."""


class OnceError(Exception):
    """Base class for all errors raised by the gate."""


class CorruptStateError(OnceError, ValueError):
    """A persisted value cannot be read as the type its policy expects."""

    def __init__(self, key: str | None, message: str) -> None:
        self.key = key
        prefix = f"{key}: " if key else ""
        super().__init__(f"{prefix}{message}")


class VersionFormatError(OnceError, ValueError):
    """The running application's version or build string has no digits."""


class MissingDependencyError(OnceError, RuntimeError):
    """A store backend or metadata provider is not available."""
