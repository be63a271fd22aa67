"""
Error taxonomy for the credential lifecycle engine.

Every failure surfaced by the plugin is a ``PluginError`` with a
human-readable message. Driver errors are chained as ``__cause__``.
"""


class PluginError(Exception):
    """Base class for all plugin errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigError(PluginError, ValueError):
    """Malformed or missing connection / template configuration."""


class NotInitializedError(PluginError):
    """Operation attempted before initialize (or after close)."""


class ConnectivityError(PluginError):
    """Opening or pinging the administrative connection failed."""


class CreationError(PluginError):
    """new_user called without creation statements."""


class NoChangesError(PluginError):
    """update_user called with neither a password nor an expiration change."""


class ExecutionError(PluginError):
    """A statement fragment failed; carries the fragment for diagnostics."""

    def __init__(self, fragment: str, cause: BaseException | None = None) -> None:
        self.fragment = fragment
        self.cause = cause
        message = f"failed to execute statement {fragment!r}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class RevocationError(PluginError):
    """delete_user could not drop the user."""
