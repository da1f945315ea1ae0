"""Exception hierarchy for jumpbridge.

Every failure that should end a session derives from ``BridgeError``. The CLI
prints the message and the optional ``hint`` and exits with status 1.
"""

from __future__ import annotations

from collections.abc import Sequence


class BridgeError(Exception):
    """Base exception for fatal session errors."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(BridgeError):
    """Raised for invalid options or configuration values."""


class ToolingError(BridgeError):
    """Raised when a required tool or host resource is unavailable."""


class CommandError(ToolingError):
    """Raised when a required external command exits non-zero."""

    def __init__(
        self,
        args: Sequence[str],
        returncode: int,
        hint: str | None = None,
    ) -> None:
        self.command = list(args)
        self.returncode = returncode
        super().__init__(
            f"Command failed ({' '.join(self.command)}), exit code {returncode}",
            hint,
        )


class PortUnavailableError(BridgeError):
    """Raised when a requested port is busy or a port range is exhausted."""

    def __init__(
        self,
        message: str,
        port: int | None = None,
        scope: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint)
        self.port = port
        self.scope = scope


class DeviceError(BridgeError):
    """Raised when no USB device is ready for tunnelling."""


class DeviceAuthorizationError(DeviceError):
    """Raised when an attached device has not authorized USB debugging."""


class ServiceNotRunningError(BridgeError):
    """Raised when the bridge service is not reported running."""


class IntegrityError(BridgeError):
    """Raised when the router compatibility patch is not in effect."""


class RouterFileMissingError(IntegrityError):
    """Raised when the router file does not exist inside the service."""
