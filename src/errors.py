"""Error taxonomy for the runtime manager.

Library modules raise these; only the CLI entrypoint turns them into a
message and a process exit code.
"""

from __future__ import annotations

from typing import Optional

from constants import ExitCodes


class AmbientError(Exception):
    """Base class for all categorized failures."""

    category = "error"
    exit_code = ExitCodes.FILE_ERROR

    def __init__(self, message: str, *, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint

    def describe(self) -> str:
        """Human-readable one-liner (plus hint) for the top-level handler."""
        text = f"{self.category}: {self.message}"
        if self.hint:
            text += f"\n  hint: {self.hint}"
        return text


class NetworkError(AmbientError):
    """Catalog or download unreachable, bad HTTP status, or malformed document."""

    category = "network error"
    exit_code = ExitCodes.CONNECTION_ERROR

    def __init__(self, message: str, *, url: Optional[str] = None,
                 status_code: Optional[int] = None, hint: Optional[str] = None):
        super().__init__(message, hint=hint)
        self.url = url
        self.status_code = status_code


class ResolutionError(AmbientError):
    """No version satisfies the requirement."""

    category = "resolution error"
    exit_code = ExitCodes.RESOLUTION_ERROR


class NoVersionsAvailable(ResolutionError):
    """Neither the catalog nor the install root knows any version."""


class NoMatchingVersion(ResolutionError):
    """Versions exist, but none satisfies the requirement."""


class UnsupportedPlatformError(AmbientError):
    """No binary is published for this OS/architecture."""

    category = "unsupported platform"
    exit_code = ExitCodes.UNSUPPORTED_PLATFORM


class IntegrityError(AmbientError):
    """Downloaded archive failed size/checksum verification or is unusable."""

    category = "integrity error"
    exit_code = ExitCodes.INTEGRITY_ERROR


class NotInstalledError(AmbientError):
    """Operation requires an installed version that is absent."""

    category = "not installed"
    exit_code = ExitCodes.NOT_INSTALLED

    def __init__(self, version, *, hint: Optional[str] = None):
        super().__init__(
            f"runtime version {version} is not installed",
            hint=hint or f"run `ambient runtime install {version}` first",
        )
        self.version = version


class SpawnError(AmbientError):
    """The runtime binary could not be executed."""

    category = "spawn error"
    exit_code = ExitCodes.SPAWN_ERROR


class FilesystemError(AmbientError):
    """Permission or space problem on the install root."""

    category = "filesystem error"
    exit_code = ExitCodes.FILE_ERROR


class ManifestError(AmbientError):
    """The project manifest (ambient.toml) cannot be read or is invalid."""

    category = "manifest error"
    exit_code = ExitCodes.FILE_ERROR
