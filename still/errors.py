"""Errors raised by the still install pipeline."""

from __future__ import annotations


class StillError(Exception):
    """Base class for all still errors."""

    def __init__(self, message: str) -> None:
        """Initialize the StillError."""
        self.message = message
        super().__init__(message)


class ParseError(StillError):
    """The tool specifier could not be parsed."""


class RegistryError(StillError):
    """The registry returned a payload that could not be understood."""


class NotFoundError(StillError):
    """No formula matches the requested tool."""


class NoBottleAvailable(NotFoundError):
    """The formula has no bottle usable on this platform."""

    def __init__(self, platform_key: str, available: list[str] | None = None) -> None:
        """Initialize the NoBottleAvailable error."""
        self.platform_key = platform_key
        self.available = available or []
        message = f"No matching bottle file found for platform: {platform_key}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class NetworkError(StillError):
    """An HTTP request failed or returned a non-success status."""


class IntegrityError(StillError):
    """Downloaded bytes do not match the expected digest."""

    def __init__(self, expected: str, actual: str) -> None:
        """Initialize the IntegrityError."""
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"SHA256 verification failed: expected {expected}, got {actual}",
        )


class FilesystemError(StillError):
    """Creating, moving or modifying files on disk failed."""


class ExtractionError(FilesystemError):
    """The archive could not be decompressed or unpacked."""


class ActivationWarning(UserWarning):
    """The installed tree has no discoverable binary."""
