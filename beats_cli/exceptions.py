"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class BeatsCliError(Exception):
    """Base exception for all application-specific errors."""


class FetchError(BeatsCliError):
    """Raised when the transport reports a non-success status for a track source."""

    def __init__(self, src: str, status: int | None = None, reason: str = ""):
        self.src = src
        self.status = status
        self.reason = reason
        detail = f"HTTP {status} {reason}".strip() if status is not None else reason
        super().__init__(f"Could not fetch '{src}': {detail or 'unknown error'}")


class EmptyPayloadError(BeatsCliError):
    """Raised when a track source was fetched successfully but contained no bytes."""


class ParseError(BeatsCliError):
    """Raised when tag data is malformed or the audio container is unsupported."""


class PlaybackRejected(BeatsCliError):
    """
    Raised by a media engine when it declines a play request.

    This is never fatal: the player stays in a not-playing state and the user
    may retry.
    """


class ConfigurationError(BeatsCliError):
    """Raised for issues related to configuration loading or validation."""


class CatalogError(BeatsCliError):
    """Raised when a track catalog file is missing, malformed, or inconsistent."""
