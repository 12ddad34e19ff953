"""Typed error hierarchy for stream resolution."""

from __future__ import annotations


class BrasilRDError(Exception):
    """Base class for all resolver errors."""


class ValidationError(BrasilRDError):
    """Raised for malformed input, before any network call is made."""


class MagnetValidationError(ValidationError):
    """Raised when a magnet URI lacks the ``magnet:?`` prefix or btih hash."""


class TorrentIdValidationError(ValidationError):
    """Raised when a debrid torrent id is empty."""


class DebridError(BrasilRDError):
    """Base class for failures talking to the debrid service."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DebridTransientError(DebridError):
    """Raised for timeouts, 5xx and connection failures after retries."""


class DebridRateLimitedError(DebridTransientError):
    """Raised when the service keeps answering 429 after retries."""


class DebridAuthError(DebridError):
    """Raised on 401; never retried."""


class DebridPermissionError(DebridAuthError):
    """Raised on 403 (locked account, missing privileges); never retried."""


class DebridRequestError(DebridError):
    """Raised for any other non-success response."""


class SourceError(BrasilRDError):
    """Raised inside a source adapter; never escapes the fan-out."""


class CatalogValidationError(ValidationError):
    """Raised when a curated magnet entry is incomplete or malformed."""
