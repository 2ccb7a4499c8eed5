"""Custom exception hierarchy for NovelShelf.

All application exceptions inherit from :class:`NovelShelfError`, which
carries an optional ``provider_name`` (the component or backend that raised
it) and a structured :class:`FailureKind` tag.  The tag is attached at the
point the failure is raised, so classification downstream is a lookup
rather than message sniffing.

The hierarchy is organized by pipeline stage:

    NovelShelfError  (base -- catch-all for any NovelShelf error)
    +-- URLValidationError       (reachability probe rejected the URL)
    +-- TransportError           (HTTP failure / non-success status)
    +-- DownloadTimeoutError     (transfer timed out or was aborted)
    +-- OperationTimeoutError    (a TimeoutScope expired)
    +-- OperationCancelledError  (a CancellationToken fired)
    +-- DecodeError              (every decoder in the chain failed)
    +-- ExtractionError          (custom JSON could not be mapped)
    +-- UnsupportedFormatError   (upload extension not allowed)
    +-- FileTooLargeError        (upload over the size ceiling)
    +-- FetchFailedError         (retry loop exhausted)
    +-- StorageError             (key/value substrate failure)
    |   +-- StorageQuotaExceededError
    +-- CacheWriteError          (cache write failed twice; logged only)
    +-- NovelNotFoundError       (catalog / library miss)
    +-- ConfigurationError       (invalid settings file)
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):  # noqa: UP042
    """Coarse failure categories reported to callers."""

    CORS = "cors"
    NETWORK = "network"
    SERVER = "server"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class NovelShelfError(Exception):
    """Base exception for all NovelShelf errors.

    ``__str__`` prefixes the provider name in brackets for log scanning,
    e.g. ``[url_validator] HEAD returned 404 Not Found``.
    """

    default_message = "An unexpected error occurred"
    default_kind = FailureKind.UNKNOWN

    def __init__(
        self,
        message: str | None = None,
        provider_name: str | None = None,
        kind: FailureKind | None = None,
    ) -> None:
        self._message = message or self.default_message
        self._provider_name = provider_name
        self._kind = kind or self.default_kind
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    @property
    def kind(self) -> FailureKind:
        return self._kind

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Acquisition errors
# ---------------------------------------------------------------------------


class URLValidationError(NovelShelfError):
    """Raised when the reachability probe reports the URL as unusable."""

    default_message = "URL validation failed"


class TransportError(NovelShelfError):
    """Raised for non-timeout transport failures and non-success statuses."""

    default_message = "HTTP transport failed"
    default_kind = FailureKind.NETWORK


class DownloadTimeoutError(NovelShelfError):
    """Raised when a download times out or is aborted mid-stream."""

    default_message = "Download timed out"
    default_kind = FailureKind.TIMEOUT


class OperationTimeoutError(NovelShelfError):
    """Raised by :class:`~novelshelf.pipeline.cancellation.TimeoutScope` on expiry."""

    default_message = "Operation timed out"
    default_kind = FailureKind.TIMEOUT


class OperationCancelledError(NovelShelfError):
    """Raised when a cancellation token fires before or during an operation."""

    default_message = "Operation cancelled"


class DecodeError(NovelShelfError):
    """Raised when no decoder in the fallback chain accepts the bytes."""

    default_message = "Could not decode content"


class ExtractionError(NovelShelfError):
    """Raised when a custom JSON document yields no usable content."""

    default_message = "No content path resolved"


class UnsupportedFormatError(NovelShelfError):
    """Raised when an uploaded file's extension is not on the allow-list."""

    default_message = "Unsupported file format"


class FileTooLargeError(NovelShelfError):
    """Raised when an uploaded file exceeds the size ceiling."""

    default_message = "File is too large"


class FetchFailedError(NovelShelfError):
    """Terminal failure of the retry loop.

    Carries the number of attempts made and the last underlying error.  The
    kind mirrors the last error's kind so callers can still branch on it.
    """

    default_message = "Failed to fetch novel"

    def __init__(
        self,
        message: str | None = None,
        provider_name: str | None = None,
        attempts: int = 0,
        last_error: BaseException | None = None,
    ) -> None:
        kind = getattr(last_error, "kind", None)
        super().__init__(
            message=message,
            provider_name=provider_name,
            kind=kind if isinstance(kind, FailureKind) else FailureKind.UNKNOWN,
        )
        self.attempts = attempts
        self.last_error = last_error


# ---------------------------------------------------------------------------
# Storage / cache errors
# ---------------------------------------------------------------------------


class StorageError(NovelShelfError):
    """Raised when the key/value substrate rejects an operation."""

    default_message = "Storage operation failed"


class StorageQuotaExceededError(StorageError):
    """Raised when a write would push the substrate past its byte quota."""

    default_message = "Storage quota exceeded"


class CacheWriteError(NovelShelfError):
    """A cache write failed after the cleanup-and-retry pass.

    Never propagated to callers of the cache store; it is created so the
    failure can be logged with a consistent shape.
    """

    default_message = "Cache write failed"


class NovelNotFoundError(NovelShelfError):
    """Raised when a novel id is unknown to the catalog or the library."""

    default_message = "Novel not found"


class ConfigurationError(NovelShelfError):
    """Raised when configuration is invalid."""

    default_message = "Invalid or missing configuration"
