"""Public entry point for getting novel text into the reader.

:class:`NovelFetcher` covers three operations:

- :meth:`~NovelFetcher.fetch_from_url` runs validate, download, decode and
  extract metadata inside a bounded retry loop with linear backoff
  (``attempt * base_delay``).  It ends in exactly one
  :class:`~novelshelf.models.fetch.FetchResult` or exactly one
  :class:`~novelshelf.utils.errors.FetchFailedError` wrapping the last
  cause.
- :meth:`~NovelFetcher.fetch_from_upload` checks the file name and size,
  then decodes.  These pre-checks fail immediately with no retry.
- :meth:`~NovelFetcher.check_url_validity` is a probe that never raises.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import PurePath
from typing import Any

import httpx
import structlog

from novelshelf.models.fetch import FetchOptions, FetchResult, ValidationOutcome
from novelshelf.pipeline.cancellation import CancellationToken, TimeoutScope
from novelshelf.pipeline.progress import ProgressChannel
from novelshelf.services.downloader import StreamingDownloader
from novelshelf.services.url_validator import (
    DEFAULT_VALIDATION_TIMEOUT,
    URLValidator,
    outcome_for,
)
from novelshelf.utils.encoding import decode_bytes
from novelshelf.utils.errors import (
    FetchFailedError,
    FileTooLargeError,
    NovelShelfError,
    OperationCancelledError,
    UnsupportedFormatError,
    URLValidationError,
)
from novelshelf.utils.formatting import format_file_size
from novelshelf.utils.logging import get_logger
from novelshelf.utils.metadata import extract_novel_info

DEFAULT_BASE_DELAY = 1.0
MAX_UPLOAD_BYTES = 100 * 1024 * 1024

# Plain text plus the source/markup/config formats people read as text.
SUPPORTED_EXTENSIONS: tuple[str, ...] = (
    ".txt", ".text",
    ".js", ".jsx", ".ts", ".tsx", ".vue", ".svelte",
    ".html", ".htm", ".css", ".scss", ".sass", ".less",
    ".json", ".xml", ".yaml", ".yml",
    ".md", ".markdown",
    ".py", ".java", ".c", ".cpp", ".h", ".hpp",
    ".php", ".rb", ".go", ".rs", ".swift", ".kt",
    ".sql", ".sh", ".bash", ".zsh", ".ps1",
    ".csv", ".log", ".ini", ".conf", ".config",
)


def is_supported_file(file_name: str) -> bool:
    return PurePath(file_name).suffix.lower() in SUPPORTED_EXTENSIONS


class NovelFetcher:
    """Fetches novels from URLs and uploads.

    Parameters
    ----------
    validator:
        Reachability probe run at the start of every attempt.
    downloader:
        Streaming downloader for the body.
    base_delay:
        Backoff unit in seconds; attempt *n* is followed by ``n * base_delay``.
    max_upload_bytes:
        Upload size ceiling.
    sleep:
        Awaitable used for backoff waits; injectable for tests.
    """

    def __init__(
        self,
        validator: URLValidator | None = None,
        downloader: StreamingDownloader | None = None,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._validator = validator or URLValidator(http_client=http_client)
        self._downloader = downloader or StreamingDownloader(http_client=http_client)
        self._base_delay = base_delay
        self._max_upload_bytes = max_upload_bytes
        self._sleep = sleep
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # URL fetch
    # ------------------------------------------------------------------

    async def fetch_from_url(self, url: str, options: FetchOptions | None = None) -> FetchResult:
        """Fetch, decode and describe the novel at *url*.

        Raises
        ------
        FetchFailedError
            After the last attempt fails, or as soon as the cancel token
            fires.  ``last_error`` (and ``__cause__``) hold the final cause.
        """
        opts = options or FetchOptions()
        retries = max(1, opts.retries)
        token = opts.cancel_token
        progress = ProgressChannel.from_callback(opts.on_progress, name="fetch")

        last_error: NovelShelfError | None = None
        attempt = 0
        while attempt < retries:
            attempt += 1
            try:
                return await self._attempt(url, opts.timeout, progress, token, attempt, retries)
            except NovelShelfError as exc:
                last_error = exc
                self._logger.warning(
                    "fetch_attempt_failed",
                    url=url,
                    attempt=attempt,
                    retries=retries,
                    kind=exc.kind.value,
                    error=str(exc),
                )

            if _is_cancelled(token) or isinstance(last_error, OperationCancelledError):
                break
            if attempt < retries:
                try:
                    async with TimeoutScope(None, token):
                        await self._sleep(attempt * self._base_delay)
                        if token is not None:
                            token.raise_if_cancelled()
                except OperationCancelledError as exc:
                    last_error = exc
                    break

        raise FetchFailedError(
            message=f"Failed to fetch novel after {attempt} attempt(s): {last_error}",
            provider_name="novel_fetcher",
            attempts=attempt,
            last_error=last_error,
        ) from last_error

    async def _attempt(
        self,
        url: str,
        timeout: float,
        progress: ProgressChannel,
        token: CancellationToken | None,
        attempt: int,
        retries: int,
    ) -> FetchResult:
        if token is not None:
            token.raise_if_cancelled()
        self._logger.info("fetch_attempt", url=url, attempt=attempt, retries=retries)

        outcome = await self._validator.validate(url, timeout, token)
        if not outcome.valid:
            kind = outcome.kind.value if outcome.kind else "unknown"
            raise URLValidationError(
                message=f"{outcome.message} ({kind})",
                provider_name=self._validator.get_provider_name(),
                kind=outcome.kind,
            )

        download = await self._downloader.download(url, timeout, progress, token)
        info = extract_novel_info(download.text, url)
        result = FetchResult(
            content=download.text,
            title=info.title,
            author=info.author,
            file_size=format_file_size(download.size),
        )
        self._logger.info(
            "novel_fetched",
            url=url,
            title=result.title,
            size=result.file_size,
            encoding=download.encoding,
        )
        return result

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def fetch_from_upload(self, file_bytes: bytes, file_name: str) -> FetchResult:
        """Decode an uploaded file.

        Raises
        ------
        UnsupportedFormatError
            The extension is not on the allow-list (case-insensitive).
        FileTooLargeError
            The file is over the upload ceiling; checked before decoding.
        """
        if not is_supported_file(file_name):
            raise UnsupportedFormatError(
                message=(
                    f"Unsupported file format: {file_name!r}. "
                    f"Supported types: {', '.join(SUPPORTED_EXTENSIONS)}"
                ),
                provider_name="novel_fetcher",
            )

        size = len(file_bytes)
        if size > self._max_upload_bytes:
            raise FileTooLargeError(
                message=(
                    f"{file_name} is {format_file_size(size)}; "
                    f"the limit is {format_file_size(self._max_upload_bytes)}"
                ),
                provider_name="novel_fetcher",
            )

        decoded = decode_bytes(file_bytes)
        info = extract_novel_info(decoded.text, file_name)
        self._logger.info(
            "upload_decoded", file_name=file_name, size=size, encoding=decoded.encoding
        )
        return FetchResult(
            content=decoded.text,
            title=info.title,
            author=info.author,
            file_size=format_file_size(size),
        )

    # ------------------------------------------------------------------
    # Probe
    # ------------------------------------------------------------------

    async def check_url_validity(
        self, url: str, timeout: float = DEFAULT_VALIDATION_TIMEOUT
    ) -> ValidationOutcome:
        """Probe *url*; every failure comes back as an outcome, never raised."""
        try:
            return await self._validator.validate(url, timeout)
        except Exception as exc:
            self._logger.warning("url_check_failed", url=url, error=str(exc))
            return outcome_for(exc)

    async def aclose(self) -> None:
        await self._validator.aclose()
        await self._downloader.aclose()


def _is_cancelled(token: CancellationToken | None) -> bool:
    return token is not None and token.is_cancelled()
