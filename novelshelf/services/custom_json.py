"""Novel ingestion from arbitrary JSON endpoints.

Third-party book APIs agree on nothing, so the title, content and author
fields are found by trying a list of candidate paths.  A caller-supplied
path (``data.book.text``, ``chapters[0].body``) goes first, followed by
the conventional field names below.  A missing title or author falls back
to the unknown sentinels; missing content is a hard
:class:`~novelshelf.utils.errors.ExtractionError`.

There is exactly one request per call and no retry loop.  A non-success
status, a timeout or a body that is not JSON fails immediately.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog

from novelshelf.models.fetch import (
    DEFAULT_FETCH_TIMEOUT,
    CustomJsonConfig,
    CustomJsonPreview,
    FetchOptions,
    FetchResult,
)
from novelshelf.pipeline.cancellation import CancellationToken, TimeoutScope
from novelshelf.pipeline.progress import ProgressChannel
from novelshelf.utils.errors import (
    DownloadTimeoutError,
    ExtractionError,
    FailureKind,
    OperationCancelledError,
    OperationTimeoutError,
    TransportError,
)
from novelshelf.utils.formatting import format_file_size
from novelshelf.utils.json_path import MISSING, candidate_paths, find_first
from novelshelf.utils.metadata import UNKNOWN_AUTHOR, UNKNOWN_TITLE

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_TITLE_PATHS = ("title", "name", "filename", "bookname", "book_title")
DEFAULT_CONTENT_PATHS = ("content", "text", "data", "body", "novel_content")
DEFAULT_AUTHOR_PATHS = ("author", "writer", "creator", "auth", "novel_author")

PREVIEW_TIMEOUT = 10.0
PREVIEW_LENGTH = 200
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; novelshelf/0.1)"


def as_text(value: Any) -> str:
    """Strings pass through; anything else is serialized as JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def extract_fields(document: Any, config: CustomJsonConfig) -> tuple[str, str, str]:
    """Resolve ``(title, author, content)`` from a decoded JSON *document*.

    Raises
    ------
    ExtractionError
        If no content candidate resolves to a non-blank value.
    """
    content = find_first(document, candidate_paths(config.content_path, DEFAULT_CONTENT_PATHS))
    if content is MISSING:
        tried = ", ".join(candidate_paths(config.content_path, DEFAULT_CONTENT_PATHS))
        raise ExtractionError(
            message=f"No content path resolved (tried: {tried})",
            provider_name="custom_json",
        )

    title = find_first(document, candidate_paths(config.title_path, DEFAULT_TITLE_PATHS))
    author = find_first(document, candidate_paths(config.author_path, DEFAULT_AUTHOR_PATHS))
    return (
        UNKNOWN_TITLE if title is MISSING else as_text(title),
        UNKNOWN_AUTHOR if author is MISSING else as_text(author),
        as_text(content),
    )


class CustomJsonIngestor:
    """Preview and ingest novels from JSON APIs.

    Parameters
    ----------
    http_client:
        Shared client; when omitted the ingestor creates and owns one.
    preview_timeout:
        Fixed timeout for :meth:`preview`.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        preview_timeout: float = PREVIEW_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            follow_redirects=True,
        )
        self._preview_timeout = preview_timeout

    async def preview(self, url: str, config: CustomJsonConfig | None = None) -> CustomJsonPreview:
        """Fetch *url* and summarise what :meth:`ingest` would produce."""
        document = await self._fetch_json(url, self._preview_timeout)
        title, author, content = extract_fields(document, config or CustomJsonConfig())

        snippet = content
        if len(content) > PREVIEW_LENGTH:
            snippet = content[:PREVIEW_LENGTH] + "..."

        return CustomJsonPreview(
            title=title,
            author=author,
            content_length=len(content),
            content_preview=snippet,
        )

    async def ingest(
        self,
        url: str,
        config: CustomJsonConfig | None = None,
        options: FetchOptions | None = None,
    ) -> FetchResult:
        """Fetch *url* and build a :class:`FetchResult` from it.

        Progress is reported at fixed checkpoints (10, 30, 50, 70, 90, 100)
        since the body arrives in one piece.
        """
        opts = options or FetchOptions()
        progress = ProgressChannel.from_callback(opts.on_progress, name="custom_json")

        await progress.publish_checkpoint(10)
        response = await self._request(url, opts.timeout, opts.cancel_token)
        await progress.publish_checkpoint(30)

        document = _parse_json(response, url)
        await progress.publish_checkpoint(50)

        title, author, content = extract_fields(document, config or CustomJsonConfig())
        await progress.publish_checkpoint(70)

        file_size = format_file_size(len(content.encode("utf-8")))
        await progress.publish_checkpoint(90)

        logger.info("custom_json_ingested", url=url, title=title, size=file_size)
        result = FetchResult(content=content, title=title, author=author, file_size=file_size)
        await progress.publish_checkpoint(100)
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fetch_json(self, url: str, timeout: float) -> Any:
        response = await self._request(url, timeout, None)
        return _parse_json(response, url)

    async def _request(
        self,
        url: str,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        cancel_token: CancellationToken | None = None,
    ) -> httpx.Response:
        try:
            async with TimeoutScope(timeout, cancel_token):
                response = await self._client.get(url, headers={"Accept": "application/json"})
        except (OperationTimeoutError, httpx.TimeoutException) as exc:
            raise DownloadTimeoutError(
                message=f"JSON request timed out after {timeout:g}s",
                provider_name=self.get_provider_name(),
            ) from exc
        except OperationCancelledError as exc:
            raise DownloadTimeoutError(
                message=f"JSON request aborted: {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(
                message=f"HTTP error fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not response.is_success:
            raise TransportError(
                message=f"HTTP error {response.status_code} {response.reason_phrase}",
                provider_name=self.get_provider_name(),
                kind=FailureKind.SERVER,
            )
        return response

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def get_provider_name(self) -> str:
        return "custom_json"


def _parse_json(response: httpx.Response, url: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        logger.warning("custom_json_invalid", url=url, error=str(exc)[:200])
        raise ExtractionError(
            message=f"Response from {url} is not valid JSON",
            provider_name="custom_json",
        ) from exc
