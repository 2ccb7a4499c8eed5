"""Streaming download of novel text files.

The body is read chunk by chunk so progress can be reported while large
files (tens of MiB of plain text) arrive.  Progress is only published when
the server sends a ``Content-Length``; with no total, nothing is reported
rather than an invented estimate.

The whole transfer, headers and body, runs inside one
:class:`~novelshelf.pipeline.cancellation.TimeoutScope`, so a timeout or a
cancellation stops further chunk reads and the timer is always disposed
of.  Both surface as :class:`~novelshelf.utils.errors.DownloadTimeoutError`;
other transport failures propagate as
:class:`~novelshelf.utils.errors.TransportError`.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
import structlog

from novelshelf.models.fetch import DEFAULT_FETCH_TIMEOUT, FetchProgress
from novelshelf.pipeline.cancellation import CancellationToken, TimeoutScope
from novelshelf.pipeline.progress import ProgressChannel
from novelshelf.utils.encoding import decode_bytes
from novelshelf.utils.errors import (
    DownloadTimeoutError,
    FailureKind,
    OperationCancelledError,
    OperationTimeoutError,
    TransportError,
)

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; novelshelf/0.1)"


@dataclass(frozen=True)
class Download:
    """Raw bytes of a completed transfer plus their decoded text."""

    data: bytes
    text: str
    encoding: str

    @property
    def size(self) -> int:
        return len(self.data)


def _content_length(response: httpx.Response) -> int:
    raw = response.headers.get("content-length")
    try:
        return max(int(raw), 0) if raw else 0
    except ValueError:
        return 0


class StreamingDownloader:
    """Chunked GET with progress, timeout and cancellation.

    Parameters
    ----------
    http_client:
        Shared client; when omitted the downloader creates and owns one.
    user_agent:
        Sent with every request.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            follow_redirects=True,
        )

    async def download(
        self,
        url: str,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        progress: ProgressChannel | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Download:
        """Download *url* and decode it.

        Raises
        ------
        DownloadTimeoutError
            The transfer exceeded *timeout* or *cancel_token* fired.
        TransportError
            Any other HTTP failure, including a non-success status.
        """
        try:
            async with TimeoutScope(timeout, cancel_token):
                data = await self._read_body(url, progress, cancel_token)
        except (OperationTimeoutError, httpx.TimeoutException) as exc:
            logger.warning("download_timeout", url=url, timeout=timeout)
            raise DownloadTimeoutError(
                message=f"Download timed out after {timeout:g}s",
                provider_name=self.get_provider_name(),
            ) from exc
        except OperationCancelledError as exc:
            logger.info("download_cancelled", url=url, reason=exc.message)
            raise DownloadTimeoutError(
                message=f"Download aborted: {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(
                message=f"HTTP error fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        decoded = decode_bytes(data)
        logger.info("download_complete", url=url, size=len(data), encoding=decoded.encoding)
        return Download(data=data, text=decoded.text, encoding=decoded.encoding)

    async def _read_body(
        self,
        url: str,
        progress: ProgressChannel | None,
        cancel_token: CancellationToken | None,
    ) -> bytes:
        chunks: list[bytes] = []
        async with self._client.stream("GET", url) as response:
            if not response.is_success:
                raise TransportError(
                    message=f"HTTP error {response.status_code} {response.reason_phrase}",
                    provider_name=self.get_provider_name(),
                    kind=FailureKind.SERVER,
                )

            total = _content_length(response)
            loaded = 0
            async for chunk in response.aiter_bytes():
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                chunks.append(chunk)
                loaded += len(chunk)
                if progress is not None and total > 0:
                    percentage = min(round(loaded / total * 100), 100)
                    await progress.publish(
                        FetchProgress(loaded=loaded, total=total, percentage=percentage)
                    )

        return b"".join(chunks)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def get_provider_name(self) -> str:
        return "downloader"
