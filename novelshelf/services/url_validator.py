"""URL reachability probe run before every download attempt.

A HEAD request is sent first.  A non-2xx status, or a content type that
is not textual, is a ``server`` failure; the probe does not retry, that is
the fetcher's job.  If the HEAD request itself *raises* (many static hosts
reject HEAD outright), a ranged GET for the first KiB is tried before the
original error is classified.

Classification prefers the structured ``kind`` carried by our own errors,
then httpx exception types, and only falls back to message heuristics for
foreign exceptions.
"""

from __future__ import annotations

import asyncio

import httpx
import structlog

from novelshelf.models.fetch import ValidationOutcome
from novelshelf.pipeline.cancellation import CancellationToken, TimeoutScope
from novelshelf.utils.errors import FailureKind, OperationTimeoutError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_VALIDATION_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; novelshelf/0.1)"
_RANGE_PROBE = "bytes=0-1023"

_FAILURE_MESSAGES = {
    FailureKind.CORS: "Cross-origin access to the URL was blocked",
    FailureKind.NETWORK: "Network connection failed; check the connection and the URL",
    FailureKind.TIMEOUT: "The server took too long to respond",
    FailureKind.SERVER: "Server error",
    FailureKind.UNKNOWN: "Unknown error",
}


def classify_error(exc: BaseException) -> FailureKind:
    """Map an exception to a :class:`FailureKind`.

    >>> classify_error(httpx.ConnectTimeout("slow"))
    <FailureKind.TIMEOUT: 'timeout'>
    """
    kind = getattr(exc, "kind", None)
    if isinstance(kind, FailureKind):
        return kind

    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return FailureKind.TIMEOUT
    if isinstance(exc, httpx.HTTPStatusError):
        return FailureKind.SERVER
    if isinstance(exc, (httpx.NetworkError, httpx.ProtocolError, httpx.ProxyError)):
        return FailureKind.NETWORK

    message = f"{type(exc).__name__}: {exc}".lower()
    if "failed to fetch" in message or "cors" in message:
        return FailureKind.CORS
    if "networkerror" in message:
        return FailureKind.NETWORK
    if "timeout" in message or "timed out" in message:
        return FailureKind.TIMEOUT
    if "http error" in message:
        return FailureKind.SERVER
    return FailureKind.UNKNOWN


def outcome_for(exc: BaseException) -> ValidationOutcome:
    """Build a failure outcome for *exc* with a readable message."""
    kind = classify_error(exc)
    detail = str(exc) or type(exc).__name__
    return ValidationOutcome.failure(kind, f"{_FAILURE_MESSAGES[kind]}: {detail}", cause=exc)


class URLValidator:
    """HEAD-then-ranged-GET probe.

    Parameters
    ----------
    http_client:
        Shared client; when omitted the validator creates and owns one.
    user_agent:
        Sent on every probe.
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

    async def validate(
        self,
        url: str,
        timeout: float = DEFAULT_VALIDATION_TIMEOUT,
        cancel_token: CancellationToken | None = None,
    ) -> ValidationOutcome:
        """Probe *url* within *timeout* seconds.

        Raises
        ------
        novelshelf.utils.errors.OperationCancelledError
            If *cancel_token* fires; every other failure is returned as an
            outcome.
        """
        try:
            async with TimeoutScope(timeout, cancel_token):
                response = await self._client.head(url)
        except (OperationTimeoutError, httpx.TimeoutException) as exc:
            logger.info("url_probe_timeout", url=url, timeout=timeout)
            return ValidationOutcome.failure(
                FailureKind.TIMEOUT, f"{_FAILURE_MESSAGES[FailureKind.TIMEOUT]} ({timeout:g}s)", exc
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.info("url_head_failed", url=url, error=str(exc))
            if await self._range_probe(url, timeout, cancel_token):
                return ValidationOutcome.ok()
            return outcome_for(exc)

        if not response.is_success:
            return ValidationOutcome.failure(
                FailureKind.SERVER,
                f"Server returned {response.status_code} {response.reason_phrase}",
                httpx.HTTPStatusError(
                    f"HTTP error {response.status_code}", request=response.request, response=response
                ),
            )

        content_type = response.headers.get("content-type", "")
        if "text" not in content_type:
            return ValidationOutcome.failure(
                FailureKind.SERVER,
                f"URL does not point to a text file (content type: {content_type or 'unknown'})",
            )

        logger.debug("url_validated", url=url, status=response.status_code)
        return ValidationOutcome.ok()

    async def _range_probe(
        self, url: str, timeout: float, cancel_token: CancellationToken | None
    ) -> bool:
        """GET the first KiB; ``True`` on any 2xx (including 206).

        The body is never read, so a server that ignores ``Range`` does not
        cost a full download.
        """
        try:
            async with TimeoutScope(timeout, cancel_token):
                async with self._client.stream(
                    "GET", url, headers={"Range": _RANGE_PROBE}
                ) as response:
                    return response.is_success
        except (OperationTimeoutError, httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("url_range_probe_failed", url=url, error=str(exc))
            return False

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def get_provider_name(self) -> str:
        return "url_validator"
