"""Unit tests for StreamingDownloader."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import httpx
import pytest

from novelshelf.models.fetch import FetchProgress
from novelshelf.pipeline.cancellation import CancellationToken
from novelshelf.pipeline.progress import ProgressChannel
from novelshelf.services.downloader import StreamingDownloader
from novelshelf.utils.errors import DownloadTimeoutError, FailureKind, TransportError
from tests.conftest import mock_client, text_server

URL = "https://books.example.com/doupo.txt"


async def _chunks(*parts: bytes) -> AsyncIterator[bytes]:
    for part in parts:
        yield part


def _chunked_server(parts: list[bytes], content_length: bool = True):
    def handler(request: httpx.Request) -> httpx.Response:
        headers = {"content-type": "text/plain"}
        if content_length:
            headers["content-length"] = str(sum(len(p) for p in parts))
        return httpx.Response(200, headers=headers, content=_chunks(*parts))

    return handler


class TestStreamingDownloader:
    @pytest.mark.asyncio
    async def test_downloads_and_decodes_utf8(self) -> None:
        body = "第一章 陨落的天才".encode()
        downloader = StreamingDownloader(http_client=mock_client(text_server(body)))

        download = await downloader.download(URL)

        assert download.text == "第一章 陨落的天才"
        assert download.encoding == "utf-8"
        assert download.size == len(body)

    @pytest.mark.asyncio
    async def test_decodes_gbk(self) -> None:
        body = "《斗破苍穹》".encode("gbk")
        downloader = StreamingDownloader(http_client=mock_client(text_server(body)))

        download = await downloader.download(URL)

        assert download.text == "《斗破苍穹》"
        assert download.encoding == "gb18030"

    @pytest.mark.asyncio
    async def test_progress_reported_per_chunk(self) -> None:
        parts = [b"a" * 10, b"b" * 10, b"c" * 10]
        downloader = StreamingDownloader(http_client=mock_client(_chunked_server(parts)))
        seen: list[FetchProgress] = []
        channel = ProgressChannel.from_callback(seen.append)

        download = await downloader.download(URL, progress=channel)

        assert download.data == b"a" * 10 + b"b" * 10 + b"c" * 10
        assert [p.loaded for p in seen] == [10, 20, 30]
        assert [p.percentage for p in seen] == [33, 67, 100]
        assert all(p.total == 30 for p in seen)

    @pytest.mark.asyncio
    async def test_no_progress_without_content_length(self) -> None:
        parts = [b"a" * 10, b"b" * 10]
        handler = _chunked_server(parts, content_length=False)
        downloader = StreamingDownloader(http_client=mock_client(handler))
        channel = ProgressChannel()

        download = await downloader.download(URL, progress=channel)

        assert download.size == 20
        assert channel.latest is None

    @pytest.mark.asyncio
    async def test_error_status_raises_server_transport_error(self) -> None:
        downloader = StreamingDownloader(http_client=mock_client(text_server(b"", get_status=500)))
        with pytest.raises(TransportError) as exc_info:
            await downloader.download(URL)
        assert exc_info.value.kind is FailureKind.SERVER
        assert "500" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_connection_failure_raises_network_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        downloader = StreamingDownloader(http_client=mock_client(handler))
        with pytest.raises(TransportError) as exc_info:
            await downloader.download(URL)
        assert exc_info.value.kind is FailureKind.NETWORK

    @pytest.mark.asyncio
    async def test_slow_server_times_out(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, content=b"late")

        downloader = StreamingDownloader(http_client=mock_client(handler))
        with pytest.raises(DownloadTimeoutError, match="timed out"):
            await downloader.download(URL, timeout=0.05)

    @pytest.mark.asyncio
    async def test_cancel_mid_stream_stops_reading(self) -> None:
        parts = [b"a" * 10, b"b" * 10, b"c" * 10]
        downloader = StreamingDownloader(http_client=mock_client(_chunked_server(parts)))
        token = CancellationToken()
        seen: list[int] = []

        def on_progress(progress: FetchProgress) -> None:
            seen.append(progress.loaded)
            token.cancel("user closed the dialog")

        channel = ProgressChannel.from_callback(on_progress)
        with pytest.raises(DownloadTimeoutError, match="aborted"):
            await downloader.download(URL, progress=channel, cancel_token=token)
        assert seen == [10]

    @pytest.mark.asyncio
    async def test_pre_cancelled_token(self) -> None:
        token = CancellationToken()
        token.cancel()
        downloader = StreamingDownloader(http_client=mock_client(text_server(b"x")))
        with pytest.raises(DownloadTimeoutError):
            await downloader.download(URL, cancel_token=token)
