"""Service wiring for NovelShelf.

:func:`build_services` constructs every service with its dependencies
injected and returns them keyed by role, the way the CLI (or any other
front end) consumes them.  One ``httpx.AsyncClient`` is shared by the
validator, downloader and JSON ingestor; close it with
:func:`close_services`.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from novelshelf.config import settings
from novelshelf.config.settings import Settings
from novelshelf.interfaces.catalog_provider import ICatalogProvider
from novelshelf.interfaces.storage_backend import IStorageBackend
from novelshelf.providers.storage import MemoryStorageBackend, SQLiteStorageBackend
from novelshelf.services.cache_store import TTLCacheStore
from novelshelf.services.custom_json import CustomJsonIngestor
from novelshelf.services.downloader import StreamingDownloader
from novelshelf.services.library_service import NovelLibrary
from novelshelf.services.novel_fetcher import NovelFetcher
from novelshelf.services.search_service import NovelSearchService
from novelshelf.services.url_validator import URLValidator
from novelshelf.services.user_stores import (
    ContentCacheStore,
    PreferencesStore,
    ReadingProgressStore,
    SearchHistoryStore,
)
from novelshelf.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)


def build_storage_backend(s: Settings) -> IStorageBackend:
    """Create the backend named by ``cache_backend``."""
    if s.cache_backend == "memory":
        return MemoryStorageBackend(quota_bytes=s.cache_quota_bytes)

    backend = SQLiteStorageBackend(db_path=s.cache_db_path, quota_bytes=s.cache_quota_bytes)
    backend.initialize()
    return backend


def build_services(
    custom_settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
    backend: IStorageBackend | None = None,
    catalog: ICatalogProvider | None = None,
) -> dict[str, Any]:
    """Construct and return all services with injected dependencies.

    Parameters
    ----------
    custom_settings:
        Application settings.  Uses module-level ``settings`` if not provided.
    http_client:
        Client shared by the network services; one is created if omitted.
    backend:
        Storage substrate override (tests pass a memory backend).
    catalog:
        Built-in catalog; ``search`` is only wired when one is given.

    Returns
    -------
    dict
        Service instances keyed by role name.
    """
    s = custom_settings or settings
    client = http_client or httpx.AsyncClient(
        headers={"User-Agent": s.user_agent},
        follow_redirects=True,
    )

    cache = TTLCacheStore(
        backend=backend or build_storage_backend(s),
        namespace=s.cache_namespace,
        default_ttl=s.cache_default_ttl_seconds,
    )
    content = ContentCacheStore(cache, max_bytes=s.max_cached_content_bytes)
    history = SearchHistoryStore(cache)

    fetcher = NovelFetcher(
        validator=URLValidator(http_client=client, user_agent=s.user_agent),
        downloader=StreamingDownloader(http_client=client, user_agent=s.user_agent),
        base_delay=s.retry_base_delay_seconds,
        max_upload_bytes=s.max_upload_bytes,
    )
    ingestor = CustomJsonIngestor(
        http_client=client,
        preview_timeout=s.custom_json_preview_timeout_seconds,
        user_agent=s.user_agent,
    )

    services: dict[str, Any] = {
        "settings": s,
        "http_client": client,
        "cache": cache,
        "content_cache": content,
        "reading_progress": ReadingProgressStore(cache),
        "search_history": history,
        "preferences": PreferencesStore(cache),
        "fetcher": fetcher,
        "custom_json": ingestor,
        "library": NovelLibrary(cache, fetcher, ingestor, content_store=content),
    }
    if catalog is not None:
        services["search"] = NovelSearchService(catalog, history=history)

    logger.debug(
        "services_built",
        cache_backend=s.cache_backend,
        namespace=s.cache_namespace,
        catalog=catalog is not None,
    )
    return services


async def close_services(services: dict[str, Any]) -> None:
    """Release the shared HTTP client."""
    client = services.get("http_client")
    if client is not None:
        await client.aclose()
