"""Local library of fetched, uploaded and JSON-ingested novels.

Ties the acquisition services to the cache.  Each stored novel has a
:class:`~novelshelf.models.fetch.CachedNovel` record in a namespaced index
(``cached_novels``) and its text in the
:class:`~novelshelf.services.user_stores.ContentCacheStore`.  The index
outlives the text: content expires after a day and then reads back as
``None`` until the novel is fetched again.

Change detection in :meth:`NovelLibrary.update_url_novel` compares only
the formatted file size and the character count, not a content hash.
"""

from __future__ import annotations

from novelshelf.models.fetch import (
    CachedNovel,
    CustomJsonConfig,
    FetchOptions,
    FetchResult,
    SourceType,
)
from novelshelf.services.cache_store import TTLCacheStore
from novelshelf.services.custom_json import CustomJsonIngestor
from novelshelf.services.novel_fetcher import NovelFetcher
from novelshelf.services.user_stores import ContentCacheStore, dump_records, load_records
from novelshelf.utils.errors import NovelNotFoundError
from novelshelf.utils.logging import get_logger

logger = get_logger(__name__)

LIBRARY_INDEX_KEY = "cached_novels"
LIBRARY_INDEX_TTL = 365 * 24 * 60 * 60

ONLINE_CATEGORY = "在线资源"
UPLOAD_CATEGORY = "本地上传"


class NovelLibrary:
    """Fetch-and-remember front end over the fetcher, ingestor and cache."""

    def __init__(
        self,
        cache: TTLCacheStore,
        fetcher: NovelFetcher,
        ingestor: CustomJsonIngestor,
        content_store: ContentCacheStore | None = None,
    ) -> None:
        self._cache = cache
        self._fetcher = fetcher
        self._ingestor = ingestor
        self._content = content_store or ContentCacheStore(cache)

    # ------------------------------------------------------------------
    # Adding novels
    # ------------------------------------------------------------------

    async def cache_from_url(
        self, url: str, options: FetchOptions | None = None
    ) -> tuple[CachedNovel, str]:
        result = await self._fetcher.fetch_from_url(url, options)
        novel = self._new_record(
            result,
            file_path=url,
            source_url=url,
            source_type=SourceType.URL,
            path_parts=[ONLINE_CATEGORY, result.author],
        )
        return self._store(novel, result.content), result.content

    def cache_upload(self, file_bytes: bytes, file_name: str) -> tuple[CachedNovel, str]:
        result = self._fetcher.fetch_from_upload(file_bytes, file_name)
        novel = self._new_record(
            result,
            file_path=file_name,
            source_url=None,
            source_type=SourceType.UPLOAD,
            path_parts=[UPLOAD_CATEGORY, result.author],
        )
        return self._store(novel, result.content), result.content

    async def cache_from_custom_json(
        self,
        url: str,
        config: CustomJsonConfig | None = None,
        options: FetchOptions | None = None,
    ) -> tuple[CachedNovel, str]:
        result = await self._ingestor.ingest(url, config, options)
        novel = self._new_record(
            result,
            file_path="",
            source_url=url,
            source_type=SourceType.CUSTOM,
            path_parts=[result.title],
        )
        return self._store(novel, result.content), result.content

    # ------------------------------------------------------------------
    # Reading the library
    # ------------------------------------------------------------------

    def get_cached_novel(self, novel_id: int) -> tuple[CachedNovel, str | None] | None:
        """Return the record and its text; text is ``None`` once it expired."""
        for novel in self._load_index():
            if novel.id == novel_id:
                return novel, self._content.get(novel_id)
        return None

    def list_cached_novels(self) -> list[CachedNovel]:
        """All records, most recently updated first."""
        return sorted(self._load_index(), key=lambda n: n.last_update, reverse=True)

    def remove_cached_novel(self, novel_id: int) -> bool:
        index = self._load_index()
        remaining = [n for n in index if n.id != novel_id]
        self._content.remove(novel_id)
        if len(remaining) == len(index):
            return False
        self._save_index(remaining)
        logger.info("library_novel_removed", novel_id=novel_id)
        return True

    async def update_url_novel(
        self, novel_id: int, url: str, options: FetchOptions | None = None
    ) -> tuple[str, bool]:
        """Refetch *url* and replace the stored copy if it looks different.

        Returns
        -------
        tuple
            ``(content, updated)``.

        Raises
        ------
        NovelNotFoundError
            *novel_id* is not in the library.
        FetchFailedError
            The refetch failed.
        """
        existing = self.get_cached_novel(novel_id)
        if existing is None:
            raise NovelNotFoundError(
                message=f"No cached novel with id {novel_id}", provider_name="library"
            )
        novel, _ = existing

        result = await self._fetcher.fetch_from_url(url, options)
        updated = novel.file_size != result.file_size or novel.word_count != len(result.content)
        if updated:
            refreshed = novel.model_copy(
                update={
                    "title": result.title,
                    "author": result.author,
                    "file_size": result.file_size,
                    "word_count": len(result.content),
                    "cache_size": len(result.content),
                    "last_update": self._cache.clock(),
                }
            )
            self._store(refreshed, result.content)

        logger.info("library_novel_checked", novel_id=novel_id, updated=updated)
        return result.content, updated

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _new_record(
        self,
        result: FetchResult,
        file_path: str,
        source_url: str | None,
        source_type: SourceType,
        path_parts: list[str],
    ) -> CachedNovel:
        now = self._cache.clock()
        return CachedNovel(
            id=self._next_id(now),
            title=result.title,
            author=result.author,
            file_path=file_path,
            file_size=result.file_size,
            word_count=len(result.content),
            source_url=source_url,
            source_type=source_type,
            path_parts=path_parts,
            cache_size=len(result.content),
            last_update=now,
        )

    def _next_id(self, now: float) -> int:
        """Millisecond timestamp, bumped past any id already in use."""
        candidate = int(now * 1000)
        existing = [n.id for n in self._load_index()]
        if existing:
            candidate = max(candidate, max(existing) + 1)
        return candidate

    def _store(self, novel: CachedNovel, content: str) -> CachedNovel:
        index = [n for n in self._load_index() if n.id != novel.id]
        index.append(novel)
        self._save_index(index)

        if not self._content.save(novel.id, content):
            logger.warning("library_content_not_cached", novel_id=novel.id, title=novel.title)
        logger.info(
            "library_novel_cached",
            novel_id=novel.id,
            title=novel.title,
            source_type=novel.source_type.value,
        )
        return novel

    def _load_index(self) -> list[CachedNovel]:
        return load_records(self._cache, LIBRARY_INDEX_KEY, CachedNovel)

    def _save_index(self, index: list[CachedNovel]) -> None:
        if not self._cache.set(LIBRARY_INDEX_KEY, dump_records(index), LIBRARY_INDEX_TTL):
            logger.warning("library_index_not_saved", entries=len(index))
