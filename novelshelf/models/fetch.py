"""Models for the acquisition pipeline.

Result types (``FetchResult``, ``CustomJsonPreview``, ``CachedNovel``) are
frozen Pydantic models: they cross the service boundary and are
serialized into the cache.  ``FetchOptions`` and ``ValidationOutcome`` are
plain dataclasses because they carry callables / live exceptions that
are never serialized.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from novelshelf.utils.errors import FailureKind

if TYPE_CHECKING:
    from novelshelf.pipeline.cancellation import CancellationToken
    from novelshelf.pipeline.progress import ProgressCallback


DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_FETCH_RETRIES = 3


class FetchProgress(BaseModel):
    """One progress snapshot: bytes loaded, bytes expected, percent done."""

    model_config = ConfigDict(frozen=True)

    loaded: int = Field(ge=0)
    total: int = Field(ge=0)
    percentage: float = Field(ge=0.0, le=100.0)


class FetchResult(BaseModel):
    """A fully decoded novel plus its best-effort metadata."""

    model_config = ConfigDict(frozen=True)

    content: str
    title: str
    author: str
    # Human-readable, e.g. "1.5 MB".
    file_size: str


@dataclass
class FetchOptions:
    """Per-call knobs for :meth:`NovelFetcher.fetch_from_url`."""

    timeout: float = DEFAULT_FETCH_TIMEOUT
    retries: int = DEFAULT_FETCH_RETRIES
    on_progress: ProgressCallback | None = None
    cancel_token: CancellationToken | None = None


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of a URL reachability probe.

    ``valid`` is ``True`` on success; otherwise ``kind`` and ``message``
    describe the failure and ``cause`` holds the underlying exception, if
    there was one.
    """

    valid: bool
    kind: FailureKind | None = None
    message: str = ""
    cause: BaseException | None = None

    @classmethod
    def ok(cls) -> ValidationOutcome:
        return cls(valid=True)

    @classmethod
    def failure(
        cls, kind: FailureKind, message: str, cause: BaseException | None = None
    ) -> ValidationOutcome:
        return cls(valid=False, kind=kind, message=message, cause=cause)


class CustomJsonConfig(BaseModel):
    """Optional dotted paths that take priority over the default field names."""

    model_config = ConfigDict(frozen=True)

    title_path: str | None = None
    content_path: str | None = None
    author_path: str | None = None


class CustomJsonPreview(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    author: str
    content_length: int
    content_preview: str


class SourceType(str, Enum):  # noqa: UP042
    URL = "url"
    UPLOAD = "upload"
    CUSTOM = "custom"


class CachedNovel(BaseModel):
    """Library index record for a novel whose text lives in the content cache."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    author: str
    file_path: str
    file_size: str
    word_count: int
    source_url: str | None = None
    source_type: SourceType
    path_parts: list[str] = Field(default_factory=list)
    cache_size: int = 0
    # Unix timestamp (seconds).
    last_update: float
