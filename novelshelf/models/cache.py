"""Models persisted by the TTL cache store and the specialised stores.

Everything here is serialized to JSON inside a :class:`CacheEntry`
envelope.  Timestamps are Unix seconds from the store's injected clock.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CacheEntry(BaseModel):
    """Envelope wrapping every cached value with its lifetime."""

    model_config = ConfigDict(frozen=True)

    data: Any
    stored_at: float
    expires_at: float

    @model_validator(mode="after")
    def _check_lifetime(self) -> CacheEntry:
        if self.expires_at <= self.stored_at:
            raise ValueError("expires_at must be later than stored_at")
        return self

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ReadingProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    novel_id: int
    title: str
    progress: float = Field(ge=0.0, le=100.0)
    page: int = 0
    scroll_position: float = 0.0
    timestamp: float


class SearchTarget(str, Enum):  # noqa: UP042
    TITLE = "title"
    CONTENT = "content"
    BOTH = "both"


class SearchHistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    keyword: str
    target: SearchTarget
    timestamp: float
    result_count: int = 0


class Theme(str, Enum):  # noqa: UP042
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class UserPreferences(BaseModel):
    """Reader display preferences; field defaults are the floor for merges."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    font_size: int = 18
    line_height: float = 1.8
    theme: Theme = Theme.AUTO
    auto_scroll: bool = False
    scroll_speed: int = 50


class CacheStats(BaseModel):
    """Diagnostic snapshot of one cache namespace."""

    model_config = ConfigDict(frozen=True)

    total_size: int = 0
    item_count: int = 0
    expired_count: int = 0
