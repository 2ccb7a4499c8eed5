"""Application settings loaded from environment variables via pydantic-settings.

Values come from, in priority order:

1. Environment variables (``FETCH_RETRIES=5``); the variable name is the
   upper-cased field name.
2. The ``.env`` file in the working directory.
3. The field defaults below.

:func:`novelshelf.config.loader.load_settings` adds a YAML layer between
the environment and the defaults.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """NovelShelf settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Acquisition ===
    fetch_timeout_seconds: float = 30.0
    fetch_retries: int = 3
    retry_base_delay_seconds: float = 1.0
    validation_timeout_seconds: float = 10.0
    custom_json_preview_timeout_seconds: float = 10.0
    max_upload_bytes: int = 100 * 1024 * 1024
    user_agent: str = "Mozilla/5.0 (compatible; novelshelf/0.1)"

    # === Cache ===
    # "memory" keeps everything in-process and loses it on exit.
    cache_backend: Literal["sqlite", "memory"] = "sqlite"
    cache_db_path: str = "data/novelshelf_cache.db"
    cache_namespace: str = "novel_reader_"
    cache_quota_bytes: int = 0  # 0 = unbounded
    cache_default_ttl_seconds: float = 24 * 60 * 60
    max_cached_content_bytes: int = 5 * 1024 * 1024

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"
