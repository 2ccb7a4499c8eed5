"""Utility modules for NovelShelf.

- **encoding** -- UTF-8 / GB18030 / Latin-1 decode chain.
- **errors** -- exception hierarchy rooted at NovelShelfError, each error
  tagged with a FailureKind.
- **formatting** -- human-readable byte sizes.
- **json_path** -- dotted-path lookup with candidate fallbacks.
- **logging** -- structlog setup (console in development, JSON in production).
- **metadata** -- title / author heuristics for plain-text novels.
- **text_cleaner** -- garbled-character detection and cleaning.
"""

# -- Domain exception hierarchy --------------------------------------------
from novelshelf.utils.errors import (
    ConfigurationError,
    ExtractionError,
    FailureKind,
    FetchFailedError,
    NovelShelfError,
    StorageError,
)

# -- Structured logging setup ----------------------------------------------
from novelshelf.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "ExtractionError",
    "FailureKind",
    "FetchFailedError",
    "NovelShelfError",
    "StorageError",
    "configure_logging",
    "get_logger",
]
