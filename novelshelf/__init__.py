"""NovelShelf: novel text acquisition, sanitization and an expiring local cache."""

__version__ = "0.1.0"
