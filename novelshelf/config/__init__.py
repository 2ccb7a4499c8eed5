"""Configuration module: exports Settings, load_settings, and a module-level singleton."""

from novelshelf.config.loader import load_settings
from novelshelf.config.settings import Settings

settings = Settings()

__all__ = ["Settings", "load_settings", "settings"]
