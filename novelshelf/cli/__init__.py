"""Command-line interface for NovelShelf."""
