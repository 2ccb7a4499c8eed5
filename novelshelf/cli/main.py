"""Command-line front end for NovelShelf.

Usage::

    novelshelf fetch https://example.com/books/doupo.txt --cache
    novelshelf upload ./novel.txt
    novelshelf check https://example.com/books/doupo.txt
    novelshelf preview-json https://api.example.com/book/1 --content-path data.text
    novelshelf ingest-json https://api.example.com/book/1 --cache
    novelshelf clean ./garbled.txt --output ./clean.txt
    novelshelf cache stats
    novelshelf history --limit 10
    novelshelf progress

Results go to stdout, logs and progress to stderr.  Exit code 0 on
success, 1 on a reported failure.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from novelshelf.config.loader import DEFAULT_CONFIG_PATH, load_settings
from novelshelf.main import build_services, close_services
from novelshelf.models.fetch import CustomJsonConfig, FetchOptions, FetchProgress, FetchResult
from novelshelf.utils.encoding import decode_bytes
from novelshelf.utils.errors import NovelShelfError
from novelshelf.utils.formatting import format_file_size
from novelshelf.utils.logging import configure_logging
from novelshelf.utils.text_cleaner import auto_clean


def _print_progress(progress: FetchProgress) -> None:
    print(
        f"\r  {progress.percentage:5.1f}%  {format_file_size(progress.loaded)}"
        f" / {format_file_size(progress.total)}",
        end="",
        file=sys.stderr,
        flush=True,
    )


def _print_result(result: FetchResult, output: str | None) -> None:
    print(f"Title:   {result.title}")
    print(f"Author:  {result.author}")
    print(f"Size:    {result.file_size}")
    print(f"Chars:   {len(result.content)}")
    if output:
        Path(output).write_text(result.content, encoding="utf-8")
        print(f"Written: {output}")


def _json_config(args: argparse.Namespace) -> CustomJsonConfig:
    return CustomJsonConfig(
        title_path=args.title_path,
        content_path=args.content_path,
        author_path=args.author_path,
    )


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_fetch(args: argparse.Namespace, services: dict[str, Any]) -> int:
    s = services["settings"]
    options = FetchOptions(
        timeout=args.timeout if args.timeout is not None else s.fetch_timeout_seconds,
        retries=args.retries if args.retries is not None else s.fetch_retries,
        on_progress=_print_progress,
    )
    print(f"Fetching: {args.url}")
    if args.cache:
        novel, content = await services["library"].cache_from_url(args.url, options)
        print(file=sys.stderr)
        print(f"Cached as id {novel.id}")
        result = FetchResult(
            content=content, title=novel.title, author=novel.author, file_size=novel.file_size
        )
    else:
        result = await services["fetcher"].fetch_from_url(args.url, options)
        print(file=sys.stderr)
    _print_result(result, args.output)
    return 0


async def _handle_upload(args: argparse.Namespace, services: dict[str, Any]) -> int:
    path = Path(args.file)
    data = path.read_bytes()
    if args.cache:
        novel, content = services["library"].cache_upload(data, path.name)
        print(f"Cached as id {novel.id}")
        result = FetchResult(
            content=content, title=novel.title, author=novel.author, file_size=novel.file_size
        )
    else:
        result = services["fetcher"].fetch_from_upload(data, path.name)
    _print_result(result, args.output)
    return 0


async def _handle_check(args: argparse.Namespace, services: dict[str, Any]) -> int:
    timeout = args.timeout if args.timeout is not None else services["settings"].validation_timeout_seconds
    outcome = await services["fetcher"].check_url_validity(args.url, timeout)
    if outcome.valid:
        print(f"OK: {args.url}")
        return 0
    kind = outcome.kind.value if outcome.kind else "unknown"
    print(f"INVALID ({kind}): {outcome.message}")
    return 1


async def _handle_preview_json(args: argparse.Namespace, services: dict[str, Any]) -> int:
    preview = await services["custom_json"].preview(args.url, _json_config(args))
    print(f"Title:   {preview.title}")
    print(f"Author:  {preview.author}")
    print(f"Length:  {preview.content_length}")
    print("Preview:")
    print(preview.content_preview)
    return 0


async def _handle_ingest_json(args: argparse.Namespace, services: dict[str, Any]) -> int:
    options = FetchOptions(
        timeout=services["settings"].fetch_timeout_seconds,
        on_progress=_print_progress,
    )
    if args.cache:
        novel, content = await services["library"].cache_from_custom_json(
            args.url, _json_config(args), options
        )
        print(file=sys.stderr)
        print(f"Cached as id {novel.id}")
        result = FetchResult(
            content=content, title=novel.title, author=novel.author, file_size=novel.file_size
        )
    else:
        result = await services["custom_json"].ingest(args.url, _json_config(args), options)
        print(file=sys.stderr)
    _print_result(result, args.output)
    return 0


async def _handle_clean(args: argparse.Namespace, services: dict[str, Any]) -> int:
    decoded = decode_bytes(Path(args.file).read_bytes())
    result = auto_clean(decoded.text)

    print(f"Encoding: {decoded.encoding}", file=sys.stderr)
    print(f"Severity: {result.severity.value}", file=sys.stderr)
    if result.was_cleaned:
        print(f"Patterns: {', '.join(result.patterns)}", file=sys.stderr)
        print(f"Removed:  {result.removed_chars}", file=sys.stderr)
        print(f"Replaced: {result.replaced_chars}", file=sys.stderr)

    if args.output:
        Path(args.output).write_text(result.text, encoding="utf-8")
    else:
        sys.stdout.write(result.text)
    return 0


async def _handle_cache(args: argparse.Namespace, services: dict[str, Any]) -> int:
    cache = services["cache"]
    if args.action == "stats":
        stats = cache.stats()
        print("Cache Statistics")
        print("=" * 40)
        print(f"  Namespace:   {cache.namespace}")
        print(f"  Entries:     {stats.item_count}")
        print(f"  Expired:     {stats.expired_count}")
        print(f"  Total size:  {format_file_size(stats.total_size)}")
    elif args.action == "cleanup":
        print(f"Removed {cache.cleanup_expired()} expired entries")
    else:
        print(f"Removed {cache.clear()} entries")
    return 0


async def _handle_history(args: argparse.Namespace, services: dict[str, Any]) -> int:
    entries = services["search_history"].get(limit=args.limit)
    if not entries:
        print("No search history.")
        return 0
    for entry in entries:
        print(f"  {entry.keyword:<24} {entry.target.value:<8} {entry.result_count} results")
    return 0


async def _handle_progress(args: argparse.Namespace, services: dict[str, Any]) -> int:
    entries = services["reading_progress"].get_all()
    if not entries:
        print("No reading progress.")
        return 0
    for entry in sorted(entries, key=lambda e: e.timestamp, reverse=True):
        print(f"  [{entry.novel_id}] {entry.title:<30} {entry.progress:5.1f}%  page {entry.page}")
    return 0


_HANDLERS = {
    "fetch": _handle_fetch,
    "upload": _handle_upload,
    "check": _handle_check,
    "preview-json": _handle_preview_json,
    "ingest-json": _handle_ingest_json,
    "clean": _handle_clean,
    "cache": _handle_cache,
    "history": _handle_history,
    "progress": _handle_progress,
}


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_json_paths(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("url", help="JSON endpoint URL")
    parser.add_argument("--title-path", dest="title_path", help="Dotted path to the title")
    parser.add_argument("--content-path", dest="content_path", help="Dotted path to the text")
    parser.add_argument("--author-path", dest="author_path", help="Dotted path to the author")


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the novelshelf CLI."""
    parser = argparse.ArgumentParser(
        prog="novelshelf",
        description="Fetch, clean and cache novel text.",
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG_PATH, help=f"YAML config (default: {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument("--log-level", dest="log_level", help="Override the configured log level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- fetch --
    fetch_parser = subparsers.add_parser("fetch", help="Download a novel from a URL")
    fetch_parser.add_argument("url", help="Text file URL")
    fetch_parser.add_argument("--retries", type=int, help="Attempts before giving up")
    fetch_parser.add_argument("--timeout", type=float, help="Per-attempt timeout in seconds")
    fetch_parser.add_argument("--cache", action="store_true", help="Store in the local library")
    fetch_parser.add_argument("--output", "-o", help="Write the text to this file")

    # -- upload --
    upload_parser = subparsers.add_parser("upload", help="Decode a local text file")
    upload_parser.add_argument("file", help="Path to the file")
    upload_parser.add_argument("--cache", action="store_true", help="Store in the local library")
    upload_parser.add_argument("--output", "-o", help="Write the text to this file")

    # -- check --
    check_parser = subparsers.add_parser("check", help="Probe whether a URL is fetchable")
    check_parser.add_argument("url", help="URL to probe")
    check_parser.add_argument("--timeout", type=float, help="Probe timeout in seconds")

    # -- preview-json / ingest-json --
    preview_parser = subparsers.add_parser("preview-json", help="Preview a custom JSON source")
    _add_json_paths(preview_parser)

    ingest_parser = subparsers.add_parser("ingest-json", help="Ingest a custom JSON source")
    _add_json_paths(ingest_parser)
    ingest_parser.add_argument("--cache", action="store_true", help="Store in the local library")
    ingest_parser.add_argument("--output", "-o", help="Write the text to this file")

    # -- clean --
    clean_parser = subparsers.add_parser("clean", help="Strip garbled characters from a file")
    clean_parser.add_argument("file", help="Path to the file")
    clean_parser.add_argument("--output", "-o", help="Write cleaned text here instead of stdout")

    # -- cache --
    cache_parser = subparsers.add_parser("cache", help="Inspect or maintain the cache")
    cache_parser.add_argument("action", choices=["stats", "cleanup", "clear"])

    # -- history / progress --
    history_parser = subparsers.add_parser("history", help="Show recent searches")
    history_parser.add_argument("--limit", type=int, default=20, help="Entries to show")
    subparsers.add_parser("progress", help="Show saved reading progress")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def _dispatch(args: argparse.Namespace, services: dict[str, Any]) -> int:
    try:
        return await _HANDLERS[args.command](args, services)
    finally:
        await close_services(services)


def run(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the command and return the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        app_settings = load_settings(args.config)
        configure_logging(
            log_level=args.log_level or app_settings.log_level,
            json_output=app_settings.app_env == "production",
        )
        services = build_services(app_settings)
        return asyncio.run(_dispatch(args, services))
    except NovelShelfError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def main() -> None:
    """Console-script entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
