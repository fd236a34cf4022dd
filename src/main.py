# src/main.py — v2
"""CLI entry point — cache inspection and maintenance commands.

Usage:
    reqcache stats
    reqcache list
    reqcache clear [--yes]
    reqcache delete <name> [<name> ...]
    reqcache classify <file> [--strict] [--json]
    reqcache digest <file> [--context TEXT]
    reqcache pushed [<name>]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from reqcache.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="reqcache",
        description=f"reqcache v{__version__} — content-addressed generation cache",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--backend", choices=("json", "sqlite", "redis"), default=None,
        help="Cache backend (default: CACHE_BACKEND from .env)",
    )
    parser.add_argument(
        "--cache-root", type=Path, default=None,
        help="Cache directory (default: CACHE_ROOT from .env)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- stats ---
    p_stats = subparsers.add_parser("stats", help="Show cache statistics")
    p_stats.set_defaults(func=_cmd_stats)

    # --- list ---
    p_list = subparsers.add_parser("list", help="List cached documents")
    p_list.set_defaults(func=_cmd_list)

    # --- clear ---
    p_clear = subparsers.add_parser(
        "clear", help="Remove every cached artifact (pushed states are kept)",
    )
    p_clear.add_argument(
        "--yes", action="store_true", help="Do not ask for confirmation",
    )
    p_clear.set_defaults(func=_cmd_clear)

    # --- delete ---
    p_delete = subparsers.add_parser(
        "delete", help="Delete documents and their pushed state",
    )
    p_delete.add_argument("names", nargs="+", help="Document names")
    p_delete.set_defaults(func=_cmd_delete)

    # --- classify ---
    p_classify = subparsers.add_parser(
        "classify", help="Show the canonical element count of a text file",
    )
    p_classify.add_argument("file", type=Path, help="UTF-8 text file")
    p_classify.add_argument(
        "--strict", action="store_true",
        help="Drop lines matching no classification rule",
    )
    p_classify.add_argument(
        "--json", action="store_true", help="Print the full result as JSON",
    )
    p_classify.set_defaults(func=_cmd_classify)

    # --- digest ---
    p_digest = subparsers.add_parser("digest", help="Print the cache digest of a file")
    p_digest.add_argument("file", type=Path, help="File to fingerprint")
    p_digest.add_argument(
        "--context", default=None,
        help="Hash as text with this generation context (default: raw bytes)",
    )
    p_digest.set_defaults(func=_cmd_digest)

    # --- pushed ---
    p_pushed = subparsers.add_parser("pushed", help="Show pushed states")
    p_pushed.add_argument("name", nargs="?", default=None, help="Document name")
    p_pushed.set_defaults(func=_cmd_pushed)

    return parser


def _load_settings(args: argparse.Namespace):
    from reqcache.config.settings import load_settings

    overrides: dict[str, object] = {}
    if args.backend:
        overrides["cache_backend"] = args.backend
    if args.cache_root:
        overrides["cache_root"] = args.cache_root
    return load_settings(**overrides)


def _facade(args: argparse.Namespace):
    from reqcache.api.facade import CacheFacade

    return CacheFacade.from_settings(_load_settings(args))


async def _cmd_stats(args: argparse.Namespace) -> int:
    """Display cache statistics."""
    facade = _facade(args)
    try:
        stats = await facade.get_cache_stats()
    finally:
        facade.close()

    print("\nCache statistics:")
    print(f"  Entries:    {stats.total_entries}")
    print(f"  Documents:  {stats.document_count}")
    print(f"  Size:       {stats.total_megabytes:.2f} MB")
    for kind, kind_stats in stats.by_kind.items():
        print(f"  {kind.value + ':':<12}{kind_stats.entries} ({kind_stats.bytes} bytes)")
    return 0


async def _cmd_list(args: argparse.Namespace) -> int:
    """List cached documents, newest first."""
    facade = _facade(args)
    try:
        documents = await facade.list_cached_documents()
    finally:
        facade.close()

    if not documents:
        print("No cached documents.")
        return 0
    for doc in documents:
        kinds = ",".join(k.value for k in doc.kinds_present)
        cached = doc.date_cached.isoformat(timespec="seconds") if doc.date_cached else "-"
        print(f"{doc.name}\t{doc.requirement_count}\t{kinds}\t{cached}")
    return 0


async def _cmd_clear(args: argparse.Namespace) -> int:
    """Remove every cached artifact."""
    if not args.yes:
        answer = input("Remove every cached artifact? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted.")
            return 1

    facade = _facade(args)
    try:
        removed = await facade.clear_cache()
    finally:
        facade.close()
    print(f"Removed {removed} cache entries.")
    return 0


async def _cmd_delete(args: argparse.Namespace) -> int:
    """Delete named documents."""
    facade = _facade(args)
    try:
        report = await facade.delete_multiple_documents(args.names)
    finally:
        facade.close()

    print(f"Deleted {report.deleted_count} documents.")
    for failure in report.failed_documents:
        print(f"  {failure.name}: {failure.error}")
    return 0 if report.failed_count == 0 else 1


async def _cmd_classify(args: argparse.Namespace) -> int:
    """Classify a text file and print the canonical count."""
    from reqcache.classification.classifier import ElementClassifier
    from reqcache.classification.models import ClassifierOptions

    path: Path = args.file
    if not path.is_file():
        logger.error("Not a file: %s", path)
        return 1

    settings = _load_settings(args)
    options = ClassifierOptions(
        min_line_length=settings.classifier_min_line_length,
        max_line_length=settings.classifier_max_line_length,
        enable_strict_mode=args.strict or settings.classifier_strict_mode,
        include_low_priority=settings.classifier_include_low_priority,
    )
    result = ElementClassifier(options).classify(path.read_text(encoding="utf-8"))

    if args.json:
        print(result.model_dump_json(indent=2))
        return 0

    print(f"\nClassification of {path.name}:")
    print(f"  Elements:    {result.count}")
    print(f"  Business:    {result.business_count}")
    print(f"  Complexity:  {result.complexity.value}")
    for category, count in result.breakdown.items():
        print(f"  {category.value + ':':<13}{count}")
    return 0


async def _cmd_digest(args: argparse.Namespace) -> int:
    """Print the digest used as cache key."""
    from reqcache.cache.fingerprint import digest_bytes, digest_text

    path: Path = args.file
    if not path.is_file():
        logger.error("Not a file: %s", path)
        return 1

    if args.context is None:
        digest = digest_bytes(path.read_bytes())
    else:
        digest = digest_text(path.read_text(encoding="utf-8"), args.context)
    print(digest.hash)
    return 0


async def _cmd_pushed(args: argparse.Namespace) -> int:
    """Show one pushed state, or every pushed state."""
    facade = _facade(args)
    try:
        if args.name:
            state = await facade.get_pushed_state(args.name)
            states = [state] if state is not None else []
        else:
            states = await facade.get_all_pushed_states()
    finally:
        facade.close()

    if not states:
        print("No pushed state.")
        return 0 if args.name is None else 1
    for state in states:
        print(state.model_dump_json(indent=2))
    return 0


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from reqcache.logging.logger import setup_logging

    setup_logging(level="DEBUG" if verbose else "WARNING", log_format="text")


if __name__ == "__main__":
    sys.exit(main())
