"""
CLI runner for imdb-suggest.

Usage:
    python -m imdb_suggest.run [TERM] [OPTIONS]

    # Search one term
    python -m imdb_suggest.run "the matrix"

    # Search a term plus its variations, keeping images, and export JSON
    python -m imdb_suggest.run matrix --variations --images --export exports/

    # Discovery mode (no term)
    python -m imdb_suggest.run

    # Show the last saved results
    python -m imdb_suggest.run --restore
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import SuggestConfig
from .models import SessionStatus
from .session import SuggestApp

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("imdb-suggest")


def print_catalog(app: SuggestApp, limit: int) -> None:
    """Print the current catalog as a table-ish listing."""
    catalog = app.last_catalog
    for entry in catalog.entries[:limit]:
        year = entry.year if entry.year is not None else "----"
        rank = entry.rank if entry.rank is not None else "-"
        print(f"{entry.id:<12} {year!s:<5} {rank!s:>8}  {entry.title} ({entry.kind or 'title'})")
    if catalog.count > limit:
        print(f"... {catalog.count - limit} more")


def print_history(app: SuggestApp) -> None:
    history = app.history()
    if not history:
        print("No history.")
        return
    for item in history:
        flags = []
        if item.meta.use_variations:
            flags.append("variations")
        if item.meta.want_images:
            flags.append("images")
        flag_str = f" [{', '.join(flags)}]" if flags else ""
        query = item.meta.query or "(discovery)"
        print(f"{item.meta.timestamp}  {query}{flag_str}: {item.results} titles")


async def run_search(app: SuggestApp, args: argparse.Namespace) -> int:
    """Run one session and handle outputs."""
    result = await app.submit(args.term, args.variations, args.images)
    if result is None:
        logger.error("A session is already running")
        return 1
    if result.status is SessionStatus.FAILED:
        return 1

    print_catalog(app, args.limit)
    if args.export:
        app.export(args.export)
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="imdb-suggest: aggregate IMDb suggestions into a title catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m imdb_suggest.run "the matrix"
    python -m imdb_suggest.run matrix --variations --html results.html
    python -m imdb_suggest.run --history
    python -m imdb_suggest.run --config imdb_suggest.yaml --concurrency 3 matrix
        """,
    )

    parser.add_argument(
        "term",
        nargs="?",
        default="",
        help="Search term (omit for discovery mode)",
    )
    parser.add_argument(
        "--variations",
        action="store_true",
        help="Also probe suffix, letter and digit variations of the term",
    )
    parser.add_argument(
        "--images",
        action="store_true",
        help="Keep poster image fields in the results",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("imdb_suggest.yaml"),
        help="Path to config file (default: imdb_suggest.yaml)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        help="Override storage database path from config",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        help="Override number of concurrent lookups",
    )
    parser.add_argument(
        "--html",
        type=Path,
        help="Write rendered result cards to this file",
    )
    parser.add_argument(
        "--export",
        type=Path,
        help="Write the catalog as JSON into this directory",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Maximum titles to print (default: 50)",
    )
    parser.add_argument(
        "--history",
        action="store_true",
        help="Show search history and exit",
    )
    parser.add_argument(
        "--clear-history",
        action="store_true",
        help="Clear search history and exit",
    )
    parser.add_argument(
        "--restore",
        action="store_true",
        help="Show the last saved results and exit",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Load config
    try:
        config = SuggestConfig.from_yaml(args.config).with_overrides(
            db_path=args.db, concurrency=args.concurrency
        )
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    logger.debug(f"Config loaded from {args.config}: {config.to_dict()}")

    html_path: Path | None = args.html

    def on_render(html: str) -> None:
        if html_path is not None and html:
            html_path.write_text(html, encoding="utf-8")

    def on_status(message: str) -> None:
        logger.info(message)

    app = SuggestApp(config, on_status=on_status, on_render=on_render)

    if args.history:
        print_history(app)
        return 0

    if args.clear_history:
        app.clear_history()
        return 0

    if args.restore:
        if app.restore() is None:
            return 1
        print_catalog(app, args.limit)
        return 0

    return asyncio.run(run_search(app, args))


if __name__ == "__main__":
    sys.exit(main())
