"""Command-line interface for the token watchlist."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import load_config
from .logging_setup import configure_logging
from .models import SearchResult
from .services import DiscoverySearch, Tracker


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="token-watchlist",
        description="Token watchlist with live portfolio valuation",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    show_parser = sub.add_parser("show", help="Refresh prices and show the portfolio")
    show_parser.add_argument("--page", type=int, default=1, help="Watchlist page (default: 1)")

    add_parser = sub.add_parser("add", help="Add tokens from search or trending results")
    add_parser.add_argument("ids", nargs="+", help="Token ids to add")
    add_parser.add_argument(
        "--query",
        default="",
        help="Search text to find the ids (default: trending tokens)",
    )

    remove_parser = sub.add_parser("remove", help="Remove a token from the watchlist")
    remove_parser.add_argument("id", help="Token id")

    holdings_parser = sub.add_parser("holdings", help="Set holdings for a token")
    holdings_parser.add_argument("id", help="Token id")
    holdings_parser.add_argument("value", help="Quantity held (invalid input counts as 0)")

    search_parser = sub.add_parser("search", help="Search tokens to add")
    search_parser.add_argument("query", help="Search text")

    sub.add_parser("trending", help="List trending tokens")

    watch_parser = sub.add_parser("watch", help="Continuously refresh prices")
    watch_parser.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Refresh interval in seconds (overrides config)",
    )

    return parser


def _print_candidates(session: DiscoverySearch, candidates: list[SearchResult]) -> None:
    if session.error:
        print(session.error)
        return
    if not candidates:
        print("No tokens found")
        return
    for c in candidates:
        marker = " (already added)" if session.is_already_added(c.id) else ""
        print(f"  {c.id:<24} {c.symbol.upper():<8} {c.name}{marker}")


async def _add(tracker: Tracker, ids: list[str], query: str) -> None:
    session = tracker.discovery()
    await session.open()
    if query:
        session.set_query(query)
        await session.settle()

    known = {c.id for c in session.display_tokens}
    for token_id in ids:
        if token_id not in known:
            print(f"{token_id}: not found in {'search' if query else 'trending'} results")
        elif not session.toggle(token_id):
            print(f"{token_id}: already in watchlist")

    added = session.confirm()
    if added:
        print(f"Added {', '.join(t.id for t in added)}")
    else:
        print("Nothing added")


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    tracker = Tracker(config)

    if args.command == "show":
        tracker.start()
        await tracker.prices.settle()
        print(tracker.render_report(args.page))
    elif args.command == "add":
        tracker.start(follow_prices=False)
        await _add(tracker, args.ids, args.query)
    elif args.command == "remove":
        tracker.start(follow_prices=False)
        tracker.store.remove_token(args.id)
    elif args.command == "holdings":
        tracker.start(follow_prices=False)
        if args.id not in tracker.store:
            print(f"{args.id}: not in watchlist")
            sys.exit(1)
        value = tracker.update_holdings(args.id, args.value)
        print(f"{args.id}: holdings set to {value:g}")
    elif args.command == "search":
        tracker.start(follow_prices=False)
        session = tracker.discovery()
        session.set_query(args.query)
        await session.settle()
        _print_candidates(session, session.display_tokens)
    elif args.command == "trending":
        tracker.start(follow_prices=False)
        session = tracker.discovery()
        await session.open()
        _print_candidates(session, session.trending)
    elif args.command == "watch":
        tracker.start(follow_prices=False)
        await tracker.run_continuous(args.interval)
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))
