"""Command-line interface for versekit."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from ._engine import DEFAULT_MAX_RESULTS, Engine
from ._errors import VersekitError
from ._models import SearchHit, Testament, Verse

# ── ANSI color helpers ──

_NO_COLOR = os.environ.get("NO_COLOR") is not None or not sys.stdout.isatty()

_RESET = "\033[0m"

_TITLE = "\033[1;33m"     # bold yellow: book titles
_REF = "\033[36m"         # cyan: verse references
_SCORE = "\033[1;37m"     # bold white: ranks
_QUERY = "\033[1;97m"     # bright bold white: the query text
_NUM = "\033[1;34m"       # bold blue: verse/result numbers
_OK = "\033[32m"          # green
_ERR = "\033[31m"         # red
_LABEL = "\033[90m"       # dark gray: labels
_TEXT = "\033[37m"        # light gray: verse text
_BAR = "\033[90m"         # dark gray: bars/lines

_HLINE = "\u2500"       # ─
_BLOCK_FULL = "\u2588"  # █
_BLOCK_LIGHT = "\u2591" # ░

_DEFAULT_DB = os.environ.get("VERSEKIT_DB", "versekit.db")


def _c(code: str, text: str) -> str:
    """Apply ANSI color code to text, respecting NO_COLOR."""
    if _NO_COLOR:
        return text
    return f"{code}{text}{_RESET}"


def _score_bar(score: float, max_score: float, width: int = 20) -> str:
    """Render a horizontal bar showing relative score."""
    if max_score <= 0:
        filled = 0
    else:
        filled = min(width, round(width * score / max_score))
    bar = _BLOCK_FULL * filled + _BLOCK_LIGHT * (width - filled)
    return _c(_BAR, bar)


# ── Commands ──

def _cmd_init(args: argparse.Namespace) -> None:
    """Create the schema and seed the canon."""
    with Engine(db_path=args.db) as engine:
        s = engine.status()
    print(f"Initialized {s['db_path']} ({s['n_books']} books, {s['n_verses']} verses)")


def _cmd_load(args: argparse.Namespace) -> None:
    """Load a JSON or CSV corpus file."""
    with Engine(db_path=args.db) as engine:
        result = engine.load(args.path, fmt=args.format)
    print(f"Loaded {result.n_verses} verses, {result.n_books} books from {result.source_path}")


def _cmd_books(args: argparse.Namespace) -> None:
    """List books in canonical order."""
    with Engine(db_path=args.db) as engine:
        books = engine.get_books(args.testament)

    current = None
    for b in books:
        if b.testament != current:
            current = b.testament
            print(f"\n  {_c(_TITLE, current.value)}")
        print(f"  {_c(_NUM, f'{b.seq_number:3d}.')} {b.name:<20s} "
              f"{_c(_LABEL, f'{b.chapter_count} chapters')}")
    print()


def _print_verses(verses: list[Verse], title: str) -> None:
    print()
    print(f"  {_c(_TITLE, title)}")
    print(f"  {_c(_BAR, _HLINE * 72)}")
    if not verses:
        print(f"\n  {_c(_LABEL, 'No verses found.')}\n")
        return
    for v in verses:
        print(f"  {_c(_NUM, f'{v.verse:3d}')} {_c(_TEXT, v.text)}")
    print()


def _cmd_read(args: argparse.Namespace) -> None:
    """Print a chapter or passage."""
    with Engine(db_path=args.db) as engine:
        verses = engine.fetch_passage(args.reference)
    title = args.reference
    if verses:
        first = verses[0]
        title = f"{first.book} {first.chapter}"
    _print_verses(verses, title)


def _print_search_results(hits: list[SearchHit], query: str, show_rank: bool) -> None:
    """Pretty-print search hits."""
    print()
    print(f"  {_c(_LABEL, 'Query:')} {_c(_QUERY, query)}")
    print(f"  {_c(_BAR, _HLINE * 72)}")

    if not hits:
        print(f"\n  {_c(_LABEL, 'No results found.')}")
        print()
        return

    max_rank = hits[0].rank
    for i, hit in enumerate(hits, 1):
        v = hit.verse
        line = f"{_c(_NUM, f' {i:3d}.')} {_c(_REF, v.reference)}"
        if show_rank:
            line += f"  {_score_bar(hit.rank, max_rank)} {_c(_SCORE, f'{hit.rank:.3f}')}"
        print(line)
        print(f"       {_c(_TEXT, v.text)}")

    print()
    print(f"  {_c(_BAR, _HLINE * 72)}")
    print(f"  {_c(_LABEL, f'{len(hits)} results')}")
    print()


def _cmd_search(args: argparse.Namespace) -> None:
    """Search verse text."""
    with Engine(db_path=args.db) as engine:
        if args.substring:
            hits = engine.search_substring(args.query, max_results=args.max_results)
        else:
            hits = engine.search(args.query, max_results=args.max_results)
    _print_search_results(hits, args.query, show_rank=args.rank and not args.substring)


def _cmd_status(args: argparse.Namespace) -> None:
    """Show system status."""
    with Engine(db_path=args.db) as engine:
        s = engine.status()
    print(f"Status: {s['status']}")
    print(f"Books: {s['n_books']}")
    print(f"Verses: {s['n_verses']}")
    print(f"SQLite version: {s['sqlite_version']}")
    print(f"DB path: {s['db_path']}")


def _cmd_verify(args: argparse.Namespace) -> None:
    """Check that every verse's index entry matches its text."""
    with Engine(db_path=args.db) as engine:
        stale = engine.verify_index()
    if not stale:
        print(_c(_OK, "Search index is consistent."))
        return
    print(_c(_ERR, f"{len(stale)} stale index entr{'y' if len(stale) == 1 else 'ies'}:"))
    for key in stale[:20]:
        print(f"  {key}")
    sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the versekit CLI."""
    parser = argparse.ArgumentParser(
        prog="versekit",
        description="versekit: scripture lookup and full-text search",
    )
    parser.add_argument("--db", default=_DEFAULT_DB, help=f"Database path (default: {_DEFAULT_DB})")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log verbosity (-v info, -vv debug)")

    subparsers = parser.add_subparsers(dest="command")

    # init
    subparsers.add_parser("init", help="Create the database and seed the canon")

    # load
    p_load = subparsers.add_parser("load", help="Load a corpus file")
    p_load.add_argument("path", help="Path to a .json or .csv corpus")
    p_load.add_argument("--format", choices=("json", "csv"), help="Override format detection")

    # books
    p_books = subparsers.add_parser("books", help="List books")
    p_books.add_argument("--testament", choices=[t.value for t in Testament],
                         help="Only books of one testament")

    # read
    p_read = subparsers.add_parser("read", help="Read a chapter or passage")
    p_read.add_argument("reference", help='Reference, e.g. "John 3" or "John 3:16-18"')

    # search
    p_search = subparsers.add_parser("search", help="Full-text search")
    p_search.add_argument("query", help="Search query text")
    p_search.add_argument("--max-results", type=int, default=DEFAULT_MAX_RESULTS,
                          help=f"Maximum results (default: {DEFAULT_MAX_RESULTS})")
    p_search.add_argument("--rank", action="store_true", help="Show relevance ranks")
    p_search.add_argument("--substring", action="store_true",
                          help="Unranked substring match instead of full-text search")

    # status
    subparsers.add_parser("status", help="Show system status")

    # verify
    subparsers.add_parser("verify", help="Check search index consistency")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=max(logging.DEBUG, logging.WARNING - 10 * args.verbose),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "init": _cmd_init,
        "load": _cmd_load,
        "books": _cmd_books,
        "read": _cmd_read,
        "search": _cmd_search,
        "status": _cmd_status,
        "verify": _cmd_verify,
    }
    try:
        commands[args.command](args)
    except VersekitError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
