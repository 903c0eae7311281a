from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .commands import Command, Session
from .config import SessionConfig, sqlite_path
from .errors import GatorError
from .handlers import build_router
from .store import Store

COMMANDS_HELP = """\
commands:
  register <username>     create a user and log in as them
  login <username>        switch the current user
  users                   list users
  reset                   delete all users, their feeds and follows
  addfeed <name> <url>    add a feed and follow it
  feeds                   list all feeds
  follow <url>            follow an existing feed
  following               list feeds the current user follows
  unfollow <url>          stop following a feed
  agg <interval>          fetch feeds forever, one per interval (e.g. 30s, 1m)
"""


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gator",
        description="RSS feed aggregator",
        epilog=COMMANDS_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("--config", type=Path, default=None, help="Path to config JSON (default: ~/.gatorconfig.json)")
    p.add_argument("--db", default=None, help="Path to sqlite DB (overrides db_url from config)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    p.add_argument("--show-config", action="store_true", help="Print the effective configuration and exit")
    p.add_argument("command", nargs="?", help="Command name")
    p.add_argument("arguments", nargs=argparse.REMAINDER, help="Command arguments")
    return p


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    session_config = SessionConfig(args.config)
    try:
        cfg = session_config.read()
        if args.show_config:
            print(session_config.describe())
            return 0
        if not args.command:
            parser.print_usage(sys.stderr)
            return 1

        store = Store(sqlite_path(args.db or cfg.db_url))
        session = Session(config=session_config, store=store)
        build_router().run(session, Command(args.command, list(args.arguments)))
    except GatorError as e:
        print(f"Command failed: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
