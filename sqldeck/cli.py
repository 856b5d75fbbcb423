"""sqldeck - a terminal client for SQL databases."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from sqldeck import __version__
from sqldeck.shared.core.log_setup import setup_logging

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqldeck",
        description="Browse and query a SQLite database from the terminal.",
    )
    parser.add_argument("database", nargs="?", help="Path to a SQLite database file to open on start")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level for ~/.sqldeck/logs/sqldeck.log (default: $SQLDECK_LOG_LEVEL or WARNING)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_startup(database: str | None):
    """Turn the DATABASE argument into a startup connection or a fatal error.

    Returns:
        ``(connection, error)``; at most one of them is set.
    """
    from sqldeck.domains.connections.store.connections import ConnectionConfig

    if not database:
        return None, None
    path = Path(database).expanduser()
    if database != ":memory:" and not path.is_file():
        return None, f"Database file not found: {path}"
    return ConnectionConfig.for_path(database if database == ":memory:" else str(path)), None


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    args = build_parser().parse_args(argv)
    log_path = setup_logging(args.log_level)
    logger.info("Starting sqldeck %s (log: %s)", __version__, log_path)

    from sqldeck.app import SqlDeckApp

    connection, error = resolve_startup(args.database)
    app = SqlDeckApp(startup_connection=connection, fatal_error=error)
    app.run()
    return app.return_code or 0


if __name__ == "__main__":
    sys.exit(main())
