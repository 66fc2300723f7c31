"""Command-line argument parsing for EventSeries."""

import argparse
from datetime import datetime
from pathlib import Path


def parse_date(date_str: str) -> datetime:
    """Parse date string in YYYY-MM-DD format for command-line arguments.

    Args:
        date_str: Date string to parse in YYYY-MM-DD format

    Returns:
        Parsed datetime set to midnight (00:00:00)

    Raises:
        argparse.ArgumentTypeError: If date format is invalid

    Example:
        >>> parse_date("2024-01-15")
        datetime.datetime(2024, 1, 15, 0, 0)
    """
    try:
        return datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError as err:
        raise argparse.ArgumentTypeError(
            f"Invalid date format: {date_str}. Use YYYY-MM-DD"
        ) from err


def _add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    logging_group = parser.add_argument_group("logging", "Logging configuration options")
    logging_group.add_argument(
        "--log-level",
        choices=["DEBUG", "VERBOSE", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set both console and file log level",
    )
    logging_group.add_argument(
        "--log-dir", type=Path, help="Write rotating log files into this directory"
    )
    logging_group.add_argument(
        "--no-log-colors", action="store_true", help="Disable colored console output"
    )
    verbosity = logging_group.add_mutually_exclusive_group()
    verbosity.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging (VERBOSE level)"
    )
    verbosity.add_argument(
        "--quiet", "-q", action="store_true", help="Only log errors to the console"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the command line argument parser.

    Returns:
        Configured ArgumentParser with the ``expand`` command

    Example:
        >>> parser = create_parser()
        >>> args = parser.parse_args(["expand", "yoga.yaml", "--start", "2024-01-01"])
        >>> args.command
        'expand'
    """
    parser = argparse.ArgumentParser(
        prog="eventseries",
        description="EventSeries - expand and materialize recurring event series",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s expand yoga.yaml                              # Preview the next window of occurrences
  %(prog)s expand yoga.yaml --start 2024-01-01 --end 2024-03-31
  %(prog)s expand yoga.yaml --materialize                # Persist instances into the database
  %(prog)s expand yoga.yaml --materialize --database ./series.db
        """,
    )
    parser.add_argument(
        "--config", type=Path, help="Path to a YAML configuration file"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    expand = subparsers.add_parser(
        "expand",
        help="Expand a series described in YAML",
        description="Expand a series described in YAML into its occurrences",
    )
    expand.add_argument("series_file", type=Path, help="YAML file describing the series")
    expand.add_argument(
        "--start",
        type=parse_date,
        help="First day of the window (YYYY-MM-DD, default: series start)",
    )
    expand.add_argument(
        "--end",
        type=parse_date,
        help="Last day of the window (YYYY-MM-DD, default: start + default_window_days)",
    )
    expand.add_argument(
        "--materialize",
        action="store_true",
        help="Persist instances into the SQLite database instead of previewing",
    )
    expand.add_argument(
        "--database",
        type=Path,
        help="SQLite database file (default: <data_dir>/series.db)",
    )
    _add_logging_arguments(expand)

    return parser


__all__ = [
    "create_parser",
    "parse_date",
]
