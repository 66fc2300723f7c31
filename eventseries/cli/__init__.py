"""CLI module for EventSeries.

Provides argument parsing, settings and logging setup, and the command
implementations behind ``eventseries`` / ``python -m eventseries``.
"""

from typing import Optional

from ..config.settings import EventSeriesSettings, get_settings
from ..utils.logging import apply_command_line_overrides, setup_logging
from .expand import run_expand
from .parser import create_parser, parse_date


async def main_entry(argv: Optional[list[str]] = None) -> int:
    """Main entry point with argument parsing.

    Args:
        argv: Arguments to parse, ``sys.argv[1:]`` when None

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = EventSeriesSettings(config_file=args.config) if args.config else get_settings()
    settings = apply_command_line_overrides(settings, args)
    setup_logging(settings)

    if args.command == "expand":
        return await run_expand(args, settings)

    parser.error(f"Unknown command: {args.command}")
    return 1


__all__ = [
    "create_parser",
    "main_entry",
    "parse_date",
]
