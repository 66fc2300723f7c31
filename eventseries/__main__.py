"""Entry point for `python -m eventseries` command."""

import asyncio
import sys

from eventseries.cli import main_entry
from eventseries.utils.logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Entry point for python -m eventseries and the console script."""
    try:
        exit_code = asyncio.run(main_entry())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.debug("Interrupted by user")
        print("Operation cancelled by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
