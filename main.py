# main.py

"""Entry point for the price_watch bot and its one-shot CLI modes."""

import argparse
import asyncio
import logging
import sys

from src.config.logging_config import setup_logging
from src.config.settings import Settings

logger = logging.getLogger("price_watch.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(s["id"] for s in Settings.AVAILABLE_SITES)

    parser = argparse.ArgumentParser(
        prog="price_watch",
        description=(
            "Telegram price tracker: watches product pages and alerts "
            "owners when a price drops."
        ),
        epilog=f"Supported sites: {valid_ids}",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--check-now",
        action="store_true",
        default=False,
        dest="check_now",
        help="Run one price check over the whole watchlist and exit.",
    )
    mode.add_argument(
        "--list",
        type=int,
        default=None,
        metavar="OWNER",
        dest="list_owner",
        help="Print the watchlist of one owner (chat id) and exit.",
    )
    mode.add_argument(
        "--sites",
        action="store_true",
        default=False,
        help="List the supported sites and exit.",
    )
    return parser


def main() -> None:
    """Route to the bot (no args) or a one-shot CLI mode."""
    log_file = setup_logging()
    logger.info("price_watch starting, log file: %s", log_file)

    args = _build_parser().parse_args()

    from src.cli import runner

    try:
        if args.check_now:
            exit_code = asyncio.run(runner.run_check_now())
        elif args.list_owner is not None:
            exit_code = runner.run_list(args.list_owner)
        elif args.sites:
            exit_code = runner.run_sites()
        else:
            exit_code = runner.run_bot()
    except Exception:
        logger.critical("Fatal error", exc_info=True)
        raise
    finally:
        logger.info("price_watch shutting down")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
