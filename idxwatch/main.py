"""Command line entry point."""
import argparse
import asyncio
import curses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from idxwatch.config import app_config
from idxwatch.domain.errors import PersistenceError, StartupError
from idxwatch.infrastructure.news_client import RssNewsClient
from idxwatch.infrastructure.terminal import CursesTerminal
from idxwatch.infrastructure.yahoo_client import YahooClient
from idxwatch.repository.config_store import JsonConfigStore
from idxwatch.scheduler import RefreshScheduler
from idxwatch.services.alert_service import AlertService
from idxwatch.services.record_store import RecordStore
from idxwatch.session.state import Session

LOG_FILENAME = "idxwatch.log"

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError("interval must be a positive number of seconds")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="idxwatch",
        description="Terminal tracker for IDX stock quotes, portfolios, alerts and news",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=_positive_int,
        default=None,
        help=f"Quote refresh interval in seconds (default: {app_config.DEFAULT_REFRESH_SECS})",
    )
    return parser


def configure_logging(directory: Path) -> None:
    """Log to a file; the terminal owns stdout."""
    logging.basicConfig(
        level=getattr(logging, app_config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        filename=str(directory / LOG_FILENAME),
    )


async def _serve(stdscr, records: RecordStore) -> None:
    terminal = CursesTerminal(stdscr)
    alert_service = AlertService()
    alert_service.register_callback(terminal.bell)
    session = Session(records, alert_service)

    quote_client = YahooClient()
    news_client = RssNewsClient()
    scheduler = RefreshScheduler(session, terminal, quote_client, news_client)
    try:
        await scheduler.run()
    finally:
        await quote_client.close()
        await news_client.close()


def _run_curses(stdscr, records: RecordStore) -> None:
    asyncio.run(_serve(stdscr, records))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    args = build_parser().parse_args(argv)

    try:
        store = JsonConfigStore()
        store.ensure_directory()
        configure_logging(store.directory)
        config = store.load()
    except (StartupError, PersistenceError) as e:
        print(f"idxwatch: {e}", file=sys.stderr)
        return 1

    if args.interval is not None:
        config.refresh_interval_secs = args.interval
    logger.info(f"Starting idxwatch, refresh every {config.refresh_interval_secs}s")

    try:
        curses.wrapper(_run_curses, RecordStore(config, store))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    logger.info("idxwatch stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
