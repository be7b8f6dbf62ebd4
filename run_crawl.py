"""Run a crawl from the command line and print the run summary as JSON.

    python run_crawl.py georgia_probate_records qpublic_all --date-from 2024-03-01
"""
import argparse
import asyncio
import signal
import sys
from datetime import date

from loguru import logger

from probate_monitor.core.config import settings
from probate_monitor.core.database import init_db
from probate_monitor.core.errors import ConfigurationError
from probate_monitor.core.logging import configure_logging
from probate_monitor.core.sites import SITE_GROUPS, SITE_REGISTRY
from probate_monitor.services.crawl_orchestrator import build_orchestrator
from probate_monitor.utils.retry import CancellationToken

DEFAULT_SITES = ["georgia_probate_records", "cobb_probate"]


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Crawl probate and property sites for new estate filings")
    parser.add_argument("sites", nargs="*", default=DEFAULT_SITES,
                        help=f"Site keys or groups ({', '.join(list(SITE_REGISTRY) + list(SITE_GROUPS))})")
    parser.add_argument("--date-from", type=date.fromisoformat, default=None,
                        help="Search filings from this date (YYYY-MM-DD)")
    parser.add_argument("--workers", type=int, default=settings.CRAWL_MAX_WORKERS,
                        help="Number of sites crawled in parallel")
    return parser.parse_args(argv)


async def main(args: argparse.Namespace) -> int:
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, token.cancel)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    init_db()
    orchestrator = build_orchestrator(token=token, workers=args.workers)
    try:
        summary = await orchestrator.run_crawl(args.sites, args.date_from)
    except ConfigurationError as e:
        logger.error(str(e))
        return 2
    finally:
        await orchestrator.enrichment.close()

    print(summary.model_dump_json(indent=2))
    if summary.per_site and all(outcome.error for outcome in summary.per_site):
        return 1
    return 0


if __name__ == "__main__":
    configure_logging()
    sys.exit(asyncio.run(main(parse_args())))
