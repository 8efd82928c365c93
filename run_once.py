"""Run a single crawl cycle from the project root and exit.

Useful for backfills and for checking credentials/storage wiring without
starting the API and scheduler.
"""
import asyncio
import sys

from listing_ingest.config import get_settings
from listing_ingest.errors import ConfigError
from listing_ingest.runtime import build_runtime
from listing_ingest.utils import logger


async def crawl_once():
    runtime = build_runtime(get_settings())
    try:
        return await runtime.orchestrator.trigger()
    finally:
        await runtime.close()


if __name__ == "__main__":
    try:
        report = asyncio.run(crawl_once())
    except ConfigError as e:
        logger.critical("%s", e)
        raise SystemExit(1)

    if report is None:
        logger.error("Crawl cycle failed; see log above.")
        sys.exit(1)
    print(report.model_dump_json(indent=2))
