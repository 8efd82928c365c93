# listing_ingest/utils.py
"""Shared utilities: logging setup, async retry decorator and clock helper."""
import asyncio
import logging
import os
from datetime import datetime, timezone
from functools import wraps

from dotenv import load_dotenv

load_dotenv()


def get_logger(name=__name__):
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        level=getattr(logging, level, logging.INFO)
    )
    return logging.getLogger(name)

logger = get_logger("listing-ingest")


def utcnow():
    return datetime.now(timezone.utc)


def retry(exceptions, tries=3, delay=1, backoff=2, logger=logger):
    """Retry an async callable on `exceptions` with exponential backoff.

    The final attempt is made outside the loop so its exception propagates.
    """
    def deco_retry(f):
        @wraps(f)
        async def f_retry(*args, **kwargs):
            mtries, mdelay = tries, delay
            while mtries > 1:
                try:
                    return await f(*args, **kwargs)
                except exceptions as e:
                    logger.warning("Retryable error: %s, retrying in %s sec", e, mdelay)
                    await asyncio.sleep(mdelay)
                    mtries -= 1
                    mdelay *= backoff
            return await f(*args, **kwargs)
        return f_retry
    return deco_retry
