# listing_ingest/feed.py
"""Paginated, rate-limited reads from the OData Property endpoint."""
import asyncio
from datetime import timedelta, timezone

import httpx

from .errors import TokenUnavailableError, UpstreamAuthError, UpstreamServerError
from .utils import logger, retry, utcnow

NEXT_LINK = "@odata.nextLink"
AUTH_STATUS_CODES = {401, 403}


def odata_timestamp(instant):
    return instant.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def modification_filter(since):
    return f"ModificationTimestamp gt {odata_timestamp(since)}"


class PagedFetcher:
    """Walks the listings endpoint for records modified after a given instant.

    Requests go out in batches of at most `concurrency`; each dispatch is
    preceded by a fixed delay of 1/rate seconds. Continuation links returned
    by a batch are queued for the next one. A failed page only loses its own
    listings (and any pages it would have linked to); `failed_pages` counts
    them for the last fetch. An authorization failure that survives one token
    refresh halts the whole fetch.
    """

    def __init__(self, client: httpx.AsyncClient, token_manager, settings, clock=utcnow):
        self._client = client
        self._tokens = token_manager
        self._settings = settings
        self._clock = clock
        self._endpoint = f"{settings.api_base_url.rstrip('/')}/Property"
        self.failed_pages = 0
        self._get_json = retry(
            (httpx.TransportError, UpstreamServerError),
            tries=settings.retry_attempts,
            delay=settings.retry_delay_seconds,
        )(self._get_json_once)

    def build_params(self, since=None):
        if since is None:
            since = self._clock() - timedelta(days=self._settings.cold_start_lookback_days)
        return {
            "$filter": modification_filter(since),
            "$expand": "Media",
            "$top": self._settings.api_page_size,
        }

    async def _get_json_once(self, url, params=None):
        headers = await self._tokens.authorization_header()
        response = await self._client.get(url, params=params, headers=headers, timeout=self._settings.timeout_seconds)
        if response.status_code in AUTH_STATUS_CODES:
            raise UpstreamAuthError(url, response.status_code)
        if response.status_code >= 500:
            raise UpstreamServerError(url, response.status_code)
        response.raise_for_status()
        return response.json()

    async def fetch_page(self, url, params=None):
        logger.info("Fetching page: %s", url)
        try:
            return await self._get_json(url, params)
        except UpstreamAuthError as e:
            rejected = self._tokens.token
            logger.warning("%s; refreshing token once", e)
            if not await self._tokens.refresh_rejected(rejected):
                raise TokenUnavailableError("token refresh after authorization failure did not succeed") from e
        # a second rejection propagates and halts the fetch
        return await self._get_json(url, params)

    async def _dispatch(self, batch, first_url, params):
        tasks = []
        for url in batch:
            await asyncio.sleep(self._settings.request_delay)
            tasks.append(asyncio.ensure_future(self.fetch_page(url, params if url == first_url else None)))
        return await asyncio.gather(*tasks, return_exceptions=True)

    async def fetch_updated_listings(self, since=None):
        if not await self._tokens.ensure_valid_token():
            raise TokenUnavailableError("token could not be obtained")

        params = self.build_params(since)
        logger.info("Fetching listings with filter: %s", params["$filter"])
        all_listings = []
        pending = [self._endpoint]
        dispatched = 0
        pages = 0
        self.failed_pages = 0

        while pending and dispatched < self._settings.api_max_pages:
            budget = min(self._settings.concurrent_requests, self._settings.api_max_pages - dispatched)
            batch, pending = pending[:budget], pending[budget:]
            dispatched += len(batch)
            results = await self._dispatch(batch, self._endpoint, params)

            for url, result in zip(batch, results):
                if isinstance(result, (TokenUnavailableError, UpstreamAuthError)):
                    raise result
                if isinstance(result, Exception):
                    logger.error("Error fetching page %s: %s", url, result)
                    self.failed_pages += 1
                    continue
                listings = result.get("value") or []
                all_listings.extend(listings)
                pages += 1
                logger.info("Page %d: Fetched %d listings (Total: %d)", pages, len(listings), len(all_listings))
                next_url = result.get(NEXT_LINK)
                if next_url:
                    pending.append(next_url)

        if self.failed_pages:
            logger.warning("%d page(s) failed; their listings are missing from this fetch", self.failed_pages)
        logger.info("Retrieved %d listings over %d pages.", len(all_listings), pages)
        return all_listings
