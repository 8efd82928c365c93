# listing_ingest/runtime.py
"""Wires the long-lived clients and pipeline components together.

The HTTP client, database engine and S3 client live for the whole process
and are released once, by `Runtime.close()`.
"""
from dataclasses import dataclass

import httpx

from .auth import TokenManager
from .crawler import CrawlOrchestrator
from .db import create_db_engine, create_session_factory, init_db
from .feed import PagedFetcher
from .images import ImagePipeline
from .object_store import ObjectStore
from .services import ImageReconciler, StoreReconciler
from .store import ListingStore
from .utils import logger, utcnow


@dataclass
class Runtime:
    settings: object
    client: httpx.AsyncClient
    engine: object
    orchestrator: CrawlOrchestrator

    async def close(self):
        await self.orchestrator.shutdown()
        await self.client.aclose()
        self.engine.dispose()
        logger.info("Database connection closed.")


def build_runtime(settings, client=None, engine=None, s3_client=None, create_tables=True, clock=utcnow) -> Runtime:
    settings.require_credentials()
    client = client or httpx.AsyncClient(timeout=settings.timeout_seconds)
    engine = engine or create_db_engine(settings.database_url, settings.db_pool_size, settings.db_max_overflow)
    if create_tables:
        init_db(engine)
    store = ListingStore(create_session_factory(engine))
    objects = ObjectStore.from_settings(settings, s3_client=s3_client)

    tokens = TokenManager(
        client,
        settings.token_url,
        settings.trestle_client_id,
        settings.trestle_client_secret,
        timeout=settings.timeout_seconds,
        clock=clock,
    )
    orchestrator = CrawlOrchestrator(
        PagedFetcher(client, tokens, settings, clock=clock),
        ImageReconciler(store, ImagePipeline(client, objects, settings), settings.max_images_per_listing),
        StoreReconciler(store, objects, settings.batch_size),
        settings,
        clock=clock,
    )
    return Runtime(settings=settings, client=client, engine=engine, orchestrator=orchestrator)
