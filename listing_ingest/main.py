from contextlib import asynccontextmanager

from fastapi import FastAPI

from listing_ingest.api.routes import router as api_router
from listing_ingest.config import get_settings
from listing_ingest.runtime import build_runtime
from listing_ingest.scheduler import build_scheduler, start_scheduler
from listing_ingest.utils import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    # missing credentials abort startup before any crawl
    runtime = build_runtime(settings)
    scheduler = build_scheduler(runtime.orchestrator, settings)
    app.state.orchestrator = runtime.orchestrator
    start_scheduler(scheduler, settings)
    try:
        yield
    finally:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped.")
        await runtime.close()


def create_app(lifespan=lifespan) -> FastAPI:
    app = FastAPI(title="listing-ingest", lifespan=lifespan)
    app.include_router(api_router)
    return app


app = create_app()
