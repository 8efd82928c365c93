# listing_ingest/crawler.py
"""One crawl cycle end to end, guarded by an explicit state machine.

    Idle -> Fetching -> Processing -> Reconciling -> Idle
    Idle -> Stopped (shutdown)

A trigger that arrives while the orchestrator is not Idle is ignored. The
checkpoint moves to the cycle's start instant only when the cycle finishes
with every page fetched; a failed cycle, or one that lost pages, leaves it
where it was so the same window is fetched again.
"""
import asyncio
from datetime import timedelta
from enum import Enum

from .errors import CrawlAbortedError, MalformedRecordError, MissingKeyError
from .normalize import media_urls, normalize_listing
from .schemas import CrawlReport, CrawlStatus
from .utils import logger, utcnow


class CrawlState(str, Enum):
    IDLE = "Idle"
    FETCHING = "Fetching"
    PROCESSING = "Processing"
    RECONCILING = "Reconciling"
    STOPPED = "Stopped"


class CrawlOrchestrator:
    def __init__(self, fetcher, image_reconciler, store_reconciler, settings, clock=utcnow):
        self._fetcher = fetcher
        self._images = image_reconciler
        self._reconciler = store_reconciler
        self._settings = settings
        self._clock = clock
        self.state = CrawlState.IDLE
        self.checkpoint = None
        self.last_report = None
        self.last_error = None
        self._stop_requested = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def busy(self) -> bool:
        return self.state not in (CrawlState.IDLE, CrawlState.STOPPED)

    def status(self) -> CrawlStatus:
        return CrawlStatus(
            state=self.state.value,
            checkpoint=self.checkpoint,
            last_report=self.last_report,
            last_error=self.last_error,
        )

    def window_start(self, now):
        """Lower bound for ModificationTimestamp; None means cold start."""
        if self.checkpoint is None:
            return None
        return max(self.checkpoint, now - timedelta(days=self._settings.max_lookback_days))

    async def trigger(self):
        """Entry point for the scheduler. Returns the report, or None if skipped."""
        if self.state is not CrawlState.IDLE:
            logger.info("Crawl trigger ignored; orchestrator is %s", self.state.value)
            return None
        try:
            return await self.run_cycle()
        except Exception as e:
            logger.critical("Crawl cycle error: %s", e, exc_info=True)
            self.last_error = str(e)
            return None

    async def run_cycle(self) -> CrawlReport:
        if self.state is not CrawlState.IDLE:
            raise RuntimeError(f"cannot start a crawl cycle while {self.state.value}")
        started_at = self._clock()
        report = CrawlReport(started_at=started_at, window_start=self.window_start(started_at))
        self._idle.clear()
        try:
            logger.info("Starting crawl cycle - fetching properties updated since %s",
                        report.window_start or "cold-start lookback")
            self.state = CrawlState.FETCHING
            raw_listings = await self._fetcher.fetch_updated_listings(report.window_start)
            report.fetched = len(raw_listings)
            report.failed_pages = self._fetcher.failed_pages

            self.state = CrawlState.PROCESSING
            documents = await self._process(raw_listings, report)

            self.state = CrawlState.RECONCILING
            await self._reconcile(documents, report)
        finally:
            self.state = CrawlState.STOPPED if self._stop_requested else CrawlState.IDLE
            self._idle.set()

        report.finished_at = self._clock()
        self.last_report = report
        if report.failed_pages:
            self.last_error = f"{report.failed_pages} page(s) could not be fetched"
            logger.warning("Checkpoint kept at %s; %s", self.checkpoint, self.last_error)
        else:
            self.checkpoint = started_at
            self.last_error = None
        logger.info(
            "Crawl cycle completed. Fetched: %d, Upserted: %d, Deleted: %d, Skipped: %d, Errors: %d",
            report.fetched, report.upserted, report.deleted, report.skipped, report.errors,
        )
        return report

    def _record_error(self, report):
        report.errors += 1
        if report.errors > self._settings.max_processing_errors:
            raise CrawlAbortedError(f"more than {self._settings.max_processing_errors} processing errors")

    async def _process(self, raw_listings, report):
        documents = []
        total = len(raw_listings)
        for idx, raw in enumerate(raw_listings, start=1):
            logger.info("Processing listing %d/%d", idx, total)
            try:
                listing = normalize_listing(raw)
            except (MissingKeyError, MalformedRecordError) as e:
                logger.warning("Skipping record: %s", e)
                report.skipped += 1
                continue
            try:
                if listing.is_active:
                    main_image_url, uploaded = await self._images.reconcile(listing.listing_key, media_urls(raw))
                    listing.main_image_url = main_image_url
                    report.images_uploaded += uploaded
            except Exception as e:
                logger.error("Failed processing images for listing %s: %s", listing.listing_key, e)
                self._record_error(report)
                continue
            documents.append(listing)
        report.normalized = len(documents)
        return documents

    async def _reconcile(self, documents, report):
        if not documents:
            logger.info("No listings updated within the specified timeframe.")
            return
        existing = await self._reconciler.existing_keys([d.listing_key for d in documents])
        crawled_at = self._clock()
        for idx, listing in enumerate(documents, start=1):
            logger.info("Saving listing %d/%d to database", idx, len(documents))
            try:
                outcome = await self._reconciler.reconcile(listing, crawled_at)
            except Exception as e:
                logger.error("Failed saving listing %s: %s", listing.listing_key, e)
                self._record_error(report)
                continue
            if outcome == "deleted":
                report.deleted += 1
            else:
                report.upserted += 1
                if listing.listing_key not in existing:
                    report.new += 1

    async def shutdown(self):
        """Stop accepting triggers; waits for an in-flight cycle to finish on its own."""
        self._stop_requested = True
        if self.state is CrawlState.IDLE:
            self.state = CrawlState.STOPPED
        await self._idle.wait()
        self.state = CrawlState.STOPPED
        logger.info("Crawl orchestrator stopped.")
