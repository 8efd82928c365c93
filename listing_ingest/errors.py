# listing_ingest/errors.py
"""Exception types raised across the ingestion pipeline."""


class IngestError(Exception):
    """Base class for ingestion failures."""


class ConfigError(IngestError):
    """Required configuration is missing; the process must not start crawling."""


class TokenUnavailableError(IngestError):
    """No bearer token could be obtained from the token endpoint."""


class UpstreamAuthError(IngestError):
    """The feed rejected our bearer token (401/403)."""

    def __init__(self, url, status_code):
        super().__init__(f"authorization rejected ({status_code}) for {url}")
        self.url = url
        self.status_code = status_code


class UpstreamServerError(IngestError):
    """The feed answered with a 5xx; safe to retry for idempotent calls."""

    def __init__(self, url, status_code):
        super().__init__(f"upstream error {status_code} for {url}")
        self.url = url
        self.status_code = status_code


class MissingKeyError(IngestError):
    """A raw record has no ListingKey."""


class MalformedRecordError(IngestError):
    """A raw record could not be mapped onto the listing schema."""


class ImageProcessingError(IngestError):
    """One image failed to download, compress or upload."""


class CrawlAbortedError(IngestError):
    """A crawl cycle gave up; its checkpoint must not advance."""
