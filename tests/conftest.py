from datetime import datetime, timedelta, timezone
from io import BytesIO
from urllib.parse import parse_qs

import httpx
import pytest
from PIL import Image

from listing_ingest.config import Settings
from listing_ingest.db import create_db_engine, create_session_factory, init_db
from listing_ingest.object_store import ObjectStore
from listing_ingest.store import ListingStore

FEED_BASE = "https://feed.test/odata"
TOKEN_URL = "https://feed.test/token"


def png_bytes(size=(64, 48), color=(200, 30, 30)):
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, "PNG")
    return buf.getvalue()


class Clock:
    def __init__(self, now=None):
        self.now = now or datetime(2024, 5, 11, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeS3:
    """Records calls made through the boto3 S3 client interface."""

    def __init__(self):
        self.objects = {}
        self.public = set()
        self.deleted = []
        self.fail_put = False
        self.fail_delete = False

    def put_object(self, Bucket, Key, Body, ContentType, CacheControl):
        if self.fail_put:
            raise RuntimeError("put refused")
        self.objects[Key] = {"bucket": Bucket, "body": Body, "content_type": ContentType,
                             "cache_control": CacheControl}

    def put_object_acl(self, Bucket, Key, ACL):
        assert ACL == "public-read"
        self.public.add(Key)

    def delete_object(self, Bucket, Key):
        if self.fail_delete:
            raise RuntimeError("delete refused")
        self.deleted.append(Key)
        self.objects.pop(Key, None)


class FakeFeed:
    """Token endpoint, paginated Property endpoint and image host in one handler."""

    def __init__(self):
        self.token_requests = 0
        self.token_status = 200
        self.token_body = None
        self.rejected_tokens = set()
        self.pages = [[]]
        self.page_failures = {}  # page index -> status codes or httpx exception types to emit first
        self.property_requests = []
        self.images = {}
        self.image_requests = []

    def set_listings(self, *pages):
        self.pages = [list(p) for p in pages] or [[]]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url.startswith(TOKEN_URL):
            return self._token(request)
        if url.startswith(f"{FEED_BASE}/Property"):
            return self._property(request)
        self.image_requests.append(url)
        if url in self.images:
            return httpx.Response(200, content=self.images[url], request=request)
        return httpx.Response(404, request=request)

    def _token(self, request):
        self.token_requests += 1
        form = parse_qs(request.content.decode())
        assert form["grant_type"] == ["client_credentials"]
        if self.token_status != 200:
            return httpx.Response(self.token_status, json={"error": "nope"}, request=request)
        body = self.token_body or {"access_token": f"tok-{self.token_requests}", "expires_in": 3600}
        return httpx.Response(200, json=body, request=request)

    def _property(self, request):
        self.property_requests.append(request)
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if not token or token in self.rejected_tokens:
            return httpx.Response(401, request=request)
        index = int(request.url.params.get("page", "0"))
        failures = self.page_failures.get(index)
        if failures:
            failure = failures.pop(0)
            if isinstance(failure, type):
                raise failure("simulated failure", request=request)
            return httpx.Response(failure, request=request)
        body = {"value": self.pages[index]}
        if index + 1 < len(self.pages):
            body["@odata.nextLink"] = f"{FEED_BASE}/Property?page={index + 1}"
        return httpx.Response(200, json=body, request=request)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        trestle_client_id="client-id",
        trestle_client_secret="client-secret",
        token_url=TOKEN_URL,
        api_base_url=FEED_BASE,
        rate_limit_per_second=1000,
        retry_delay_seconds=0,
    )


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def feed():
    return FakeFeed()


@pytest.fixture
def http_client(feed):
    return httpx.AsyncClient(transport=httpx.MockTransport(feed))


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'listings.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return ListingStore(session_factory)


@pytest.fixture
def s3():
    return FakeS3()


@pytest.fixture
def object_store(s3, settings):
    return ObjectStore.from_settings(settings, s3_client=s3)
