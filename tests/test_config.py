import pytest

from listing_ingest.config import DEFAULT_DATABASE_URL, Settings
from listing_ingest.errors import ConfigError

ENV_NAMES = ["TRESTLE_CLIENT_ID", "TRESTLE_CLIENT_SECRET", "POSTGRES_URL", "DATABASE_URL", "API_PAGE_SIZE",
             "CRAWL_ON_STARTUP", "RATE_LIMIT_PER_SECOND", "GCP_BUCKET_NAME", "BUCKET_NAME"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def load():
    return Settings(_env_file=None)


def test_defaults_load_without_environment():
    settings = load()
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.bucket_name == "real-estate-images"
    assert settings.api_page_size == 1000
    assert settings.api_max_pages == 10
    assert settings.concurrent_requests == 10
    assert settings.request_delay == pytest.approx(0.2)
    assert settings.max_images_per_listing == 10
    assert settings.crawl_interval_minutes == 30


def test_missing_credentials_are_fatal():
    with pytest.raises(ConfigError):
        load().require_credentials()


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("TRESTLE_CLIENT_ID", "id")
    monkeypatch.setenv("TRESTLE_CLIENT_SECRET", "secret")
    monkeypatch.setenv("POSTGRES_URL", "postgres://u:p@db:5432/listings")
    monkeypatch.setenv("GCP_BUCKET_NAME", "listing-photos")
    monkeypatch.setenv("API_PAGE_SIZE", "250")
    monkeypatch.setenv("CRAWL_ON_STARTUP", "0")

    settings = load()
    settings.require_credentials()
    assert settings.database_url == "postgresql+psycopg2://u:p@db:5432/listings"
    assert settings.bucket_name == "listing-photos"
    assert settings.api_page_size == 250
    assert settings.crawl_on_startup is False


def test_empty_environment_values_keep_defaults(monkeypatch):
    monkeypatch.setenv("API_PAGE_SIZE", "")
    monkeypatch.setenv("POSTGRES_URL", "")
    settings = load()
    assert settings.api_page_size == 1000
    assert settings.database_url == DEFAULT_DATABASE_URL


def test_keyword_database_url_is_normalized():
    settings = Settings(_env_file=None, database_url="postgres://u:p@db/x", bucket_name="b")
    assert settings.database_url == "postgresql+psycopg2://u:p@db/x"
    assert settings.bucket_name == "b"
