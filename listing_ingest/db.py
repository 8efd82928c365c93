# listing_ingest/db.py
"""Database engine and session utilities.

Engines are built from `Settings.database_url`; nothing connects until the
first query, so a missing database never breaks import.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def create_db_engine(database_url, pool_size=5, max_overflow=10):
    if database_url.startswith("sqlite"):
        # sessions are opened from worker threads (see store.ListingStore)
        return create_engine(database_url, connect_args={"check_same_thread": False})
    # tuned pool settings for cloud DB
    return create_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True
    )


def create_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine):
    from . import models  # noqa: F401 ensure models are imported so tables are known
    Base.metadata.create_all(bind=engine)
