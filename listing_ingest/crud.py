# listing_ingest/crud.py
"""Storage operations for listings and their images.

Plain functions over a SQLAlchemy `Session`; each one commits its own work.
`store.ListingStore` runs them off the event loop.
"""
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from .models import Listing, ListingImage


def _insert_for(db: Session):
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


def upsert_listing(db: Session, data: Dict[str, Any], crawled_at):
    table = Listing.__table__
    values = dict(data, last_crawled=crawled_at)
    stmt = _insert_for(db)(table).values(**values)
    # replace every supplied field; id and created_at survive re-runs
    excluded = {name: stmt.excluded[name] for name in values if name not in ("id", "created_at", "listing_key")}
    stmt = stmt.on_conflict_do_update(index_elements=["listing_key"], set_=excluded)
    db.execute(stmt)
    db.commit()


def get_listing(db: Session, listing_key: str) -> Optional[Listing]:
    return db.query(Listing).filter(Listing.listing_key == listing_key).first()


def existing_listing_keys(db: Session, listing_keys: Iterable[str], chunk_size: int = 500) -> Set[str]:
    keys = list(dict.fromkeys(listing_keys))
    found = set()
    for start in range(0, len(keys), chunk_size):
        chunk = keys[start:start + chunk_size]
        rows = db.execute(select(Listing.listing_key).where(Listing.listing_key.in_(chunk)))
        found.update(rows.scalars())
    return found


def delete_listing(db: Session, listing_key: str) -> bool:
    result = db.execute(delete(Listing).where(Listing.listing_key == listing_key))
    db.commit()
    return result.rowcount > 0


def count_images(db: Session, listing_key: str) -> int:
    stmt = select(func.count()).select_from(ListingImage).where(ListingImage.listing_key == listing_key)
    return db.execute(stmt).scalar_one()


def list_image_urls(db: Session, listing_key: str) -> List[str]:
    stmt = select(ListingImage.image_url).where(ListingImage.listing_key == listing_key).order_by(ListingImage.id)
    return list(db.execute(stmt).scalars())


def first_image_url(db: Session, listing_key: str) -> Optional[str]:
    stmt = (
        select(ListingImage.image_url)
        .where(ListingImage.listing_key == listing_key)
        .order_by(ListingImage.id)
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def image_shared_with(db: Session, image_url: str, listing_key: str) -> bool:
    """True when another listing also references `image_url`."""
    stmt = (
        select(ListingImage.id)
        .where(ListingImage.image_url == image_url, ListingImage.listing_key != listing_key)
        .limit(1)
    )
    return db.execute(stmt).first() is not None


def add_image(db: Session, listing_key: str, image_url: str):
    db.add(ListingImage(listing_key=listing_key, image_url=image_url, uploaded=True))
    db.commit()


def delete_images(db: Session, listing_key: str) -> int:
    result = db.execute(delete(ListingImage).where(ListingImage.listing_key == listing_key))
    db.commit()
    return result.rowcount
