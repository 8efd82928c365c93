# listing_ingest/store.py
import asyncio
from functools import partial

from . import crud


class ListingStore:
    """Async facade over `crud`: each call gets its own session on a worker thread."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def _call(self, fn, *args, **kwargs):
        with self._session_factory() as db:
            try:
                return fn(db, *args, **kwargs)
            except Exception:
                db.rollback()
                raise

    async def _run(self, fn, *args, **kwargs):
        return await asyncio.to_thread(partial(self._call, fn, *args, **kwargs))

    async def upsert_listing(self, data, crawled_at):
        return await self._run(crud.upsert_listing, data, crawled_at)

    async def existing_listing_keys(self, listing_keys, chunk_size=500):
        return await self._run(crud.existing_listing_keys, list(listing_keys), chunk_size=chunk_size)

    async def delete_listing(self, listing_key):
        return await self._run(crud.delete_listing, listing_key)

    async def count_images(self, listing_key):
        return await self._run(crud.count_images, listing_key)

    async def list_image_urls(self, listing_key):
        return await self._run(crud.list_image_urls, listing_key)

    async def first_image_url(self, listing_key):
        return await self._run(crud.first_image_url, listing_key)

    async def image_shared_with(self, image_url, listing_key):
        return await self._run(crud.image_shared_with, image_url, listing_key)

    async def add_image(self, listing_key, image_url):
        return await self._run(crud.add_image, listing_key, image_url)

    async def delete_images(self, listing_key):
        return await self._run(crud.delete_images, listing_key)
