# listing_ingest/services.py
"""Per-listing reconciliation against stored state.

ImageReconciler tops up a listing's stored images to the cap and picks the
main image; StoreReconciler writes active listings and cascades deletes for
the rest.
"""
from sqlalchemy.exc import IntegrityError

from .utils import logger


class ImageReconciler:
    def __init__(self, store, pipeline, max_images=10):
        self._store = store
        self._pipeline = pipeline
        self._max_images = max_images

    async def reconcile(self, listing_key, source_urls):
        """Returns (main_image_url, number of images uploaded in this pass).

        Images are processed one at a time in upstream order, so the first
        successful upload deterministically becomes the main image.
        """
        existing_count = await self._store.count_images(listing_key)
        if existing_count >= self._max_images:
            return (await self._store.first_image_url(listing_key) or ""), 0

        remaining = self._max_images - existing_count
        known_urls = set(await self._store.list_image_urls(listing_key))
        main_image_url = ""
        uploaded = 0

        for source_url in source_urls:
            if uploaded >= remaining:
                break
            if self._pipeline.storage_url_for(source_url) in known_urls:
                continue
            public_url = await self._pipeline.process(source_url)
            if not public_url or public_url in known_urls:
                continue
            try:
                await self._store.add_image(listing_key, public_url)
            except IntegrityError:
                logger.warning("Image %s already registered for listing %s", public_url, listing_key)
                known_urls.add(public_url)
                continue
            known_urls.add(public_url)
            uploaded += 1
            logger.info("Inserted image %d into database for listing %s", uploaded, listing_key)
            if uploaded == 1:
                main_image_url = public_url

        if not main_image_url:
            main_image_url = await self._store.first_image_url(listing_key) or ""
        return main_image_url, uploaded


class StoreReconciler:
    def __init__(self, store, object_store, batch_size=500):
        self._store = store
        self._objects = object_store
        self._batch_size = batch_size

    async def existing_keys(self, listing_keys):
        return await self._store.existing_listing_keys(listing_keys, chunk_size=self._batch_size)

    async def remove(self, listing_key):
        """Delete a listing, its image rows and (best effort) the image objects.

        Storage keys come from the source filename alone, so an object still
        referenced by another listing is left in place.
        """
        for url in await self._store.list_image_urls(listing_key):
            if await self._store.image_shared_with(url, listing_key):
                logger.info("Keeping %s; still referenced by another listing", url)
                continue
            await self._objects.delete_by_url(url)
        deleted = await self._store.delete_listing(listing_key)
        images = await self._store.delete_images(listing_key)
        logger.info("Deleted inactive listing %s and %d image(s)", listing_key, images)
        return deleted

    async def save(self, listing, crawled_at):
        await self._store.upsert_listing(listing.model_dump(), crawled_at)
        logger.info("Inserted/updated listing %s (info only, images in listing_images)", listing.listing_key)

    async def reconcile(self, listing, crawled_at):
        """Returns "deleted" or "upserted"."""
        if not listing.is_active:
            await self.remove(listing.listing_key)
            return "deleted"
        await self.save(listing, crawled_at)
        return "upserted"
