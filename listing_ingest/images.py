# listing_ingest/images.py
"""Per-image pipeline: download -> compress -> upload -> public URL."""
import asyncio
import hashlib
from io import BytesIO
from typing import Optional
from urllib.parse import urlparse

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import ImageProcessingError, UpstreamServerError
from .utils import logger, retry

JPEG_EXTENSION = ".jpg"


def storage_filename(source_url):
    """Object filename derived from the source URL, always ending in .jpg."""
    filename = urlparse(source_url).path.rsplit("/", 1)[-1]
    if not filename:
        filename = hashlib.sha1(source_url.encode("utf-8")).hexdigest()
    if not filename.lower().endswith(JPEG_EXTENSION):
        filename += JPEG_EXTENSION
    return filename


def compress_image(data: bytes, max_size=(1280, 720), quality=80) -> bytes:
    """Re-encode as progressive JPEG no larger than `max_size`; never upscales."""
    try:
        with Image.open(BytesIO(data)) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGB":
                img = img.convert("RGB")
            img.thumbnail(max_size, Image.LANCZOS)
            out = BytesIO()
            img.save(out, "JPEG", quality=quality, progressive=True, optimize=True)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageProcessingError(f"compress failed: {e}") from e
    return out.getvalue()


class ImagePipeline:
    def __init__(self, client: httpx.AsyncClient, object_store, settings):
        self._client = client
        self._store = object_store
        self._settings = settings
        self._download = retry(
            (httpx.TransportError, UpstreamServerError),
            tries=settings.retry_attempts,
            delay=settings.retry_delay_seconds,
        )(self._download_once)

    def storage_url_for(self, source_url):
        return self._store.public_url(self._store.key_for(storage_filename(source_url)))

    async def _download_once(self, url) -> bytes:
        response = await self._client.get(url, timeout=self._settings.image_timeout_seconds)
        if response.status_code >= 500:
            raise UpstreamServerError(url, response.status_code)
        if response.status_code != 200:
            raise ImageProcessingError(f"download returned {response.status_code}")
        return response.content

    async def download(self, url) -> bytes:
        try:
            return await self._download(url)
        except httpx.HTTPError as e:
            raise ImageProcessingError(f"download failed: {e}") from e
        except UpstreamServerError as e:
            raise ImageProcessingError(str(e)) from e

    async def compress(self, data: bytes) -> bytes:
        max_size = (self._settings.image_max_width, self._settings.image_max_height)
        return await asyncio.to_thread(compress_image, data, max_size, self._settings.jpeg_quality)

    async def upload(self, data: bytes, filename) -> str:
        key = self._store.key_for(filename)
        try:
            await self._store.put_object(key, data, content_type="image/jpeg")
            await self._store.make_public(key)
        except Exception as e:
            raise ImageProcessingError(f"upload of {key} failed: {e}") from e
        return self._store.public_url(key)

    async def process(self, source_url) -> Optional[str]:
        """Run one image through the pipeline; None when any step failed."""
        logger.info("Processing image: %s", source_url)
        try:
            raw = await self.download(source_url)
            compressed = await self.compress(raw)
            public_url = await self.upload(compressed, storage_filename(source_url))
        except ImageProcessingError as e:
            logger.warning("Image %s skipped: %s", source_url, e)
            return None
        logger.info("Uploaded: %s", public_url)
        return public_url
