# listing_ingest/object_store.py
"""Durable object storage for listing images (S3-compatible API via boto3).

Defaults target Google Cloud Storage's S3 interoperability endpoint, so the
public URLs look like https://storage.googleapis.com/<bucket>/<key>.
"""
import asyncio
from typing import Optional

import boto3

from .utils import logger

CACHE_CONTROL = "public, max-age=31536000"


def create_s3_client(settings):
    session = boto3.session.Session()
    return session.client("s3", endpoint_url=settings.storage_endpoint_url)


class ObjectStore:
    def __init__(self, s3_client, bucket, public_base_url, key_prefix="properties"):
        self._s3 = s3_client
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.key_prefix = key_prefix.strip("/")

    @classmethod
    def from_settings(cls, settings, s3_client=None):
        return cls(
            s3_client or create_s3_client(settings),
            settings.bucket_name,
            settings.storage_public_base_url,
            settings.storage_key_prefix,
        )

    def key_for(self, filename):
        return f"{self.key_prefix}/{filename}" if self.key_prefix else filename

    def public_url(self, key):
        return f"{self.public_base_url}/{self.bucket}/{key}"

    def known_prefixes(self):
        return [
            f"{self.public_base_url}/{self.bucket}/",
            f"https://storage.googleapis.com/{self.bucket}/",
            f"https://storage.cloud.google.com/{self.bucket}/",
        ]

    def key_from_url(self, url) -> Optional[str]:
        """Resolve the object key behind a public URL; None if it isn't ours."""
        if not url:
            return None
        for prefix in self.known_prefixes():
            if url.startswith(prefix):
                return url[len(prefix):] or None
        marker = f"/{self.bucket}/"
        if marker in url:
            return url.split(marker, 1)[1] or None
        return None

    async def put_object(self, key, data, content_type="image/jpeg", cache_control=CACHE_CONTROL):
        await asyncio.to_thread(
            self._s3.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            CacheControl=cache_control,
        )

    async def make_public(self, key):
        await asyncio.to_thread(self._s3.put_object_acl, Bucket=self.bucket, Key=key, ACL="public-read")

    async def delete_object(self, key):
        await asyncio.to_thread(self._s3.delete_object, Bucket=self.bucket, Key=key)

    async def delete_by_url(self, url) -> bool:
        """Best-effort delete; unknown URLs and storage errors are logged, not raised."""
        key = self.key_from_url(url)
        if key is None:
            logger.warning("Not a storage URL, skipping delete: %s", url)
            return False
        try:
            await self.delete_object(key)
        except Exception as e:
            logger.error("Error deleting object %s: %s", key, e)
            return False
        logger.info("Deleted object: %s", key)
        return True
