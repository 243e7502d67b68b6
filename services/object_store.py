import asyncio
import logging
from dataclasses import dataclass

import boto3

from config import settings
from core.models.meal import LocalImageRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadHandle:
    bucket: str
    key: str


class S3CompatStore:
    """Meal images in an S3-compatible bucket (MinIO locally, R2/S3/GCS in prod)."""

    def __init__(
        self,
        endpoint_url: str,
        region_name: str,
        access_key_id: str,
        secret_access_key: str,
        bucket: str,
        public_base_url: str,
    ):
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.s3 = boto3.client(
            service_name="s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region_name,
        )

    def put_file(self, *, key: str, image: LocalImageRef) -> UploadHandle:
        # same key for the same slot, so a new upload replaces the old object
        self.s3.upload_file(
            str(image.path), self.bucket, key, ExtraArgs={"ContentType": image.content_type}
        )
        logger.info("Uploaded %s to %s/%s", image.path, self.bucket, key)
        return UploadHandle(bucket=self.bucket, key=key)

    def public_url(self, handle: UploadHandle) -> str:
        return f"{self.public_base_url}/{handle.key}"

    # boto3 blocks; keep the event loop free
    async def upload_blob(self, path: str, image: LocalImageRef) -> UploadHandle:
        return await asyncio.to_thread(self.put_file, key=path, image=image)

    async def resolve_public_url(self, handle: UploadHandle) -> str:
        return self.public_url(handle)


def get_store() -> S3CompatStore:
    return S3CompatStore(
        endpoint_url=settings.object_store_endpoint,
        region_name=settings.object_store_region,
        access_key_id=settings.object_store_access_key_id,
        secret_access_key=settings.object_store_secret_access_key,
        bucket=settings.object_store_bucket,
        public_base_url=settings.object_public_base_url,
    )
