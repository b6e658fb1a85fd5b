import logging
import mimetypes
import os
from pathlib import Path

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from .errors import StorageError

logger = logging.getLogger(__name__)

# Content types for HLS assets; anything else is guessed from the extension.
CONTENT_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".ts": "video/MP2T",
    ".m2ts": "video/MP2T",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}


def content_type_for(path) -> str:
    suf = Path(str(path)).suffix.lower()
    if suf in CONTENT_TYPES:
        return CONTENT_TYPES[suf]
    mime, _ = mimetypes.guess_type(str(path))
    return mime or "application/octet-stream"


def _boto_config() -> BotoConfig:
    return BotoConfig(
        s3={"addressing_style": "path"},
        signature_version="s3v4",
        connect_timeout=settings.S3_CONNECT_TIMEOUT,
        read_timeout=settings.S3_READ_TIMEOUT,
        retries={"max_attempts": settings.S3_MAX_ATTEMPTS, "mode": "standard"},
    )


def get_s3_client():
    """
    SDK client for server-side upload/delete.
    """
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL,  # e.g. http://127.0.0.1:9000
        config=_boto_config(),
    )


def get_presign_client():
    """
    Separate client for generating presigned URLs that the player will call.
    Uses S3_PUBLIC_ENDPOINT so the URL host matches what the client reaches.
    """
    public_endpoint = os.getenv("S3_PUBLIC_ENDPOINT", settings.S3_ENDPOINT_URL)
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=public_endpoint,
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",  # ensures AWS4 signing
        ),
    )


def create_presigned_get(key: str, expires: int | None = None) -> str:
    """
    Create a presigned GET URL to download an object.
    """
    s3 = get_presign_client()
    return s3.generate_presigned_url(
        ClientMethod="get_object",
        Params={"Bucket": settings.S3_BUCKET, "Key": key},
        ExpiresIn=expires or settings.S3_PRESIGN_EXPIRE_SECONDS,
        HttpMethod="GET",
    )


def object_url(key: str) -> str:
    """
    Direct object URL against the PUBLIC endpoint. HLS players resolve the
    rendition playlists relative to the master, so the master needs a
    stable, unsigned URL when the bucket is public-read.
    """
    base = os.getenv("S3_PUBLIC_ENDPOINT", settings.S3_ENDPOINT_URL)
    return f"{base}/{settings.S3_BUCKET}/{key}"


class S3BlobStore:
    """
    Blob store over S3/MinIO. Locators are object keys.
    Every botocore failure surfaces as StorageError.
    """

    def __init__(self, client=None, bucket: str | None = None):
        self.client = client or get_s3_client()
        self.bucket = bucket or settings.S3_BUCKET

    def put(self, data: bytes, key: str, content_type: str | None = None) -> str:
        extra = {"Body": data}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, **extra)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"put {key} failed: {e}") from e
        return key

    def put_file(self, local_path, key: str, content_type: str | None = None) -> str:
        """
        Upload a single file with an optional Content-Type.
        """
        extra = {}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self.client.upload_file(str(local_path), self.bucket, key, ExtraArgs=extra or None)
        except (BotoCoreError, ClientError, OSError) as e:
            raise StorageError(f"upload {key} failed: {e}") from e
        logger.debug("Uploaded %s to s3://%s/%s", local_path, self.bucket, key)
        return key

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"delete {key} failed: {e}") from e

    def list_keys(self, prefix: str) -> list[str]:
        """Every key under `prefix`, across all result pages."""
        keys = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"list {prefix} failed: {e}") from e
        return keys
