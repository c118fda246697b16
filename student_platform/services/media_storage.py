"""
Media host clients: S3-compatible object storage and an in-memory double.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from student_platform.core import config

logger = logging.getLogger(__name__)

PNG_CONTENT_TYPE = "image/png"
PNG_MODES = {"1", "L", "LA", "I", "P", "RGB", "RGBA"}


class InvalidImage(Exception):
    pass


class MediaUploadError(Exception):
    pass


def encode_png(data: bytes) -> bytes:
    """Decode arbitrary image bytes and re-encode them as PNG."""
    try:
        with PILImage.open(io.BytesIO(data)) as source:
            source.load()
            image = source if source.mode in PNG_MODES else source.convert("RGBA" if "A" in source.getbands() else "RGB")
            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
    except (UnidentifiedImageError, PILImage.DecompressionBombError, OSError, ValueError) as exc:
        raise InvalidImage("Data is not a decodable image.") from exc
    return buffer.getvalue()


def build_object_key(folder: str, name: str, timestamp_ms: int) -> str:
    key = f"{name}-{timestamp_ms}.png"
    return f"{folder.strip('/')}/{key}" if folder else key


class MediaStorage(Protocol):
    """Defines what the image handlers need from the media host."""

    def upload_png(self, key: str, data: bytes) -> str:
        ...


@dataclass
class InMemoryMediaStorage:
    """Test double and local-development media host."""

    base_url: str = "https://media.example.test"
    stored_objects: dict = field(default_factory=dict)

    def upload_png(self, key: str, data: bytes) -> str:
        self.stored_objects[key] = data
        return f"{self.base_url}/{key}"


@dataclass
class S3MediaStorage:
    """
    Media host backed by any S3-compatible object store.
    """

    bucket: str
    region: str = ""
    endpoint_url: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    public_base_url: str = ""

    def __post_init__(self):
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint_url or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=Config(signature_version="s3v4"),
        )

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        region = self.region or "us-east-1"
        return f"https://{self.bucket}.s3.{region}.amazonaws.com/{key}"

    def upload_png(self, key: str, data: bytes) -> str:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=PNG_CONTENT_TYPE,
            )
        except (BotoCoreError, ClientError) as exc:
            raise MediaUploadError(f"Upload of {key} failed.") from exc
        logger.info("Uploaded %s to bucket %s", key, self.bucket)
        return self.public_url(key)


_media_storage: MediaStorage | None = None


def get_media_storage() -> MediaStorage:
    global _media_storage
    if _media_storage is not None:
        return _media_storage

    if config.MEDIA_BACKEND == "s3":
        _media_storage = S3MediaStorage(
            bucket=config.MEDIA_BUCKET,
            region=config.MEDIA_REGION,
            endpoint_url=config.MEDIA_ENDPOINT_URL,
            access_key_id=config.MEDIA_ACCESS_KEY_ID,
            secret_access_key=config.MEDIA_SECRET_ACCESS_KEY,
            public_base_url=config.MEDIA_PUBLIC_BASE_URL,
        )
    else:
        _media_storage = InMemoryMediaStorage()
    return _media_storage
