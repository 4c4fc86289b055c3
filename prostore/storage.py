from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol
from urllib.parse import urlparse

import boto3
import cloudinary
import cloudinary.uploader
from botocore.config import Config

from prostore.media import build_public_url, ensure_dir, media_root, resolve_media_path_from_url

logger = logging.getLogger(__name__)

PRODUCT_IMAGE_FOLDER = "prostore_products"


class StorageBackend(Protocol):
    def save(self, key: str, contents: bytes, content_type: str | None) -> str: ...
    def delete_by_url(self, url: str) -> None: ...


@dataclass(frozen=True)
class LocalStorage:
    def save(self, key: str, contents: bytes, content_type: str | None) -> str:
        dest_path = media_root() / key
        ensure_dir(dest_path.parent)
        dest_path.write_bytes(contents)
        return build_public_url(dest_path.relative_to(media_root()).as_posix())

    def delete_by_url(self, url: str) -> None:
        path = resolve_media_path_from_url(url)
        if path and path.exists():
            path.unlink()


@dataclass(frozen=True)
class S3Storage:
    bucket: str
    region: str | None
    endpoint_url: str | None
    public_base_url: str | None
    acl: str | None

    def _client(self):
        config = None
        if self.endpoint_url:
            config = Config(signature_version="s3v4", s3={"addressing_style": "path"})
        return boto3.client(
            "s3",
            region_name=self.region,
            endpoint_url=self.endpoint_url,
            config=config,
        )

    def save(self, key: str, contents: bytes, content_type: str | None) -> str:
        extra: dict[str, str] = {}
        if content_type:
            extra["ContentType"] = content_type
        if self.acl:
            extra["ACL"] = self.acl
        self._client().put_object(Bucket=self.bucket, Key=key, Body=contents, **extra)
        return self._build_public_url(key)

    def delete_by_url(self, url: str) -> None:
        key = self._key_from_url(url)
        if key:
            self._client().delete_object(Bucket=self.bucket, Key=key)

    def _build_public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        if self.region:
            return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def _key_from_url(self, url: str) -> str | None:
        if self.public_base_url:
            prefix = self.public_base_url.rstrip("/") + "/"
            if url.startswith(prefix):
                return url[len(prefix):]
        try:
            path = urlparse(url).path.lstrip("/")
        except ValueError:
            return None
        if not path:
            return None
        bucket_prefix = f"{self.bucket}/"
        return path[len(bucket_prefix):] if path.startswith(bucket_prefix) else path


@dataclass(frozen=True)
class CloudinaryStorage:
    cloud_name: str
    api_key: str
    api_secret: str
    folder: str = PRODUCT_IMAGE_FOLDER

    def __post_init__(self) -> None:
        cloudinary.config(
            cloud_name=self.cloud_name,
            api_key=self.api_key,
            api_secret=self.api_secret,
            secure=True,
        )

    def save(self, key: str, contents: bytes, content_type: str | None) -> str:
        public_id = os.path.splitext(key.rsplit("/", 1)[-1])[0]
        result = cloudinary.uploader.upload(
            contents,
            folder=self.folder,
            public_id=public_id,
            resource_type="image",
        )
        return result["secure_url"]

    def delete_by_url(self, url: str) -> None:
        public_id = cloudinary_public_id(url, self.folder)
        if public_id:
            cloudinary.uploader.destroy(public_id)


def cloudinary_public_id(url: str, folder: str = PRODUCT_IMAGE_FOLDER) -> str | None:
    """``https://res.cloudinary.com/x/image/upload/v1/<folder>/name.jpg`` -> ``<folder>/name``."""
    parts = urlparse(url).path.split("/")
    if folder not in parts:
        return None
    tail = "/".join(parts[parts.index(folder):])
    stem, _ext = os.path.splitext(tail)
    return stem or None


def build_media_key(*parts: str) -> str:
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


@lru_cache(maxsize=1)
def get_storage_backend() -> StorageBackend:
    backend = os.getenv("STORAGE_BACKEND", "local").strip().lower()
    if backend == "s3":
        bucket = os.getenv("S3_BUCKET")
        if not bucket:
            raise RuntimeError("S3_BUCKET must be set when STORAGE_BACKEND=s3")
        return S3Storage(
            bucket=bucket,
            region=os.getenv("S3_REGION"),
            endpoint_url=os.getenv("S3_ENDPOINT_URL"),
            public_base_url=os.getenv("S3_PUBLIC_BASE_URL"),
            acl=os.getenv("S3_UPLOAD_ACL", "public-read"),
        )
    if backend == "cloudinary":
        cloud_name = os.getenv("CLOUDINARY_CLOUD_NAME")
        api_key = os.getenv("CLOUDINARY_API_KEY")
        api_secret = os.getenv("CLOUDINARY_API_SECRET")
        if not (cloud_name and api_key and api_secret):
            raise RuntimeError("CLOUDINARY_* must be set when STORAGE_BACKEND=cloudinary")
        return CloudinaryStorage(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            folder=os.getenv("CLOUDINARY_FOLDER", PRODUCT_IMAGE_FOLDER),
        )
    return LocalStorage()


def is_local_storage() -> bool:
    return isinstance(get_storage_backend(), LocalStorage)


def storage_save(key: str, contents: bytes, content_type: str | None) -> str:
    return get_storage_backend().save(key, contents, content_type)


def storage_delete_by_url(url: str | None) -> None:
    """Best-effort removal; failures are logged and never raised."""
    if not url:
        return
    try:
        get_storage_backend().delete_by_url(url)
    except Exception:
        logger.exception("Failed to delete stored image url=%s", url)
        return
    logger.info("Deleted stored image url=%s", url)
