"""Object storage for uploaded photos and voice recordings."""
from __future__ import annotations

import io
import logging
from threading import Lock
from typing import Dict, Optional, Protocol, Tuple

from minio import Minio
from minio.error import S3Error

from diary.core.config import settings
from diary.core.errors import StoreError

logger = logging.getLogger(__name__)

MEMORIES_BUCKET = "memories"
VOICE_BUCKET = "voice-messages"


class MediaStorage(Protocol):
    def put(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Store an object and return the URL clients use to fetch it."""
        ...

    def get(self, bucket: str, key: str) -> Optional[Tuple[bytes, str]]: ...

    def remove(self, bucket: str, key: str) -> bool: ...


class MinioMediaStorage:
    """MinIO-backed storage; buckets are created on first use."""

    def __init__(
        self,
        endpoint: str = settings.minio_endpoint,
        access_key: str = settings.minio_access_key,
        secret_key: str = settings.minio_secret_key,
        secure: bool = settings.minio_secure,
        public_url: str = settings.minio_public_url,
    ):
        self.client = Minio(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
        )
        self.public_url = public_url.rstrip("/")
        self._known_buckets: set[str] = set()

    def _ensure_bucket_exists(self, bucket_name: str) -> None:
        """Ensure the bucket exists, create if it doesn't."""
        if bucket_name in self._known_buckets:
            return
        if not self.client.bucket_exists(bucket_name):
            self.client.make_bucket(bucket_name)
            logger.info(f"Created bucket: {bucket_name}")
        self._known_buckets.add(bucket_name)

    def put(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        try:
            self._ensure_bucket_exists(bucket)
            self.client.put_object(
                bucket_name=bucket,
                object_name=key,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except S3Error as e:
            logger.error(f"Error uploading file {key}: {e}")
            raise StoreError("Failed to upload file") from e
        logger.info(f"Successfully uploaded {key} to {bucket}")
        return f"{self.public_url}/{bucket}/{key}"

    def get(self, bucket: str, key: str) -> Optional[Tuple[bytes, str]]:
        try:
            stat = self.client.stat_object(bucket, key)
            response = self.client.get_object(bucket, key)
            try:
                data = response.read()
            finally:
                response.close()
                response.release_conn()
            return data, stat.content_type or "application/octet-stream"
        except S3Error as e:
            logger.error(f"Error downloading file {key}: {e}")
            return None

    def remove(self, bucket: str, key: str) -> bool:
        try:
            self.client.remove_object(bucket, key)
            logger.info(f"Successfully deleted {key} from {bucket}")
            return True
        except S3Error as e:
            logger.error(f"Error deleting file {key}: {e}")
            return False


class InMemoryMediaStorage:
    """Process-local buckets, served back through ``GET /media/{bucket}/{key}``."""

    def __init__(self, base_url: str = "/media"):
        self.base_url = base_url.rstrip("/")
        self._objects: Dict[Tuple[str, str], Tuple[bytes, str]] = {}
        self._lock = Lock()

    def put(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        with self._lock:
            self._objects[(bucket, key)] = (bytes(data), content_type)
        return f"{self.base_url}/{bucket}/{key}"

    def get(self, bucket: str, key: str) -> Optional[Tuple[bytes, str]]:
        with self._lock:
            return self._objects.get((bucket, key))

    def remove(self, bucket: str, key: str) -> bool:
        with self._lock:
            return self._objects.pop((bucket, key), None) is not None


_storage: Optional[MediaStorage] = None


def get_media_storage() -> MediaStorage:
    """Dependency: the process-wide media storage picked by configuration."""
    global _storage
    if _storage is None:
        if settings.demo_mode or settings.storage_backend == "memory":
            _storage = InMemoryMediaStorage()
        else:
            _storage = MinioMediaStorage()
    return _storage
