"""Immutable blob storage.

Blobs are addressed by an opaque id generated at store time and are never
overwritten; a signed PDF always lands under a fresh id next to its original.
"""

import logging
import uuid
from datetime import timedelta
from io import BytesIO
from typing import Optional, Protocol

from minio import Minio
from minio.error import S3Error

from paperdesk.config import settings

logger = logging.getLogger(__name__)

_MISSING_CODES = {"NoSuchKey", "NoSuchObject"}


class BlobStore(Protocol):
    def get(self, file_id: str) -> Optional[bytes]: ...

    def store(self, data: bytes, content_type: str) -> str: ...

    def get_url(self, file_id: str) -> str: ...


def new_file_id() -> str:
    return uuid.uuid4().hex


class MinioBlobStore:
    def __init__(self, client: Minio, bucket: str, url_expiry: timedelta = timedelta(hours=1)):
        self._client = client
        self._bucket = bucket
        self._url_expiry = url_expiry

    @staticmethod
    def _key(file_id: str) -> str:
        return f"blobs/{file_id}"

    def get(self, file_id: str) -> Optional[bytes]:
        try:
            response = self._client.get_object(self._bucket, self._key(file_id))
        except S3Error as exc:
            if exc.code in _MISSING_CODES:
                return None
            raise
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    def store(self, data: bytes, content_type: str) -> str:
        file_id = new_file_id()
        self._client.put_object(
            self._bucket,
            self._key(file_id),
            BytesIO(data),
            length=len(data),
            content_type=content_type,
        )
        logger.debug("Stored blob %s (%d bytes, %s)", file_id, len(data), content_type)
        return file_id

    def get_url(self, file_id: str) -> str:
        return self._client.presigned_get_object(self._bucket, self._key(file_id), expires=self._url_expiry)


_blob_store: Optional[MinioBlobStore] = None


def get_blob_store() -> BlobStore:
    global _blob_store
    if _blob_store is None:
        client = Minio(
            settings.minio_endpoint,
            access_key=settings.minio_root_user,
            secret_key=settings.minio_root_password,
            secure=settings.minio_use_ssl,
        )
        # Ensure bucket exists
        if not client.bucket_exists(settings.minio_bucket):
            client.make_bucket(settings.minio_bucket)
        _blob_store = MinioBlobStore(
            client, settings.minio_bucket, url_expiry=timedelta(hours=settings.minio_url_expire_hours)
        )
    return _blob_store
