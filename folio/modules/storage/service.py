import logging
from contextlib import contextmanager
from typing import Dict, List, Tuple

from fastapi import HTTPException, UploadFile

from folio.config import settings
from folio.modules.storage.schemas import BucketResponse, UploadResponse
from folio.storage.client import (
    BucketNotEmptyError, BucketNotFoundError, ObjectNotFoundError, ObjectStorage,
    StorageError, StorageUnavailableError,
)

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_BYTES = 1024 * 1024


async def read_limited(file: UploadFile, limit: int) -> bytes:
    """Read an upload in chunks; 413 as soon as it grows past ``limit`` bytes."""
    chunks = []
    total = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            logger.warning("Upload %s rejected after %d bytes", file.filename, total)
            raise HTTPException(status_code=413, detail="File too large")
        chunks.append(chunk)
    return b"".join(chunks)


@contextmanager
def storage_errors(bucket: str = ""):
    """Map object storage failures onto HTTP errors."""
    try:
        yield
    except BucketNotFoundError:
        raise HTTPException(status_code=404, detail=f"Bucket not found: {bucket}")
    except ObjectNotFoundError:
        raise HTTPException(status_code=404, detail="Object not found")
    except BucketNotEmptyError:
        raise HTTPException(status_code=400, detail="Bucket is not empty")
    except StorageUnavailableError:
        raise HTTPException(status_code=503, detail="Storage service unavailable")
    except StorageError as e:
        logger.error("Storage error on bucket %s: %s", bucket, e)
        raise HTTPException(status_code=500, detail="Storage operation failed")


def _clean_path(path: str) -> str:
    cleaned = path.strip().lstrip("/")
    if not cleaned or ".." in cleaned.split("/"):
        raise HTTPException(status_code=400, detail="Invalid object path")
    return cleaned


class StorageService:
    def __init__(self, storage: ObjectStorage):
        self.storage = storage

    def create_bucket(self, name: str, public: bool) -> BucketResponse:
        with storage_errors(name):
            if self.storage.bucket_exists(name):
                raise HTTPException(status_code=400, detail="Bucket already exists")
            self.storage.create_bucket(name, public=public)
        logger.info("Bucket created: %s", name)
        return BucketResponse(id=name, name=name, public=public)

    def list_buckets(self) -> List[BucketResponse]:
        with storage_errors():
            return [BucketResponse(**b) for b in self.storage.list_buckets()]

    def get_bucket(self, name: str) -> BucketResponse:
        with storage_errors(name):
            if not self.storage.bucket_exists(name):
                raise BucketNotFoundError(name)
            return BucketResponse(id=name, name=name, public=self.storage.is_public(name))

    def delete_bucket(self, name: str) -> None:
        with storage_errors(name):
            self.storage.delete_bucket(name)
        logger.info("Bucket deleted: %s", name)

    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> UploadResponse:
        if len(data) > settings.max_upload_bytes:
            raise HTTPException(status_code=413, detail="File too large")
        path = _clean_path(path)
        with storage_errors(bucket):
            etag = self.storage.put_object(bucket, path, data, content_type or "application/octet-stream")
        return UploadResponse(path=path, id=etag, full_path=f"{bucket}/{path}")

    def download(self, bucket: str, path: str) -> Tuple[bytes, str]:
        with storage_errors(bucket):
            return self.storage.get_object(bucket, _clean_path(path))

    def download_public(self, bucket: str, path: str) -> Tuple[bytes, str]:
        with storage_errors(bucket):
            if not self.storage.is_public(bucket):
                raise HTTPException(status_code=403, detail="Bucket is not public")
            return self.storage.get_object(bucket, _clean_path(path))

    def remove(self, bucket: str, paths: List[str]) -> List[str]:
        with storage_errors(bucket):
            return self.storage.remove_objects(bucket, [_clean_path(p) for p in paths])

    def list(self, bucket: str, prefix: str = "") -> List[Dict]:
        with storage_errors(bucket):
            return [obj.to_dict() for obj in self.storage.list_objects(bucket, prefix.lstrip("/"))]

    def signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        with storage_errors(bucket):
            return self.storage.presign_get(bucket, _clean_path(path), expires_in)
