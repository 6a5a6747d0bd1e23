"""
Object storage for uploaded media: MinIO/S3 through boto3, and an in-memory
double used by tests and local tooling.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from folio.config import settings

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchBucket", "NoSuchKey", "NotFound"}


class StorageError(Exception):
    pass


class StorageUnavailableError(StorageError):
    """Object store cannot be reached."""


class ObjectNotFoundError(StorageError):
    pass


class BucketNotFoundError(StorageError):
    pass


class BucketNotEmptyError(StorageError):
    pass


@dataclass
class StoredObject:
    name: str
    size: int
    etag: str
    content_type: str = "application/octet-stream"
    last_modified: Optional[datetime] = None

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "id": self.etag,
            "size": self.size,
            "content_type": self.content_type,
            "updated_at": self.last_modified.isoformat() if self.last_modified else None,
        }


def public_read_policy(bucket: str) -> str:
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [{
            "Effect": "Allow",
            "Principal": {"AWS": ["*"]},
            "Action": ["s3:GetObject"],
            "Resource": [f"arn:aws:s3:::{bucket}/*"],
        }],
    })


class ObjectStorage(Protocol):
    """Operations the storage routes need from an object store."""

    def bucket_exists(self, bucket: str) -> bool:
        ...

    def create_bucket(self, bucket: str, public: bool = True) -> None:
        ...

    def list_buckets(self) -> List[Dict]:
        ...

    def delete_bucket(self, bucket: str) -> None:
        ...

    def is_public(self, bucket: str) -> bool:
        ...

    def put_object(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        ...

    def get_object(self, bucket: str, path: str) -> Tuple[bytes, str]:
        ...

    def remove_objects(self, bucket: str, paths: List[str]) -> List[str]:
        ...

    def list_objects(self, bucket: str, prefix: str = "") -> List[StoredObject]:
        ...

    def presign_get(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        ...


@dataclass
class _MemoryBucket:
    public: bool
    created_at: datetime
    objects: Dict[str, Tuple[bytes, StoredObject]] = field(default_factory=dict)


@dataclass
class InMemoryObjectStorage:
    """Test double for the object store."""

    base_url: str = "https://storage.test"
    buckets: Dict[str, _MemoryBucket] = None

    def __post_init__(self):
        if self.buckets is None:
            self.buckets = {}

    def _bucket(self, bucket: str) -> _MemoryBucket:
        if bucket not in self.buckets:
            raise BucketNotFoundError(bucket)
        return self.buckets[bucket]

    def bucket_exists(self, bucket: str) -> bool:
        return bucket in self.buckets

    def create_bucket(self, bucket: str, public: bool = True) -> None:
        if bucket not in self.buckets:
            self.buckets[bucket] = _MemoryBucket(public=public, created_at=datetime.now(timezone.utc))

    def list_buckets(self) -> List[Dict]:
        return [
            {"id": name, "name": name, "public": b.public, "created_at": b.created_at.isoformat()}
            for name, b in sorted(self.buckets.items())
        ]

    def delete_bucket(self, bucket: str) -> None:
        if self._bucket(bucket).objects:
            raise BucketNotEmptyError(bucket)
        del self.buckets[bucket]

    def is_public(self, bucket: str) -> bool:
        return self._bucket(bucket).public

    def put_object(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        etag = hashlib.md5(data).hexdigest()
        self._bucket(bucket).objects[path] = (
            data,
            StoredObject(
                name=path, size=len(data), etag=etag, content_type=content_type,
                last_modified=datetime.now(timezone.utc),
            ),
        )
        return etag

    def get_object(self, bucket: str, path: str) -> Tuple[bytes, str]:
        stored = self._bucket(bucket).objects.get(path)
        if stored is None:
            raise ObjectNotFoundError(f"{bucket}/{path}")
        data, meta = stored
        return data, meta.content_type

    def remove_objects(self, bucket: str, paths: List[str]) -> List[str]:
        objects = self._bucket(bucket).objects
        return [path for path in paths if objects.pop(path, None) is not None]

    def list_objects(self, bucket: str, prefix: str = "") -> List[StoredObject]:
        objects = self._bucket(bucket).objects
        return [meta for path, (_, meta) in sorted(objects.items()) if path.startswith(prefix)]

    def presign_get(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        self._bucket(bucket)
        return f"{self.base_url}/{bucket}/{path}?op=get&expires={expires_in}"


class S3ObjectStorage:
    """MinIO/S3 store. Buckets are path-addressed."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        use_ssl: bool = False,
        region: str = "us-east-1",
    ):
        scheme = "https" if use_ssl else "http"
        self._client = boto3.client(
            "s3",
            endpoint_url=f"{scheme}://{endpoint}",
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            config=Config(s3={"addressing_style": "path"}, signature_version="s3v4"),
        )

    def _call(self, operation: str, **kwargs):
        try:
            return getattr(self._client, operation)(**kwargs)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in NOT_FOUND_CODES:
                if code == "NoSuchKey" or ("Key" in kwargs and code != "NoSuchBucket"):
                    raise ObjectNotFoundError(kwargs.get("Key", "")) from e
                raise BucketNotFoundError(kwargs.get("Bucket", "")) from e
            logger.error("Object storage %s failed: %s", operation, e)
            raise StorageError(str(e)) from e
        except BotoCoreError as e:
            logger.error("Object storage unreachable during %s: %s", operation, e)
            raise StorageUnavailableError(str(e)) from e

    def bucket_exists(self, bucket: str) -> bool:
        try:
            self._call("head_bucket", Bucket=bucket)
            return True
        except BucketNotFoundError:
            return False

    def create_bucket(self, bucket: str, public: bool = True) -> None:
        self._call("create_bucket", Bucket=bucket)
        if public:
            self._call("put_bucket_policy", Bucket=bucket, Policy=public_read_policy(bucket))

    def list_buckets(self) -> List[Dict]:
        response = self._call("list_buckets")
        return [
            {
                "id": b["Name"],
                "name": b["Name"],
                "public": self.is_public(b["Name"]),
                "created_at": b["CreationDate"].isoformat() if b.get("CreationDate") else None,
            }
            for b in response.get("Buckets", [])
        ]

    def delete_bucket(self, bucket: str) -> None:
        if self.list_objects(bucket):
            raise BucketNotEmptyError(bucket)
        self._call("delete_bucket", Bucket=bucket)

    def is_public(self, bucket: str) -> bool:
        try:
            response = self._client.get_bucket_policy(Bucket=bucket)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code == "NoSuchBucketPolicy":
                return False
            if code in NOT_FOUND_CODES:
                raise BucketNotFoundError(bucket) from e
            raise StorageError(str(e)) from e
        except BotoCoreError as e:
            raise StorageUnavailableError(str(e)) from e
        policy = json.loads(response.get("Policy") or "{}")
        return any(
            statement.get("Effect") == "Allow" and "s3:GetObject" in statement.get("Action", [])
            for statement in policy.get("Statement", [])
        )

    def put_object(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        response = self._call("put_object", Bucket=bucket, Key=path, Body=data, ContentType=content_type)
        return response.get("ETag", "").strip('"')

    def get_object(self, bucket: str, path: str) -> Tuple[bytes, str]:
        response = self._call("get_object", Bucket=bucket, Key=path)
        return response["Body"].read(), response.get("ContentType", "application/octet-stream")

    def remove_objects(self, bucket: str, paths: List[str]) -> List[str]:
        if not paths:
            return []
        response = self._call(
            "delete_objects",
            Bucket=bucket,
            Delete={"Objects": [{"Key": path} for path in paths], "Quiet": False},
        )
        return [item["Key"] for item in response.get("Deleted", [])]

    def list_objects(self, bucket: str, prefix: str = "") -> List[StoredObject]:
        paginator = self._client.get_paginator("list_objects_v2")
        objects = []
        try:
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    objects.append(StoredObject(
                        name=item["Key"],
                        size=item.get("Size", 0),
                        etag=item.get("ETag", "").strip('"'),
                        last_modified=item.get("LastModified"),
                    ))
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                raise BucketNotFoundError(bucket) from e
            raise StorageError(str(e)) from e
        except BotoCoreError as e:
            raise StorageUnavailableError(str(e)) from e
        return objects

    def presign_get(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        return self._call(
            "generate_presigned_url",
            ClientMethod="get_object",
            Params={"Bucket": bucket, "Key": path},
            ExpiresIn=expires_in,
        )


class ObjectStorageClient:
    _storage: Optional[ObjectStorage] = None

    @classmethod
    def get_storage(cls) -> ObjectStorage:
        if cls._storage is None:
            if settings.use_in_memory_storage:
                cls._storage = InMemoryObjectStorage(base_url=f"{settings.api_public_url}/storage")
            else:
                cls._storage = S3ObjectStorage(
                    endpoint=settings.minio_endpoint,
                    access_key=settings.minio_access_key,
                    secret_key=settings.minio_secret_key,
                    use_ssl=settings.minio_use_ssl,
                    region=settings.minio_region,
                )
        return cls._storage

    @classmethod
    def reset_client(cls):
        cls._storage = None


def get_object_storage() -> ObjectStorage:
    return ObjectStorageClient.get_storage()
