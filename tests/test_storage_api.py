import asyncio
import unittest
from unittest.mock import MagicMock, patch

from fastapi import HTTPException

from folio.config import settings
from folio.modules.storage import service as storage_service
from folio.storage.buckets import DEFAULT_BUCKETS, ensure_default_buckets
from folio.storage.client import InMemoryObjectStorage, StorageUnavailableError

from server_case import ServerTestCase


class StorageApiTests(ServerTestCase):
    def setUp(self):
        super().setUp()
        ensure_default_buckets(self.storage)
        self.create_user("editor@example.com")
        self.adapter = self.local_adapter()
        self.assertTrue(self.adapter.auth.sign_in("editor@example.com", "secret123").ok)

    def test_upload_then_fetch_public_url(self):
        bucket = self.adapter.storage.from_("gallery-images")
        uploaded = bucket.upload("2024/summer photo.jpg", b"jpeg-bytes", "image/jpeg")
        self.assertTrue(uploaded.ok, uploaded.error)
        self.assertEqual(uploaded.data.path, "2024/summer photo.jpg")
        self.assertEqual(uploaded.data.full_path, "gallery-images/2024/summer photo.jpg")
        self.assertTrue(uploaded.data.id)

        url = bucket.get_public_url("2024/summer photo.jpg").data["public_url"]
        self.assertEqual(url, "http://testserver/storage/gallery-images/public/2024%2Fsummer%20photo.jpg")
        self.assertEqual(bucket.get_public_url("2024/summer photo.jpg").data["public_url"], url)

        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"jpeg-bytes")
        self.assertIn("max-age", response.headers["cache-control"])

    def test_download_and_list(self):
        bucket = self.adapter.storage.from_("logos")
        bucket.upload("logo.png", b"png", "image/png").unwrap()
        self.assertEqual(bucket.download("logo.png").data, b"png")

        listed = bucket.list().unwrap()
        self.assertEqual([item["name"] for item in listed], ["logo.png"])

    def test_remove(self):
        bucket = self.adapter.storage.from_("fotos")
        bucket.upload("a.jpg", b"a").unwrap()
        removed = bucket.remove(["a.jpg", "missing.jpg"])
        self.assertEqual(removed.data, {"removed": ["a.jpg"]})
        self.assertEqual(bucket.download("a.jpg").error.status, 404)

    def test_signed_url(self):
        bucket = self.adapter.storage.from_("fotos")
        bucket.upload("a.jpg", b"a").unwrap()
        signed = bucket.create_signed_url("a.jpg", expires_in=60)
        self.assertIn("expires=60", signed.data["signed_url"])

    def test_upload_requires_editor(self):
        response = self.client.post(
            "/storage/fotos/upload", files={"file": ("a.jpg", b"a", "image/jpeg")}, data={"path": "a.jpg"},
        )
        self.assertEqual(response.status_code, 401)

    def test_public_route_refuses_private_bucket(self):
        self.adapter.storage.create_bucket("drafts", public=False).unwrap()
        self.adapter.storage.from_("drafts").upload("x.txt", b"x").unwrap()
        self.assertEqual(self.client.get("/storage/drafts/public/x.txt").status_code, 403)

    def test_bucket_delete_refuses_non_empty_bucket(self):
        self.adapter.storage.from_("logos").upload("logo.png", b"png").unwrap()
        result = self.adapter.storage.delete_bucket("logos")
        self.assertEqual(result.error.status, 400)

        self.adapter.storage.create_bucket("scratch").unwrap()
        self.assertTrue(self.adapter.storage.delete_bucket("scratch").ok)

    def test_unknown_bucket_is_not_found(self):
        self.assertEqual(self.adapter.storage.get_bucket("nope").error.status, 404)

    def test_path_traversal_is_rejected(self):
        result = self.adapter.storage.from_("fotos").upload("../escape.txt", b"x")
        self.assertEqual(result.error.status, 400)

    def test_oversized_upload_is_rejected(self):
        with patch.object(settings, "max_upload_bytes", 8):
            result = self.adapter.storage.from_("fotos").upload("big.jpg", b"x" * 9, "image/jpeg")
            self.assertEqual(result.error.status, 413)
            self.assertTrue(self.adapter.storage.from_("fotos").upload("small.jpg", b"x" * 8).ok)
        self.assertEqual([item["name"] for item in self.adapter.storage.from_("fotos").list().unwrap()], ["small.jpg"])


class ChunkedFile:
    def __init__(self, data: bytes):
        self.filename = "upload.bin"
        self.data = data
        self.reads = 0

    async def read(self, size: int = -1) -> bytes:
        self.reads += 1
        chunk, self.data = self.data[:size], self.data[size:]
        return chunk


class ReadLimitedTests(unittest.TestCase):
    def test_stops_reading_once_over_the_limit(self):
        upload = ChunkedFile(b"x" * 40)
        with patch.object(storage_service, "UPLOAD_CHUNK_BYTES", 4):
            with self.assertRaises(HTTPException) as raised:
                asyncio.run(storage_service.read_limited(upload, 6))
        self.assertEqual(raised.exception.status_code, 413)
        self.assertEqual(upload.reads, 2)

    def test_returns_everything_within_the_limit(self):
        upload = ChunkedFile(b"abcdefghij")
        with patch.object(storage_service, "UPLOAD_CHUNK_BYTES", 4):
            self.assertEqual(asyncio.run(storage_service.read_limited(upload, 10)), b"abcdefghij")


class DefaultBucketTests(unittest.TestCase):
    def test_creates_missing_buckets_once(self):
        storage = InMemoryObjectStorage()
        storage.create_bucket("logos")
        created = ensure_default_buckets(storage)
        self.assertEqual(len(created), len(DEFAULT_BUCKETS) - 1)
        self.assertNotIn("logos", created)
        self.assertEqual(ensure_default_buckets(storage), [])
        self.assertTrue(all(storage.is_public(name) for name in DEFAULT_BUCKETS))

    def test_storage_failure_is_logged_not_raised(self):
        storage = MagicMock()
        storage.bucket_exists.side_effect = StorageUnavailableError("down")
        self.assertEqual(ensure_default_buckets(storage), [])


if __name__ == "__main__":
    unittest.main()
