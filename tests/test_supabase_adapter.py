import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock

from postgrest.exceptions import APIError

from folio.backend.config import SupabaseConfig
from folio.backend.supabase_adapter import SupabaseAdapter

CONFIG = SupabaseConfig(url="https://abc.supabase.co", anon_key="anon-key")


class _Negated:
    def __init__(self, query):
        self.query = query

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.query.calls.append((f"not.{name}", args, kwargs))
            return self.query
        return method


class FakeSdkQuery:
    """Records builder calls in order and answers ``execute()`` with a canned response."""

    def __init__(self, response=None, error=None):
        self.calls = []
        self.response = response
        self.error = error
        self.not_ = _Negated(self)

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    def execute(self):
        if self.error is not None:
            raise self.error
        return self.response


def adapter_with(query: FakeSdkQuery):
    client = MagicMock()
    client.table.return_value = query
    return SupabaseAdapter(CONFIG, client=client), client


class SupabaseQueryTests(unittest.TestCase):
    def test_replays_builder_state_in_order(self):
        query = FakeSdkQuery(SimpleNamespace(data=[{"id": 1}], count=None))
        adapter, client = adapter_with(query)

        result = (
            adapter.from_("custom_sections")
            .select("id,slug")
            .eq("is_active", True)
            .not_("slug", "eq", "draft")
            .in_("menu_order", [1, 2])
            .is_("button_text", None)
            .order("menu_order", ascending=False)
            .range(0, 9)
            .execute()
        )

        self.assertTrue(result.ok)
        self.assertEqual(result.data, [{"id": 1}])
        self.assertEqual(result.count, 1)
        client.table.assert_called_once_with("custom_sections")
        self.assertEqual(query.calls, [
            ("select", ("id,slug",), {}),
            ("eq", ("is_active", True), {}),
            ("not.eq", ("slug", "draft"), {}),
            ("in_", ("menu_order", [1, 2]), {}),
            ("is_", ("button_text", "null"), {}),
            ("order", ("menu_order",), {"desc": True}),
            ("range", (0, 9), {}),
        ])

    def test_upsert_passes_on_conflict(self):
        query = FakeSdkQuery(SimpleNamespace(data=[], count=None))
        adapter, _ = adapter_with(query)
        rows = [{"translation_key": "a", "language_code": "en", "translation_value": "A"}]
        adapter.from_("translations").upsert(rows, on_conflict="translation_key,language_code").execute()
        self.assertEqual(query.calls, [("upsert", (rows,), {"on_conflict": "translation_key,language_code"})])

    def test_limit_and_single_for_selects(self):
        query = FakeSdkQuery(SimpleNamespace(data={"id": 1}, count=None))
        adapter, _ = adapter_with(query)
        result = adapter.from_("pages").select().eq("slug", "home").limit(1).single().execute()
        self.assertEqual([c[0] for c in query.calls], ["select", "eq", "limit", "single"])
        self.assertEqual(result.data, {"id": 1})

    def test_maybe_single_without_row(self):
        adapter, _ = adapter_with(FakeSdkQuery(None))
        result = adapter.from_("pages").select().eq("slug", "none").maybe_single().execute()
        self.assertTrue(result.ok)
        self.assertIsNone(result.data)
        self.assertEqual(result.count, 0)

    def test_sdk_errors_become_results(self):
        error = APIError({"message": "duplicate key value", "code": "23505", "details": "slug"})
        adapter, _ = adapter_with(FakeSdkQuery(error=error))
        result = adapter.from_("custom_sections").insert({"slug": "a"}).execute()
        self.assertFalse(result.ok)
        self.assertEqual(result.error.message, "duplicate key value")
        self.assertEqual(result.error.code, "23505")

    def test_conflicting_operations_raise_before_any_call(self):
        adapter, client = adapter_with(FakeSdkQuery())
        builder = adapter.from_("pages").insert({"title": "x"})
        with self.assertRaises(ValueError):
            builder.update({"title": "y"})
        client.table.assert_not_called()


class SupabaseAuthStorageTests(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.adapter = SupabaseAdapter(CONFIG, client=self.client)

    def test_sign_in_maps_session(self):
        user = SimpleNamespace(id="u1", email="eva@example.com")
        self.client.auth.sign_in_with_password.return_value = SimpleNamespace(
            user=user,
            session=SimpleNamespace(access_token="tok", user=user, token_type="bearer", expires_in=3600),
        )
        result = self.adapter.auth.sign_in("eva@example.com", "secret")
        self.assertTrue(result.ok)
        self.assertEqual(result.user, {"id": "u1", "email": "eva@example.com"})
        self.assertEqual(result.session.access_token, "tok")
        self.client.auth.sign_in_with_password.assert_called_once_with(
            {"email": "eva@example.com", "password": "secret"}
        )

    def test_sign_in_failure(self):
        self.client.auth.sign_in_with_password.side_effect = RuntimeError("Invalid login credentials")
        result = self.adapter.auth.sign_in("eva@example.com", "wrong")
        self.assertFalse(result.ok)
        self.assertEqual(result.error.message, "Invalid login credentials")

    def test_upload_result(self):
        bucket = self.client.storage.from_.return_value
        bucket.upload.return_value = SimpleNamespace(path="a.jpg", full_path="fotos/a.jpg", id="obj-1")
        result = self.adapter.storage.from_("fotos").upload("a.jpg", b"data", "image/jpeg")
        self.assertEqual(result.data.full_path, "fotos/a.jpg")
        self.assertEqual(result.data.id, "obj-1")
        bucket.upload.assert_called_once_with("a.jpg", b"data", file_options={"content-type": "image/jpeg"})

    def test_public_url(self):
        bucket = self.client.storage.from_.return_value
        bucket.get_public_url.return_value = "https://abc.supabase.co/storage/v1/object/public/fotos/a.jpg?"
        result = self.adapter.storage.from_("fotos").get_public_url("a.jpg")
        self.assertEqual(result.data["public_url"], "https://abc.supabase.co/storage/v1/object/public/fotos/a.jpg")

    def test_function_invoke_unwraps_data(self):
        self.client.functions.invoke.return_value = b'{"data": {"translatedText": "Hello"}}'
        result = self.adapter.functions.invoke("translate-content", {"text": "Hallo"})
        self.assertEqual(result.data, {"translatedText": "Hello"})
        self.client.functions.invoke.assert_called_once_with(
            "translate-content", invoke_options={"body": {"text": "Hallo"}}
        )

    def test_client_is_created_on_first_use(self):
        adapter = SupabaseAdapter(CONFIG)
        self.assertEqual(adapter.get_backend_type(), "supabase")
        self.assertIs(adapter.get_config(), CONFIG)


if __name__ == "__main__":
    unittest.main()
