"""
Adapter for hosted Supabase, wrapping the ``supabase`` SDK.

Builder state is replayed on the SDK builder in a fixed order: operation,
filters, ordering and paging, row-count modifiers, ``execute()``.
"""

import json
import logging
from typing import Any, Dict, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client

from folio.backend.base import AuthClient, BackendAdapter, FunctionsClient, StorageBucket, StorageClient
from folio.backend.config import SupabaseConfig
from folio.backend.query import QueryBuilder, QueryCommand, split_operator
from folio.backend.types import (
    AuthCallback, AuthResult, BackendError, BackendResult, Session, Subscription, UploadResult,
)

logger = logging.getLogger(__name__)

SDK_FILTER_METHODS = {"in": "in_", "is": "is_"}


def _plain(value: Any) -> Any:
    """SDK response models to plain data."""
    if value is None or isinstance(value, (str, bytes, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if hasattr(value, "model_dump"):
        return value.model_dump()
    if hasattr(value, "__dict__"):
        return {k: _plain(v) for k, v in vars(value).items() if not k.startswith("_")}
    return value


def _error(e: Exception, fallback: str) -> BackendError:
    if isinstance(e, APIError):
        return BackendError(e.message or fallback, code=e.code, details=e.details)
    status = getattr(e, "status", None)
    return BackendError(str(e) or fallback, status=status if isinstance(status, int) else None)


def replay(client: Client, command: QueryCommand):
    """Apply a built command to a fresh SDK builder and return it, ready to execute."""
    table = client.table(command.table)
    if command.operation == "select":
        query = table.select(command.select)
    elif command.operation == "insert":
        query = table.insert(command.data)
    elif command.operation == "update":
        query = table.update(command.data)
    elif command.operation == "upsert":
        on_conflict = command.options.on_conflict if command.options else None
        query = table.upsert(command.data, on_conflict=on_conflict) if on_conflict else table.upsert(command.data)
    else:
        query = table.delete()

    for flt in command.where:
        negated, operator = split_operator(flt.operator)
        target = query.not_ if negated else query
        value = flt.value
        if operator == "is" and value is None:
            value = "null"
        query = getattr(target, SDK_FILTER_METHODS.get(operator, operator))(flt.column, value)

    if command.operation == "select":
        if command.order_by:
            query = query.order(command.order_by.column, desc=not command.order_by.ascending)
        if command.range is not None:
            query = query.range(command.range.from_, command.range.to)
        elif command.limit is not None:
            query = query.limit(command.limit)
        if command.single:
            query = query.single()
        elif command.maybe_single:
            query = query.maybe_single()
    return query


class SupabaseQueryBuilder(QueryBuilder):
    def __init__(self, adapter: "SupabaseAdapter", table: str):
        super().__init__(table)
        self.adapter = adapter

    def execute(self) -> BackendResult:
        try:
            command = self.build()
            response = replay(self.adapter.client, command).execute()
        except ValueError as e:
            return BackendResult.failure(str(e), code="invalid_query")
        except Exception as e:
            logger.error("Supabase query on %s failed: %s", self.table, e)
            return BackendResult(error=_error(e, "Database request failed"))

        # maybe_single() with no row returns no response at all
        if response is None:
            return BackendResult.success(None, count=0)
        data = response.data
        count = response.count
        if count is None:
            count = len(data) if isinstance(data, list) else (0 if data is None else 1)
        return BackendResult.success(data, count=count)


def _session(sdk_session) -> Optional[Session]:
    if sdk_session is None:
        return None
    return Session(
        access_token=sdk_session.access_token,
        user=_plain(sdk_session.user) or {},
        token_type=getattr(sdk_session, "token_type", "bearer") or "bearer",
        expires_in=getattr(sdk_session, "expires_in", None),
    )


class SupabaseAuth(AuthClient):
    def __init__(self, adapter: "SupabaseAdapter"):
        self.adapter = adapter

    def _auth_result(self, call, fallback: str) -> AuthResult:
        try:
            response = call()
        except Exception as e:
            logger.error("%s: %s", fallback, e)
            return AuthResult(error=_error(e, fallback))
        return AuthResult(user=_plain(response.user), session=_session(response.session))

    def sign_in(self, email: str, password: str) -> AuthResult:
        return self._auth_result(
            lambda: self.adapter.client.auth.sign_in_with_password({"email": email, "password": password}),
            "Sign in failed",
        )

    def sign_up(self, email: str, password: str, data: Optional[Dict[str, Any]] = None) -> AuthResult:
        credentials = {"email": email, "password": password}
        if data:
            credentials["options"] = {"data": data}
        return self._auth_result(lambda: self.adapter.client.auth.sign_up(credentials), "Sign up failed")

    def sign_out(self) -> BackendResult:
        try:
            self.adapter.client.auth.sign_out()
        except Exception as e:
            return BackendResult(error=_error(e, "Sign out failed"))
        return BackendResult.success()

    def get_session(self) -> Optional[Session]:
        try:
            return _session(self.adapter.client.auth.get_session())
        except Exception as e:
            logger.warning("Could not load Supabase session: %s", e)
            return None

    def get_user(self) -> BackendResult:
        try:
            response = self.adapter.client.auth.get_user()
        except Exception as e:
            return BackendResult(error=_error(e, "Could not load user"))
        if response is None or response.user is None:
            return BackendResult.failure("Not authenticated", status=401)
        return BackendResult.success(_plain(response.user))

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        sdk_subscription = self.adapter.client.auth.on_auth_state_change(
            lambda event, session: callback(str(getattr(event, "value", event)), _session(session))
        )
        return Subscription(sdk_subscription.unsubscribe)


class SupabaseStorageBucket(StorageBucket):
    def __init__(self, adapter: "SupabaseAdapter", bucket: str):
        super().__init__(bucket)
        self.adapter = adapter

    @property
    def _sdk(self):
        return self.adapter.client.storage.from_(self.bucket)

    def _call(self, call, fallback: str) -> BackendResult:
        try:
            return BackendResult.success(_plain(call()))
        except Exception as e:
            logger.error("%s on bucket %s: %s", fallback, self.bucket, e)
            return BackendResult(error=_error(e, fallback))

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> BackendResult:
        options = {"content-type": content_type} if content_type else None
        result = self._call(lambda: self._sdk.upload(path, data, file_options=options), "Upload failed")
        if not result.ok:
            return result
        body = result.data if isinstance(result.data, dict) else {}
        return BackendResult.success(UploadResult(
            path=body.get("path") or path,
            id=str(body.get("id") or body.get("Id") or ""),
            full_path=body.get("full_path") or body.get("fullPath") or f"{self.bucket}/{path}",
        ))

    def download(self, path: str) -> BackendResult:
        return self._call(lambda: self._sdk.download(path), "Download failed")

    def remove(self, paths) -> BackendResult:
        return self._call(lambda: self._sdk.remove(list(paths)), "Remove failed")

    def list(self, path: str = "") -> BackendResult:
        return self._call(lambda: self._sdk.list(path or None), "List failed")

    def get_public_url(self, path: str) -> BackendResult:
        result = self._call(lambda: self._sdk.get_public_url(path), "Public URL failed")
        if not result.ok:
            return result
        return BackendResult.success({"public_url": str(result.data).rstrip("?")})

    def create_signed_url(self, path: str, expires_in: int = 3600) -> BackendResult:
        result = self._call(lambda: self._sdk.create_signed_url(path, expires_in), "Signed URL failed")
        if not result.ok:
            return result
        body = result.data or {}
        return BackendResult.success({"signed_url": body.get("signedURL") or body.get("signedUrl")})


class SupabaseStorage(StorageClient):
    def __init__(self, adapter: "SupabaseAdapter"):
        self.adapter = adapter

    def from_(self, bucket: str) -> SupabaseStorageBucket:
        return SupabaseStorageBucket(self.adapter, bucket)

    def _call(self, call, fallback: str) -> BackendResult:
        try:
            return BackendResult.success(_plain(call()))
        except Exception as e:
            logger.error("%s: %s", fallback, e)
            return BackendResult(error=_error(e, fallback))

    def create_bucket(self, bucket_id: str, public: bool = True) -> BackendResult:
        return self._call(
            lambda: self.adapter.client.storage.create_bucket(bucket_id, options={"public": public}),
            "Create bucket failed",
        )

    def get_bucket(self, bucket_id: str) -> BackendResult:
        return self._call(lambda: self.adapter.client.storage.get_bucket(bucket_id), "Get bucket failed")

    def list_buckets(self) -> BackendResult:
        return self._call(lambda: self.adapter.client.storage.list_buckets(), "List buckets failed")

    def delete_bucket(self, bucket_id: str) -> BackendResult:
        return self._call(lambda: self.adapter.client.storage.delete_bucket(bucket_id), "Delete bucket failed")


class SupabaseFunctions(FunctionsClient):
    def __init__(self, adapter: "SupabaseAdapter"):
        self.adapter = adapter

    def invoke(self, name: str, body: Optional[Dict[str, Any]] = None) -> BackendResult:
        try:
            response = self.adapter.client.functions.invoke(name, invoke_options={"body": body or {}})
        except Exception as e:
            logger.error("Function %s failed: %s", name, e)
            return BackendResult(error=_error(e, f"Function {name} failed"))
        if isinstance(response, (bytes, bytearray)):
            try:
                response = json.loads(response)
            except ValueError:
                response = response.decode("utf-8", errors="replace")
        if isinstance(response, dict) and "data" in response:
            response = response["data"]
        return BackendResult.success(response)


class SupabaseAdapter(BackendAdapter):
    def __init__(self, config: SupabaseConfig, client: Optional[Client] = None):
        self.config = config
        self._client = client

        self.auth = SupabaseAuth(self)
        self.storage = SupabaseStorage(self)
        self.functions = SupabaseFunctions(self)

    @property
    def client(self) -> Client:
        # created on first use
        if self._client is None:
            self._client = create_client(self.config.url, self.config.anon_key)
        return self._client

    def from_(self, table: str) -> SupabaseQueryBuilder:
        return SupabaseQueryBuilder(self, table)

    def validate_connection(self) -> BackendResult:
        try:
            self.client.auth.get_session()
        except Exception as e:
            return BackendResult(error=_error(e, "Supabase connection failed"))
        return BackendResult.success({"success": True})

    def get_backend_type(self) -> str:
        return "supabase"

    def get_config(self) -> SupabaseConfig:
        return self.config
