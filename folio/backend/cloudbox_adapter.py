"""
Adapter for a Cloudbox project. All endpoints live under
``{url}/p/{project_id}/api`` and authenticate with the ``X-API-Key`` header.
"""

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from folio.backend.base import AuthClient, BackendAdapter, FunctionsClient, StorageBucket, StorageClient
from folio.backend.config import CloudboxConfig
from folio.backend.local_adapter import DEFAULT_TIMEOUT, error_from_response
from folio.backend.query import QueryBuilder
from folio.backend.session import MemoryTokenStore, TokenStore
from folio.backend.types import (
    AuthCallback, AuthEvents, AuthResult, BackendError, BackendResult, Session,
    Subscription, UploadResult,
)

logger = logging.getLogger(__name__)

SESSION_KEY = "cloudbox_session"

WRITE_METHODS = {"insert": "POST", "update": "POST", "upsert": "POST", "delete": "DELETE"}


class CloudboxQueryBuilder(QueryBuilder):
    def __init__(self, adapter: "CloudboxAdapter", table: str):
        super().__init__(table)
        self.adapter = adapter

    def execute(self) -> BackendResult:
        try:
            command = self.build()
        except ValueError as e:
            return BackendResult.failure(str(e), code="invalid_query")

        wire = command.to_wire()
        method = WRITE_METHODS.get(command.operation, "GET")
        if method == "GET":
            response = self.adapter.request(method, f"/data/{self.table}", params={"query": json.dumps(wire)})
        else:
            response = self.adapter.request(method, f"/data/{self.table}", json=wire)
        return self.adapter.json_result(response, "Database request failed", unwrap_data=True)


def _session_from(body: Optional[Dict[str, Any]]) -> Optional[Session]:
    if not body or not body.get("access_token"):
        return None
    return Session(
        access_token=body["access_token"],
        user=body.get("user") or {},
        token_type=body.get("token_type", "bearer"),
        expires_in=body.get("expires_in"),
    )


class CloudboxAuth(AuthClient):
    def __init__(self, adapter: "CloudboxAdapter"):
        self.adapter = adapter
        self.events = AuthEvents()

    def _stored(self) -> Optional[Dict[str, Any]]:
        raw = self.adapter.token_store.get(SESSION_KEY)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            self.adapter.token_store.delete(SESSION_KEY)
            return None

    def _authenticate(self, path: str, payload: Dict[str, Any], fallback: str) -> AuthResult:
        response = self.adapter.request("POST", path, json=payload)
        if isinstance(response, BackendError):
            return AuthResult(error=response)
        if not response.is_success:
            return AuthResult(error=error_from_response(response, fallback))
        body = response.json()
        session = _session_from(body.get("session"))
        if session is not None:
            self.adapter.token_store.set(SESSION_KEY, json.dumps(body["session"]))
            self.events.emit("SIGNED_IN", session)
        return AuthResult(user=body.get("user"), session=session)

    def sign_in(self, email: str, password: str) -> AuthResult:
        return self._authenticate("/auth/login", {"email": email, "password": password}, "Login failed")

    def sign_up(self, email: str, password: str, data: Optional[Dict[str, Any]] = None) -> AuthResult:
        return self._authenticate(
            "/auth/register", {"email": email, "password": password, **(data or {})}, "Registration failed",
        )

    def sign_out(self) -> BackendResult:
        """Local session is dropped even when the server cannot be told."""
        self.adapter.token_store.delete(SESSION_KEY)
        response = self.adapter.request("POST", "/auth/logout")
        self.events.emit("SIGNED_OUT", None)
        if isinstance(response, BackendError):
            logger.warning("Cloudbox logout not acknowledged: %s", response.message)
        return BackendResult.success()

    def get_session(self) -> Optional[Session]:
        return _session_from(self._stored())

    def get_user(self) -> BackendResult:
        session = self.get_session()
        if session is None or not session.user:
            return BackendResult.failure("No user session", status=401)
        return BackendResult.success(session.user)

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        subscription = self.events.subscribe(callback)
        session = self.get_session()
        callback("SIGNED_IN" if session else "SIGNED_OUT", session)
        return subscription


class CloudboxStorageBucket(StorageBucket):
    def __init__(self, adapter: "CloudboxAdapter", bucket: str):
        super().__init__(bucket)
        self.adapter = adapter

    def _path(self, action: str) -> str:
        return f"/storage/{self.bucket}/{action}"

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> BackendResult:
        filename = path.rsplit("/", 1)[-1]
        response = self.adapter.request(
            "POST",
            self._path("upload"),
            files={"file": (filename, data, content_type or "application/octet-stream")},
            data={"path": path},
        )
        result = self.adapter.json_result(response, "Upload failed")
        if not result.ok:
            return result
        body = result.data or {}
        return BackendResult.success(UploadResult(
            path=body.get("path") or path,
            id=body.get("id") or body.get("path") or path,
            full_path=body.get("fullPath") or f"{self.bucket}/{path}",
        ))

    def download(self, path: str) -> BackendResult:
        response = self.adapter.request("GET", self._path(f"download/{quote(path)}"))
        if isinstance(response, BackendError):
            return BackendResult(error=response)
        if not response.is_success:
            return BackendResult(error=error_from_response(response, "Download failed"))
        return BackendResult.success(response.content)

    def remove(self, paths) -> BackendResult:
        return self.adapter.json_result(
            self.adapter.request("DELETE", self._path("delete"), json={"paths": list(paths)}),
            "Remove failed",
        )

    def list(self, path: str = "") -> BackendResult:
        params = {"path": path} if path else None
        return self.adapter.json_result(self.adapter.request("GET", self._path("list"), params=params), "List failed")

    def get_public_url(self, path: str) -> BackendResult:
        return BackendResult.success({"public_url": self.adapter.api_url(self._path(f"public/{quote(path)}"))})

    def create_signed_url(self, path: str, expires_in: int = 3600) -> BackendResult:
        result = self.adapter.json_result(
            self.adapter.request("POST", self._path("sign"), json={"path": path, "expiresIn": expires_in}),
            "Signed URL failed",
        )
        if not result.ok:
            return result
        return BackendResult.success({"signed_url": (result.data or {}).get("signedUrl")})


class CloudboxStorage(StorageClient):
    def __init__(self, adapter: "CloudboxAdapter"):
        self.adapter = adapter

    def from_(self, bucket: str) -> CloudboxStorageBucket:
        return CloudboxStorageBucket(self.adapter, bucket)

    def create_bucket(self, bucket_id: str, public: bool = True) -> BackendResult:
        return self.adapter.json_result(
            self.adapter.request("POST", "/storage/buckets", json={"name": bucket_id, "public": public}),
            "Create bucket failed",
        )

    def get_bucket(self, bucket_id: str) -> BackendResult:
        return self.adapter.json_result(self.adapter.request("GET", f"/storage/buckets/{bucket_id}"), "Get bucket failed")

    def list_buckets(self) -> BackendResult:
        return self.adapter.json_result(self.adapter.request("GET", "/storage/buckets"), "List buckets failed")

    def delete_bucket(self, bucket_id: str) -> BackendResult:
        return self.adapter.json_result(
            self.adapter.request("DELETE", f"/storage/buckets/{bucket_id}"), "Delete bucket failed",
        )


class CloudboxFunctions(FunctionsClient):
    """Cloudbox runs server functions as project scripts."""

    def __init__(self, adapter: "CloudboxAdapter"):
        self.adapter = adapter

    def invoke(self, name: str, body: Optional[Dict[str, Any]] = None) -> BackendResult:
        return self.adapter.json_result(
            self.adapter.request("POST", f"/scripts/{name}", json=body or {}), f"Function {name} failed",
        )


class CloudboxAdapter(BackendAdapter):
    def __init__(
        self,
        config: CloudboxConfig,
        http_client: Optional[httpx.Client] = None,
        token_store: Optional[TokenStore] = None,
    ):
        self.config = config
        self.base_url = config.url.rstrip("/")
        self.http = http_client or httpx.Client(timeout=DEFAULT_TIMEOUT)
        self.token_store = token_store or MemoryTokenStore()

        self.auth = CloudboxAuth(self)
        self.storage = CloudboxStorage(self)
        self.functions = CloudboxFunctions(self)

    def api_url(self, endpoint: str) -> str:
        return f"{self.base_url}/p/{self.config.project_id}/api{endpoint}"

    def request(self, method: str, endpoint: str, absolute: bool = False, **kwargs):
        url = endpoint if absolute else self.api_url(endpoint)
        headers = {"X-API-Key": self.config.api_key, **kwargs.pop("headers", {})}
        try:
            return self.http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Cloudbox %s %s failed: %s", method, endpoint, e)
            return BackendError(f"Network error: {e}", code="network_error")

    @staticmethod
    def json_result(response, fallback: str, unwrap_data: bool = False) -> BackendResult:
        if isinstance(response, BackendError):
            return BackendResult(error=response)
        if not response.is_success:
            return BackendResult(error=error_from_response(response, fallback))
        try:
            body = response.json()
        except ValueError:
            return BackendResult.failure(f"{fallback}: invalid JSON response", status=response.status_code)
        if unwrap_data and isinstance(body, dict):
            return BackendResult.success(body.get("data"), count=body.get("count"))
        return BackendResult.success(body)

    def from_(self, table: str) -> CloudboxQueryBuilder:
        return CloudboxQueryBuilder(self, table)

    def validate_connection(self) -> BackendResult:
        """Reachable when the health endpoint answers, even with 401."""
        for endpoint in ("/health", "/api", ""):
            response = self.request("GET", f"{self.base_url}{endpoint}", absolute=True)
            if isinstance(response, BackendError):
                continue
            if response.is_success or response.status_code == 401:
                return BackendResult.success({"success": True})
        return BackendResult.failure("Unable to connect to Cloudbox server")

    def get_backend_type(self) -> str:
        return "cloudbox"

    def get_config(self) -> CloudboxConfig:
        return self.config
