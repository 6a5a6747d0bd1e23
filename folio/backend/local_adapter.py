"""
Adapter for the self-hosted REST server in this package.

Every call goes through one ``httpx.Client``. Pass your own client to point the
adapter at something other than ``config.api_url`` (tests hand it FastAPI's
``TestClient``).
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from folio.backend.base import AuthClient, BackendAdapter, FunctionsClient, StorageBucket, StorageClient
from folio.backend.config import LocalConfig
from folio.backend.query import QueryBuilder
from folio.backend.session import TOKEN_KEY, MemoryTokenStore, TokenStore
from folio.backend.types import (
    AuthCallback, AuthEvents, AuthResult, BackendError, BackendResult, Session,
    Subscription, UploadResult,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def error_from_response(response: httpx.Response, fallback: str = "Request failed") -> BackendError:
    """Error body is ``{"detail": ...}`` or ``{"error": {"message": ...}}``."""
    message = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("detail")
        error = body.get("error")
        if isinstance(detail, str):
            message = detail
        elif isinstance(detail, list) and detail:
            message = "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail)
        elif isinstance(error, dict):
            message = error.get("message")
        elif isinstance(error, str):
            message = error
    return BackendError(
        message or f"{fallback} (HTTP {response.status_code})",
        status=response.status_code,
        details=body,
    )


def json_result(response, fallback: str) -> BackendResult:
    """Decoded 2xx body as ``data``; transport errors, non-2xx and non-JSON bodies as ``error``."""
    if isinstance(response, BackendError):
        return BackendResult(error=response)
    if not response.is_success:
        return BackendResult(error=error_from_response(response, fallback))
    try:
        return BackendResult.success(response.json())
    except ValueError:
        logger.error("%s: response body is not JSON (HTTP %s)", fallback, response.status_code)
        return BackendResult.failure(
            f"{fallback}: invalid JSON response", status=response.status_code, code="invalid_response",
        )


class LocalQueryBuilder(QueryBuilder):
    def __init__(self, adapter: "LocalAdapter", table: str):
        super().__init__(table)
        self.adapter = adapter

    def execute(self) -> BackendResult:
        try:
            command = self.build()
        except ValueError as e:
            return BackendResult.failure(str(e), code="invalid_query")
        result = json_result(self.adapter.request("POST", "/database", json=command.to_wire()), "Database request failed")
        if not result.ok:
            return result
        body = result.data if isinstance(result.data, dict) else {}
        return BackendResult(data=body.get("data"), count=body.get("count"))


class LocalAuth(AuthClient):
    def __init__(self, adapter: "LocalAdapter"):
        self.adapter = adapter
        self.events = AuthEvents()

    def _store_session(self, body: Dict[str, Any]) -> Session:
        session = Session(
            access_token=body["access_token"],
            user=body.get("user") or {},
            token_type=body.get("token_type", "bearer"),
            expires_in=body.get("expires_in"),
        )
        self.adapter.set_token(session.access_token)
        return session

    def _authenticate(self, path: str, payload: Dict[str, Any]) -> AuthResult:
        result = json_result(self.adapter.request("POST", path, json=payload), "Authentication failed")
        if not result.ok:
            return AuthResult(error=result.error)
        if not isinstance(result.data, dict) or not result.data.get("access_token"):
            return AuthResult(error=BackendError("Authentication failed: no access token in response", code="invalid_response"))
        session = self._store_session(result.data)
        self.events.emit("SIGNED_IN", session)
        return AuthResult(user=session.user, session=session)

    def sign_in(self, email: str, password: str) -> AuthResult:
        return self._authenticate("/auth/signin", {"email": email, "password": password})

    def sign_up(self, email: str, password: str, data: Optional[Dict[str, Any]] = None) -> AuthResult:
        payload = {"email": email, "password": password}
        if data and data.get("full_name"):
            payload["full_name"] = data["full_name"]
        return self._authenticate("/auth/signup", payload)

    def sign_out(self) -> BackendResult:
        """Revokes the token server-side; the local token is dropped either way."""
        result = BackendResult.success()
        if self.adapter.get_token():
            response = self.adapter.request("POST", "/auth/signout")
            if isinstance(response, BackendError):
                result = BackendResult(error=response)
            elif not response.is_success:
                result = BackendResult(error=error_from_response(response, "Sign out failed"))
        self.adapter.clear_token()
        self.events.emit("SIGNED_OUT", None)
        return result

    def get_session(self) -> Optional[Session]:
        token = self.adapter.get_token()
        if not token:
            return None
        response = self.adapter.request("GET", "/auth/session")
        if isinstance(response, BackendError):
            logger.warning("Could not validate session: %s", response.message)
            return None
        if not response.is_success:
            self.adapter.clear_token()
            return None
        result = json_result(response, "Could not read session")
        if not result.ok or not isinstance(result.data, dict):
            return None
        return Session(access_token=token, user=result.data.get("user") or {})

    def get_user(self) -> BackendResult:
        if not self.adapter.get_token():
            return BackendResult.failure("Not authenticated", status=401)
        return json_result(self.adapter.request("GET", "/auth/user"), "Could not load user")

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        return self.events.subscribe(callback)


class LocalStorageBucket(StorageBucket):
    def __init__(self, adapter: "LocalAdapter", bucket: str):
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
        result = json_result(response, "Upload failed")
        if not result.ok:
            return result
        body = result.data if isinstance(result.data, dict) else {}
        return BackendResult.success(UploadResult(
            path=body.get("path") or path,
            id=str(body.get("id") or ""),
            full_path=body.get("fullPath") or f"{self.bucket}/{path}",
        ))

    def download(self, path: str) -> BackendResult:
        response = self.adapter.request("GET", self._path(f"download/{quote(path, safe='')}"))
        if isinstance(response, BackendError):
            return BackendResult(error=response)
        if not response.is_success:
            return BackendResult(error=error_from_response(response, "Download failed"))
        return BackendResult.success(response.content)

    def remove(self, paths) -> BackendResult:
        return json_result(
            self.adapter.request("DELETE", self._path("remove"), json={"paths": list(paths)}),
            "Remove failed",
        )

    def list(self, path: str = "") -> BackendResult:
        return json_result(self.adapter.request("GET", self._path("list"), params={"path": path}), "List failed")

    def get_public_url(self, path: str) -> BackendResult:
        url = f"{self.adapter.config.api_url}/storage/{self.bucket}/public/{quote(path, safe='')}"
        return BackendResult.success({"public_url": url})

    def create_signed_url(self, path: str, expires_in: int = 3600) -> BackendResult:
        result = json_result(
            self.adapter.request("POST", self._path("signed-url"), json={"path": path, "expiresIn": expires_in}),
            "Signed URL failed",
        )
        if not result.ok:
            return result
        body = result.data if isinstance(result.data, dict) else {}
        return BackendResult.success({"signed_url": body.get("signedUrl")})


class LocalStorage(StorageClient):
    def __init__(self, adapter: "LocalAdapter"):
        self.adapter = adapter

    def from_(self, bucket: str) -> LocalStorageBucket:
        return LocalStorageBucket(self.adapter, bucket)

    def _call(self, method: str, path: str, fallback: str, **kwargs) -> BackendResult:
        return json_result(self.adapter.request(method, path, **kwargs), fallback)

    def create_bucket(self, bucket_id: str, public: bool = True) -> BackendResult:
        return self._call("POST", "/storage/buckets", "Create bucket failed", json={"name": bucket_id, "public": public})

    def get_bucket(self, bucket_id: str) -> BackendResult:
        return self._call("GET", f"/storage/buckets/{bucket_id}", "Get bucket failed")

    def list_buckets(self) -> BackendResult:
        return self._call("GET", "/storage/buckets", "List buckets failed")

    def delete_bucket(self, bucket_id: str) -> BackendResult:
        return self._call("DELETE", f"/storage/buckets/{bucket_id}", "Delete bucket failed")


class LocalFunctions(FunctionsClient):
    def __init__(self, adapter: "LocalAdapter"):
        self.adapter = adapter

    def invoke(self, name: str, body: Optional[Dict[str, Any]] = None) -> BackendResult:
        result = json_result(self.adapter.request("POST", f"/functions/{name}", json=body or {}), f"Function {name} failed")
        if not result.ok:
            return result
        payload = result.data
        return BackendResult.success(payload.get("data") if isinstance(payload, dict) else payload)


class LocalAdapter(BackendAdapter):
    def __init__(
        self,
        config: LocalConfig,
        http_client: Optional[httpx.Client] = None,
        token_store: Optional[TokenStore] = None,
    ):
        self.config = config
        self.http = http_client or httpx.Client(base_url=config.api_url, timeout=DEFAULT_TIMEOUT)
        self.token_store = token_store or MemoryTokenStore()
        self._token: Optional[str] = None

        self.auth = LocalAuth(self)
        self.storage = LocalStorage(self)
        self.functions = LocalFunctions(self)

    def get_token(self) -> Optional[str]:
        if self._token is None:
            self._token = self.token_store.get(TOKEN_KEY)
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token
        self.token_store.set(TOKEN_KEY, token)

    def clear_token(self) -> None:
        self._token = None
        self.token_store.delete(TOKEN_KEY)

    def _headers(self) -> Dict[str, str]:
        headers = {}
        token = self.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if self.config.api_key:
            headers["X-API-Key"] = self.config.api_key
        return headers

    def request(self, method: str, path: str, **kwargs):
        """Send one request; transport failures come back as a ``BackendError``."""
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        try:
            return self.http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Local backend %s %s failed: %s", method, path, e)
            return BackendError(f"Network error: {e}", code="network_error")

    def from_(self, table: str) -> LocalQueryBuilder:
        return LocalQueryBuilder(self, table)

    def validate_connection(self) -> BackendResult:
        response = self.request("GET", "/health")
        if isinstance(response, BackendError):
            return BackendResult(error=response)
        if not response.is_success:
            return BackendResult(error=error_from_response(response, "Health check failed"))
        return BackendResult.success({"success": True})

    def get_backend_type(self) -> str:
        return "local"

    def get_config(self) -> LocalConfig:
        return self.config
