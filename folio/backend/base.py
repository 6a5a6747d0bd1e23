"""
The interface every backend adapter implements: auth, table queries, storage
and server functions.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from folio.backend.query import QueryBuilder
from folio.backend.types import AuthCallback, AuthResult, BackendResult, Session, Subscription


class AuthClient(ABC):
    @abstractmethod
    def sign_in(self, email: str, password: str) -> AuthResult:
        ...

    @abstractmethod
    def sign_up(self, email: str, password: str, data: Optional[Dict[str, Any]] = None) -> AuthResult:
        ...

    @abstractmethod
    def sign_out(self) -> BackendResult:
        ...

    @abstractmethod
    def get_session(self) -> Optional[Session]:
        ...

    @abstractmethod
    def get_user(self) -> BackendResult:
        ...

    @abstractmethod
    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        ...


class StorageBucket(ABC):
    def __init__(self, bucket: str):
        self.bucket = bucket

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> BackendResult:
        """``data`` of the result is an ``UploadResult``."""

    @abstractmethod
    def download(self, path: str) -> BackendResult:
        ...

    @abstractmethod
    def remove(self, paths) -> BackendResult:
        ...

    @abstractmethod
    def list(self, path: str = "") -> BackendResult:
        ...

    @abstractmethod
    def get_public_url(self, path: str) -> BackendResult:
        ...

    @abstractmethod
    def create_signed_url(self, path: str, expires_in: int = 3600) -> BackendResult:
        ...


class StorageClient(ABC):
    @abstractmethod
    def from_(self, bucket: str) -> StorageBucket:
        ...

    @abstractmethod
    def create_bucket(self, bucket_id: str, public: bool = True) -> BackendResult:
        ...

    @abstractmethod
    def get_bucket(self, bucket_id: str) -> BackendResult:
        ...

    @abstractmethod
    def list_buckets(self) -> BackendResult:
        ...

    @abstractmethod
    def delete_bucket(self, bucket_id: str) -> BackendResult:
        ...


class FunctionsClient(ABC):
    @abstractmethod
    def invoke(self, name: str, body: Optional[Dict[str, Any]] = None) -> BackendResult:
        ...


class BackendAdapter(ABC):
    auth: AuthClient
    storage: StorageClient
    functions: FunctionsClient

    @abstractmethod
    def from_(self, table: str) -> QueryBuilder:
        ...

    def table(self, table: str) -> QueryBuilder:
        return self.from_(table)

    @abstractmethod
    def validate_connection(self) -> BackendResult:
        ...

    @abstractmethod
    def get_backend_type(self) -> str:
        ...

    @abstractmethod
    def get_config(self):
        ...
