"""
Value types shared by every backend adapter.

Adapters never raise for a failed backend call; they return a ``BackendResult``
whose ``error`` is set. ``unwrap()`` turns that back into an exception for
callers that prefer one.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class BackendError(Exception):
    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "status": self.status, "code": self.code, "details": self.details}

    def __repr__(self) -> str:
        return f"BackendError({self.message!r}, status={self.status})"


@dataclass
class BackendResult:
    data: Any = None
    error: Optional[BackendError] = None
    count: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.data

    @classmethod
    def success(cls, data: Any = None, count: Optional[int] = None) -> "BackendResult":
        return cls(data=data, count=count)

    @classmethod
    def failure(cls, message: str, status: Optional[int] = None, code: Optional[str] = None, details: Any = None) -> "BackendResult":
        return cls(error=BackendError(message, status=status, code=code, details=details))


@dataclass
class Session:
    access_token: str
    user: Dict[str, Any]
    token_type: str = "bearer"
    expires_in: Optional[int] = None


@dataclass
class AuthResult:
    user: Optional[Dict[str, Any]] = None
    session: Optional[Session] = None
    error: Optional[BackendError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class UploadResult:
    path: str
    id: str
    full_path: str


AuthCallback = Callable[[str, Optional[Session]], None]


class Subscription:
    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe = unsubscribe
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._unsubscribe()
            self.active = False


@dataclass
class AuthEvents:
    """In-process auth state listeners."""

    listeners: List[AuthCallback] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def subscribe(self, callback: AuthCallback) -> Subscription:
        with self._lock:
            self.listeners.append(callback)

        def remove():
            with self._lock:
                if callback in self.listeners:
                    self.listeners.remove(callback)

        return Subscription(remove)

    def emit(self, event: str, session: Optional[Session]) -> None:
        with self._lock:
            listeners = list(self.listeners)
        for callback in listeners:
            try:
                callback(event, session)
            except Exception:
                logger.exception("Auth state listener failed for %s", event)
