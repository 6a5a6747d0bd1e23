"""
Builds the adapter for a backend configuration.

There is no module-level adapter. Applications construct a ``BackendProvider``
once and pass it where it is needed.
"""

import logging
import threading
from typing import Optional

import httpx

from folio.backend.base import BackendAdapter
from folio.backend.cloudbox_adapter import CloudboxAdapter
from folio.backend.config import (
    BackendConfig, BackendConfigurationError, CloudboxConfig, LocalConfig, SupabaseConfig,
    select_backend_config,
)
from folio.backend.local_adapter import LocalAdapter
from folio.backend.session import TokenStore
from folio.backend.supabase_adapter import SupabaseAdapter

logger = logging.getLogger(__name__)


def create_backend_adapter(
    config: BackendConfig,
    http_client: Optional[httpx.Client] = None,
    token_store: Optional[TokenStore] = None,
) -> BackendAdapter:
    if isinstance(config, LocalConfig):
        return LocalAdapter(config, http_client=http_client, token_store=token_store)
    if isinstance(config, CloudboxConfig):
        return CloudboxAdapter(config, http_client=http_client, token_store=token_store)
    if isinstance(config, SupabaseConfig):
        return SupabaseAdapter(config)
    raise BackendConfigurationError(f"Unsupported backend type: {getattr(config, 'type', config)!r}")


class BackendProvider:
    def __init__(
        self,
        config: Optional[BackendConfig] = None,
        http_client: Optional[httpx.Client] = None,
        token_store: Optional[TokenStore] = None,
    ):
        self._explicit_config = config
        self._config = config
        self._http_client = http_client
        self._token_store = token_store
        self._adapter: Optional[BackendAdapter] = None
        self._lock = threading.Lock()

    @property
    def config(self) -> BackendConfig:
        if self._config is None:
            self._config = select_backend_config()
        return self._config

    def get_adapter(self) -> BackendAdapter:
        with self._lock:
            if self._adapter is None:
                self._adapter = create_backend_adapter(
                    self.config, http_client=self._http_client, token_store=self._token_store,
                )
                logger.info("Initialized %s backend adapter", self._adapter.get_backend_type())
            return self._adapter

    def reset(self) -> None:
        """Drop the cached adapter; selection runs again when no config was given."""
        with self._lock:
            self._adapter = None
            self._config = self._explicit_config
