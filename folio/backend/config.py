"""
Backend selection.

``select_backend_config`` inspects the backend settings in a fixed order and
returns one immutable configuration value:

1. FORCE_LOCAL_BACKEND
2. BACKEND_TYPE (local | cloudbox | supabase)
3. LOCAL_API_URL present
4. CLOUDBOX_URL + CLOUDBOX_API_KEY + CLOUDBOX_PROJECT_ID all present
5. Supabase, from SUPABASE_* or the built-in defaults
"""

import logging
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_API_URL = "http://localhost:3000"
DEFAULT_SUPABASE_URL = "https://your-project.supabase.co"
DEFAULT_SUPABASE_ANON_KEY = "public-anon-key"
DEFAULT_SUPABASE_PROJECT_ID = "your-project"


class BackendConfigurationError(ValueError):
    """Backend settings select a backend without the settings it needs."""


class SupabaseConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["supabase"] = "supabase"
    url: str
    anon_key: str
    project_id: Optional[str] = None


class LocalConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["local"] = "local"
    api_url: str
    api_key: Optional[str] = None


class CloudboxConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["cloudbox"] = "cloudbox"
    url: str
    api_key: str
    project_id: str


BackendConfig = Annotated[Union[SupabaseConfig, LocalConfig, CloudboxConfig], Field(discriminator="type")]


class BackendSettings(BaseSettings):
    force_local_backend: bool = False
    backend_type: Optional[str] = None

    local_api_url: Optional[str] = None
    local_api_key: Optional[str] = None

    cloudbox_url: Optional[str] = None
    cloudbox_api_key: Optional[str] = None
    cloudbox_project_id: Optional[str] = None

    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_project_id: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


def _local(settings: BackendSettings, api_url: str) -> LocalConfig:
    logger.info("Using local backend at %s", api_url)
    return LocalConfig(api_url=api_url.rstrip("/"), api_key=settings.local_api_key)


def _cloudbox(settings: BackendSettings) -> Optional[CloudboxConfig]:
    if settings.cloudbox_url and settings.cloudbox_api_key and settings.cloudbox_project_id:
        logger.info("Using Cloudbox backend at %s", settings.cloudbox_url)
        return CloudboxConfig(
            url=settings.cloudbox_url.rstrip("/"),
            api_key=settings.cloudbox_api_key,
            project_id=settings.cloudbox_project_id,
        )
    return None


def _supabase(settings: BackendSettings) -> SupabaseConfig:
    url = settings.supabase_url or DEFAULT_SUPABASE_URL
    logger.info("Using Supabase backend at %s", url)
    return SupabaseConfig(
        url=url,
        anon_key=settings.supabase_anon_key or DEFAULT_SUPABASE_ANON_KEY,
        project_id=settings.supabase_project_id or DEFAULT_SUPABASE_PROJECT_ID,
    )


def select_backend_config(settings: Optional[BackendSettings] = None) -> BackendConfig:
    settings = settings if settings is not None else BackendSettings()

    if settings.force_local_backend:
        return _local(settings, settings.local_api_url or DEFAULT_LOCAL_API_URL)

    backend_type = (settings.backend_type or "").strip().lower()
    if backend_type == "local":
        if not settings.local_api_url:
            raise BackendConfigurationError("BACKEND_TYPE=local requires LOCAL_API_URL")
        return _local(settings, settings.local_api_url)
    if backend_type == "cloudbox":
        config = _cloudbox(settings)
        if config is None:
            raise BackendConfigurationError(
                "BACKEND_TYPE=cloudbox requires CLOUDBOX_URL, CLOUDBOX_API_KEY and CLOUDBOX_PROJECT_ID"
            )
        return config
    if backend_type == "supabase":
        return _supabase(settings)
    if backend_type:
        raise BackendConfigurationError(f"Unknown BACKEND_TYPE: {settings.backend_type}")

    if settings.local_api_url:
        return _local(settings, settings.local_api_url)
    return _cloudbox(settings) or _supabase(settings)
