from typing import Any, List, Optional

from pydantic import BaseModel


class SeoSettingsUpdate(BaseModel):
    seo_enabled: Optional[bool] = None
    site_description: Optional[str] = None
    site_keywords: Optional[List[str]] = None
    title_pattern: Optional[str] = None
    default_title: Optional[str] = None
    default_description: Optional[str] = None
    og_enabled: Optional[bool] = None
    og_type: Optional[str] = None
    og_image_url: Optional[str] = None
    og_site_name: Optional[str] = None
    twitter_enabled: Optional[bool] = None
    twitter_card_type: Optional[str] = None
    twitter_site: Optional[str] = None
    twitter_creator: Optional[str] = None
    twitter_image_url: Optional[str] = None
    crawling_protection_enabled: Optional[bool] = None
    block_ai_training: Optional[bool] = None
    custom_robots_txt: Optional[str] = None
    allowed_crawlers: Optional[List[str]] = None
    blocked_crawlers: Optional[List[str]] = None
    schema_enabled: Optional[bool] = None
    schema_type: Optional[str] = None
    schema_name: Optional[str] = None
    schema_description: Optional[str] = None
    schema_url: Optional[str] = None
    schema_same_as: Optional[List[str]] = None
    canonical_urls_enabled: Optional[bool] = None
    sitemap_enabled: Optional[bool] = None
    noindex_when_disabled: Optional[bool] = None


class SeoSettingsResponse(BaseModel):
    data: Any
    error: Optional[str] = None
