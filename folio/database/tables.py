# Schema for the self-hosted backend.
# The metadata doubles as the allow-list for the generic /database interpreter:
# only tables and columns declared here can be addressed by a query command.

"""
Tables:

users                 - credentials, soft-deleted via deleted_at
profiles              - one row per user, role admin | editor
revoked_tokens        - JWT ids invalidated by sign-out, kept until expiry
site_settings         - single-row site configuration (contact form, mail credentials)
contact_messages      - contact form submissions
custom_sections       - admin-configurable content blocks, unique slug
seo_settings          - single-row SEO/robots configuration
pages                 - page-builder pages
page_builder_elements - one row per placed element, keyed by page_id
translations          - unique (translation_key, language_code)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, MetaData,
    String, Table, Text, UniqueConstraint,
)


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


metadata = MetaData()


def _id_column() -> Column:
    return Column("id", String(36), primary_key=True, default=_uuid)


def _timestamps():
    return [
        Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
        Column("updated_at", DateTime(timezone=True), nullable=True, default=utcnow, onupdate=utcnow),
    ]


users = Table(
    "users", metadata,
    _id_column(),
    Column("email", String(320), nullable=False, unique=True),
    Column("encrypted_password", String(255), nullable=False),
    Column("raw_user_meta_data", JSON, nullable=True),
    Column("confirmed_at", DateTime(timezone=True), nullable=True),
    Column("email_confirmed_at", DateTime(timezone=True), nullable=True),
    Column("last_sign_in_at", DateTime(timezone=True), nullable=True),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    *_timestamps(),
)

profiles = Table(
    "profiles", metadata,
    _id_column(),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("email", String(320), nullable=True),
    Column("full_name", String(255), nullable=True),
    Column("role", String(32), nullable=False, default="editor"),
    *_timestamps(),
)

revoked_tokens = Table(
    "revoked_tokens", metadata,
    Column("jti", String(64), primary_key=True),
    Column("user_id", String(36), nullable=True),
    Column("expires_at", DateTime(timezone=True), nullable=False),
    Column("revoked_at", DateTime(timezone=True), nullable=False, default=utcnow),
)

site_settings = Table(
    "site_settings", metadata,
    _id_column(),
    Column("site_title", String(255), nullable=True),
    Column("site_tagline", String(255), nullable=True),
    Column("logo_url", Text, nullable=True),
    Column("accent_color", String(32), nullable=True),
    Column("contact_email", String(320), nullable=True),
    Column("notification_email", String(320), nullable=True),
    Column("form_enabled", Boolean, nullable=False, default=True),
    Column("auto_reply_enabled", Boolean, nullable=False, default=False),
    Column("auto_reply_subject", String(255), nullable=True),
    Column("auto_reply_message", Text, nullable=True),
    Column("email_service_type", String(32), nullable=True, default="gmail"),
    Column("gmail_user", String(320), nullable=True),
    Column("gmail_app_password", String(255), nullable=True),
    Column("resend_api_key", String(255), nullable=True),
    Column("openai_api_key", String(255), nullable=True),
    *_timestamps(),
)

contact_messages = Table(
    "contact_messages", metadata,
    _id_column(),
    Column("name", String(255), nullable=False),
    Column("email", String(320), nullable=False),
    Column("phone", String(64), nullable=True),
    Column("subject", String(255), nullable=True),
    Column("message", Text, nullable=False),
    Column("is_read", Boolean, nullable=False, default=False),
    Column("replied_at", DateTime(timezone=True), nullable=True),
    *_timestamps(),
)

custom_sections = Table(
    "custom_sections", metadata,
    _id_column(),
    Column("name", String(255), nullable=False),
    Column("slug", String(255), nullable=False, unique=True),
    Column("title", String(255), nullable=False),
    Column("is_active", Boolean, nullable=False, default=False),
    Column("show_in_navigation", Boolean, nullable=False, default=True),
    Column("show_hero_button", Boolean, nullable=False, default=False),
    Column("menu_order", Integer, nullable=False, default=0),
    Column("header_image_url", Text, nullable=True),
    Column("content_left", Text, nullable=True),
    Column("content_right", JSON, nullable=True),
    Column("button_text", String(255), nullable=True),
    Column("button_link", Text, nullable=True),
    *_timestamps(),
)

seo_settings = Table(
    "seo_settings", metadata,
    _id_column(),
    Column("seo_enabled", Boolean, nullable=False, default=True),
    Column("site_description", Text, nullable=True),
    Column("site_keywords", JSON, nullable=True),
    Column("title_pattern", String(255), nullable=True, default="%s | Portfolio"),
    Column("default_title", String(255), nullable=True),
    Column("default_description", Text, nullable=True),
    Column("og_enabled", Boolean, nullable=False, default=True),
    Column("og_type", String(64), nullable=True, default="website"),
    Column("og_image_url", Text, nullable=True),
    Column("og_site_name", String(255), nullable=True),
    Column("twitter_enabled", Boolean, nullable=False, default=False),
    Column("twitter_card_type", String(64), nullable=True, default="summary_large_image"),
    Column("twitter_site", String(255), nullable=True),
    Column("twitter_creator", String(255), nullable=True),
    Column("twitter_image_url", Text, nullable=True),
    Column("crawling_protection_enabled", Boolean, nullable=False, default=False),
    Column("block_ai_training", Boolean, nullable=False, default=True),
    Column("custom_robots_txt", Text, nullable=True),
    Column("allowed_crawlers", JSON, nullable=True),
    Column("blocked_crawlers", JSON, nullable=True),
    Column("schema_enabled", Boolean, nullable=False, default=False),
    Column("schema_type", String(64), nullable=True, default="Person"),
    Column("schema_name", String(255), nullable=True),
    Column("schema_description", Text, nullable=True),
    Column("schema_url", Text, nullable=True),
    Column("schema_same_as", JSON, nullable=True),
    Column("canonical_urls_enabled", Boolean, nullable=False, default=True),
    Column("sitemap_enabled", Boolean, nullable=False, default=True),
    Column("noindex_when_disabled", Boolean, nullable=False, default=True),
    *_timestamps(),
)

pages = Table(
    "pages", metadata,
    _id_column(),
    Column("title", String(255), nullable=False),
    Column("slug", String(255), nullable=False, unique=True),
    Column("is_published", Boolean, nullable=False, default=False),
    Column("is_homepage", Boolean, nullable=False, default=False),
    Column("meta_description", Text, nullable=True),
    *_timestamps(),
)

page_builder_elements = Table(
    "page_builder_elements", metadata,
    _id_column(),
    Column("page_id", String(36), ForeignKey("pages.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("element_id", String(64), nullable=False),
    Column("element_type", String(64), nullable=False),
    Column("position_x", Float, nullable=False, default=0),
    Column("position_y", Float, nullable=False, default=0),
    Column("size_width", Float, nullable=False, default=0),
    Column("size_height", Float, nullable=False, default=0),
    Column("content", Text, nullable=True),
    Column("styles", JSON, nullable=True),
    Column("responsive_styles", JSON, nullable=True),
    Column("parent_element_id", String(64), nullable=True),
    Column("sort_order", Integer, nullable=False, default=0),
    *_timestamps(),
)

translations = Table(
    "translations", metadata,
    _id_column(),
    Column("translation_key", String(255), nullable=False),
    Column("language_code", String(16), nullable=False),
    Column("translation_value", Text, nullable=False),
    Column("table_name", String(64), nullable=True),
    Column("record_id", String(64), nullable=True),
    Column("field_name", String(64), nullable=True),
    *_timestamps(),
    UniqueConstraint("translation_key", "language_code", name="translations_key_language_key"),
)

schema_migrations = Table(
    "schema_migrations", metadata,
    Column("version", String(255), primary_key=True),
    Column("checksum", String(64), nullable=True),
    Column("applied_at", DateTime(timezone=True), nullable=False, default=utcnow),
)


# Never addressable through the generic /database endpoint
HIDDEN_TABLES = frozenset({"users", "revoked_tokens", "schema_migrations"})

# Readable through /database only with a valid token
PRIVATE_TABLES = frozenset({"profiles", "contact_messages"})

# Credential columns, addressable through /database by admins only
SECRET_COLUMNS = {
    "site_settings": frozenset({"gmail_app_password", "resend_api_key", "openai_api_key"}),
}
