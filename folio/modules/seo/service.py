import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from folio.database.client import Database
from folio.database.tables import seo_settings
from folio.modules.seo.schemas import SeoSettingsUpdate

logger = logging.getLogger(__name__)

AI_TRAINING_BOTS = ("GPTBot", "Google-Extended", "CCBot", "anthropic-ai", "Claude-Web")

FALLBACK_ROBOTS_TXT = "# Error generating robots.txt\nUser-agent: *\nDisallow: /"


def _block(agent: str) -> List[str]:
    return [f"User-agent: {agent}", "Disallow: /", ""]


def generate_robots_txt(row: Optional[Dict[str, Any]]) -> str:
    """Build robots.txt from the SEO settings row (None when no row exists)."""
    row = row or {}
    custom = (row.get("custom_robots_txt") or "").strip()
    if custom:
        return custom

    if not row.get("seo_enabled") or row.get("crawling_protection_enabled"):
        lines = ["# Block all crawlers", *_block("*"), "# Specifically block AI training bots"]
        for bot in AI_TRAINING_BOTS:
            lines.extend(_block(bot))
        lines.append("# No sitemap when protection is enabled")
        return "\n".join(lines).strip()

    lines = ["# Allow search engine crawlers", "User-agent: *", "Allow: /", ""]
    if row.get("block_ai_training"):
        lines.append("# Block AI training bots")
        for bot in AI_TRAINING_BOTS:
            lines.extend(_block(bot))
    blocked = row.get("blocked_crawlers") or []
    if blocked:
        lines.append("# Blocked crawlers")
        for bot in blocked:
            lines.extend(_block(bot))
    if row.get("sitemap_enabled"):
        lines.extend(["# Sitemap location", "Sitemap: /sitemap.xml"])
    return "\n".join(lines).strip()


class SeoService:
    def __init__(self, database: Database):
        self.database = database

    def _latest(self) -> Optional[Dict[str, Any]]:
        return self.database.fetch_one(
            select(seo_settings)
            .order_by(seo_settings.c.updated_at.desc(), seo_settings.c.created_at.desc())
            .limit(1)
        )

    def get_settings(self) -> Dict[str, Any]:
        """Current settings, creating the default row on first read"""
        try:
            row = self._latest()
            if row is None:
                with self.database.transaction() as conn:
                    row = dict(conn.execute(
                        seo_settings.insert().values().returning(*seo_settings.c)
                    ).one()._mapping)
                logger.info("Created default SEO settings")
            return row
        except SQLAlchemyError as e:
            logger.error("Error fetching SEO settings: %s", e)
            raise HTTPException(status_code=500, detail="Failed to fetch SEO settings")

    def update_settings(self, data: SeoSettingsUpdate) -> Dict[str, Any]:
        values = data.model_dump(exclude_unset=True)
        try:
            existing = self._latest()
            with self.database.transaction() as conn:
                if existing is None:
                    stmt = seo_settings.insert().values(**values)
                else:
                    stmt = seo_settings.update().where(seo_settings.c.id == existing["id"]).values(**values)
                return dict(conn.execute(stmt.returning(*seo_settings.c)).one()._mapping)
        except SQLAlchemyError as e:
            logger.error("Error updating SEO settings: %s", e)
            raise HTTPException(status_code=500, detail="Failed to update SEO settings")

    def robots_txt(self) -> str:
        try:
            return generate_robots_txt(self._latest())
        except Exception as e:
            logger.error("Error generating robots.txt: %s", e)
            return FALLBACK_ROBOTS_TXT
