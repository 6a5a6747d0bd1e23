# SEO Settings
# Single-row table seo_settings; GET /seo creates the default row on first read.
# robots.txt is generated from the row on every request.

"""
When seo_enabled is false or crawling_protection_enabled is true, robots.txt
blocks everything (including AI training bots) unless custom_robots_txt is set.
Otherwise crawlers are allowed, with optional AI-bot and per-crawler blocks and
a sitemap line.
"""
