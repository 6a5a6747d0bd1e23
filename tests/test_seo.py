import unittest
from unittest.mock import patch

from folio.modules.seo.service import AI_TRAINING_BOTS, FALLBACK_ROBOTS_TXT, generate_robots_txt

from server_case import ServerTestCase

OPEN_SITE = {"seo_enabled": True, "crawling_protection_enabled": False}


class RobotsTxtTests(unittest.TestCase):
    def test_no_settings_blocks_everything(self):
        robots = generate_robots_txt(None)
        self.assertIn("User-agent: *\nDisallow: /", robots)
        for bot in AI_TRAINING_BOTS:
            self.assertIn(f"User-agent: {bot}", robots)

    def test_protection_blocks_everything(self):
        robots = generate_robots_txt({**OPEN_SITE, "crawling_protection_enabled": True, "sitemap_enabled": True})
        self.assertIn("Disallow: /", robots)
        self.assertNotIn("Sitemap:", robots)

    def test_custom_text_wins(self):
        robots = generate_robots_txt({"seo_enabled": False, "custom_robots_txt": "User-agent: *\nAllow: /\n"})
        self.assertEqual(robots, "User-agent: *\nAllow: /")

    def test_open_site(self):
        robots = generate_robots_txt({
            **OPEN_SITE,
            "block_ai_training": True,
            "blocked_crawlers": ["SemrushBot"],
            "sitemap_enabled": True,
        })
        self.assertTrue(robots.startswith("# Allow search engine crawlers\nUser-agent: *\nAllow: /"))
        self.assertIn("User-agent: GPTBot\nDisallow: /", robots)
        self.assertIn("User-agent: SemrushBot\nDisallow: /", robots)
        self.assertTrue(robots.endswith("Sitemap: /sitemap.xml"))

    def test_open_site_without_extras(self):
        robots = generate_robots_txt(OPEN_SITE)
        self.assertEqual(robots, "# Allow search engine crawlers\nUser-agent: *\nAllow: /")


class SeoApiTests(ServerTestCase):
    def test_first_read_creates_default_row(self):
        first = self.client.get("/seo").json()["data"]
        second = self.client.get("/seo").json()["data"]
        self.assertEqual(first["id"], second["id"])
        self.assertTrue(first["seo_enabled"])

    def test_admin_updates_and_robots_follow(self):
        self.create_user("admin@example.com", role="admin")
        admin = self.bearer(self.sign_in("admin@example.com"))
        response = self.client.put(
            "/seo", json={"seo_enabled": True, "sitemap_enabled": True, "blocked_crawlers": ["AhrefsBot"]},
            headers=admin,
        )
        self.assertEqual(response.status_code, 200, response.text)

        robots = self.client.get("/seo/robots")
        self.assertEqual(robots.status_code, 200)
        self.assertTrue(robots.headers["content-type"].startswith("text/plain"))
        self.assertIn("User-agent: AhrefsBot", robots.text)
        self.assertIn("Sitemap: /sitemap.xml", robots.text)

    def test_update_requires_admin(self):
        self.assertEqual(self.client.put("/seo", json={"seo_enabled": False}).status_code, 401)

    def test_generation_failure_falls_back_to_block_all(self):
        with patch("folio.modules.seo.service.generate_robots_txt", side_effect=RuntimeError("boom")):
            robots = self.client.get("/seo/robots")
        self.assertEqual(robots.text, FALLBACK_ROBOTS_TXT)


if __name__ == "__main__":
    unittest.main()
