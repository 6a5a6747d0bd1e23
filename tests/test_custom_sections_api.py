import unittest

from sqlalchemy import func, select

from folio.database.tables import custom_sections

from server_case import ServerTestCase


def section(slug: str, **values):
    return {"name": slug.title(), "slug": slug, "title": slug.title(), **values}


class CustomSectionApiTests(ServerTestCase):
    def setUp(self):
        super().setUp()
        self.create_user("admin@example.com", role="admin")
        self.admin = self.bearer(self.sign_in("admin@example.com"))

    def create(self, slug: str, **values):
        response = self.client.post("/custom-sections", json=section(slug, **values), headers=self.admin)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]

    def section_count(self) -> int:
        return self.database.fetch_one(select(func.count().label("n")).select_from(custom_sections))["n"]

    def test_duplicate_slug_is_rejected_without_writing(self):
        self.create("about")
        response = self.client.post("/custom-sections", json=section("about"), headers=self.admin)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Slug already exists")
        self.assertEqual(self.section_count(), 1)

    def test_public_list_shows_active_sections_in_menu_order(self):
        self.create("press", is_active=True, menu_order=2)
        self.create("draft", is_active=False, menu_order=0)
        self.create("work", is_active=True, menu_order=1)

        response = self.client.get("/custom-sections")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([s["slug"] for s in response.json()["data"]], ["work", "press"])

        everything = self.client.get("/custom-sections/admin", headers=self.admin).json()["data"]
        self.assertEqual(len(everything), 3)

    def test_writes_are_admin_only(self):
        self.create_user("editor@example.com")
        editor = self.bearer(self.sign_in("editor@example.com"))
        response = self.client.post("/custom-sections", json=section("about"), headers=editor)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.client.post("/custom-sections", json=section("about")).status_code, 401)

    def test_update_checks_slug_conflicts(self):
        self.create("about")
        work = self.create("work")
        conflict = self.client.put(f"/custom-sections/{work['id']}", json={"slug": "about"}, headers=self.admin)
        self.assertEqual(conflict.status_code, 400)

        renamed = self.client.put(f"/custom-sections/{work['id']}", json={"title": "Selected work"}, headers=self.admin)
        self.assertEqual(renamed.status_code, 200)
        self.assertEqual(renamed.json()["data"]["title"], "Selected work")
        self.assertEqual(renamed.json()["data"]["slug"], "work")

    def test_toggle_and_delete(self):
        about = self.create("about")
        toggled = self.client.put(f"/custom-sections/{about['id']}/toggle", headers=self.admin)
        self.assertTrue(toggled.json()["data"]["is_active"])

        self.assertEqual(self.client.delete(f"/custom-sections/{about['id']}", headers=self.admin).status_code, 200)
        self.assertEqual(self.client.get(f"/custom-sections/{about['id']}", headers=self.admin).status_code, 404)

    def test_reorder_sets_menu_order_from_position(self):
        ids = [self.create(slug, is_active=True)["id"] for slug in ("a", "b", "c")]
        response = self.client.put(
            "/custom-sections/reorder",
            json={"sections": [{"id": ids[2]}, {"id": ids[0]}, {"id": ids[1]}]},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 200, response.text)
        public = self.client.get("/custom-sections").json()["data"]
        self.assertEqual([s["slug"] for s in public], ["c", "a", "b"])

    def test_reorder_with_unknown_id_changes_nothing(self):
        ids = [self.create(slug, is_active=True, menu_order=i)["id"] for i, slug in enumerate(("a", "b"))]
        response = self.client.put(
            "/custom-sections/reorder",
            json={"sections": [{"id": ids[1]}, {"id": "missing"}]},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 404)
        public = self.client.get("/custom-sections").json()["data"]
        self.assertEqual([s["slug"] for s in public], ["a", "b"])


if __name__ == "__main__":
    unittest.main()
