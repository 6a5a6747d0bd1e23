import unittest
from unittest.mock import patch

from sqlalchemy import select

from folio.core.security import verify_password
from folio.database.client import Database, create_database_engine
from folio.database.migrator import Migrator
from folio.database.tables import profiles, users
from folio.scripts import create_admin
from folio.scripts.create_admin import prompt_credentials, upsert_admin


def answers(*values):
    remaining = list(values)
    return lambda prompt: remaining.pop(0)


class PromptTests(unittest.TestCase):
    def test_valid_input_is_normalised(self):
        email, password = prompt_credentials(answers("  Admin@Example.com "), answers("secret1", "secret1"))
        self.assertEqual(email, "admin@example.com")
        self.assertEqual(password, "secret1")

    def test_rejects_bad_email(self):
        with self.assertRaises(ValueError):
            prompt_credentials(answers("admin"), answers("secret1", "secret1"))

    def test_rejects_short_password(self):
        with self.assertRaises(ValueError):
            prompt_credentials(answers("a@b.nl"), answers("12345"))

    def test_rejects_mismatch(self):
        with self.assertRaisesRegex(ValueError, "do not match"):
            prompt_credentials(answers("a@b.nl"), answers("secret1", "secret2"))


class UpsertAdminTests(unittest.TestCase):
    def setUp(self):
        self.database = Database(create_database_engine("sqlite://"))
        Migrator(self.database).run()

    def tearDown(self):
        self.database.dispose()

    def account(self, email):
        return self.database.fetch_one(
            select(users.c.encrypted_password, profiles.c.role)
            .select_from(users.join(profiles, profiles.c.user_id == users.c.id))
            .where(users.c.email == email)
        )

    def test_creates_then_updates(self):
        self.assertEqual(upsert_admin(self.database, "admin@example.com", "first-pass"), "created")
        self.assertEqual(upsert_admin(self.database, "admin@example.com", "second-pass"), "updated")

        row = self.account("admin@example.com")
        self.assertEqual(row["role"], "admin")
        self.assertTrue(verify_password("second-pass", row["encrypted_password"]))
        ids = self.database.fetch_all(select(users.c.id))
        self.assertEqual(len(ids), 1)

    def test_promotes_existing_editor(self):
        with self.database.transaction() as conn:
            user_id = conn.execute(
                users.insert().values(email="eva@example.com", encrypted_password="x").returning(users.c.id)
            ).scalar_one()
            conn.execute(profiles.insert().values(user_id=user_id, email="eva@example.com", role="editor"))

        self.assertEqual(upsert_admin(self.database, "eva@example.com", "secret1"), "updated")
        self.assertEqual(self.account("eva@example.com")["role"], "admin")


class MainTests(unittest.TestCase):
    def test_invalid_input_exits_with_error(self):
        with patch.object(create_admin, "prompt_credentials", side_effect=ValueError("bad")):
            with self.assertRaises(SystemExit) as exit_info:
                create_admin.main()
        self.assertEqual(exit_info.exception.code, 1)

    def test_interrupt_exits_with_error(self):
        with patch.object(create_admin, "prompt_credentials", side_effect=KeyboardInterrupt):
            with self.assertRaises(SystemExit) as exit_info:
                create_admin.main()
        self.assertEqual(exit_info.exception.code, 1)


if __name__ == "__main__":
    unittest.main()
