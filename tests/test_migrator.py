import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from folio.database.client import Database, DatabaseClient, create_database_engine
from folio.database.migrator import Migrator, split_statements


class MigratorTests(unittest.TestCase):
    def setUp(self):
        self.database = Database(create_database_engine("sqlite://"))
        self.tmp = tempfile.TemporaryDirectory()
        self.migrations = Path(self.tmp.name)

    def tearDown(self):
        self.database.dispose()
        self.tmp.cleanup()

    def write(self, name: str, sql: str) -> None:
        (self.migrations / name).write_text(sql, encoding="utf-8")

    def test_fresh_database_gets_schema_and_seed(self):
        result = Migrator(self.database).run()
        self.assertTrue(result["success"])
        self.assertEqual(result["applied"], result["total"])

        row = self.database.fetch_one(text("SELECT id, form_enabled FROM site_settings"))
        self.assertEqual(row["id"], "default-site-settings")
        self.assertTrue(row["form_enabled"])

    def test_rerun_is_a_no_op(self):
        Migrator(self.database).run()
        second = Migrator(self.database).run()
        self.assertEqual(second["applied"], 0)
        self.assertEqual(second["pending"], 0)
        count = self.database.fetch_one(text("SELECT COUNT(*) AS n FROM site_settings"))["n"]
        self.assertEqual(count, 1)
        self.assertTrue(Migrator(self.database).status()["up_to_date"])

    def test_stops_at_first_failure(self):
        self.write("0001_ok.sql", "CREATE TABLE extra (id INTEGER PRIMARY KEY);")
        self.write("0002_broken.sql", "INSERT INTO missing_table VALUES (1);")
        self.write("0003_later.sql", "CREATE TABLE later (id INTEGER PRIMARY KEY);")

        result = Migrator(self.database, self.migrations).run()
        self.assertFalse(result["success"])
        self.assertEqual(result["applied"], 1)

        status = Migrator(self.database, self.migrations).status()
        self.assertEqual(status["applied"], 1)
        self.assertEqual(status["pending"], 2)
        self.assertEqual(status["last_applied"], "0001_ok")

    def test_changed_migration_is_reported(self):
        self.write("0001_ok.sql", "CREATE TABLE extra (id INTEGER PRIMARY KEY);")
        Migrator(self.database, self.migrations).run()
        self.write("0001_ok.sql", "CREATE TABLE extra (id INTEGER PRIMARY KEY, name TEXT);")
        with self.assertLogs("folio.database.migrator", level="WARNING") as logs:
            Migrator(self.database, self.migrations).run()
        self.assertTrue(any("changed" in line for line in logs.output))

    def test_split_statements_drops_comments(self):
        sql = "-- heading\nSELECT 1;\n\n-- another\nSELECT 2;\n"
        self.assertEqual(split_statements(sql), ["SELECT 1", "SELECT 2"])


class ConnectRetryTests(unittest.TestCase):
    def tearDown(self):
        DatabaseClient._database = None

    def test_linear_backoff_then_give_up(self):
        sleep = MagicMock()
        failing = MagicMock(side_effect=OperationalError("SELECT 1", {}, Exception("refused")))
        with patch.object(Database, "ping", failing):
            with self.assertRaises(OperationalError):
                DatabaseClient.connect_with_retry(max_retries=4, sleep=sleep)
        self.assertEqual([c.args[0] for c in sleep.call_args_list], [1, 2, 3])

    def test_returns_connected_database(self):
        database = DatabaseClient.connect_with_retry(max_retries=2, sleep=MagicMock())
        self.assertIs(DatabaseClient.get_database(), database)


if __name__ == "__main__":
    unittest.main()
