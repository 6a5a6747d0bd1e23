import unittest

from folio.backend.query import Filter, OrderBy, QueryCommand, RowRange, UpsertOptions
from folio.database.client import Database, create_database_engine
from folio.database.migrator import Migrator
from folio.database.query_interpreter import QueryCommandError, QueryInterpreter

SECTIONS = [
    {"name": "About", "slug": "about", "title": "About me", "is_active": True, "menu_order": 2},
    {"name": "Work", "slug": "work", "title": "Work", "is_active": True, "menu_order": 1},
    {"name": "Draft", "slug": "draft", "title": "Draft", "is_active": False, "menu_order": 0},
    {"name": "Press", "slug": "press", "title": "Press", "is_active": True, "menu_order": 3},
]


class QueryInterpreterTests(unittest.TestCase):
    def setUp(self):
        self.database = Database(create_database_engine("sqlite://"))
        Migrator(self.database).run()
        self.interpreter = QueryInterpreter(self.database)
        self.run_command(table="custom_sections", operation="insert", data=SECTIONS)

    def tearDown(self):
        self.database.dispose()

    def run_command(self, **fields):
        return self.interpreter.run(QueryCommand(**fields))

    def test_filters_are_conjunctive(self):
        result = self.run_command(
            table="custom_sections",
            where=[
                Filter(column="is_active", operator="eq", value=True),
                Filter(column="menu_order", operator="gte", value=2),
            ],
            order_by=OrderBy(column="menu_order"),
        )
        self.assertEqual([row["slug"] for row in result["data"]], ["about", "press"])
        self.assertEqual(result["count"], 2)

    def test_negated_and_list_operators(self):
        result = self.run_command(
            table="custom_sections",
            select="slug",
            where=[
                Filter(column="slug", operator="in", value=["about", "work", "draft"]),
                Filter(column="slug", operator="not.eq", value="work"),
            ],
            order_by=OrderBy(column="slug"),
        )
        self.assertEqual(result["data"], [{"slug": "about"}, {"slug": "draft"}])

    def test_range_wins_over_limit(self):
        result = self.run_command(
            table="custom_sections",
            select="slug",
            order_by=OrderBy(column="menu_order"),
            limit=1,
            range=RowRange(from_=1, to=2),
        )
        self.assertEqual([row["slug"] for row in result["data"]], ["work", "about"])

    def test_single_returns_object(self):
        result = self.run_command(
            table="custom_sections", where=[Filter(column="slug", operator="eq", value="work")], single=True,
        )
        self.assertEqual(result["data"]["title"], "Work")

    def test_single_without_rows_is_not_found(self):
        with self.assertRaises(QueryCommandError) as ctx:
            self.run_command(
                table="custom_sections", where=[Filter(column="slug", operator="eq", value="nope")], single=True,
            )
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.message, "No rows found")

    def test_single_with_many_rows_is_rejected(self):
        with self.assertRaises(QueryCommandError) as ctx:
            self.run_command(table="custom_sections", single=True)
        self.assertEqual(ctx.exception.status_code, 400)

    def test_maybe_single(self):
        missing = self.run_command(
            table="custom_sections", where=[Filter(column="slug", operator="eq", value="nope")], maybe_single=True,
        )
        self.assertIsNone(missing["data"])
        with self.assertRaises(QueryCommandError):
            self.run_command(table="custom_sections", maybe_single=True)

    def test_unknown_column_is_rejected(self):
        with self.assertRaises(QueryCommandError) as ctx:
            self.run_command(table="custom_sections", where=[Filter(column="nope", operator="eq", value=1)])
        self.assertEqual(ctx.exception.status_code, 400)

    def test_hidden_tables_are_not_found(self):
        for table in ("users", "revoked_tokens", "schema_migrations", "no_such_table"):
            with self.assertRaises(QueryCommandError) as ctx:
                self.run_command(table=table)
            self.assertEqual(ctx.exception.status_code, 404)

    def test_update_and_delete_require_filters(self):
        with self.assertRaises(QueryCommandError):
            self.run_command(table="custom_sections", operation="update", data={"is_active": False})
        with self.assertRaises(QueryCommandError):
            self.run_command(table="custom_sections", operation="delete")

    def test_update_returns_changed_rows(self):
        result = self.run_command(
            table="custom_sections",
            operation="update",
            data={"is_active": True},
            where=[Filter(column="slug", operator="eq", value="draft")],
        )
        self.assertEqual(result["count"], 1)
        self.assertTrue(result["data"][0]["is_active"])

    def test_delete_returns_removed_rows(self):
        result = self.run_command(
            table="custom_sections", operation="delete", where=[Filter(column="is_active", operator="eq", value=False)],
        )
        self.assertEqual([row["slug"] for row in result["data"]], ["draft"])
        remaining = self.run_command(table="custom_sections")
        self.assertEqual(remaining["count"], 3)

    def test_upsert_on_conflict_updates_existing_row(self):
        options = UpsertOptions(on_conflict="translation_key,language_code")
        row = {"translation_key": "nav.home", "language_code": "nl", "translation_value": "Thuis"}
        self.run_command(table="translations", operation="upsert", data=row, options=options)
        self.run_command(
            table="translations", operation="upsert", options=options,
            data={**row, "translation_value": "Home"},
        )
        result = self.run_command(table="translations", where=[Filter(column="translation_key", operator="eq", value="nav.home")])
        self.assertEqual(result["count"], 1)
        self.assertEqual(result["data"][0]["translation_value"], "Home")

    def test_is_null_filter(self):
        result = self.run_command(
            table="custom_sections", select="slug", where=[Filter(column="button_text", operator="is", value=None)],
        )
        self.assertEqual(result["count"], 4)

    def test_embedded_select_is_rejected(self):
        with self.assertRaises(QueryCommandError):
            self.run_command(table="custom_sections", select="*, pages(title)")


if __name__ == "__main__":
    unittest.main()
