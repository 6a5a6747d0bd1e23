"""
Runtime schema migrations.

A fresh database gets the full schema from the table metadata; afterwards every
``*.sql`` file in the migrations directory is applied once, in filename order,
and recorded in ``schema_migrations`` with its MD5 checksum.
"""

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from sqlalchemy import inspect, select, text

from folio.database.client import Database
from folio.database.tables import metadata, schema_migrations, utcnow

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path(__file__).parent / "migrations"

# Tables whose absence marks a database as fresh
CONTENT_TABLES = ("profiles", "site_settings", "custom_sections")


@dataclass
class Migration:
    version: str
    path: Path

    @property
    def sql(self) -> str:
        return self.path.read_text(encoding="utf-8")

    @property
    def checksum(self) -> str:
        return hashlib.md5(self.path.read_bytes()).hexdigest()


def split_statements(sql: str) -> List[str]:
    """Split a migration file into statements. Comment lines are dropped."""
    lines = [line for line in sql.splitlines() if not line.strip().startswith("--")]
    return [stmt.strip() for stmt in "\n".join(lines).split(";") if stmt.strip()]


class Migrator:
    def __init__(self, database: Database, migrations_dir: Optional[Path] = None):
        self.database = database
        self.migrations_dir = Path(migrations_dir) if migrations_dir else DEFAULT_MIGRATIONS_DIR

    def is_fresh(self) -> bool:
        existing = set(inspect(self.database.engine).get_table_names())
        return not any(name in existing for name in CONTENT_TABLES)

    def install_base_schema(self) -> None:
        logger.info("Fresh database detected, creating base schema")
        metadata.create_all(self.database.engine, checkfirst=True)

    def available_migrations(self) -> List[Migration]:
        if not self.migrations_dir.is_dir():
            logger.info("No migrations directory at %s", self.migrations_dir)
            return []
        return [
            Migration(version=path.stem, path=path)
            for path in sorted(self.migrations_dir.glob("*.sql"))
        ]

    def applied_migrations(self) -> Dict[str, Optional[str]]:
        rows = self.database.fetch_all(
            select(schema_migrations.c.version, schema_migrations.c.checksum)
            .order_by(schema_migrations.c.version)
        )
        return {row["version"]: row["checksum"] for row in rows}

    def apply(self, migration: Migration) -> bool:
        logger.info("Applying migration: %s", migration.version)
        try:
            with self.database.transaction() as conn:
                for statement in split_statements(migration.sql):
                    conn.execute(text(statement))
                conn.execute(
                    schema_migrations.insert().values(
                        version=migration.version,
                        checksum=migration.checksum,
                        applied_at=utcnow(),
                    )
                )
            logger.info("Migration applied: %s", migration.version)
            return True
        except Exception as e:
            logger.error("Failed to apply migration %s: %s", migration.version, e)
            return False

    def run(self) -> Dict:
        """Bring the schema up to date. Safe to call on every boot."""
        if self.is_fresh():
            self.install_base_schema()
        else:
            schema_migrations.create(self.database.engine, checkfirst=True)

        applied = self.applied_migrations()
        available = self.available_migrations()

        for migration in available:
            recorded = applied.get(migration.version)
            if recorded and recorded != migration.checksum:
                logger.warning("Migration %s changed after it was applied", migration.version)

        pending = [m for m in available if m.version not in applied]
        logger.info(
            "Migration status: %d available, %d applied, %d pending",
            len(available), len(applied), len(pending),
        )

        applied_now = 0
        for migration in pending:
            if not self.apply(migration):
                logger.error("Migration failed, stopping at: %s", migration.version)
                break
            applied_now += 1

        return {
            "success": applied_now == len(pending),
            "applied": applied_now,
            "pending": len(pending),
            "total": len(available),
        }

    def status(self) -> Dict:
        applied = self.applied_migrations()
        available = self.available_migrations()
        pending = [m.version for m in available if m.version not in applied]
        versions = sorted(applied)
        return {
            "available": len(available),
            "applied": len(applied),
            "pending": len(pending),
            "up_to_date": not pending,
            "last_applied": versions[-1] if versions else None,
        }
