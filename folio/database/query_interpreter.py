"""
Translate a ``QueryCommand`` into parameterized SQLAlchemy Core statements.

Tables and columns are resolved against ``tables.metadata`` so nothing the
client sends is ever interpolated into SQL text. Filters are combined with AND
in the order they were given.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, Table, delete, insert, not_, select, update
from sqlalchemy.engine import Connection

from folio.backend.query import OPERATORS, Filter, QueryCommand, split_operator
from folio.database.client import Database
from folio.database.tables import HIDDEN_TABLES, metadata, utcnow

logger = logging.getLogger(__name__)


class QueryCommandError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def resolve_table(name: str) -> Table:
    if name in HIDDEN_TABLES or name not in metadata.tables:
        raise QueryCommandError(f"Unknown table: {name}", 404)
    return metadata.tables[name]


def _column(table: Table, name: str):
    if name not in table.c:
        raise QueryCommandError(f"Unknown column '{name}' on table '{table.name}'")
    return table.c[name]


def _coerce(column, value: Any) -> Any:
    # ISO strings from JSON bodies into datetimes for DateTime columns
    if isinstance(column.type, DateTime) and isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise QueryCommandError(f"Invalid datetime for column '{column.name}': {value}")
    return value


def _is_value(value: Any) -> Optional[bool]:
    if isinstance(value, str):
        lowered = value.lower()
        if lowered in ("null", "true", "false"):
            return {"null": None, "true": True, "false": False}[lowered]
    if value is None or isinstance(value, bool):
        return value
    raise QueryCommandError("The 'is' operator only accepts null, true or false")


def build_predicate(table: Table, flt: Filter):
    negated, operator = split_operator(flt.operator)
    if operator not in OPERATORS:
        raise QueryCommandError(f"Unsupported operator: {flt.operator}")
    column = _column(table, flt.column)

    if operator == "in":
        if not isinstance(flt.value, list):
            raise QueryCommandError("The 'in' operator requires a list value")
        expression = column.in_([_coerce(column, v) for v in flt.value])
    elif operator == "is":
        expression = column.is_(_is_value(flt.value))
    else:
        value = _coerce(column, flt.value)
        if operator == "eq":
            expression = column == value
        elif operator == "neq":
            expression = column != value
        elif operator == "gt":
            expression = column > value
        elif operator == "lt":
            expression = column < value
        elif operator == "gte":
            expression = column >= value
        elif operator == "lte":
            expression = column <= value
        elif operator == "like":
            expression = column.like(value)
        else:
            expression = column.ilike(value)

    return not_(expression) if negated else expression


def selected_columns(table: Table, select_clause: str) -> List:
    clause = (select_clause or "*").strip()
    if clause == "*":
        return list(table.c)
    if "(" in clause or ":" in clause:
        raise QueryCommandError("Embedded resources and aliases are not supported")
    return [_column(table, name.strip()) for name in clause.split(",") if name.strip()]


def _row_values(table: Table, row: Any) -> Dict[str, Any]:
    if not isinstance(row, dict) or not row:
        raise QueryCommandError("Each row must be a non-empty object")
    return {key: _coerce(_column(table, key), value) for key, value in row.items()}


def _rows(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list) and data:
        return data
    raise QueryCommandError("Insert and upsert require data")


class QueryInterpreter:
    def __init__(self, database: Database):
        self.database = database

    def run(self, command: QueryCommand) -> Dict[str, Any]:
        """Execute a command and return ``{"data": ..., "count": ...}``."""
        table = resolve_table(command.table)
        columns = selected_columns(table, command.select)
        predicates = [build_predicate(table, flt) for flt in command.where]

        with self.database.transaction() as conn:
            if command.operation == "select":
                rows = self._select(conn, table, columns, predicates, command)
            elif command.operation == "insert":
                rows = self._insert(conn, table, columns, command)
            elif command.operation == "upsert":
                rows = self._upsert(conn, table, columns, command)
            elif command.operation == "update":
                rows = self._update(conn, table, columns, predicates, command)
            else:
                rows = self._delete(conn, table, columns, predicates)

            data = self._shape(rows, command)

        return {"data": data, "count": len(rows)}

    def _select(self, conn: Connection, table, columns, predicates, command: QueryCommand):
        stmt = select(*columns).where(*predicates)
        if command.order_by:
            column = _column(table, command.order_by.column)
            stmt = stmt.order_by(column.asc() if command.order_by.ascending else column.desc())
        if command.range is not None:
            if command.range.to < command.range.from_:
                raise QueryCommandError("Range end must not be before range start")
            stmt = stmt.offset(command.range.from_).limit(command.range.to - command.range.from_ + 1)
        elif command.limit is not None:
            stmt = stmt.limit(command.limit)
        return [dict(row._mapping) for row in conn.execute(stmt)]

    def _insert(self, conn: Connection, table, columns, command: QueryCommand):
        rows = []
        for row in _rows(command.data):
            stmt = insert(table).values(**_row_values(table, row)).returning(*columns)
            rows.extend(dict(r._mapping) for r in conn.execute(stmt))
        return rows

    def _upsert(self, conn: Connection, table, columns, command: QueryCommand):
        dialect = self.database.dialect_name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as dialect_insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as dialect_insert
        else:
            raise QueryCommandError(f"Upsert is not supported on {dialect}", 500)

        on_conflict = command.options.on_conflict if command.options else None
        conflict_columns = [c.strip() for c in (on_conflict or "id").split(",") if c.strip()]
        for name in conflict_columns:
            _column(table, name)

        rows = []
        for row in _rows(command.data):
            values = _row_values(table, row)
            stmt = dialect_insert(table).values(**values)
            updates = {key: stmt.excluded[key] for key in values if key not in conflict_columns}
            if updates and "updated_at" in table.c:
                updates["updated_at"] = utcnow()
            if updates:
                stmt = stmt.on_conflict_do_update(index_elements=conflict_columns, set_=updates)
            else:
                stmt = stmt.on_conflict_do_nothing(index_elements=conflict_columns)
            rows.extend(dict(r._mapping) for r in conn.execute(stmt.returning(*columns)))
        return rows

    def _update(self, conn: Connection, table, columns, predicates, command: QueryCommand):
        if not predicates:
            raise QueryCommandError("Update requires at least one filter")
        if not isinstance(command.data, dict):
            raise QueryCommandError("Update requires an object of column values")
        stmt = update(table).where(*predicates).values(**_row_values(table, command.data)).returning(*columns)
        return [dict(row._mapping) for row in conn.execute(stmt)]

    def _delete(self, conn: Connection, table, columns, predicates):
        if not predicates:
            raise QueryCommandError("Delete requires at least one filter")
        stmt = delete(table).where(*predicates).returning(*columns)
        return [dict(row._mapping) for row in conn.execute(stmt)]

    @staticmethod
    def _shape(rows: List[Dict[str, Any]], command: QueryCommand):
        if command.single:
            if not rows:
                raise QueryCommandError("No rows found", 404)
            if len(rows) > 1:
                raise QueryCommandError("Multiple rows returned for single()")
            return rows[0]
        if command.maybe_single:
            if len(rows) > 1:
                raise QueryCommandError("Multiple rows returned for maybeSingle()")
            return rows[0] if rows else None
        return rows
