import logging
from typing import Any, Dict, Optional, Set

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from folio.database.client import Database
from folio.database.query_interpreter import QueryCommandError, QueryInterpreter, resolve_table
from folio.database.tables import PRIVATE_TABLES, SECRET_COLUMNS
from folio.modules.database.schemas import QueryCommand, QueryResponse

logger = logging.getLogger(__name__)

WRITE_ROLES = ("admin", "editor")


def _referenced_columns(command: QueryCommand) -> Set[str]:
    """Every column a command names outside a ``*`` select."""
    names = {flt.column for flt in command.where}
    if command.order_by:
        names.add(command.order_by.column)
    rows = command.data if isinstance(command.data, list) else [command.data]
    for row in rows:
        if isinstance(row, dict):
            names.update(row)
    if command.options and command.options.on_conflict:
        names.update(c.strip() for c in command.options.on_conflict.split(","))
    clause = (command.select or "*").strip()
    if clause != "*":
        names.update(c.strip() for c in clause.split(",") if c.strip())
    return names


class DatabaseService:
    def __init__(self, database: Database):
        self.database = database
        self.interpreter = QueryInterpreter(database)

    def authorize(self, command: QueryCommand, user: Optional[Dict[str, Any]]) -> QueryCommand:
        """Raise for a command the user may not run; return it with secret columns hidden."""
        try:
            table = resolve_table(command.table)
        except QueryCommandError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

        if command.operation == "select":
            if command.table in PRIVATE_TABLES and user is None:
                raise HTTPException(status_code=401, detail="Authentication required")
        else:
            if user is None:
                raise HTTPException(status_code=401, detail="Authentication required")
            if user.get("role") not in WRITE_ROLES:
                raise HTTPException(status_code=403, detail="Editor or admin role required")

        secret = SECRET_COLUMNS.get(command.table)
        if not secret or (user is not None and user.get("role") == "admin"):
            return command
        if _referenced_columns(command) & secret:
            raise HTTPException(status_code=403, detail="Admin role required for credential columns")
        if (command.select or "*").strip() == "*":
            visible = ",".join(c.name for c in table.c if c.name not in secret)
            return command.model_copy(update={"select": visible})
        return command

    def execute(self, command: QueryCommand, user: Optional[Dict[str, Any]]) -> QueryResponse:
        command = self.authorize(command, user)
        try:
            result = self.interpreter.run(command)
            return QueryResponse(data=result["data"], count=result["count"])
        except QueryCommandError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except IntegrityError as e:
            logger.warning("Constraint violation on %s: %s", command.table, e.orig)
            raise HTTPException(status_code=400, detail="Constraint violation: duplicate or missing value")
        except SQLAlchemyError as e:
            logger.error("Database error on %s %s: %s", command.operation, command.table, e)
            raise HTTPException(status_code=500, detail="Database query failed")
