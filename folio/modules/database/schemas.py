from typing import Any, Optional

from pydantic import BaseModel

from folio.backend.query import Filter, OrderBy, QueryCommand, RowRange, UpsertOptions


class QueryResponse(BaseModel):
    data: Any = None
    error: Optional[str] = None
    count: int = 0


__all__ = ["Filter", "OrderBy", "QueryCommand", "QueryResponse", "RowRange", "UpsertOptions"]
