"""
Query-builder state shared by every adapter, plus the wire form of a query
command.

A builder accumulates table, columns, operation, filters, ordering and paging
through chainable calls. Nothing touches the network until ``execute()`` is
called; ``build()`` returns the immutable ``QueryCommand`` that an adapter
translates into its backend's native call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from folio.backend.types import BackendResult

Operation = Literal["select", "insert", "update", "upsert", "delete"]

OPERATORS = frozenset({"eq", "neq", "gt", "lt", "gte", "lte", "like", "ilike", "in", "is"})


def split_operator(operator: str) -> tuple[bool, str]:
    """Return (negated, base operator) for ``eq`` or ``not.eq`` style operators."""
    if operator.startswith("not."):
        return True, operator[len("not."):]
    return False, operator


class Filter(BaseModel):
    model_config = ConfigDict(frozen=True)

    column: str
    operator: str
    value: Any = None


class OrderBy(BaseModel):
    model_config = ConfigDict(frozen=True)

    column: str
    ascending: bool = True


class RowRange(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: int = Field(alias="from", ge=0)
    to: int = Field(ge=0)


class UpsertOptions(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    on_conflict: Optional[str] = Field(default=None, alias="onConflict")


class QueryCommand(BaseModel):
    """JSON body of ``POST /database``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    table: str
    operation: Operation = "select"
    select: str = "*"
    where: List[Filter] = Field(default_factory=list)
    order_by: Optional[OrderBy] = Field(default=None, alias="orderBy")
    limit: Optional[int] = Field(default=None, ge=0)
    range: Optional[RowRange] = None
    single: bool = False
    maybe_single: bool = Field(default=False, alias="maybeSingle")
    data: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None
    options: Optional[UpsertOptions] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class QueryBuilder(ABC):
    """Chainable query state. Every method returns the same builder."""

    def __init__(self, table: str):
        self.table = table
        self._select = "*"
        self._operation: Optional[Operation] = None
        self._data: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None
        self._on_conflict: Optional[str] = None
        self._filters: List[Filter] = []
        self._order: Optional[OrderBy] = None
        self._limit: Optional[int] = None
        self._range: Optional[RowRange] = None
        self._single = False
        self._maybe_single = False

    def _set_operation(self, operation: Operation, data=None):
        if self._operation is not None and self._operation != operation:
            raise ValueError(
                f"Query on '{self.table}' already has operation '{self._operation}', cannot also {operation}"
            )
        self._operation = operation
        self._data = data
        return self

    def select(self, columns: str = "*"):
        self._select = columns
        return self

    def insert(self, values):
        return self._set_operation("insert", values)

    def update(self, values: Dict[str, Any]):
        return self._set_operation("update", values)

    def upsert(self, values, on_conflict: Optional[str] = None):
        self._on_conflict = on_conflict
        return self._set_operation("upsert", values)

    def delete(self):
        return self._set_operation("delete")

    def _filter(self, column: str, operator: str, value: Any):
        self._filters.append(Filter(column=column, operator=operator, value=value))
        return self

    def eq(self, column: str, value: Any):
        return self._filter(column, "eq", value)

    def neq(self, column: str, value: Any):
        return self._filter(column, "neq", value)

    def gt(self, column: str, value: Any):
        return self._filter(column, "gt", value)

    def lt(self, column: str, value: Any):
        return self._filter(column, "lt", value)

    def gte(self, column: str, value: Any):
        return self._filter(column, "gte", value)

    def lte(self, column: str, value: Any):
        return self._filter(column, "lte", value)

    def like(self, column: str, pattern: str):
        return self._filter(column, "like", pattern)

    def ilike(self, column: str, pattern: str):
        return self._filter(column, "ilike", pattern)

    def in_(self, column: str, values: List[Any]):
        return self._filter(column, "in", list(values))

    def is_(self, column: str, value: Optional[bool]):
        return self._filter(column, "is", value)

    def not_(self, column: str, operator: str, value: Any):
        if operator not in OPERATORS:
            raise ValueError(f"Unsupported operator: {operator}")
        return self._filter(column, f"not.{operator}", value)

    def order(self, column: str, ascending: bool = True):
        self._order = OrderBy(column=column, ascending=ascending)
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    def range(self, from_: int, to: int):
        self._range = RowRange(from_=from_, to=to)
        return self

    def single(self):
        self._single = True
        return self

    def maybe_single(self):
        self._maybe_single = True
        return self

    @property
    def filters(self) -> List[Filter]:
        return list(self._filters)

    def build(self) -> QueryCommand:
        options = UpsertOptions(on_conflict=self._on_conflict) if self._operation == "upsert" else None
        return QueryCommand(
            table=self.table,
            operation=self._operation or "select",
            select=self._select,
            where=list(self._filters),
            order_by=self._order,
            limit=self._limit,
            range=self._range,
            single=self._single,
            maybe_single=self._maybe_single,
            data=self._data,
            options=options,
        )

    @abstractmethod
    def execute(self) -> "BackendResult":
        ...
