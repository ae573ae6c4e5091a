"""Query executor for validated structured queries.

Builds the SELECT and the matching COUNT with SQLAlchemy Core, so values are
always bound parameters and identifiers are quoted by the dialect. Only
ValidatedQuery objects are accepted; the guard has already checked every
table, column and operator.

Flow:
  1. SELECT columns FROM table WHERE ... ORDER BY ... LIMIT ... [OFFSET ...]
  2. SELECT count(*) FROM table WHERE ...   (same predicates, no paging)
  3. has_more = offset + len(rows) < total
"""
import base64
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import column, func, literal_column, select, table
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import ColumnElement, Select, TableClause

from .errors import DatabaseError
from .guard import Condition, ValidatedQuery
from .identifiers import check_identifier
from .resolver import ResolvedConnection

SCHEMA_QUALIFIED_DRIVERS = ("pgsql", "sqlsrv")


@dataclass(frozen=True)
class SelectResult:
    rows: List[Dict[str, Any]]
    total: int
    limit: int
    offset: int

    @property
    def count(self) -> int:
        return len(self.rows)

    @property
    def has_more(self) -> bool:
        return (self.offset + self.count) < self.total


def _predicate(condition: Condition) -> ColumnElement:
    col = column(check_identifier(condition.column))
    op, value = condition.operator, condition.value

    if op == "is null" or (op == "=" and value is None):
        return col.is_(None)
    if op == "is not null" or (op in ("!=", "<>") and value is None):
        return col.is_not(None)
    if op == "=":
        return col == value
    if op in ("!=", "<>"):
        return col != value
    if op == ">":
        return col > value
    if op == "<":
        return col < value
    if op == ">=":
        return col >= value
    if op == "<=":
        return col <= value
    if op == "like":
        return col.like(value)
    if op == "in":
        return col.in_(list(value))
    if op == "not in":
        return col.not_in(list(value))
    raise ValueError(f"Unsupported operator: {op}")


def _source(query: ValidatedQuery, schema: Optional[str] = None) -> TableClause:
    return table(check_identifier(query.table), schema=check_identifier(schema) if schema else None)


def build_select(query: ValidatedQuery, driver: str = "", schema: Optional[str] = None) -> Select:
    """SELECT statement for a validated query, qualified by `schema` when given."""
    source = _source(query, schema)
    if query.columns:
        stmt = select(*[column(check_identifier(name)) for name in query.columns]).select_from(source)
    else:
        stmt = select(literal_column("*")).select_from(source)

    for condition in query.conditions:
        stmt = stmt.where(_predicate(condition))

    for clause in query.order_by:
        col = column(check_identifier(clause.column))
        stmt = stmt.order_by(col.desc() if clause.direction == "desc" else col.asc())

    if query.offset and not query.order_by and driver == "sqlsrv":
        # OFFSET ... FETCH requires an ORDER BY on SQL Server
        stmt = stmt.order_by(literal_column("(SELECT NULL)"))

    stmt = stmt.limit(query.limit)
    if query.offset:
        stmt = stmt.offset(query.offset)
    return stmt


def build_count(query: ValidatedQuery, schema: Optional[str] = None) -> Select:
    """COUNT over the same table and predicates; no order or paging."""
    stmt = select(func.count()).select_from(_source(query, schema))
    for condition in query.conditions:
        stmt = stmt.where(_predicate(condition))
    return stmt


def serialize_value(value: Any) -> Any:
    """Convert driver values to JSON-friendly types.

    No raw driver objects (Decimal, datetime, bytes, UUID) leave the executor.
    """
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value


class QueryExecutor:
    """Runs validated queries against a resolved project connection."""

    def select_rows(self, query: ValidatedQuery, resolved: ResolvedConnection) -> SelectResult:
        # Same catalog schema the guard validated against
        schema = resolved.config.effective_schema if resolved.driver in SCHEMA_QUALIFIED_DRIVERS else None
        select_stmt = build_select(query, resolved.driver, schema)
        count_stmt = build_count(query, schema)

        with resolved.connect() as conn:
            try:
                result = conn.execute(select_stmt).mappings().all()
                total = conn.execute(count_stmt).scalar_one()
            except SQLAlchemyError as e:
                raise DatabaseError(
                    f"Query on table '{query.table}' failed",
                    details={"table": query.table, "reason": str(getattr(e, "orig", None) or e)}
                ) from e

        rows = [{key: serialize_value(value) for key, value in row.items()} for row in result]
        return SelectResult(rows=rows, total=int(total), limit=query.limit, offset=query.offset)
