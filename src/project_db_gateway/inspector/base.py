"""Engine-independent schema introspection contract.

Each engine kind gets one SchemaIntrospector subclass implementing the same
capability set:

    list_tables   -> [TableSummarySchema]
    table_comment -> Optional[str]
    columns       -> [ColumnSchema]
    indexes       -> [IndexSchema]
    foreign_keys  -> [ForeignKeySchema]

The base class assembles these into a SchemaSnapshot and applies the
degradation rule: a failure reading indexes or foreign keys yields an empty
list for that sub-resource, never a failed call.
"""
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import Connection, RowMapping
from sqlalchemy.exc import SQLAlchemyError

from ..logging import logger
from ..schemas_inspector import (
    ColumnSchema,
    ForeignKeySchema,
    IndexSchema,
    SchemaSnapshot,
    TableSummarySchema,
)

T = TypeVar("T")


class SchemaIntrospector(ABC):
    """Normalized metadata access for one engine kind.

    Attributes:
        driver: Engine kind this introspector handles (mysql, pgsql, ...)
        schema: Catalog schema to scope to, where the engine has one
    """

    driver: str = ""

    def __init__(self, schema: Optional[str] = None) -> None:
        self.schema = schema

    @abstractmethod
    def list_tables(self, conn: Connection) -> List[TableSummarySchema]:
        """All base tables visible to the connection, sorted by name."""

    @abstractmethod
    def table_comment(self, conn: Connection, table: str) -> Optional[str]:
        """Comment attached to a table, or None."""

    @abstractmethod
    def columns(self, conn: Connection, table: str) -> List[ColumnSchema]:
        """Columns of a table in ordinal order."""

    @abstractmethod
    def indexes(self, conn: Connection, table: str) -> List[IndexSchema]:
        """Indexes of a table, member columns in key order."""

    @abstractmethod
    def foreign_keys(self, conn: Connection, table: str) -> List[ForeignKeySchema]:
        """Foreign key columns of a table."""

    def has_table(self, conn: Connection, table: str) -> bool:
        return any(summary.name == table for summary in self.list_tables(conn))

    def column_names(self, conn: Connection, table: str) -> List[str]:
        return [column.name for column in self.columns(conn, table)]

    def describe_table(self, conn: Connection, table: str) -> SchemaSnapshot:
        """Build a fresh snapshot of a table.

        Column and comment failures propagate; index and foreign key failures
        degrade to empty lists.
        """
        return SchemaSnapshot(
            table=table,
            comment=self.table_comment(conn, table),
            columns=self.columns(conn, table),
            indexes=self._degrade(conn, table, "indexes", self.indexes),
            foreign_keys=self._degrade(conn, table, "foreign_keys", self.foreign_keys),
        )

    def _degrade(
        self,
        conn: Connection,
        table: str,
        resource: str,
        reader: Callable[[Connection, str], List[T]]
    ) -> List[T]:
        try:
            return reader(conn, table)
        except SQLAlchemyError as e:
            logger.warning(
                "could not read %s for table=%s driver=%s: %s", resource, table, self.driver, e
            )
            # A failed statement can abort the transaction (Postgres); start clean
            conn.rollback()
            return []

    @staticmethod
    def _fetch(conn: Connection, sql: str, **params: object) -> Sequence[RowMapping]:
        return conn.execute(text(sql), params).mappings().all()


def group_index_rows(
    rows: Sequence[RowMapping],
    name_key: str = "index_name",
    column_key: str = "column_name",
    unique: Callable[[RowMapping], bool] = lambda row: bool(row["is_unique"]),
    index_type: Callable[[RowMapping], str] = lambda row: "BTREE",
) -> List[IndexSchema]:
    """Fold one-row-per-member-column results into IndexSchema, keeping order."""
    grouped: Dict[str, List[RowMapping]] = {}
    for row in rows:
        grouped.setdefault(row[name_key], []).append(row)

    return [
        IndexSchema(
            name=name,
            columns=[member[column_key] for member in members],
            unique=unique(members[0]),
            type=index_type(members[0]),
        )
        for name, members in grouped.items()
    ]


def as_text(value: object) -> Optional[str]:
    """Catalog values (defaults, comments) as str, preserving None."""
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)
