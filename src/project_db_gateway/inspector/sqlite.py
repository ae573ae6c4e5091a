"""SQLite introspection.

Uses the table-valued pragma functions (pragma_table_info(?) and friends),
which accept the table name as a bind parameter. SQLite has no table or
column comments.
"""
from typing import List, Optional

from sqlalchemy.engine import Connection

from .base import SchemaIntrospector, as_text
from ..schemas_inspector import ColumnSchema, ForeignKeySchema, IndexSchema, TableSummarySchema


class SqliteIntrospector(SchemaIntrospector):
    driver = "sqlite"

    def list_tables(self, conn: Connection) -> List[TableSummarySchema]:
        rows = self._fetch(
            conn,
            """
            SELECT name FROM sqlite_master
            WHERE type = 'table' AND name NOT LIKE 'sqlite_%'
            ORDER BY name
            """,
        )
        return [TableSummarySchema(name=row["name"], comment=None) for row in rows]

    def table_comment(self, conn: Connection, table: str) -> Optional[str]:
        return None

    def columns(self, conn: Connection, table: str) -> List[ColumnSchema]:
        rows = self._fetch(
            conn,
            'SELECT name, type, "notnull" AS not_null, dflt_value, pk '
            "FROM pragma_table_info(:table) ORDER BY cid",
            table=table,
        )
        unique_columns = self._single_column_unique(conn, table)
        columns = []
        for row in rows:
            if row["pk"]:
                key = "PRI"
            elif row["name"] in unique_columns:
                key = "UNI"
            else:
                key = ""
            columns.append(
                ColumnSchema(
                    name=row["name"],
                    type=row["type"] or "",
                    nullable=int(row["not_null"]) == 0,
                    default=as_text(row["dflt_value"]),
                    key=key,
                    extra="",
                    comment=None,
                )
            )
        return columns

    def _single_column_unique(self, conn: Connection, table: str) -> set:
        return {
            index.columns[0]
            for index in self._degrade(conn, table, "indexes", self.indexes)
            if index.unique and len(index.columns) == 1
        }

    def indexes(self, conn: Connection, table: str) -> List[IndexSchema]:
        index_rows = self._fetch(
            conn,
            'SELECT name, "unique" AS is_unique FROM pragma_index_list(:table) ORDER BY seq',
            table=table,
        )
        indexes = []
        for index in index_rows:
            members = self._fetch(
                conn,
                "SELECT name FROM pragma_index_info(:index) ORDER BY seqno",
                index=index["name"],
            )
            indexes.append(
                IndexSchema(
                    name=index["name"],
                    columns=[member["name"] for member in members if member["name"] is not None],
                    unique=bool(index["is_unique"]),
                    type="BTREE",
                )
            )
        return indexes

    def foreign_keys(self, conn: Connection, table: str) -> List[ForeignKeySchema]:
        rows = self._fetch(
            conn,
            'SELECT "table" AS referenced_table, "from" AS column_name, "to" AS referenced_column '
            "FROM pragma_foreign_key_list(:table) ORDER BY id, seq",
            table=table,
        )
        return [
            ForeignKeySchema(
                name=f"fk_{table}_{row['column_name']}",
                column=row["column_name"],
                referenced_table=row["referenced_table"],
                referenced_column=row["referenced_column"]
                or self._primary_key(conn, row["referenced_table"]),
            )
            for row in rows
        ]

    def _primary_key(self, conn: Connection, table: str) -> str:
        # REFERENCES parent without a column list targets the parent's primary key
        rows = self._fetch(
            conn,
            "SELECT name FROM pragma_table_info(:table) WHERE pk > 0 ORDER BY pk",
            table=table,
        )
        return rows[0]["name"] if rows else "rowid"
