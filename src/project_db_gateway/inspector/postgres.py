"""Postgres introspection via pg_catalog.

Tables are resolved with to_regclass() on a quoted, schema-qualified name
passed as a bind value, so dropped-column gaps and case-sensitive names are
handled by the server rather than by string matching.
"""
from typing import List, Optional

from sqlalchemy.engine import Connection

from .base import SchemaIntrospector, as_text, group_index_rows
from ..identifiers import qualified_name
from ..schemas_inspector import ColumnSchema, ForeignKeySchema, IndexSchema, TableSummarySchema


class PostgresIntrospector(SchemaIntrospector):
    driver = "pgsql"

    def __init__(self, schema: Optional[str] = None) -> None:
        super().__init__(schema or "public")

    def _regclass(self, conn: Connection, table: str) -> str:
        return qualified_name(self.schema, table, conn.dialect)

    def list_tables(self, conn: Connection) -> List[TableSummarySchema]:
        rows = self._fetch(
            conn,
            """
            SELECT c.relname AS name, obj_description(c.oid, 'pg_class') AS comment
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = :schema
              AND c.relkind IN ('r', 'p')
            ORDER BY c.relname
            """,
            schema=self.schema,
        )
        return [TableSummarySchema(name=row["name"], comment=row["comment"]) for row in rows]

    def table_comment(self, conn: Connection, table: str) -> Optional[str]:
        rows = self._fetch(
            conn,
            "SELECT obj_description(to_regclass(:qualified), 'pg_class') AS comment",
            qualified=self._regclass(conn, table),
        )
        return rows[0]["comment"] if rows else None

    def columns(self, conn: Connection, table: str) -> List[ColumnSchema]:
        rows = self._fetch(
            conn,
            """
            SELECT
                a.attname AS name,
                format_type(a.atttypid, a.atttypmod) AS column_type,
                NOT a.attnotnull AS nullable,
                pg_get_expr(d.adbin, d.adrelid) AS default_value,
                CASE
                    WHEN EXISTS (
                        SELECT 1 FROM pg_index i
                        WHERE i.indrelid = a.attrelid AND i.indisprimary
                          AND a.attnum = ANY(i.indkey)
                    ) THEN 'PRI'
                    WHEN EXISTS (
                        SELECT 1 FROM pg_index i
                        WHERE i.indrelid = a.attrelid AND i.indisunique
                          AND i.indnatts = 1 AND i.indkey[0] = a.attnum
                    ) THEN 'UNI'
                    WHEN EXISTS (
                        SELECT 1 FROM pg_index i
                        WHERE i.indrelid = a.attrelid AND i.indkey[0] = a.attnum
                    ) THEN 'MUL'
                    ELSE ''
                END AS column_key,
                CASE
                    WHEN a.attidentity <> '' THEN 'identity'
                    WHEN pg_get_expr(d.adbin, d.adrelid) LIKE 'nextval(%' THEN 'auto_increment'
                    ELSE ''
                END AS extra,
                col_description(a.attrelid, a.attnum) AS comment
            FROM pg_attribute a
            LEFT JOIN pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
            WHERE a.attrelid = to_regclass(:qualified)
              AND a.attnum > 0
              AND NOT a.attisdropped
            ORDER BY a.attnum
            """,
            qualified=self._regclass(conn, table),
        )
        return [
            ColumnSchema(
                name=row["name"],
                type=row["column_type"],
                nullable=bool(row["nullable"]),
                default=as_text(row["default_value"]),
                key=row["column_key"],
                extra=row["extra"],
                comment=row["comment"],
            )
            for row in rows
        ]

    def indexes(self, conn: Connection, table: str) -> List[IndexSchema]:
        rows = self._fetch(
            conn,
            """
            SELECT
                i.relname AS index_name,
                a.attname AS column_name,
                ix.indisunique AS is_unique,
                am.amname AS index_type
            FROM pg_index ix
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_am am ON am.oid = i.relam
            JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS k(attnum, ord) ON TRUE
            JOIN pg_attribute a ON a.attrelid = ix.indrelid AND a.attnum = k.attnum
            WHERE ix.indrelid = to_regclass(:qualified)
            ORDER BY i.relname, k.ord
            """,
            qualified=self._regclass(conn, table),
        )
        return group_index_rows(rows, index_type=lambda row: str(row["index_type"]).upper())

    def foreign_keys(self, conn: Connection, table: str) -> List[ForeignKeySchema]:
        rows = self._fetch(
            conn,
            """
            SELECT
                con.conname AS name,
                la.attname AS column_name,
                rc.relname AS referenced_table,
                ra.attname AS referenced_column
            FROM pg_constraint con
            JOIN LATERAL unnest(con.conkey, con.confkey) AS k(local_attnum, ref_attnum) ON TRUE
            JOIN pg_attribute la ON la.attrelid = con.conrelid AND la.attnum = k.local_attnum
            JOIN pg_class rc ON rc.oid = con.confrelid
            JOIN pg_attribute ra ON ra.attrelid = con.confrelid AND ra.attnum = k.ref_attnum
            WHERE con.contype = 'f'
              AND con.conrelid = to_regclass(:qualified)
            ORDER BY con.conname
            """,
            qualified=self._regclass(conn, table),
        )
        return [
            ForeignKeySchema(
                name=row["name"],
                column=row["column_name"],
                referenced_table=row["referenced_table"],
                referenced_column=row["referenced_column"],
            )
            for row in rows
        ]
