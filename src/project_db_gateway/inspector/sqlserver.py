"""SQL Server introspection via the sys catalog views.

Comments are read from the MS_Description extended property.
"""
from typing import List, Optional

from sqlalchemy.engine import Connection

from .base import SchemaIntrospector, as_text, group_index_rows
from ..identifiers import qualified_name
from ..schemas_inspector import ColumnSchema, ForeignKeySchema, IndexSchema, TableSummarySchema


class SqlServerIntrospector(SchemaIntrospector):
    driver = "sqlsrv"

    def __init__(self, schema: Optional[str] = None) -> None:
        super().__init__(schema or "dbo")

    def _object_name(self, conn: Connection, table: str) -> str:
        return qualified_name(self.schema, table, conn.dialect)

    def list_tables(self, conn: Connection) -> List[TableSummarySchema]:
        rows = self._fetch(
            conn,
            """
            SELECT t.name AS name, CAST(ep.value AS NVARCHAR(4000)) AS comment
            FROM sys.tables t
            JOIN sys.schemas s ON s.schema_id = t.schema_id
            LEFT JOIN sys.extended_properties ep
                ON ep.class = 1 AND ep.major_id = t.object_id
               AND ep.minor_id = 0 AND ep.name = 'MS_Description'
            WHERE s.name = :schema
            ORDER BY t.name
            """,
            schema=self.schema,
        )
        return [TableSummarySchema(name=row["name"], comment=row["comment"]) for row in rows]

    def table_comment(self, conn: Connection, table: str) -> Optional[str]:
        rows = self._fetch(
            conn,
            """
            SELECT CAST(ep.value AS NVARCHAR(4000)) AS comment
            FROM sys.extended_properties ep
            WHERE ep.class = 1 AND ep.major_id = OBJECT_ID(:object_name)
              AND ep.minor_id = 0 AND ep.name = 'MS_Description'
            """,
            object_name=self._object_name(conn, table),
        )
        return rows[0]["comment"] if rows else None

    def columns(self, conn: Connection, table: str) -> List[ColumnSchema]:
        rows = self._fetch(
            conn,
            """
            SELECT
                c.name AS name,
                TYPE_NAME(c.user_type_id) AS column_type,
                c.max_length AS max_length,
                c.is_nullable AS nullable,
                OBJECT_DEFINITION(c.default_object_id) AS default_value,
                CASE
                    WHEN pk.column_id IS NOT NULL THEN 'PRI'
                    WHEN uq.column_id IS NOT NULL THEN 'UNI'
                    ELSE ''
                END AS column_key,
                CASE WHEN c.is_identity = 1 THEN 'identity' ELSE '' END AS extra,
                CAST(ep.value AS NVARCHAR(4000)) AS comment
            FROM sys.columns c
            LEFT JOIN (
                SELECT ic.object_id, ic.column_id
                FROM sys.indexes i
                JOIN sys.index_columns ic
                    ON ic.object_id = i.object_id AND ic.index_id = i.index_id
                WHERE i.is_primary_key = 1
            ) pk ON pk.object_id = c.object_id AND pk.column_id = c.column_id
            LEFT JOIN (
                SELECT ic.object_id, MIN(ic.column_id) AS column_id
                FROM sys.indexes i
                JOIN sys.index_columns ic
                    ON ic.object_id = i.object_id AND ic.index_id = i.index_id
                WHERE i.is_unique = 1 AND i.is_primary_key = 0
                GROUP BY ic.object_id, ic.index_id
                HAVING COUNT(*) = 1
            ) uq ON uq.object_id = c.object_id AND uq.column_id = c.column_id
            LEFT JOIN sys.extended_properties ep
                ON ep.class = 1 AND ep.major_id = c.object_id
               AND ep.minor_id = c.column_id AND ep.name = 'MS_Description'
            WHERE c.object_id = OBJECT_ID(:object_name)
            ORDER BY c.column_id
            """,
            object_name=self._object_name(conn, table),
        )
        columns = []
        seen = set()
        for row in rows:
            # A column in several single-column unique indexes joins once per index
            if row["name"] in seen:
                continue
            seen.add(row["name"])
            columns.append(
                ColumnSchema(
                    name=row["name"],
                    type=_declared_type(row["column_type"], row["max_length"]),
                    nullable=bool(row["nullable"]),
                    default=as_text(row["default_value"]),
                    key=row["column_key"],
                    extra=row["extra"],
                    comment=row["comment"],
                )
            )
        return columns

    def indexes(self, conn: Connection, table: str) -> List[IndexSchema]:
        rows = self._fetch(
            conn,
            """
            SELECT
                i.name AS index_name,
                c.name AS column_name,
                i.is_unique AS is_unique,
                i.type_desc AS index_type
            FROM sys.indexes i
            JOIN sys.index_columns ic
                ON ic.object_id = i.object_id AND ic.index_id = i.index_id
            JOIN sys.columns c
                ON c.object_id = ic.object_id AND c.column_id = ic.column_id
            WHERE i.object_id = OBJECT_ID(:object_name)
              AND i.type > 0
              AND ic.is_included_column = 0
            ORDER BY i.name, ic.key_ordinal
            """,
            object_name=self._object_name(conn, table),
        )
        return group_index_rows(rows, index_type=lambda row: row["index_type"])

    def foreign_keys(self, conn: Connection, table: str) -> List[ForeignKeySchema]:
        rows = self._fetch(
            conn,
            """
            SELECT
                fk.name AS name,
                pc.name AS column_name,
                rt.name AS referenced_table,
                rc.name AS referenced_column
            FROM sys.foreign_keys fk
            JOIN sys.foreign_key_columns fkc ON fkc.constraint_object_id = fk.object_id
            JOIN sys.columns pc
                ON pc.object_id = fkc.parent_object_id AND pc.column_id = fkc.parent_column_id
            JOIN sys.tables rt ON rt.object_id = fkc.referenced_object_id
            JOIN sys.columns rc
                ON rc.object_id = fkc.referenced_object_id AND rc.column_id = fkc.referenced_column_id
            WHERE fk.parent_object_id = OBJECT_ID(:object_name)
            ORDER BY fk.name, fkc.constraint_column_id
            """,
            object_name=self._object_name(conn, table),
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


def _declared_type(type_name: str, max_length: Optional[int]) -> str:
    """nvarchar(50), varchar(max) ... as written in DDL."""
    if type_name in ("varchar", "char", "varbinary", "binary") and max_length is not None:
        return f"{type_name}({'max' if max_length == -1 else max_length})"
    if type_name in ("nvarchar", "nchar") and max_length is not None:
        # max_length is in bytes; N-types store two bytes per character
        return f"{type_name}({'max' if max_length == -1 else max_length // 2})"
    return type_name
