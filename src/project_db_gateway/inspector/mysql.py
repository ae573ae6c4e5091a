"""MySQL / MariaDB introspection via information_schema."""
from typing import List, Optional

from sqlalchemy.engine import Connection

from .base import SchemaIntrospector, as_text, group_index_rows
from ..schemas_inspector import ColumnSchema, ForeignKeySchema, IndexSchema, TableSummarySchema


class MySqlIntrospector(SchemaIntrospector):
    driver = "mysql"

    def list_tables(self, conn: Connection) -> List[TableSummarySchema]:
        rows = self._fetch(
            conn,
            """
            SELECT TABLE_NAME AS name, TABLE_COMMENT AS comment
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = DATABASE()
              AND TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_NAME
            """,
        )
        return [
            TableSummarySchema(name=row["name"], comment=as_text(row["comment"]) or None)
            for row in rows
        ]

    def table_comment(self, conn: Connection, table: str) -> Optional[str]:
        rows = self._fetch(
            conn,
            """
            SELECT TABLE_COMMENT AS comment
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :table
            """,
            table=table,
        )
        if not rows:
            return None
        # MySQL reports "no comment" as an empty string
        return as_text(rows[0]["comment"]) or None

    def columns(self, conn: Connection, table: str) -> List[ColumnSchema]:
        rows = self._fetch(
            conn,
            """
            SELECT
                COLUMN_NAME AS name,
                COLUMN_TYPE AS column_type,
                IS_NULLABLE AS nullable,
                COLUMN_DEFAULT AS default_value,
                COLUMN_KEY AS column_key,
                EXTRA AS extra,
                COLUMN_COMMENT AS comment
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = DATABASE()
              AND TABLE_NAME = :table
            ORDER BY ORDINAL_POSITION
            """,
            table=table,
        )
        return [
            ColumnSchema(
                name=row["name"],
                type=as_text(row["column_type"]) or "",
                nullable=row["nullable"] == "YES",
                default=as_text(row["default_value"]),
                key=row["column_key"] or "",
                extra=row["extra"] or "",
                comment=as_text(row["comment"]),
            )
            for row in rows
        ]

    def indexes(self, conn: Connection, table: str) -> List[IndexSchema]:
        rows = self._fetch(
            conn,
            """
            SELECT
                INDEX_NAME AS index_name,
                COLUMN_NAME AS column_name,
                NON_UNIQUE AS non_unique,
                INDEX_TYPE AS index_type
            FROM information_schema.STATISTICS
            WHERE TABLE_SCHEMA = DATABASE()
              AND TABLE_NAME = :table
            ORDER BY INDEX_NAME, SEQ_IN_INDEX
            """,
            table=table,
        )
        return group_index_rows(
            rows,
            unique=lambda row: int(row["non_unique"]) == 0,
            index_type=lambda row: row["index_type"] or "BTREE",
        )

    def foreign_keys(self, conn: Connection, table: str) -> List[ForeignKeySchema]:
        rows = self._fetch(
            conn,
            """
            SELECT
                CONSTRAINT_NAME AS name,
                COLUMN_NAME AS column_name,
                REFERENCED_TABLE_NAME AS referenced_table,
                REFERENCED_COLUMN_NAME AS referenced_column
            FROM information_schema.KEY_COLUMN_USAGE
            WHERE TABLE_SCHEMA = DATABASE()
              AND TABLE_NAME = :table
              AND REFERENCED_TABLE_NAME IS NOT NULL
            ORDER BY CONSTRAINT_NAME, ORDINAL_POSITION
            """,
            table=table,
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
