"""Normalization tests for the server-backed introspectors.

Catalog queries are stubbed at _fetch; what is under test is the mapping of
engine-specific rows onto the shared schema models.
"""
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.dialects import mssql, mysql, postgresql
from sqlalchemy.exc import ProgrammingError

from project_db_gateway.errors import ConfigurationError
from project_db_gateway.inspector import (
    INTROSPECTORS,
    MySqlIntrospector,
    PostgresIntrospector,
    SqliteIntrospector,
    SqlServerIntrospector,
    get_introspector,
)
from project_db_gateway.inspector.sqlserver import _declared_type


def make_conn(dialect):
    conn = MagicMock()
    conn.dialect = dialect
    return conn


class TestGetIntrospector:

    @pytest.mark.parametrize(
        "driver,cls",
        [
            ("mysql", MySqlIntrospector),
            ("pgsql", PostgresIntrospector),
            ("sqlite", SqliteIntrospector),
            ("sqlsrv", SqlServerIntrospector),
        ],
    )
    def test_driver_mapping(self, driver, cls):
        introspector = get_introspector(driver)
        assert isinstance(introspector, cls)
        assert introspector.driver == driver

    def test_every_supported_driver_has_an_introspector(self):
        assert set(INTROSPECTORS) == {"mysql", "pgsql", "sqlite", "sqlsrv"}

    def test_unknown_driver(self):
        with pytest.raises(ConfigurationError) as exc_info:
            get_introspector("oracle")
        assert exc_info.value.details["driver"] == "oracle"

    def test_default_schemas(self):
        assert get_introspector("pgsql").schema == "public"
        assert get_introspector("sqlsrv").schema == "dbo"
        assert get_introspector("pgsql", "reporting").schema == "reporting"


class TestMySql:

    def test_empty_comment_becomes_none(self):
        rows = [{"name": "orders", "comment": ""}, {"name": "users", "comment": "Customers"}]
        with patch.object(MySqlIntrospector, "_fetch", return_value=rows):
            tables = MySqlIntrospector().list_tables(make_conn(mysql.dialect()))

        assert [(t.name, t.comment) for t in tables] == [("orders", None), ("users", "Customers")]

    def test_table_comment_missing_table(self):
        with patch.object(MySqlIntrospector, "_fetch", return_value=[]):
            assert MySqlIntrospector().table_comment(make_conn(mysql.dialect()), "ghost") is None

    def test_columns(self):
        rows = [
            {
                "name": "id", "column_type": "bigint unsigned", "nullable": "NO",
                "default_value": None, "column_key": "PRI", "extra": "auto_increment", "comment": "",
            },
            {
                "name": "email", "column_type": "varchar(255)", "nullable": "YES",
                "default_value": None, "column_key": "UNI", "extra": "", "comment": "Login",
            },
        ]
        with patch.object(MySqlIntrospector, "_fetch", return_value=rows) as fetch:
            columns = MySqlIntrospector().columns(make_conn(mysql.dialect()), "users")

        assert fetch.call_args.kwargs == {"table": "users"}
        assert columns[0].key == "PRI"
        assert columns[0].extra == "auto_increment"
        assert columns[0].nullable is False
        assert columns[1].type == "varchar(255)"
        assert columns[1].nullable is True
        assert columns[1].comment == "Login"

    def test_indexes_grouped_in_key_order(self):
        rows = [
            {"index_name": "PRIMARY", "column_name": "id", "non_unique": 0, "index_type": "BTREE"},
            {"index_name": "orders_user_status", "column_name": "user_id", "non_unique": 1, "index_type": "BTREE"},
            {"index_name": "orders_user_status", "column_name": "status", "non_unique": 1, "index_type": "BTREE"},
            {"index_name": "orders_note_ft", "column_name": "note", "non_unique": 1, "index_type": "FULLTEXT"},
        ]
        with patch.object(MySqlIntrospector, "_fetch", return_value=rows):
            indexes = MySqlIntrospector().indexes(make_conn(mysql.dialect()), "orders")

        assert [i.name for i in indexes] == ["PRIMARY", "orders_user_status", "orders_note_ft"]
        assert indexes[0].unique is True
        assert indexes[1].columns == ["user_id", "status"]
        assert indexes[1].unique is False
        assert indexes[2].type == "FULLTEXT"

    def test_foreign_keys(self):
        rows = [{
            "name": "orders_user_id_foreign", "column_name": "user_id",
            "referenced_table": "users", "referenced_column": "id",
        }]
        with patch.object(MySqlIntrospector, "_fetch", return_value=rows):
            fks = MySqlIntrospector().foreign_keys(make_conn(mysql.dialect()), "orders")

        assert fks[0].model_dump() == {
            "name": "orders_user_id_foreign",
            "column": "user_id",
            "referenced_table": "users",
            "referenced_column": "id",
        }


class TestPostgres:

    def test_list_tables_scoped_to_schema(self):
        rows = [{"name": "users", "comment": None}]
        with patch.object(PostgresIntrospector, "_fetch", return_value=rows) as fetch:
            tables = PostgresIntrospector().list_tables(make_conn(postgresql.dialect()))

        assert fetch.call_args.kwargs == {"schema": "public"}
        assert tables[0].name == "users"
        assert tables[0].comment is None

    def test_table_passed_as_quoted_bind_value(self):
        with patch.object(PostgresIntrospector, "_fetch", return_value=[]) as fetch:
            PostgresIntrospector("app").columns(make_conn(postgresql.dialect()), 'Odd"Name')

        assert fetch.call_args.kwargs == {"qualified": '"app"."Odd""Name"'}

    def test_columns(self):
        rows = [
            {
                "name": "id", "column_type": "integer", "nullable": False,
                "default_value": "nextval('users_id_seq'::regclass)", "column_key": "PRI",
                "extra": "auto_increment", "comment": None,
            },
            {
                "name": "status", "column_type": "character varying(20)", "nullable": True,
                "default_value": "'active'::character varying", "column_key": "MUL",
                "extra": "", "comment": "Account state",
            },
        ]
        with patch.object(PostgresIntrospector, "_fetch", return_value=rows):
            columns = PostgresIntrospector().columns(make_conn(postgresql.dialect()), "users")

        assert columns[0].key == "PRI"
        assert columns[0].extra == "auto_increment"
        assert columns[1].type == "character varying(20)"
        assert columns[1].key == "MUL"
        assert columns[1].default == "'active'::character varying"

    def test_index_type_uppercased(self):
        rows = [
            {"index_name": "users_pkey", "column_name": "id", "is_unique": True, "index_type": "btree"},
            {"index_name": "users_tags_gin", "column_name": "tags", "is_unique": False, "index_type": "gin"},
        ]
        with patch.object(PostgresIntrospector, "_fetch", return_value=rows):
            indexes = PostgresIntrospector().indexes(make_conn(postgresql.dialect()), "users")

        assert [(i.name, i.type, i.unique) for i in indexes] == [
            ("users_pkey", "BTREE", True),
            ("users_tags_gin", "GIN", False),
        ]

    def test_failed_index_read_rolls_back_and_degrades(self):
        conn = make_conn(postgresql.dialect())
        introspector = PostgresIntrospector()
        column_rows = [{
            "name": "id", "column_type": "integer", "nullable": False, "default_value": None,
            "column_key": "PRI", "extra": "", "comment": None,
        }]
        fk_rows = [{
            "name": "orders_user_id_fkey", "column_name": "user_id",
            "referenced_table": "users", "referenced_column": "id",
        }]
        error = ProgrammingError("SELECT ...", {}, Exception("permission denied for pg_index"))

        with patch.object(PostgresIntrospector, "_fetch", side_effect=[[{"comment": "Orders"}], column_rows, error, fk_rows]):
            snapshot = introspector.describe_table(conn, "orders")

        assert snapshot.column_names == ["id"]
        assert snapshot.comment == "Orders"
        assert snapshot.indexes == []
        assert snapshot.foreign_keys[0].name == "orders_user_id_fkey"
        conn.rollback.assert_called_once()


class TestSqlServer:

    def test_object_name_bound(self):
        with patch.object(SqlServerIntrospector, "_fetch", return_value=[]) as fetch:
            SqlServerIntrospector().indexes(make_conn(mssql.dialect()), "users")

        assert fetch.call_args.kwargs == {"object_name": "[dbo].[users]"}

    def test_columns_deduplicated_and_typed(self):
        row = {
            "name": "email", "column_type": "nvarchar", "max_length": 510, "nullable": True,
            "default_value": None, "column_key": "UNI", "extra": "", "comment": None,
        }
        rows = [
            {
                "name": "id", "column_type": "int", "max_length": 4, "nullable": False,
                "default_value": None, "column_key": "PRI", "extra": "identity", "comment": None,
            },
            row,
            dict(row),
        ]
        with patch.object(SqlServerIntrospector, "_fetch", return_value=rows):
            columns = SqlServerIntrospector().columns(make_conn(mssql.dialect()), "users")

        assert [c.name for c in columns] == ["id", "email"]
        assert columns[0].type == "int"
        assert columns[0].extra == "identity"
        assert columns[1].type == "nvarchar(255)"

    def test_index_type_desc(self):
        rows = [{"index_name": "PK_users", "column_name": "id", "is_unique": True, "index_type": "CLUSTERED"}]
        with patch.object(SqlServerIntrospector, "_fetch", return_value=rows):
            indexes = SqlServerIntrospector().indexes(make_conn(mssql.dialect()), "users")

        assert indexes[0].type == "CLUSTERED"
        assert indexes[0].unique is True

    @pytest.mark.parametrize(
        "type_name,max_length,expected",
        [
            ("varchar", 50, "varchar(50)"),
            ("varchar", -1, "varchar(max)"),
            ("nvarchar", 100, "nvarchar(50)"),
            ("nvarchar", -1, "nvarchar(max)"),
            ("int", 4, "int"),
            ("datetime2", 8, "datetime2"),
        ],
    )
    def test_declared_type(self, type_name, max_length, expected):
        assert _declared_type(type_name, max_length) == expected
