"""Tests for settings and project registry loading."""
import json

import pytest

from project_db_gateway.config import ProjectConfig, Settings, load_projects, parse_projects
from project_db_gateway.db import build_url
from project_db_gateway.errors import ConfigurationError


class TestSettings:

    def test_defaults(self):
        s = Settings()
        assert s.default_limit == 20
        assert s.max_limit == 100
        assert s.reject_oversized_limit is False
        assert s.column_hint_size == 10

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GATEWAY_MAX_LIMIT", "50")
        monkeypatch.setenv("GATEWAY_PROJECTS_FILE", "/etc/gateway/projects.json")
        monkeypatch.setenv("GATEWAY_REJECT_OVERSIZED_LIMIT", "true")

        s = Settings.from_env()
        assert s.max_limit == 50
        assert s.projects_file == "/etc/gateway/projects.json"
        assert s.reject_oversized_limit is True


class TestProjectConfig:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("mysql", "mysql"),
            ("MariaDB", "mysql"),
            ("postgres", "pgsql"),
            ("postgresql", "pgsql"),
            ("pgsql", "pgsql"),
            ("sqlite", "sqlite"),
            ("mssql", "sqlsrv"),
            ("sqlserver", "sqlsrv"),
        ],
    )
    def test_driver_aliases(self, raw, expected):
        assert ProjectConfig(driver=raw).driver == expected

    def test_unknown_driver_rejected(self):
        with pytest.raises(ValueError, match="Unsupported driver"):
            ProjectConfig(driver="oracle")

    def test_frozen(self):
        config = ProjectConfig(driver="sqlite", database="x.db")
        with pytest.raises(Exception):
            config.database = "y.db"

    def test_effective_schema(self):
        assert ProjectConfig(driver="pgsql").effective_schema == "public"
        assert ProjectConfig(driver="sqlsrv").effective_schema == "dbo"
        assert ProjectConfig(driver="mysql").effective_schema is None
        assert ProjectConfig(driver="pgsql", schema="reporting").effective_schema == "reporting"


class TestRegistry:

    def test_parse_wrapped_and_bare(self):
        raw = {"shop": {"driver": "sqlite", "database": "shop.db"}}
        assert list(parse_projects(raw)) == ["shop"]
        assert list(parse_projects({"projects": raw})) == ["shop"]

    def test_registry_order_preserved(self):
        raw = {name: {"driver": "sqlite"} for name in ["zeta", "alpha", "mid"]}
        assert list(parse_projects(raw)) == ["zeta", "alpha", "mid"]

    def test_invalid_project_raises_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_projects({"bad": {"driver": "oracle"}})
        assert exc_info.value.details["project"] == "bad"

    def test_non_object_registry(self):
        with pytest.raises(ConfigurationError):
            parse_projects(["shop"])

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "projects.json"
        path.write_text(json.dumps({"projects": {
            "shop": {"driver": "mysql", "host": "db", "database": "shop", "username": "ro"},
        }}))

        projects = load_projects(str(path))
        assert projects["shop"].host == "db"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_projects(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "projects.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_projects(str(path))


class TestBuildUrl:

    def test_sqlite(self):
        url = build_url(ProjectConfig(driver="sqlite", database="/data/shop.db"))
        assert url.drivername == "sqlite"
        assert url.database == "/data/shop.db"

    def test_mysql_with_charset(self):
        url = build_url(ProjectConfig(
            driver="mysql", host="db", database="shop", username="ro", password="pw", charset="utf8mb4"
        ))
        assert url.drivername == "mysql+pymysql"
        assert url.port == 3306
        assert url.query["charset"] == "utf8mb4"

    def test_postgres_default_port(self):
        url = build_url(ProjectConfig(driver="pgsql", host="db", database="shop"))
        assert url.drivername == "postgresql+psycopg"
        assert url.port == 5432

    def test_sqlserver_odbc_driver(self):
        url = build_url(ProjectConfig(driver="sqlsrv", host="db", database="shop"))
        assert url.drivername == "mssql+pyodbc"
        assert url.port == 1433
        assert "driver" in url.query

    def test_url_override(self):
        url = build_url(ProjectConfig(driver="pgsql", url="postgresql+psycopg://u:p@h:6543/d"))
        assert url.port == 6543
        assert url.database == "d"
