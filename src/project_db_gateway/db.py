"""Engine construction for project databases."""
from typing import Any, Dict

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, URL, make_url

from .config import ProjectConfig

# SQLAlchemy dialect+driver per configured engine kind
DIALECTS = {
    "mysql": "mysql+pymysql",
    "pgsql": "postgresql+psycopg",
    "sqlite": "sqlite",
    "sqlsrv": "mssql+pyodbc",
}

DEFAULT_PORTS = {
    "mysql": 3306,
    "pgsql": 5432,
    "sqlsrv": 1433,
}


def build_url(config: ProjectConfig) -> URL:
    """Return the SQLAlchemy URL for a project configuration."""
    if config.url:
        return make_url(config.url)

    query: Dict[str, Any] = dict(config.options)
    if config.driver == "sqlite":
        return URL.create(DIALECTS["sqlite"], database=config.database or ":memory:", query=query)

    if config.charset and config.driver == "mysql":
        query.setdefault("charset", config.charset)
    if config.charset and config.driver == "pgsql":
        query.setdefault("client_encoding", config.charset)
    if config.driver == "sqlsrv":
        query.setdefault("driver", "ODBC Driver 18 for SQL Server")

    return URL.create(
        DIALECTS[config.driver],
        username=config.username,
        password=config.password,
        host=config.host or "localhost",
        port=config.port or DEFAULT_PORTS[config.driver],
        database=config.database,
        query=query,
    )


def _connect_args(config: ProjectConfig) -> Dict[str, Any]:
    args: Dict[str, Any] = {}
    if config.driver == "pgsql":
        args["options"] = "-c default_transaction_read_only=on"
        if config.connect_timeout:
            args["connect_timeout"] = config.connect_timeout
    elif config.driver == "mysql" and config.connect_timeout:
        args["connect_timeout"] = config.connect_timeout
    elif config.driver == "sqlsrv" and config.connect_timeout:
        args["timeout"] = config.connect_timeout
    elif config.driver == "sqlite":
        args["check_same_thread"] = False
        if config.connect_timeout:
            args["timeout"] = config.connect_timeout
    return args


def create_project_engine(config: ProjectConfig) -> Engine:
    """Create a pooled engine whose sessions are read-only where supported."""
    engine = create_engine(
        build_url(config),
        pool_pre_ping=True,
        connect_args=_connect_args(config),
    )

    if config.driver == "sqlite":
        @event.listens_for(engine, "connect")
        def _sqlite_query_only(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA query_only = ON")
            cursor.close()

    elif config.driver == "mysql":
        @event.listens_for(engine, "connect")
        def _mysql_read_only(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("SET SESSION TRANSACTION READ ONLY")
            cursor.close()

    return engine
