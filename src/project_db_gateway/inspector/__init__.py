"""Schema introspection, one implementation per engine kind."""
from typing import Dict, Optional, Type

from .base import SchemaIntrospector
from .mysql import MySqlIntrospector
from .postgres import PostgresIntrospector
from .sqlite import SqliteIntrospector
from .sqlserver import SqlServerIntrospector
from ..errors import ConfigurationError

INTROSPECTORS: Dict[str, Type[SchemaIntrospector]] = {
    "mysql": MySqlIntrospector,
    "pgsql": PostgresIntrospector,
    "sqlite": SqliteIntrospector,
    "sqlsrv": SqlServerIntrospector,
}


def get_introspector(driver: str, schema: Optional[str] = None) -> SchemaIntrospector:
    """Select the introspector for an engine kind.

    Raises:
        ConfigurationError: if no introspector exists for the driver.
    """
    introspector_cls = INTROSPECTORS.get(driver)
    if introspector_cls is None:
        raise ConfigurationError(
            f"No schema introspector for driver '{driver}'",
            details={"driver": driver, "supported": sorted(INTROSPECTORS)}
        )
    return introspector_cls(schema)


__all__ = [
    "SchemaIntrospector",
    "MySqlIntrospector",
    "PostgresIntrospector",
    "SqliteIntrospector",
    "SqlServerIntrospector",
    "INTROSPECTORS",
    "get_introspector",
]
