"""list_tables: every table of a project database with its comment."""
from typing import Any, Dict

from .base import ToolResult, failure, parse_request
from ..resolver import ConnectionResolver
from ..schemas import ListTablesRequest


class ListTablesTool:
    name = "list_tables"
    description = (
        "List all tables in a project database with their comments. "
        'Required: project. Example: {"project": "shop"}'
    )
    request_model = ListTablesRequest

    def __init__(self, resolver: ConnectionResolver) -> None:
        self._resolver = resolver

    def run(self, arguments: Dict[str, Any]) -> ToolResult:
        request, error = parse_request(self.request_model, arguments)
        if error:
            return error

        try:
            resolved = self._resolver.resolve(request.project)
            with resolved.connect() as conn:
                tables = resolved.introspector.list_tables(conn)
        except Exception as e:
            return failure(e, request.project)

        return ToolResult(
            data={
                "project": resolved.project,
                "database": resolved.database,
                "driver": resolved.driver,
                "tables": [table.model_dump() for table in tables],
                "count": len(tables),
            }
        )
