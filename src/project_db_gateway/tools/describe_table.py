"""describe_table: columns, indexes and foreign keys of one table."""
from typing import Any, Dict

from .base import ToolResult, error_result, failure, parse_request
from .. import responses
from ..guard import QueryGuard
from ..resolver import ConnectionResolver
from ..schemas import DescribeTableRequest


class DescribeTableTool:
    name = "describe_table"
    description = (
        "Get detailed schema information for a table: columns, indexes and foreign keys. "
        'Required: project, table. Example: {"project": "shop", "table": "users"}'
    )
    request_model = DescribeTableRequest

    def __init__(self, resolver: ConnectionResolver, guard: QueryGuard) -> None:
        self._resolver = resolver
        self._guard = guard

    def run(self, arguments: Dict[str, Any]) -> ToolResult:
        request, error = parse_request(self.request_model, arguments)
        if error:
            return error

        try:
            resolved = self._resolver.resolve(request.project)
        except Exception as e:
            return failure(e, request.project)

        table = request.table
        try:
            outcome = self._guard.validate_table(table, resolved)
            if not outcome.ok:
                return error_result(responses.from_rejection(outcome.rejection, resolved.project))

            with resolved.connect() as conn:
                snapshot = resolved.introspector.describe_table(conn, table)
        except Exception as e:
            return failure(e, resolved.project)

        return ToolResult(
            data={
                "project": resolved.project,
                "table": snapshot.table,
                "comment": snapshot.comment,
                "columns": [column.model_dump() for column in snapshot.columns],
                "indexes": [index.model_dump() for index in snapshot.indexes],
                "foreign_keys": [fk.model_dump() for fk in snapshot.foreign_keys],
            }
        )
