"""select_query: structured, read-only SELECT with pagination metadata.

Flow:
  1. resolve project -> connection
  2. guard validates table, columns, conditions, ordering, limit, offset
  3. executor runs the parameterized SELECT and its COUNT
"""
from typing import Any, Dict

from .base import ToolResult, error_result, failure, parse_request
from .. import responses
from ..executor import QueryExecutor
from ..guard import QueryGuard
from ..resolver import ConnectionResolver
from ..schemas import SelectQueryRequest


class SelectQueryTool:
    name = "select_query"
    description = (
        "Execute a structured SELECT query on a table (read-only, no raw SQL).\n"
        "Required: project (string), table (string)\n"
        'Optional: select (array of strings, default ["*"]), where (array of conditions), '
        "order_by (array), limit (integer, max 100, default 20), offset (integer, default 0)\n"
        'Example: {"project": "shop", "table": "users", "select": ["id", "name"], '
        '"where": [["status", "=", "active"]], "limit": 10}'
    )
    request_model = SelectQueryRequest

    def __init__(
        self,
        resolver: ConnectionResolver,
        guard: QueryGuard,
        executor: QueryExecutor
    ) -> None:
        self._resolver = resolver
        self._guard = guard
        self._executor = executor

    def run(self, arguments: Dict[str, Any]) -> ToolResult:
        request, error = parse_request(self.request_model, arguments)
        if error:
            return error

        try:
            resolved = self._resolver.resolve(request.project)
        except Exception as e:
            return failure(e, request.project)

        try:
            outcome = self._guard.validate(request, resolved)
            if not outcome.ok:
                return error_result(responses.from_rejection(outcome.rejection, resolved.project))

            query = outcome.query
            result = self._executor.select_rows(query, resolved)
        except Exception as e:
            return failure(e, resolved.project)

        return ToolResult(
            data={
                "rows": result.rows,
                "meta": {
                    "project": resolved.project,
                    "table": query.table,
                    "count": result.count,
                    "limit": result.limit,
                    "offset": result.offset,
                    "total": result.total,
                    "has_more": result.has_more,
                },
            }
        )
