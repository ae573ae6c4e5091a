from __future__ import annotations
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from . import responses
from .config import Settings, load_projects, settings as default_settings
from .executor import QueryExecutor
from .guard import QueryGuard
from .logging import logger
from .resolver import ConnectionResolver
from .tools.base import Tool, ToolResult, error_result
from .tools.describe_table import DescribeTableTool
from .tools.list_tables import ListTablesTool
from .tools.select_query import SelectQueryTool

INSTRUCTIONS = """\
This server provides read-only access to several project databases with
project-aware context switching. Every tool call requires a `project`
parameter naming the database to use; never hardcode or guess it.

Tools:
1. list_tables: list all tables with their comments. Required: project
2. describe_table: columns, indexes and foreign keys. Required: project, table
3. select_query: structured SELECT (no raw SQL). Required: project, table;
   optional: select, where, order_by, limit (max 100, default 20), offset

Restrictions: SELECT only, no raw SQL strings, whitelisted operators,
at most 100 rows per call, tables and columns validated against the live schema.
"""

@dataclass
class Routed:
    tool: str
    project: Optional[str]
    result: ToolResult
    elapsed_ms: float

class ToolRouter:
    def __init__(
        self,
        resolver: Optional[ConnectionResolver] = None,
        settings: Optional[Settings] = None
    ) -> None:
        """Initialize the tool router.

        Args:
            resolver: Connection resolver for the project registry.
                      If None, the registry is loaded from settings.projects_file.
            settings: Gateway settings. If None, uses environment-derived settings.
        """
        self.settings = settings or default_settings
        self.resolver = resolver or ConnectionResolver(load_projects(self.settings.projects_file))

        guard = QueryGuard(
            max_limit=self.settings.max_limit,
            default_limit=self.settings.default_limit,
            reject_oversized_limit=self.settings.reject_oversized_limit,
            column_hint_size=self.settings.column_hint_size,
        )
        tools: List[Tool] = [
            ListTablesTool(self.resolver),
            DescribeTableTool(self.resolver, guard),
            SelectQueryTool(self.resolver, guard, QueryExecutor()),
        ]
        self.tools: Dict[str, Tool] = {tool.name: tool for tool in tools}

    def catalog(self) -> Dict[str, Any]:
        """Tool descriptions and input schemas, for client discovery."""
        return {
            "instructions": INSTRUCTIONS,
            "projects": self.resolver.list_available_projects(),
            "tools": [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.request_model.model_json_schema(),
                }
                for tool in self.tools.values()
            ],
        }

    def handle(
        self,
        tool_name: str,
        arguments: Optional[Dict[str, Any]],
        correlation_id: str | None = None
    ) -> Routed:
        """Dispatch a decoded tool call.

        Args:
            tool_name: Name of the tool to run
            arguments: Decoded request object
            correlation_id: Optional correlation ID for tracing. Auto-generates UUID if not provided.

        Returns:
            Routed object with tool name, project, result, and elapsed time
        """
        if correlation_id is None:
            correlation_id = str(uuid.uuid4())

        arguments = arguments if isinstance(arguments, dict) else {}
        project = arguments.get("project")

        start = time.perf_counter()
        tool = self.tools.get(tool_name)
        if tool is None:
            res = error_result(responses.unknown_tool(tool_name, list(self.tools)))
        else:
            res = tool.run(arguments)
        elapsed = (time.perf_counter() - start) * 1000

        logger.info(
            "tool=%s project=%s outcome=%s elapsed_ms=%.1f correlation_id=%s",
            tool_name, project, res.notes, elapsed, correlation_id,
        )
        return Routed(tool=tool_name, project=project, result=res, elapsed_ms=elapsed)

    def close(self) -> None:
        self.resolver.dispose()
