from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional

class ProjectRequest(BaseModel):
    """Every tool call names its project; there is no implicit default."""
    project: Optional[str] = Field(
        None,
        description="Project identifier. REQUIRED: resolve it from the repository's project settings, never guess it.",
        examples=["shop"],
    )

    model_config = ConfigDict(extra="ignore")

class ListTablesRequest(ProjectRequest):
    pass

class DescribeTableRequest(ProjectRequest):
    table: Optional[str] = Field(None, description="The name of the table to get details for", examples=["users"])

class QueryDescription(BaseModel):
    """A structured SELECT. Untrusted until the query guard has validated it.

    where, order_by, limit and offset are deliberately loose; their shape is
    checked by the guard so that failures come back as typed rejections.
    """
    table: Optional[str] = Field(None, description="The name of the table to query", examples=["users"])
    select: List[str] = Field(
        default_factory=lambda: ["*"],
        description='Column names to select, e.g. ["id", "name"], or ["*"] for all columns',
    )
    where: List[Any] = Field(
        default_factory=list,
        description='Conditions AND-ed together: [column, value] or [column, operator, value], '
                    'e.g. [["status", "=", "active"]]',
    )
    order_by: List[Any] = Field(
        default_factory=list,
        description='Ordering: [column] or [column, "asc"|"desc"], e.g. [["created_at", "desc"]]',
    )
    limit: Optional[Any] = Field(None, description="Maximum rows to return (max 100, default 20)")
    offset: Optional[Any] = Field(None, description="Rows to skip (default 0)")

    model_config = ConfigDict(extra="ignore")

class SelectQueryRequest(ProjectRequest, QueryDescription):
    pass

class ToolCallResponse(BaseModel):
    tool: str
    result: Any
    is_error: bool = False
    trace_id: str
