"""Error normalizer: every failure becomes one ErrorPayload shape.

    {
        "error": "Column Not Found",           # category
        "message": "The column 'x' does ...",  # human message
        "hint": "Use the describe_table ...",  # remediation
        "details": "...",                      # unexpected failures only
        ...                                    # structured context fields
    }

Expected rejections never carry `details`; raw exception text is confined to
that one field for genuinely unexpected failures.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import (
    ConnectionFailedError,
    DatabaseError,
    InvalidIdentifierError,
    ProjectMissingError,
    ProjectNotFoundError,
    StructuredError,
)
from .guard import ALLOWED_OPERATORS, Rejection, RejectionKind


class ErrorPayload(BaseModel):
    """The only error shape returned to callers."""
    error: str = Field(..., description="Error category", examples=["Table Not Found"])
    message: str = Field(..., description="Human-readable message")
    hint: Optional[str] = Field(None, description="How to fix the call")
    details: Optional[str] = Field(None, description="Failure detail for unexpected errors")

    model_config = ConfigDict(frozen=True, extra="allow")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def _payload(error: str, message: str, **fields: Any) -> Dict[str, Any]:
    return ErrorPayload(error=error, message=message, **fields).to_dict()


def missing_project(available_projects: List[str]) -> Dict[str, Any]:
    return _payload(
        "Missing Required Parameter",
        "The 'project' parameter is required.",
        available_projects=available_projects,
        example={"project": available_projects[0] if available_projects else "project_name"},
        hint="Pass the project identifier from the repository's project settings in every call.",
    )


def project_not_found(project: str, available_projects: List[str]) -> Dict[str, Any]:
    return _payload(
        "Project Not Found",
        f"The project '{project}' does not exist.",
        project=project,
        available_projects=available_projects,
        hint="Make sure the project identifier is correct and is configured in the projects file.",
    )


def missing_parameter(parameter: str) -> Dict[str, Any]:
    return _payload(
        "Missing Parameter",
        f"The '{parameter}' parameter is required.",
        parameter=parameter,
    )


def table_not_found(table: str, project: str) -> Dict[str, Any]:
    return _payload(
        "Table Not Found",
        f"The table '{table}' does not exist in project '{project}'.",
        table=table,
        project=project,
        hint="Use the list_tables tool to list all available tables in this project.",
    )


def column_not_found(
    column: Any, table: str, project: str, available_columns: Optional[List[str]] = None, **context: Any
) -> Dict[str, Any]:
    return _payload(
        "Column Not Found",
        f"The column '{column}' does not exist in table '{table}' (project: '{project}').",
        column=column,
        table=table,
        project=project,
        available_columns=available_columns,
        hint="Use the describe_table tool to see all available columns in this table.",
        **context,
    )


def invalid_operator(operator: Any, **context: Any) -> Dict[str, Any]:
    return _payload(
        "Invalid Operator",
        f"The operator '{operator}' is not allowed.",
        operator=operator,
        allowed_operators=list(ALLOWED_OPERATORS),
        hint="Use only the allowed operators listed above.",
        **context,
    )


def limit_exceeded(limit: int, max_limit: int) -> Dict[str, Any]:
    return _payload(
        "Limit Exceeded",
        f"The limit value ({limit}) exceeds the maximum allowed value ({max_limit}).",
        provided_limit=limit,
        max_limit=max_limit,
        hint="Reduce the limit value or use pagination with offset.",
    )


def validation_error(message: str, **context: Any) -> Dict[str, Any]:
    return _payload("Validation Error", message, **context)


def connection_failed(project: str, reason: str) -> Dict[str, Any]:
    return _payload(
        "Database Connection Failed",
        f"Failed to connect to the database for project '{project}'.",
        project=project,
        details=reason,
        hint="Check the project's database configuration and ensure the database server is running.",
    )


def database_error(message: str, details: Optional[str] = None, **context: Any) -> Dict[str, Any]:
    return _payload("Database Error", message, details=details, **context)


def unknown_tool(tool: str, available_tools: List[str]) -> Dict[str, Any]:
    return _payload(
        "Unknown Tool",
        f"The tool '{tool}' does not exist.",
        tool=tool,
        available_tools=available_tools,
    )


def from_rejection(rejection: Rejection, project: str) -> Dict[str, Any]:
    """Render a guard rejection. Never includes `details`."""
    ctx = dict(rejection.context)
    kind = rejection.kind

    if kind is RejectionKind.MISSING_PARAMETER:
        return missing_parameter(ctx.get("parameter", "table"))
    if kind is RejectionKind.TABLE_NOT_FOUND:
        return table_not_found(ctx["table"], project)
    if kind is RejectionKind.COLUMN_NOT_FOUND:
        column = ctx.pop("column")
        table = ctx.pop("table")
        return column_not_found(column, table, project, **ctx)
    if kind is RejectionKind.INVALID_OPERATOR:
        operator = ctx.pop("operator")
        ctx.pop("allowed_operators", None)
        return invalid_operator(operator, **ctx)
    if kind is RejectionKind.LIMIT_EXCEEDED:
        return limit_exceeded(ctx["provided_limit"], ctx["max_limit"])
    # malformed_condition, invalid_limit, invalid_offset
    return validation_error(rejection.message, type=kind.value, **ctx)


def from_exception(exc: Exception, project: Optional[str] = None) -> Dict[str, Any]:
    """Render any exception; unexpected ones become Database Error with details."""
    if isinstance(exc, ProjectMissingError):
        return missing_project(exc.available_projects)
    if isinstance(exc, ProjectNotFoundError):
        return project_not_found(exc.project, exc.available_projects)
    if isinstance(exc, ConnectionFailedError):
        return connection_failed(exc.project, exc.reason)
    if isinstance(exc, DatabaseError):
        return database_error(exc.message, details=exc.details.get("reason"), project=project)
    if isinstance(exc, InvalidIdentifierError):
        return validation_error(exc.message, identifier=exc.identifier, reason=exc.reason)
    if isinstance(exc, StructuredError):
        return _payload(
            "Error",
            exc.message,
            project=project,
            details=str(exc.details) if exc.details else None,
        )
    return database_error(
        "The request failed unexpectedly.",
        details=f"{type(exc).__name__}: {exc}",
        project=project,
    )
