from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .. import responses
from ..errors import StructuredError
from ..logging import logger

M = TypeVar("M", bound=BaseModel)

@dataclass(frozen=True)
class ToolResult:
    data: Any
    notes: str = "ok"  # outcome tag: "ok" or an error slug

    @property
    def is_error(self) -> bool:
        return isinstance(self.data, dict) and "error" in self.data

class Tool(Protocol):
    name: str
    description: str
    request_model: Type[BaseModel]

    def run(self, arguments: Dict[str, Any]) -> ToolResult:
        """Execute the tool with decoded call arguments.

        Args:
            arguments: The decoded request object

        Returns:
            ToolResult with a JSON-serializable result or error payload
        """
        ...

def error_slug(payload: Dict[str, Any]) -> str:
    """'Column Not Found' -> 'column_not_found', for logs and metrics."""
    return str(payload.get("error", "error")).lower().replace(" ", "_")

def error_result(payload: Dict[str, Any]) -> ToolResult:
    return ToolResult(data=payload, notes=error_slug(payload))

def failure(exc: Exception, project: Optional[str] = None) -> ToolResult:
    if not isinstance(exc, StructuredError):
        logger.exception("unexpected failure for project=%s", project)
    return error_result(responses.from_exception(exc, project))

def parse_request(model: Type[M], arguments: Optional[Dict[str, Any]]) -> Tuple[Optional[M], Optional[ToolResult]]:
    """Validate raw call arguments into (request, None) or (None, error result)."""
    try:
        return model.model_validate(arguments or {}), None
    except ValidationError as e:
        return None, error_result(
            responses.validation_error(
                "Invalid request arguments",
                errors=e.errors(include_url=False, include_context=False),
            )
        )
