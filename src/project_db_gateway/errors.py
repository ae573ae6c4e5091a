"""Structured error taxonomy for the project database gateway.

Every exception raised inside the gateway derives from StructuredError and
provides:
- an error category and a severity level
- a retryability flag (the gateway itself never retries)
- a details dict with structured context
- a consistent to_dict() for logging and serialization

Expected validation failures are NOT raised; the query guard returns them as
values. These exceptions cover configuration, project resolution and
infrastructure faults.

Example:
    >>> try:
    ...     raise ProjectNotFoundError("crm", ["billing", "shop"])
    ... except StructuredError as e:
    ...     error_json = e.to_dict()
    ...     print(error_json["category"])
    project
"""
from enum import Enum
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone


class ErrorCategory(Enum):
    """Error categories for classification."""
    PROJECT = "project"              # Project identifier errors
    VALIDATION = "validation"        # Input validation errors
    CONNECTION = "connection"        # Cannot reach the project database
    DATABASE = "database"            # Query or metadata query failed
    CONFIGURATION = "configuration"  # Configuration/setup errors
    UNKNOWN = "unknown"              # Unclassified errors


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class StructuredError(Exception):
    """Base class for all structured errors.

    Attributes:
        message: Human-readable error message
        category: ErrorCategory classification
        severity: ErrorSeverity level
        retryable: Whether the operation can be retried by the caller
        details: Additional context (dict)
        timestamp: When the error occurred

    Example:
        >>> error = StructuredError(
        ...     "Something went wrong",
        ...     category=ErrorCategory.DATABASE,
        ...     details={"table": "users"}
        ... )
        >>> error.to_dict()["error_type"]
        'StructuredError'
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        retryable: bool = False,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.retryable = retryable
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to structured dictionary.

        Returns:
            Dictionary with error details in predictable schema:
            {
                "error_type": "ErrorClassName",
                "message": "Human-readable message",
                "category": "project|validation|connection|...",
                "severity": "info|warning|error|critical",
                "retryable": true|false,
                "details": {...},
                "timestamp": "2024-01-01T12:00:00.000000+00:00"
            }
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "details": self.details,
            "timestamp": self.timestamp.isoformat()
        }


class ConfigurationError(StructuredError):
    """Error in gateway configuration.

    Raised when the project registry file is missing or invalid, or a project
    names an engine the gateway has no introspector for. Needs admin action.

    Example:
        >>> raise ConfigurationError(
        ...     "Projects file not found",
        ...     details={"path": "/etc/gateway/projects.json"}
        ... )
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            retryable=False,
            details=details
        )


class ProjectMissingError(StructuredError):
    """The call carried no project identifier.

    Attributes:
        available_projects: Every configured project identifier
    """

    def __init__(self, available_projects: List[str]):
        super().__init__(
            message="The 'project' parameter is required.",
            category=ErrorCategory.PROJECT,
            severity=ErrorSeverity.ERROR,
            retryable=False,
            details={"available_projects": list(available_projects)}
        )
        self.available_projects = list(available_projects)


class ProjectNotFoundError(StructuredError):
    """The project identifier has no entry in the registry.

    Attributes:
        project: The identifier the caller sent
        available_projects: Every configured project identifier
    """

    def __init__(self, project: str, available_projects: List[str]):
        super().__init__(
            message=f"The project '{project}' does not exist.",
            category=ErrorCategory.PROJECT,
            severity=ErrorSeverity.ERROR,
            retryable=False,
            details={"project": project, "available_projects": list(available_projects)}
        )
        self.project = project
        self.available_projects = list(available_projects)


class ConnectionFailedError(StructuredError):
    """Could not build or open a connection to a project database.

    Example:
        >>> raise ConnectionFailedError(
        ...     "shop",
        ...     "connection refused",
        ... )
    """

    def __init__(self, project: str, reason: str):
        super().__init__(
            message=f"Failed to connect to the database for project '{project}'.",
            category=ErrorCategory.CONNECTION,
            severity=ErrorSeverity.ERROR,
            retryable=False,
            details={"project": project, "reason": reason}
        )
        self.project = project
        self.reason = reason


class DatabaseError(StructuredError):
    """A data or metadata query failed after the connection was established."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.DATABASE,
            severity=ErrorSeverity.ERROR,
            retryable=False,
            details=details
        )


class InvalidIdentifierError(StructuredError):
    """An identifier cannot be safely embedded in SQL text.

    Raised by the identifier primitive for empty names, names that are too
    long, or names containing control characters.
    """

    def __init__(self, identifier: str, reason: str):
        super().__init__(
            message=f"Invalid identifier {identifier!r}: {reason}",
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.ERROR,
            retryable=False,
            details={"identifier": identifier, "reason": reason}
        )
        self.identifier = identifier
        self.reason = reason
