import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

DRIVER_ALIASES = {
    "mysql": "mysql",
    "mariadb": "mysql",
    "pgsql": "pgsql",
    "postgres": "pgsql",
    "postgresql": "pgsql",
    "sqlite": "sqlite",
    "sqlsrv": "sqlsrv",
    "mssql": "sqlsrv",
    "sqlserver": "sqlsrv",
}


class Settings(BaseModel):
    service_name: str = "project-db-gateway"
    environment: str = "dev"
    log_level: str = "INFO"

    # Project registry location
    projects_file: str = "projects.json"

    # Select query bounds
    default_limit: int = 20
    max_limit: int = 100
    reject_oversized_limit: bool = False  # Clamp to max_limit when False
    column_hint_size: int = 10            # Columns echoed back on column_not_found

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from GATEWAY_* environment variables."""
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = os.getenv(f"GATEWAY_{name.upper()}")
            if raw is not None:
                values[name] = raw
        return cls.model_validate(values)


class ProjectConfig(BaseModel):
    """Connection parameters for one project database.

    Immutable once loaded. `url` overrides every other connection field.
    """
    driver: str
    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    charset: Optional[str] = None
    schema_name: Optional[str] = Field(default=None, alias="schema")
    url: Optional[str] = None
    connect_timeout: Optional[int] = Field(default=None, ge=1)
    options: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("driver")
    @classmethod
    def normalize_driver(cls, value: str) -> str:
        driver = DRIVER_ALIASES.get(value.strip().lower())
        if driver is None:
            raise ValueError(
                f"Unsupported driver '{value}'. Supported: mysql, pgsql, sqlite, sqlsrv"
            )
        return driver

    @property
    def effective_schema(self) -> Optional[str]:
        """Catalog schema the introspector scopes to (Postgres and SQL Server)."""
        if self.schema_name:
            return self.schema_name
        if self.driver == "pgsql":
            return "public"
        if self.driver == "sqlsrv":
            return "dbo"
        return None


def parse_projects(data: Any) -> Dict[str, ProjectConfig]:
    """Validate a decoded registry document.

    Accepts either {"projects": {...}} or a bare {project_id: config} mapping.
    """
    if isinstance(data, dict) and isinstance(data.get("projects"), dict):
        data = data["projects"]
    if not isinstance(data, dict):
        raise ConfigurationError("Project registry must be a JSON object")

    projects: Dict[str, ProjectConfig] = {}
    for project_id, raw in data.items():
        try:
            projects[str(project_id)] = ProjectConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration for project '{project_id}'",
                details={"project": project_id, "errors": e.errors(include_url=False)}
            ) from e
    return projects


def load_projects(path: str) -> Dict[str, ProjectConfig]:
    """Load the project registry from a JSON file."""
    file_path = Path(path)
    if not file_path.is_file():
        raise ConfigurationError("Projects file not found", details={"path": str(file_path)})
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            "Projects file is not valid JSON",
            details={"path": str(file_path), "reason": str(e)}
        ) from e
    return parse_projects(data)


settings = Settings.from_env()
