"""Connection resolver: project identifier -> live database handle.

Each project owns its own engine (and therefore its own connection pool),
created lazily on first use and reused for the life of the process. Calls for
different projects never share or rebind a connection, so concurrent calls
for project A and project B each see only their own database.

Example:
    >>> resolver = ConnectionResolver(load_projects("projects.json"))
    >>> resolved = resolver.resolve("shop")
    >>> with resolved.connect() as conn:
    ...     conn.execute(text("SELECT 1"))
"""
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Generator, List, Mapping, Optional

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import ArgumentError, NoSuchModuleError, SQLAlchemyError

from .config import ProjectConfig
from .db import create_project_engine
from .errors import ConnectionFailedError, ProjectMissingError, ProjectNotFoundError
from .inspector import SchemaIntrospector, get_introspector
from .logging import logger


@dataclass(frozen=True)
class ResolvedConnection:
    """A project bound to its engine."""
    project: str
    config: ProjectConfig
    engine: Engine
    introspector: SchemaIntrospector

    @property
    def driver(self) -> str:
        return self.config.driver

    @property
    def database(self) -> Optional[str]:
        return self.config.database or self.engine.url.database

    @contextmanager
    def connect(self) -> Generator[Connection, None, None]:
        """Check out a pooled connection.

        Usage:
            with resolved.connect() as conn:
                conn.execute(...)

        Raises:
            ConnectionFailedError: if the database cannot be reached.
        """
        try:
            conn = self.engine.connect()
        except SQLAlchemyError as e:
            raise ConnectionFailedError(self.project, str(getattr(e, "orig", None) or e)) from e
        # Closing rolls back the implicit transaction; nothing is ever written
        with conn:
            yield conn


class ConnectionResolver:
    """Maps project identifiers to per-project engines.

    Attributes:
        projects: Immutable project registry (id -> ProjectConfig)
    """

    def __init__(
        self,
        projects: Mapping[str, ProjectConfig],
        engine_factory: Callable[[ProjectConfig], Engine] = create_project_engine
    ) -> None:
        self._projects: Dict[str, ProjectConfig] = dict(projects)
        self._engine_factory = engine_factory
        self._engines: Dict[str, Engine] = {}
        self._lock = Lock()

    def list_available_projects(self) -> List[str]:
        """Configured project identifiers, in registry order."""
        return list(self._projects.keys())

    def resolve(self, project: Optional[str]) -> ResolvedConnection:
        """Resolve a project identifier to its connection handle.

        Raises:
            ProjectMissingError: project is None or blank
            ProjectNotFoundError: project is not in the registry
            ConnectionFailedError: the engine could not be created
        """
        if project is None or not str(project).strip():
            raise ProjectMissingError(self.list_available_projects())

        config = self._projects.get(project)
        if config is None:
            raise ProjectNotFoundError(project, self.list_available_projects())

        return ResolvedConnection(
            project=project,
            config=config,
            engine=self._engine_for(project, config),
            introspector=get_introspector(config.driver, config.effective_schema),
        )

    def _engine_for(self, project: str, config: ProjectConfig) -> Engine:
        engine = self._engines.get(project)
        if engine is not None:
            return engine

        with self._lock:
            engine = self._engines.get(project)
            if engine is None:
                try:
                    engine = self._engine_factory(config)
                except (ArgumentError, NoSuchModuleError, ImportError) as e:
                    raise ConnectionFailedError(project, str(e)) from e
                self._engines[project] = engine
                logger.info("created engine for project=%s driver=%s", project, config.driver)
        return engine

    def dispose(self, project: Optional[str] = None) -> None:
        """Close pooled connections for one project, or for all of them."""
        with self._lock:
            if project is not None:
                engines = [self._engines.pop(project)] if project in self._engines else []
            else:
                engines = list(self._engines.values())
                self._engines.clear()
        for engine in engines:
            engine.dispose()
