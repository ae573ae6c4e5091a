from contextlib import asynccontextmanager
from threading import Lock
from typing import Any, Callable, Dict, Optional

from fastapi import Body, FastAPI, Request
from fastapi.responses import Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from .config import settings
from .logging import setup_logging, correlation_id_middleware
from .router import ToolRouter
from .schemas import ToolCallResponse

CALLS = Counter("gateway_tool_calls_total", "Total tool calls", ["tool", "outcome"])
LAT = Histogram("gateway_tool_duration_ms", "Tool call duration in ms", ["tool"])

# Metric label for tool names outside the catalog; path values are caller-controlled
UNKNOWN_TOOL_LABEL = "unknown"


class RouterProvider:
    """Holds the app's single ToolRouter, building it on first use."""

    def __init__(self, router: Optional[ToolRouter] = None, factory: Optional[Callable[[], ToolRouter]] = None):
        self._router = router
        self._factory = factory or ToolRouter
        self._lock = Lock()

    def get(self) -> ToolRouter:
        if self._router is None:
            with self._lock:
                if self._router is None:
                    self._router = self._factory()
        return self._router

    def close(self) -> None:
        with self._lock:
            if self._router is not None:
                self._router.close()


def create_app(router: Optional[ToolRouter] = None) -> FastAPI:
    """Build the HTTP app. The router (and project registry) loads on first use."""
    provider = RouterProvider(router)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        provider.close()

    app = FastAPI(title="Project DB Gateway", version="0.1.0", lifespan=lifespan)
    app.middleware("http")(correlation_id_middleware)
    app.state.routers = provider

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/metrics")
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/tools")
    def list_tools():
        return provider.get().catalog()

    @app.post("/tools/{tool_name}", response_model=ToolCallResponse)
    def call_tool(tool_name: str, request: Request, arguments: Optional[Dict[str, Any]] = Body(None)):
        correlation_id = getattr(request.state, "correlation_id", "unknown")

        tool_router = provider.get()
        routed = tool_router.handle(tool_name, arguments, correlation_id=correlation_id)
        label = routed.tool if routed.tool in tool_router.tools else UNKNOWN_TOOL_LABEL
        CALLS.labels(tool=label, outcome=routed.result.notes).inc()
        LAT.labels(tool=label).observe(routed.elapsed_ms)

        return ToolCallResponse(
            tool=routed.tool,
            result=routed.result.data,
            is_error=routed.result.is_error,
            trace_id=correlation_id,
        )

    return app

setup_logging(settings.log_level)
app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("project_db_gateway.main:app", host="127.0.0.1", port=8000, reload=True)
