import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from project_db_gateway.main import RouterProvider, create_app


def make_client(router):
    return TestClient(create_app(router))


def test_health(router):
    with make_client(router) as client:
        assert client.get("/health").json() == {"status": "ok"}


def test_tool_catalog(router):
    with make_client(router) as client:
        body = client.get("/tools").json()
    assert [t["name"] for t in body["tools"]] == ["list_tables", "describe_table", "select_query"]
    assert body["projects"] == ["shop", "billing"]


def test_call_tool(router):
    with make_client(router) as client:
        response = client.post(
            "/tools/select_query",
            json={"project": "shop", "table": "users", "select": ["id"], "limit": 3},
            headers={"x-correlation-id": "trace-123"},
        )
    assert response.status_code == 200
    assert response.headers["x-correlation-id"] == "trace-123"
    body = response.json()
    assert body["tool"] == "select_query"
    assert body["is_error"] is False
    assert body["trace_id"] == "trace-123"
    assert len(body["result"]["rows"]) == 3


def test_error_payload_is_a_normal_response(router):
    with make_client(router) as client:
        response = client.post("/tools/describe_table", json={"project": "shop", "table": "ghost"})
    assert response.status_code == 200
    body = response.json()
    assert body["is_error"] is True
    assert body["result"]["error"] == "Table Not Found"


def test_call_without_body(router):
    with make_client(router) as client:
        body = client.post("/tools/list_tables").json()
    assert body["result"]["error"] == "Missing Required Parameter"


def test_metrics_count_calls(router):
    with make_client(router) as client:
        client.post("/tools/list_tables", json={"project": "shop"})
        metrics = client.get("/metrics").text
    assert "gateway_tool_calls_total" in metrics
    assert 'tool="list_tables"' in metrics


def test_unknown_tools_share_one_metric_label(router):
    with make_client(router) as client:
        for name in ("bogus-tool-1", "bogus-tool-2"):
            body = client.post(f"/tools/{name}", json={"project": "shop"}).json()
            assert body["result"]["error"] == "Unknown Tool"
            assert body["tool"] == name
        metrics = client.get("/metrics").text
    assert 'tool="unknown"' in metrics
    assert "bogus-tool" not in metrics


def test_router_built_once_under_concurrent_first_use():
    built = []

    def factory():
        time.sleep(0.05)
        instance = MagicMock()
        built.append(instance)
        return instance

    provider = RouterProvider(factory=factory)
    with ThreadPoolExecutor(max_workers=8) as pool:
        routers = list(pool.map(lambda _: provider.get(), range(8)))

    assert len(built) == 1
    assert all(r is built[0] for r in routers)

    provider.close()
    built[0].close.assert_called_once_with()


def test_lazily_built_router_closed_on_shutdown(router):
    provider = RouterProvider(factory=lambda: router)
    with patch.object(router, "close") as close:
        provider.close()
        close.assert_not_called()
        provider.get()
        provider.close()
    close.assert_called_once_with()
