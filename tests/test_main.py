import pytest


@pytest.mark.asyncio
async def test_health_check(api):
    """Public health endpoint without Redis"""
    response = await api.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "redis": "disabled"}


@pytest.mark.asyncio
async def test_root_lists_capabilities(api):
    response = await api.get("/")
    assert response.status_code == 200
    body = response.json()
    paths = {endpoint["path"] for endpoint in body["endpoints"]}
    assert {"/search/{query}", "/stream", "/proxy/url", "/id/{videoId}", "/audio/{videoId}"} <= paths
    assert body["redis_enabled"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/", "/search/test", "/proxy/url", "/does/not/exist"])
async def test_options_returns_empty_200_with_cors(api, path):
    response = await api.options(path)
    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "GET, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type"


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
async def test_non_get_methods_are_rejected(api, method):
    response = await api.request(method, "/search/test")
    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_unknown_path_returns_json_404(api):
    response = await api.get("/nothing/here")
    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_errors_follow_accept_language(api):
    response = await api.get("/nothing/here", headers={"Accept-Language": "ja,en;q=0.5"})
    assert response.status_code == 404
    assert response.json() == {"error": "見つかりません"}


@pytest.mark.asyncio
async def test_request_id_is_echoed(api):
    response = await api.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["x-request-id"] == "abc123"

    response = await api.get("/health")
    assert response.headers["x-request-id"]


@pytest.mark.asyncio
async def test_invalid_query_parameter_is_a_400(api):
    response = await api.get("/search/test?page=zero")
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request parameters"
    assert "page" in body["message"]
