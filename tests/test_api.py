import httpx
import pytest

from console.shared.core.configuration import ApiConfig
from console.shared.core.errors import AsyncOperationError
from console.shared.infrastructure import ApiClient, get_error_text
from console.shared.infrastructure.api import DEFAULT_ERROR_TEXT


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/nodes":
        return httpx.Response(200, json=[{"id": "node-1"}])
    if request.url.path == "/roles" and request.method == "POST":
        return httpx.Response(201, content=request.content, headers={"content-type": "application/json"})
    if request.url.path == "/roles/admin" and request.method == "DELETE":
        return httpx.Response(204)
    if request.url.path == "/version":
        return httpx.Response(200, text="v1.2.3")
    return httpx.Response(404, json={"message": f"{request.url.path} not found"})


@pytest.fixture
def api():
    return ApiClient(ApiConfig(base_url="http://console.test"), transport=httpx.MockTransport(_handler))


def _status_error(response: httpx.Response) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "http://console.test/nodes")
    response.request = request
    return httpx.HTTPStatusError("request failed", request=request, response=response)


@pytest.mark.asyncio
async def test_get_returns_json(api):
    async with api:
        assert await api.get("/nodes") == [{"id": "node-1"}]


@pytest.mark.asyncio
async def test_post_sends_json_body(api):
    async with api:
        assert await api.post("/roles", {"name": "admin"}) == {"name": "admin"}


@pytest.mark.asyncio
async def test_empty_and_text_responses(api):
    async with api:
        assert await api.delete("/roles/admin") is None
        assert await api.get("/version") == "v1.2.3"


@pytest.mark.asyncio
async def test_error_status_raises_with_readable_text(api):
    async with api:
        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await api.put("/missing", {"x": 1})

    assert exc_info.value.response.status_code == 404
    assert get_error_text(exc_info.value) == "/missing not found"


@pytest.mark.parametrize("body, expected", [
    ({"message": "Role already exists"}, "Role already exists"),
    ({"error": {"message": "Quota exceeded"}}, "Quota exceeded"),
    ({"error": "forbidden"}, "forbidden"),
    ({"text": "Node is cordoned"}, "Node is cordoned"),
])
def test_status_error_json_shapes(body, expected):
    assert get_error_text(_status_error(httpx.Response(400, json=body))) == expected


def test_status_error_plain_text_body():
    assert get_error_text(_status_error(httpx.Response(502, text="upstream unavailable"))) == "upstream unavailable"


def test_status_error_without_body_uses_status_line():
    assert get_error_text(_status_error(httpx.Response(500))) == "500 Internal Server Error"


def test_transport_error():
    request = httpx.Request("GET", "http://console.test/nodes")

    assert get_error_text(httpx.ConnectError("connection refused", request=request)) == "connection refused"


def test_legacy_response_json_mapping():
    assert get_error_text({"responseJSON": {"message": "Session expired"}}) == "Session expired"
    assert get_error_text({"message": "Bad input"}) == "Bad input"


def test_plain_values_and_fallback():
    assert get_error_text("  timed out ") == "timed out"
    assert get_error_text(AsyncOperationError("Operation cancelled")) == "Operation cancelled"
    assert get_error_text(ValueError("bad value")) == "bad value"
    assert get_error_text(ValueError()) == DEFAULT_ERROR_TEXT
    assert get_error_text(None) == DEFAULT_ERROR_TEXT
    assert get_error_text(42, fallback="Try again") == "Try again"
    assert get_error_text({}, fallback="Try again") == "Try again"
