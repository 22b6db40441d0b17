"""
Route access gate middleware.
"""

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request

from app.core.middleware import RouteAccessGate, has_session_credential, is_public_path


def _echo_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RouteAccessGate)

    @app.get("/{path:path}")
    async def echo(path: str, request: Request) -> dict:
        return {
            "path": path,
            "headers": {k: v for k, v in request.headers.items() if k.startswith("x-")},
            "request_id": request.state.request_id,
        }

    return app


@pytest_asyncio.fixture
async def gate_client():
    transport = httpx.ASGITransport(app=_echo_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/signin", True),
        ("/signup/step-2", True),
        ("/api/auth/session", True),
        ("/health", True),
        ("/contacts", False),
        ("/api/workspaces", False),
    ],
)
def test_is_public_path(path, expected):
    assert is_public_path(path) is expected


@pytest.mark.asyncio
async def test_browser_path_without_credential_redirects(gate_client):
    resp = await gate_client.get("/contacts")
    assert resp.status_code == 307
    assert resp.headers["location"] == "/signin"
    assert resp.headers["x-request-id"]


@pytest.mark.asyncio
async def test_public_path_passes_without_credential(gate_client):
    resp = await gate_client.get("/signin")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_api_path_without_credential_reaches_handler(gate_client):
    resp = await gate_client.get("/api/workspaces")
    assert resp.status_code == 200
    assert resp.json()["path"] == "api/workspaces"


@pytest.mark.asyncio
async def test_cookie_credential_passes(gate_client):
    resp = await gate_client.get("/contacts", headers={"Cookie": "session_token=anything"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_bearer_credential_passes(gate_client):
    resp = await gate_client.get("/contacts", headers={"Authorization": "Bearer anything"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_empty_bearer_is_not_a_credential(gate_client):
    resp = await gate_client.get("/contacts", headers={"Authorization": "Bearer "})
    assert resp.status_code == 307


@pytest.mark.asyncio
async def test_spoofed_identity_headers_are_stripped(gate_client):
    resp = await gate_client.get(
        "/api/anything",
        headers={
            "X-User-Id": "00000000-0000-0000-0000-000000000001",
            "X-User-Email": "admin@example.com",
            "X-Session-Id": "forged",
            "X-Resolved-Workspace-Id": "00000000-0000-0000-0000-000000000002",
            "X-Custom": "kept",
        },
    )
    headers = resp.json()["headers"]
    assert "x-user-id" not in headers
    assert "x-user-email" not in headers
    assert "x-session-id" not in headers
    assert "x-resolved-workspace-id" not in headers
    assert headers["x-custom"] == "kept"


@pytest.mark.asyncio
async def test_request_id_is_echoed(gate_client):
    resp = await gate_client.get("/api/anything", headers={"X-Request-Id": "req-123"})
    assert resp.headers["x-request-id"] == "req-123"
    assert resp.json()["request_id"] == "req-123"


def test_has_session_credential_reads_cookie_name():
    from starlette.requests import Request as StarletteRequest

    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(b"cookie", b"session_token=abc")],
    }
    assert has_session_credential(StarletteRequest(scope)) is True
