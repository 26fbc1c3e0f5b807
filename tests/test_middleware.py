"""Tests for middleware — security headers, request IDs, error bodies."""

import pytest


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    """Health endpoint returns security headers."""
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


@pytest.mark.asyncio
async def test_no_store_on_auth_responses(client):
    """Token-bearing responses must not be cached."""
    r = await client.post(
        "/api/auth/login", json={"username": "nobody", "password": "whatever"}
    )
    assert r.headers["Cache-Control"] == "private, no-store"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/api/health")
    r2 = await client.get("/api/health")
    assert "X-Request-ID" in r1.headers
    assert "X-Request-ID" in r2.headers
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID is propagated through the response."""
    custom_id = "test-trace-12345"
    r = await client.get("/api/health", headers={"X-Request-ID": custom_id})
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    """HSTS header is NOT set on HTTP connections (only HTTPS)."""
    r = await client.get("/api/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_unknown_route_uses_error_body(client):
    r = await client.get("/api/nope")
    assert r.status_code == 404
    assert "error" in r.json()


@pytest.mark.asyncio
async def test_served_image_is_sandboxed(client, login_as):
    """Uploaded bytes come back with a CSP that forbids running anything."""
    headers = await login_as()
    r = await client.post(
        "/api/dogs",
        files={"image": ("rex.jpg", b"\xff\xd8\xffjpeg", "image/jpeg")},
        headers=headers,
    )
    r = await client.get(f"/api/dogs/{r.json()['id']}", headers=headers)
    assert r.status_code == 200
    assert r.headers["Content-Security-Policy"] == "default-src 'none'; sandbox"
    assert r.headers["Cache-Control"] == "private, no-store"


@pytest.mark.asyncio
async def test_json_responses_have_no_csp(client, login_as):
    headers = await login_as()
    r = await client.get("/api/dogs", headers=headers)
    assert r.status_code == 200
    assert "Content-Security-Policy" not in r.headers
    assert r.headers["Cache-Control"] == "private, no-store"


@pytest.mark.asyncio
async def test_public_routes_are_cacheable(client):
    r = await client.get("/api/health")
    assert "Cache-Control" not in r.headers
    assert "Content-Security-Policy" not in r.headers


@pytest.mark.asyncio
async def test_private_prefixes_are_configurable():
    from fastapi import FastAPI
    from fastapi.responses import PlainTextResponse
    from httpx import ASGITransport, AsyncClient

    from dogapi.middleware.security import SecurityHeadersMiddleware

    app = FastAPI()
    app.add_middleware(SecurityHeadersMiddleware, private_prefixes=("/files",))

    @app.get("/files/a", response_class=PlainTextResponse)
    async def private_file():
        return "a"

    @app.get("/open", response_class=PlainTextResponse)
    async def open_file():
        return "b"

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        private = await ac.get("/files/a")
        public = await ac.get("/open")

    assert private.headers["Cache-Control"] == "private, no-store"
    assert private.headers["Content-Security-Policy"] == "default-src 'none'; sandbox"
    assert public.headers["X-Content-Type-Options"] == "nosniff"
    assert "Cache-Control" not in public.headers
