"""CLI tests — commands run against a mocked HTTP transport.

Learn: The CLI only talks HTTP, so we swap its client factory for one
backed by httpx.MockTransport and assert on both the requests it sends
and what it prints.
"""

import json

import httpx
import pytest
from click.testing import CliRunner

from dogapi.cli import main as cli


@pytest.fixture()
def api(monkeypatch):
    """Install a fake server; returns the list of requests it received."""
    seen: list[httpx.Request] = []
    routes: dict[tuple[str, str], httpx.Response] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return routes.get(
            (request.method, request.url.path),
            httpx.Response(404, json={"error": "Dog image not found."}),
        )

    def fake_client():
        return httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test"
        )

    monkeypatch.setattr(cli, "_client", fake_client)
    monkeypatch.delenv("DOGAPI_TOKEN", raising=False)
    return seen, routes


def test_login_prints_token(api):
    seen, routes = api
    routes[("POST", "/api/auth/login")] = httpx.Response(
        200, json={"token": "tok-123", "token_type": "bearer"}
    )

    result = CliRunner().invoke(cli.main, ["login", "alice", "secret1"])

    assert result.exit_code == 0
    assert result.output.strip() == "tok-123"
    assert json.loads(seen[0].content) == {"username": "alice", "password": "secret1"}


def test_register_error_exits_nonzero(api):
    _, routes = api
    routes[("POST", "/api/auth/register")] = httpx.Response(
        409, json={"error": "Username already exists."}
    )

    result = CliRunner().invoke(cli.main, ["register", "alice", "secret1"])

    assert result.exit_code == 1
    assert "Username already exists." in result.output


def test_list_requires_token(api):
    result = CliRunner().invoke(cli.main, ["list"])
    assert result.exit_code == 1
    assert "--token required" in result.output


def test_list_sends_bearer_and_paging(api):
    seen, routes = api
    routes[("GET", "/api/dogs")] = httpx.Response(200, json={
        "page": 2, "limit": 1, "total": 3,
        "data": [{"id": "abc", "name": "second.jpg", "content_type": "image/jpeg"}],
    })

    result = CliRunner().invoke(
        cli.main, ["list", "--page", "2", "--limit", "1", "--token", "tok"]
    )

    assert result.exit_code == 0, result.output
    assert "second.jpg" in result.output
    assert seen[0].headers["Authorization"] == "Bearer tok"
    assert seen[0].url.params["page"] == "2"
    assert seen[0].url.params["limit"] == "1"


def test_token_from_env(api, monkeypatch):
    seen, routes = api
    routes[("GET", "/api/dogs")] = httpx.Response(
        200, json={"page": 1, "limit": 10, "total": 0, "data": []}
    )
    monkeypatch.setenv("DOGAPI_TOKEN", "env-tok")

    result = CliRunner().invoke(cli.main, ["list"])

    assert result.exit_code == 0
    assert "No images found." in result.output
    assert seen[0].headers["Authorization"] == "Bearer env-tok"


def test_upload_sends_multipart(api, tmp_path):
    seen, routes = api
    routes[("POST", "/api/dogs")] = httpx.Response(
        201, json={"message": "Dog image uploaded", "id": "new-id"}
    )
    image = tmp_path / "rex.jpg"
    image.write_bytes(b"\xff\xd8jpeg")

    result = CliRunner().invoke(cli.main, ["upload", str(image), "-t", "tok"])

    assert result.exit_code == 0, result.output
    assert "new-id" in result.output
    body = seen[0].content
    assert b'name="image"; filename="rex.jpg"' in body
    assert b"image/jpeg" in body


def test_get_writes_file(api, tmp_path):
    _, routes = api
    routes[("GET", "/api/dogs/abc")] = httpx.Response(
        200, content=b"\xff\xd8jpeg", headers={"content-type": "image/jpeg"}
    )
    out = tmp_path / "out.jpg"

    result = CliRunner().invoke(cli.main, ["get", "abc", "-o", str(out), "-t", "tok"])

    assert result.exit_code == 0, result.output
    assert out.read_bytes() == b"\xff\xd8jpeg"


def test_delete_not_found(api):
    result = CliRunner().invoke(cli.main, ["delete", "missing", "-t", "tok"])
    assert result.exit_code == 1
    assert "404" in result.output
