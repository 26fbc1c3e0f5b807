"""dogapi CLI — run the server, or talk to one.

Usage:
    dogapi serve                                  # Start the API with uvicorn
    dogapi register alice secret1                 # Create an account
    dogapi login alice secret1                    # Print a bearer token
    export DOGAPI_TOKEN=$(dogapi login alice secret1)
    dogapi upload rex.jpg                         # Upload an image
    dogapi list --page 2 --limit 5                # List your images
    dogapi get <id> -o rex.jpg                    # Download an image
    dogapi update <id> rex2.jpg                   # Replace an image
    dogapi delete <id>                            # Delete an image
    dogapi me                                     # Who am I?
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import mimetypes
import os
import sys
from pathlib import Path
from typing import Optional

import click
import httpx

from dogapi import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3000"


def _api_url() -> str:
    return os.environ.get("DOGAPI_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the dogapi server."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _token_from_ctx(token: Optional[str]) -> str:
    """Resolve the bearer token from --token or DOGAPI_TOKEN."""
    tok = token or os.environ.get("DOGAPI_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set DOGAPI_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _check(r: httpx.Response) -> httpx.Response:
    """Exit with the server's error message on any non-2xx response."""
    if r.is_success:
        return r
    try:
        message = r.json().get("error", r.text)
    except ValueError:
        message = r.text
    click.secho(f"Error ({r.status_code}): {message}", fg="red", err=True)
    sys.exit(1)


def _image_part(path: Path) -> dict:
    content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return {"image": (path.name, path.read_bytes(), content_type)}


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "—"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


_token_option = click.option(
    "--token", "-t", help="Bearer token (or set DOGAPI_TOKEN)"
)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="dogapi")
def main():
    """dogapi — per-user dog image storage."""


@main.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Start the API server."""
    import uvicorn

    from dogapi.config import settings

    uvicorn.run(
        "dogapi.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@main.command()
@click.argument("username")
@click.argument("password")
def register(username: str, password: str):
    """Create a new account."""
    _run(_register_impl(username, password))


async def _register_impl(username: str, password: str):
    async with _client() as c:
        r = _check(await c.post(
            "/api/auth/register", json={"username": username, "password": password}
        ))
        click.secho(r.json()["message"], fg="green")


@main.command()
@click.argument("username")
@click.argument("password")
def login(username: str, password: str):
    """Log in and print a bearer token."""
    _run(_login_impl(username, password))


async def _login_impl(username: str, password: str):
    async with _client() as c:
        r = _check(await c.post(
            "/api/auth/login", json={"username": username, "password": password}
        ))
        click.echo(r.json()["token"])


@main.command()
@_token_option
def me(token: Optional[str]):
    """Show the account behind the token."""
    _run(_me_impl(_token_from_ctx(token)))


async def _me_impl(token: str):
    async with _client() as c:
        r = _check(await c.get("/api/auth/me", headers=_auth(token)))
        click.echo(json.dumps(r.json(), indent=2))


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_token_option
def upload(file: Path, token: Optional[str]):
    """Upload an image."""
    _run(_upload_impl(file, _token_from_ctx(token)))


async def _upload_impl(file: Path, token: str):
    async with _client() as c:
        r = _check(await c.post(
            "/api/dogs", files=_image_part(file), headers=_auth(token)
        ))
        body = r.json()
        click.secho(f"{body['message']}: {body.get('id')}", fg="green")


@main.command("list")
@click.option("--page", "-p", default=1, help="Page number")
@click.option("--limit", "-l", default=10, help="Items per page")
@_token_option
def list_images(page: int, limit: int, token: Optional[str]):
    """List your images."""
    _run(_list_impl(page, limit, _token_from_ctx(token)))


async def _list_impl(page: int, limit: int, token: str):
    async with _client() as c:
        r = _check(await c.get(
            "/api/dogs", params={"page": page, "limit": limit}, headers=_auth(token)
        ))
        body = r.json()

        if not body["data"]:
            click.echo("No images found.")
            return

        click.secho(
            f"Images (page {body['page']}, {len(body['data'])} of {body['total']}):",
            bold=True,
        )
        click.echo()
        _print_table(body["data"], [
            ("ID", "id", 36),
            ("Name", "name", 30),
            ("Type", "content_type", 12),
        ])


@main.command()
@click.argument("image_id")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="Where to write the image (default: <id>)")
@_token_option
def get(image_id: str, output: Optional[Path], token: Optional[str]):
    """Download one of your images."""
    _run(_get_impl(image_id, output or Path(image_id), _token_from_ctx(token)))


async def _get_impl(image_id: str, output: Path, token: str):
    async with _client() as c:
        r = _check(await c.get(f"/api/dogs/{image_id}", headers=_auth(token)))
        output.write_bytes(r.content)
        click.echo(f"Saved {len(r.content)} bytes to {output}")


@main.command()
@click.argument("image_id")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_token_option
def update(image_id: str, file: Path, token: Optional[str]):
    """Replace one of your images."""
    _run(_update_impl(image_id, file, _token_from_ctx(token)))


async def _update_impl(image_id: str, file: Path, token: str):
    async with _client() as c:
        r = _check(await c.put(
            f"/api/dogs/{image_id}", files=_image_part(file), headers=_auth(token)
        ))
        click.secho(r.json()["message"], fg="green")


@main.command()
@click.argument("image_id")
@_token_option
def delete(image_id: str, token: Optional[str]):
    """Delete one of your images."""
    _run(_delete_impl(image_id, _token_from_ctx(token)))


async def _delete_impl(image_id: str, token: str):
    async with _client() as c:
        r = _check(await c.delete(f"/api/dogs/{image_id}", headers=_auth(token)))
        click.secho(r.json()["message"], fg="green")


if __name__ == "__main__":
    main()
