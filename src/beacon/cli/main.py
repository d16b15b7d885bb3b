"""Beacon CLI — send notifications, page through history, run the server.

Usage:
    beacon send 42 like "Ada liked your post"    # Create + push a notification
    beacon list 42 --page 2 --limit 10           # Newest-first history
    beacon health                                # Server + store status
    beacon serve --port 8000                     # Run the API under uvicorn
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys

import click
import httpx

from beacon import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("BEACON_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Beacon server."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

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


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "-"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def _fail(response: httpx.Response) -> None:
    """Print the server's error detail and exit non-zero."""
    try:
        detail = response.json().get("detail", response.text)
    except ValueError:
        detail = response.text
    click.secho(f"Error {response.status_code}: {detail}", fg="red", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="beacon")
def main():
    """Beacon — per-user notifications with real-time delivery."""


# ---------------------------------------------------------------------------
# beacon send
# ---------------------------------------------------------------------------


@main.command()
@click.argument("user_id")
@click.argument("type")
@click.argument("message")
def send(user_id: str, type: str, message: str):
    """Create a notification for USER_ID and push it to their live sessions.

    TYPE is a short tag (like, comment, follow, message, ...).
    """
    _run(_send_impl(user_id, type, message))


async def _send_impl(user_id: str, type: str, message: str):
    async with _client() as c:
        r = await c.post("/api/v1/notifications", json={
            "userId": user_id,
            "type": type,
            "message": message,
        })
        if r.status_code != 201:
            _fail(r)
        n = r.json()
        click.secho(f"Notification #{n['id']} stored for user {n['userId']}", fg="green")
        click.echo(f"  {n['type']}: {n['message']}")
        click.echo(f"  created {n['createdAt']}")


# ---------------------------------------------------------------------------
# beacon list
# ---------------------------------------------------------------------------


@main.command("list")
@click.argument("user_id")
@click.option("--page", "-p", default=1, help="Page number (1-based)")
@click.option("--limit", "-l", default=20, help="Page size")
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON response")
def list_(user_id: str, page: int, limit: int, as_json: bool):
    """List notifications for USER_ID, most recent first."""
    _run(_list_impl(user_id, page, limit, as_json))


async def _list_impl(user_id: str, page: int, limit: int, as_json: bool):
    async with _client() as c:
        r = await c.get(
            f"/api/v1/notifications/{user_id}",
            params={"page": page, "limit": limit},
        )
        if r.status_code != 200:
            _fail(r)
        data = r.json()

    if as_json:
        click.echo(_pretty_json(data))
        return

    pagination = data["pagination"]
    notifications = data["notifications"]
    if not notifications:
        click.echo(f"No notifications for user {user_id} (total {pagination['total']}).")
        return

    click.secho(
        f"Notifications for user {user_id}, page {pagination['page']}, "
        f"{len(notifications)} of {pagination['total']}:",
        bold=True,
    )
    click.echo()
    _print_table(notifications, [
        ("ID", "id", 6),
        ("Type", "type", 10),
        ("Read", "isRead", 5),
        ("Created", "createdAt", 26),
        ("Message", "message", 60),
    ])


# ---------------------------------------------------------------------------
# beacon health
# ---------------------------------------------------------------------------


@main.command()
def health():
    """Show server health, store connectivity and live connection counts."""
    _run(_health_impl())


async def _health_impl():
    async with _client() as c:
        r = await c.get("/api/v1/health")
        if r.status_code != 200:
            _fail(r)
        data = r.json()
    color = "green" if data.get("status") == "healthy" else "yellow"
    click.secho(f"Status: {data.get('status')}", fg=color, bold=True)
    click.echo(_pretty_json(data))


# ---------------------------------------------------------------------------
# beacon serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default BEACON_HOST)")
@click.option("--port", default=None, type=int, help="Port (default BEACON_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the Beacon API and WebSocket server."""
    import uvicorn

    from beacon.config import settings

    uvicorn.run(
        "beacon.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


if __name__ == "__main__":
    main()
