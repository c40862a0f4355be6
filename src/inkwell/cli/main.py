"""Inkwell CLI — run the server, set up the database, peek at the API.

Usage:
    inkwell serve --reload                 # Run the API with uvicorn
    inkwell init-db                        # Create tables (dev; use alembic in prod)
    inkwell health                         # Check a running server
    inkwell posts                          # List posts on a running server
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("INKWELL_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Inkwell backend."""
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


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="inkwell", prog_name="inkwell")
def main():
    """Inkwell — blogging backend."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: INKWELL_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: INKWELL_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes (dev)")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server with uvicorn."""
    import uvicorn

    from inkwell.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "inkwell.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
@click.option("--database-url", default=None, help="Override INKWELL_DATABASE_URL")
def init_db(database_url: Optional[str]):
    """Create all tables directly from the models.

    Meant for local development and SQLite. Production databases are
    migrated with `alembic upgrade head`.
    """
    _run(_init_db_impl(database_url))
    click.secho("Tables created.", fg="green")


async def _init_db_impl(database_url: Optional[str]):
    from sqlalchemy.ext.asyncio import create_async_engine

    from inkwell.config import get_settings
    from inkwell.db.models import Base

    url = database_url or get_settings().database_url
    engine = create_async_engine(url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


@main.command()
def health():
    """Check a running server's health endpoint."""
    data = _run(_get_json("/api/health"))
    color = "green" if data.get("status") == "healthy" else "yellow"
    click.secho(f"Status:   {data.get('status')}", fg=color, bold=True)
    click.echo(f"Version:  {data.get('version')}")
    click.echo(f"Database: {data.get('database')}")
    click.echo(f"Storage:  {data.get('storage')}")


@main.command()
@click.option("--limit", "-l", default=20, help="Max rows")
def posts(limit: int):
    """List posts on a running server, newest first."""
    data = _run(_get_json("/api/posts"))
    if not data:
        click.echo("No posts.")
        return
    rows = [
        {
            "id": p["id"],
            "title": p["title"],
            "author": (p.get("author") or {}).get("name", "—"),
            "tags": ", ".join(p.get("tags") or []),
            "created": str(p.get("created_at", ""))[:19],
        }
        for p in data[:limit]
    ]
    _print_table(
        rows,
        [
            ("ID", "id", 6),
            ("TITLE", "title", 40),
            ("AUTHOR", "author", 20),
            ("TAGS", "tags", 24),
            ("CREATED", "created", 19),
        ],
    )


async def _get_json(path: str):
    async with _client() as c:
        try:
            r = await c.get(path)
        except httpx.ConnectError:
            click.secho(f"Error: backend not reachable at {_api_url()}", fg="red", err=True)
            sys.exit(1)
        r.raise_for_status()
        return r.json()


if __name__ == "__main__":
    main()
