"""LaptopPOS realtime CLI — watch live updates and poke the hub.

Usage:
    laptoppos listen -t shop-1 -u kasir-01        # Connect like a browser tab, print toasts
    laptoppos clients                             # Connected /ws clients (all tenants)
    laptoppos clients -t shop-1                   # ... for one tenant
    laptoppos broadcast products create -t shop-1 # Push a data_update
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
import time
from typing import Optional

import click
import httpx

from laptoppos import __version__
from laptoppos.log import configure_logging
from laptoppos.realtime.client import RealtimeConnection, SessionIdentity
from laptoppos.realtime.invalidation import QueryCache
from laptoppos.realtime.messages import ACTIONS
from laptoppos.realtime.notifications import Toast

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:5000"


def _api_url() -> str:
    return os.environ.get("LAPTOPPOS_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the LaptopPOS server."""
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


def _tenant_from_ctx(tenant_id: Optional[str], required: bool = False) -> Optional[str]:
    """Resolve tenant from flag or LAPTOPPOS_TENANT_ID env var."""
    tid = tenant_id or os.environ.get("LAPTOPPOS_TENANT_ID")
    if required and not tid:
        click.secho(
            "Error: --tenant-id required (or set LAPTOPPOS_TENANT_ID env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tid


def _print_toast(toast: Toast) -> None:
    color = "red" if toast.variant == "destructive" else "green"
    stamp = time.strftime("%H:%M:%S")
    click.echo(f"[{stamp}] {click.style(toast.title, fg=color, bold=True)}: {toast.description}")


class _EchoCache(QueryCache):
    """QueryCache that also prints every invalidated key."""

    def invalidate(self, key: str) -> None:
        super().invalidate(key)
        click.secho(f"           invalidated {key}", dim=True)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="laptoppos")
def main():
    """LaptopPOS realtime — live data-update tooling."""


# ---------------------------------------------------------------------------
# laptoppos listen
# ---------------------------------------------------------------------------


@main.command()
@click.option("--tenant-id", "-t", help="Tenant to authenticate as (or set LAPTOPPOS_TENANT_ID)")
@click.option("--user-id", "-u", required=True, help="User to authenticate as")
@click.option("--url", help="Server base URL (default: LAPTOPPOS_API_URL)")
def listen(tenant_id: Optional[str], user_id: str, url: Optional[str]):
    """Connect to /ws and print every toast and invalidated cache key."""
    configure_logging()
    tid = _tenant_from_ctx(tenant_id, required=True)
    base_url = url or _api_url()

    connection = RealtimeConnection(SessionIdentity(tenant_id=tid, user_id=user_id), base_url)
    connection.connect(_EchoCache(), _print_toast)
    click.echo(f"Listening on {base_url} as {user_id}@{tid} (Ctrl+C to stop)")

    try:
        while not connection.permanently_lost:
            time.sleep(0.5)
    except KeyboardInterrupt:
        click.echo()
    finally:
        connection.disconnect()

    if connection.permanently_lost:
        sys.exit(1)


# ---------------------------------------------------------------------------
# laptoppos clients
# ---------------------------------------------------------------------------


@main.command()
@click.option("--tenant-id", "-t", help="Only count this tenant's clients")
def clients(tenant_id: Optional[str]):
    """Show how many /ws clients are connected."""
    _run(_clients_impl(_tenant_from_ctx(tenant_id)))


async def _clients_impl(tenant_id: Optional[str]):
    params = {"tenant_id": tenant_id} if tenant_id else {}
    async with _client() as c:
        r = await c.get("/api/v1/realtime/clients", params=params)
        r.raise_for_status()
        data = r.json()

    scope = f"tenant {data['tenant_id']}" if data["tenant_id"] else "all tenants"
    click.echo(f"{data['count']} client(s) connected ({scope})")


# ---------------------------------------------------------------------------
# laptoppos broadcast
# ---------------------------------------------------------------------------


@main.command()
@click.argument("resource")
@click.argument("action", type=click.Choice(ACTIONS))
@click.option("--tenant-id", "-t", help="Target tenant (omit for every client)")
@click.option("--id", "entity_id", help="Identifier of the changed entity")
@click.option("--data", "data_json", help="JSON payload to attach")
def broadcast(resource: str, action: str, tenant_id: Optional[str],
              entity_id: Optional[str], data_json: Optional[str]):
    """Push a data_update for RESOURCE with ACTION."""
    body: dict = {"resource": resource, "action": action}
    tid = _tenant_from_ctx(tenant_id)
    if tid:
        body["tenant_id"] = tid
    if entity_id:
        body["id"] = entity_id
    if data_json:
        try:
            body["data"] = json.loads(data_json)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"not valid JSON: {e}", param_hint="--data")

    _run(_broadcast_impl(body))


async def _broadcast_impl(body: dict):
    async with _client() as c:
        r = await c.post("/api/v1/realtime/broadcast", json=body)
        r.raise_for_status()
        result = r.json()

    if result["relayed"]:
        click.secho(f"{body['resource']} {body['action']} published via Redis", fg="green")
    else:
        click.secho(
            f"{body['resource']} {body['action']} sent to {result['sent']} client(s)",
            fg="green",
        )


if __name__ == "__main__":
    main()
