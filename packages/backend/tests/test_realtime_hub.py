"""RealtimeHub tests — registry, auth handshake, tenant fan-out.

Learn: The hub only needs `send_text` from a websocket, so an AsyncMock
is enough to test it without a server.
"""

import json
from unittest.mock import AsyncMock

import pytest

from laptoppos.realtime.hub import RealtimeHub, generate_client_id


def _socket():
    ws = AsyncMock()
    ws.send_text = AsyncMock()
    return ws


def _sent(ws) -> list[dict]:
    return [json.loads(call.args[0]) for call in ws.send_text.await_args_list]


async def _authed(hub, tenant_id, user_id="u"):
    ws = _socket()
    client = await hub.register(ws)
    await hub.handle_message(
        client, json.dumps({"type": "auth", "tenantId": tenant_id, "userId": user_id})
    )
    return client, ws


def test_client_id_format():
    prefix, millis, suffix = generate_client_id().split("_")
    assert prefix == "client"
    assert millis.isdigit()
    assert len(suffix) == 9


@pytest.mark.asyncio
async def test_register_sends_welcome():
    hub = RealtimeHub()
    ws = _socket()

    client = await hub.register(ws)

    assert hub.connected_clients_count() == 1
    assert _sent(ws) == [{
        "type": "connected",
        "clientId": client.client_id,
        "message": "Real-time connection established",
    }]


@pytest.mark.asyncio
async def test_auth_records_identity_and_acknowledges():
    hub = RealtimeHub()
    client, ws = await _authed(hub, "shop-1", "kasir-01")

    assert client.tenant_id == "shop-1"
    assert client.user_id == "kasir-01"
    assert _sent(ws)[-1] == {"type": "auth_success", "clientId": client.client_id}


@pytest.mark.asyncio
async def test_garbage_and_unknown_frames_ignored():
    hub = RealtimeHub()
    ws = _socket()
    client = await hub.register(ws)

    await hub.handle_message(client, "{oops")
    await hub.handle_message(client, json.dumps({"type": "ping"}))
    await hub.handle_message(client, json.dumps(["auth"]))

    assert client.tenant_id is None
    assert len(_sent(ws)) == 1  # welcome only


@pytest.mark.asyncio
async def test_broadcast_to_tenant_only_reaches_that_tenant():
    hub = RealtimeHub()
    _, ws_a = await _authed(hub, "shop-1")
    _, ws_b = await _authed(hub, "shop-2")

    sent = await hub.broadcast_to_tenant("shop-1", {"resource": "products", "action": "update", "id": "7"})

    assert sent == 1
    update = _sent(ws_a)[-1]
    assert update["type"] == "data_update"
    assert update["resource"] == "products"
    assert update["action"] == "update"
    assert update["id"] == "7"
    assert "timestamp" in update
    assert _sent(ws_b)[-1]["type"] == "auth_success"


@pytest.mark.asyncio
async def test_global_broadcast_reaches_everyone_including_unauthenticated():
    hub = RealtimeHub()
    await _authed(hub, "shop-1")
    await _authed(hub, "shop-2")
    await hub.register(_socket())

    assert await hub.broadcast({"resource": "roles", "action": "create"}) == 3


@pytest.mark.asyncio
async def test_failed_send_drops_client():
    hub = RealtimeHub()
    client, ws = await _authed(hub, "shop-1")
    ws.send_text.side_effect = RuntimeError("socket gone")

    sent = await hub.broadcast_to_tenant("shop-1", {"resource": "users", "action": "delete"})

    assert sent == 0
    assert client.client_id not in hub.clients


@pytest.mark.asyncio
async def test_counts_per_tenant():
    hub = RealtimeHub()
    await _authed(hub, "shop-1")
    await _authed(hub, "shop-1")
    client, _ = await _authed(hub, "shop-2")

    assert hub.connected_clients_count() == 3
    assert hub.connected_clients_count("shop-1") == 2
    assert hub.connected_clients_count("shop-3") == 0

    hub.unregister(client.client_id)
    hub.unregister(client.client_id)
    assert hub.connected_clients_count("shop-2") == 0


@pytest.mark.asyncio
async def test_empty_tenant_reaches_everyone():
    hub = RealtimeHub()
    await _authed(hub, "shop-1")
    await _authed(hub, "shop-2")

    assert await hub.broadcast_to_tenant("", {"resource": "categories", "action": "update"}) == 2
