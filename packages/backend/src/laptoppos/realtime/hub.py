"""Server-side hub — registry of open /ws clients and tenant fan-out.

Learn: A client connects anonymously, then sends {"type": "auth"} with its
tenant and user. Until then it has no tenant and only receives global
broadcasts (tenant_id None or empty). broadcast_to_tenant() is what API handlers
call after a write so every other tab of that shop refetches.
"""

import json
import random
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from fastapi import WebSocket

from laptoppos.realtime.messages import AUTH_SUCCESS, CONNECTED, DATA_UPDATE

logger = structlog.get_logger()

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_client_id() -> str:
    """client_<epoch ms>_<9 base36 chars>"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"client_{int(time.time() * 1000)}_{suffix}"


@dataclass
class ClientConnection:
    client_id: str
    websocket: WebSocket
    tenant_id: Optional[str] = None
    user_id: Optional[str] = None


class RealtimeHub:
    """In-process registry of connected clients. One per app instance."""

    def __init__(self):
        self.clients: dict[str, ClientConnection] = {}

    async def register(self, websocket: WebSocket) -> ClientConnection:
        """Track a freshly accepted socket and send the welcome message."""
        client = ClientConnection(client_id=generate_client_id(), websocket=websocket)
        self.clients[client.client_id] = client
        logger.info("realtime.client_connected", client_id=client.client_id)

        await websocket.send_text(json.dumps({
            "type": CONNECTED,
            "clientId": client.client_id,
            "message": "Real-time connection established",
        }))
        return client

    def unregister(self, client_id: str) -> None:
        if self.clients.pop(client_id, None) is not None:
            logger.info("realtime.client_disconnected", client_id=client_id)

    async def handle_message(self, client: ClientConnection, raw: str) -> None:
        """Process one frame from a client. Only `auth` is understood."""
        try:
            message = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("realtime.bad_client_message", client_id=client.client_id, error=str(e))
            return

        if not isinstance(message, dict) or message.get("type") != "auth":
            return

        client.tenant_id = message.get("tenantId")
        client.user_id = message.get("userId")
        logger.info(
            "realtime.client_authenticated",
            client_id=client.client_id,
            tenant_id=client.tenant_id,
            user_id=client.user_id,
        )
        await client.websocket.send_text(json.dumps({
            "type": AUTH_SUCCESS,
            "clientId": client.client_id,
        }))

    async def broadcast_to_tenant(self, tenant_id: Optional[str], event: dict[str, Any]) -> int:
        """Send a data_update to a tenant's clients (all clients if tenant_id is empty).

        Returns how many clients the message reached. Clients whose send
        fails are dropped from the registry.
        """
        payload = json.dumps({
            "type": DATA_UPDATE,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **event,
        }, default=str)

        sent = 0
        for client_id, client in list(self.clients.items()):
            if tenant_id and client.tenant_id != tenant_id:
                continue
            try:
                await client.websocket.send_text(payload)
                sent += 1
            except Exception as e:
                logger.warning("realtime.send_failed", client_id=client_id, error=str(e))
                self.clients.pop(client_id, None)

        logger.info(
            "realtime.broadcast",
            tenant_id=tenant_id,
            resource=event.get("resource"),
            action=event.get("action"),
            sent=sent,
        )
        return sent

    async def broadcast(self, event: dict[str, Any]) -> int:
        """Global update — every connected client regardless of tenant."""
        return await self.broadcast_to_tenant(None, event)

    def connected_clients_count(self, tenant_id: Optional[str] = None) -> int:
        if tenant_id is None:
            return len(self.clients)
        return sum(1 for c in self.clients.values() if c.tenant_id == tenant_id)
