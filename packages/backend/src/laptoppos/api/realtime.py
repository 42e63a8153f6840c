"""Realtime API — inspect connected clients and push data_update events.

Learn: POST /realtime/broadcast is what other LaptopPOS services call after
a write. With Redis up, the event goes through the relay so clients on
every server process receive it. Without Redis, it goes straight into this
process's hub.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field

from laptoppos.realtime import pubsub
from laptoppos.realtime.hub import RealtimeHub
from laptoppos.realtime.messages import DataUpdateEvent

logger = structlog.get_logger()
router = APIRouter(prefix="/realtime")


class BroadcastRequest(DataUpdateEvent):
    tenant_id: Optional[str] = Field(
        None, description="Target tenant (None = every connected client)"
    )


class BroadcastResult(BaseModel):
    sent: int = Field(..., description="Clients reached by this process (0 when relayed)")
    relayed: bool = Field(..., description="True if published through Redis")


class ClientCount(BaseModel):
    tenant_id: Optional[str]
    count: int


def _hub(request: Request) -> RealtimeHub:
    return request.app.state.hub


@router.get("/clients", response_model=ClientCount)
async def connected_clients(request: Request, tenant_id: Optional[str] = Query(None)):
    """Number of open /ws clients, optionally for one tenant."""
    return ClientCount(
        tenant_id=tenant_id,
        count=_hub(request).connected_clients_count(tenant_id),
    )


@router.post("/broadcast", response_model=BroadcastResult, status_code=202)
async def broadcast(body: BroadcastRequest, request: Request):
    """Push a data_update to a tenant's clients (or everyone)."""
    event = body.model_dump(exclude={"tenant_id"}, exclude_none=True)

    if pubsub.redis_ready():
        try:
            await pubsub.publish_data_update(body.tenant_id, event)
            return BroadcastResult(sent=0, relayed=True)
        except Exception as e:
            logger.warning("realtime.publish_failed", error=str(e))

    sent = await _hub(request).broadcast_to_tenant(body.tenant_id, event)
    return BroadcastResult(sent=sent, relayed=False)
