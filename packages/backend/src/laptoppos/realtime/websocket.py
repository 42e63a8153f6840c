"""WebSocket endpoint — /ws for every LaptopPOS browser tab.

Learn: The handler is deliberately dumb. It registers the socket with the
app's RealtimeHub (which sends the welcome), hands every incoming frame
to the hub (which understands `auth`), and unregisters on disconnect.
All outbound data_update traffic is pushed by the hub, not from here.
"""

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from laptoppos.realtime.hub import RealtimeHub

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws")
async def realtime_websocket(websocket: WebSocket):
    hub: RealtimeHub = websocket.app.state.hub

    await websocket.accept()
    client = await hub.register(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            await hub.handle_message(client, data)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning("realtime.client_error", client_id=client.client_id, error=str(e))
    finally:
        hub.unregister(client.client_id)
