"""Real-time data invalidation — server hub + client connection.

Learn: Events flow in one direction:
1. API write → RealtimeHub.broadcast_to_tenant() (or Redis → relay → hub)
2. Hub → /ws → RealtimeConnection on each client
3. Client → MessageRouter → cache invalidation + toast

The server never pushes data the client renders directly; it only tells
the client which cached queries are now stale.
"""

from laptoppos.realtime.client import RealtimeConnection, SessionIdentity, build_ws_url
from laptoppos.realtime.hub import RealtimeHub
from laptoppos.realtime.invalidation import QueryCache, cache_keys_for, invalidate_for_resource
from laptoppos.realtime.messages import InboundMessage
from laptoppos.realtime.notifications import Toast, describe_change
from laptoppos.realtime.router import MessageRouter

__all__ = [
    "InboundMessage",
    "MessageRouter",
    "QueryCache",
    "RealtimeConnection",
    "RealtimeHub",
    "SessionIdentity",
    "Toast",
    "build_ws_url",
    "cache_keys_for",
    "describe_change",
    "invalidate_for_resource",
]
