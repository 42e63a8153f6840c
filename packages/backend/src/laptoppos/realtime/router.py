"""Inbound message router — dispatch parsed messages by `type`.

Learn: Only data_update carries work. connected/auth_success are handshake
acknowledgements and are just logged. Unknown types are logged too; the
server may grow new message types before clients are redeployed, so an
unrecognized type must never raise.
"""

from typing import Optional

import structlog

from laptoppos.realtime.invalidation import CacheController, invalidate_for_resource
from laptoppos.realtime.messages import AUTH_SUCCESS, CONNECTED, DATA_UPDATE, InboundMessage
from laptoppos.realtime.notifications import Notifier, notify_data_update

logger = structlog.get_logger()


class MessageRouter:
    """Routes InboundMessages to the cache and the notifier."""

    def __init__(self, cache: Optional[CacheController], notifier: Optional[Notifier] = None):
        self.cache = cache
        self.notifier = notifier

    def dispatch(self, message: InboundMessage) -> None:
        if message.type == CONNECTED:
            logger.info("realtime.server_welcome", client_id=message.client_id)
        elif message.type == AUTH_SUCCESS:
            logger.info("realtime.authenticated", client_id=message.client_id)
        elif message.type == DATA_UPDATE:
            self._handle_data_update(message)
        else:
            logger.info("realtime.unknown_message", message_type=message.type)

    def _handle_data_update(self, message: InboundMessage) -> None:
        if self.cache is None or not message.resource:
            return

        logger.info(
            "realtime.data_update",
            resource=message.resource,
            action=message.action,
            entity_id=message.id,
        )
        invalidate_for_resource(message.resource, self.cache)

        if self.notifier is not None and message.action:
            notify_data_update(self.notifier, message.resource, message.action)
