"""Wire messages exchanged over /ws.

Learn: The protocol is tiny and JSON-only:

  server → client   {"type": "connected", "clientId": ..., "message": ...}
  client → server   {"type": "auth", "tenantId": ..., "userId": ...}
  server → client   {"type": "auth_success", "clientId": ...}
  server → client   {"type": "data_update", "resource": ..., "action": ...,
                     "data": ..., "id": ..., "timestamp": ...}

Field names on the wire are camelCase because the browser client reads
them directly; the models expose snake_case attributes via aliases.
"""

import json
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ─── Message types ───────────────────────────────────────

CONNECTED = "connected"
AUTH = "auth"
AUTH_SUCCESS = "auth_success"
DATA_UPDATE = "data_update"

# ─── Actions ─────────────────────────────────────────────

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_DELETE = "delete"

ACTIONS = (ACTION_CREATE, ACTION_UPDATE, ACTION_DELETE)


class InboundMessage(BaseModel):
    """Anything the server pushes to a client.

    `type` is the discriminator. Unknown types still parse so the router
    can log and ignore them instead of failing the whole frame.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = ""
    resource: Optional[str] = None
    # Kept as a plain string: a server sending a new action must not make
    # the frame unparseable, the toast just falls back to the raw value.
    action: Optional[str] = None
    data: Any = None
    id: Optional[Union[str, int]] = None
    timestamp: Optional[str] = None
    client_id: Optional[str] = Field(None, alias="clientId")
    message: Optional[str] = None

    @field_validator("action", mode="before")
    @classmethod
    def action_as_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        # Rendered the way the browser would stringify it: 5 → "5", true → "true"
        return json.dumps(value)


class AuthMessage(BaseModel):
    """Sent once by the client right after the socket opens."""
    model_config = ConfigDict(populate_by_name=True)

    type: str = AUTH
    tenant_id: str = Field(..., alias="tenantId")
    user_id: str = Field(..., alias="userId")

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True)


class DataUpdateEvent(BaseModel):
    """A change to one resource, as published by the API layer."""
    resource: str = Field(..., min_length=1, description="Resource name, e.g. 'products'")
    action: Literal["create", "update", "delete"]
    data: Any = Field(None, description="Optional payload of the changed entity")
    id: Optional[Union[str, int]] = Field(None, description="Identifier of the changed entity")
