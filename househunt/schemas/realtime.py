"""WebSocket wire messages.

Every frame on ``/ws`` is a JSON object tagged by ``type``. Inbound and
outbound frames are closed unions so unknown shapes are rejected at the
channel boundary instead of leaking loosely-typed dicts into the services.
"""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class WireModel(BaseModel):
    """Base for wire messages: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(populate_by_name=True)


class NotificationPayload(WireModel):
    """Data block of a ``notification`` frame."""

    id: str
    type: str
    title: str
    message: str
    created_at: datetime | None = Field(default=None, alias="createdAt")
    apartment_id: str = Field(alias="apartmentId")


# Inbound (client -> server)


class AuthenticateMessage(WireModel):
    type: Literal["authenticate"]
    user_id: str = Field(alias="userId", min_length=1)
    token: str | None = None


class PongMessage(WireModel):
    type: Literal["pong"]


InboundMessage = Annotated[AuthenticateMessage | PongMessage, Field(discriminator="type")]
inbound_message_adapter: TypeAdapter[AuthenticateMessage | PongMessage] = TypeAdapter(
    InboundMessage
)


# Outbound (server -> client)


class AuthenticatedMessage(WireModel):
    type: Literal["authenticated"] = "authenticated"
    user_id: str = Field(alias="userId")


class NotificationMessage(WireModel):
    type: Literal["notification"] = "notification"
    data: NotificationPayload


class PingMessage(WireModel):
    type: Literal["ping"] = "ping"


OutboundMessage = Annotated[
    AuthenticatedMessage | NotificationMessage | PingMessage, Field(discriminator="type")
]


def parse_inbound(raw: str | bytes) -> AuthenticateMessage | PongMessage:
    """Parse one inbound frame. Raises ``pydantic.ValidationError`` on bad input."""
    return inbound_message_adapter.validate_json(raw)


def dump_outbound(message: AuthenticatedMessage | NotificationMessage | PingMessage) -> str:
    """Serialize an outbound frame with wire (camelCase) field names."""
    return message.model_dump_json(by_alias=True)
