"""WebSocket endpoint for real-time notifications."""

import asyncio
import contextlib
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from househunt.api.dependencies import get_ws_connection_registry
from househunt.config import Settings, get_settings
from househunt.schemas.realtime import (
    AuthenticatedMessage,
    AuthenticateMessage,
    PingMessage,
    PongMessage,
    dump_outbound,
    parse_inbound,
)
from househunt.services.auth import decode_access_token
from househunt.services.connections import Channel, ConnectionRegistry

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


def token_matches(message: AuthenticateMessage) -> bool:
    """Check the optional bearer token carried by an authenticate frame."""
    if not message.token:
        return False
    payload = decode_access_token(message.token)
    return bool(payload) and str(payload.get("sub")) == message.user_id


async def handle_client_message(
    raw: str | bytes,
    channel: Channel,
    registry: ConnectionRegistry,
    settings: Settings,
) -> str | None:
    """Process one inbound frame.

    Returns the user id the channel authenticated as, if this frame did so.
    Malformed or unknown frames are logged and ignored; they never close the
    connection.
    """
    try:
        message = parse_inbound(raw)
    except ValidationError as e:
        logger.warning(f"Ignoring invalid WebSocket message: {e.error_count()} error(s)")
        return None

    if isinstance(message, PongMessage):
        return None  # Keepalive acknowledgment

    if settings.ws_require_token and not token_matches(message):
        logger.warning(f"Rejected WebSocket authentication for user {message.user_id}")
        return None

    registry.register(message.user_id, channel)
    await channel.send_text(dump_outbound(AuthenticatedMessage(user_id=message.user_id)))
    return message.user_id


@router.websocket("/ws")
async def websocket_notifications(
    websocket: WebSocket,
    registry: Annotated[ConnectionRegistry, Depends(get_ws_connection_registry)],
) -> None:
    """WebSocket endpoint for notification delivery.

    The client identifies itself with an ``authenticate`` frame; from then on
    the channel receives ``notification`` frames for that user until it
    closes.
    """
    settings = get_settings()
    await websocket.accept()
    channel = Channel(websocket)
    user_id: str | None = None
    logger.info("New WebSocket connection")

    async def handle_ping() -> None:
        """Send periodic pings to keep connection alive."""
        ping = dump_outbound(PingMessage())
        while channel.is_open:
            await asyncio.sleep(settings.ws_ping_interval_seconds)
            try:
                await channel.send_text(ping)
            except (WebSocketDisconnect, RuntimeError, ConnectionError):
                break

    ping_task = asyncio.create_task(handle_ping())
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text")
            if raw is None:
                raw = frame.get("bytes") or b""
            authenticated_as = await handle_client_message(raw, channel, registry, settings)
            if authenticated_as is not None:
                user_id = authenticated_as

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}", exc_info=True)
    finally:
        ping_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await ping_task
        # Fires the registry's close callback
        channel.mark_closed()
        logger.info(f"WebSocket connection closed: user={user_id}")
