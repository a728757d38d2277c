"""Real-time delivery of notifications over registered WebSocket channels."""

import logging
from enum import StrEnum
from typing import Any

from fastapi import WebSocketDisconnect

from househunt.schemas.realtime import NotificationMessage, NotificationPayload, dump_outbound
from househunt.services.connections import ConnectionRegistry

logger = logging.getLogger(__name__)


class NotificationEventType(StrEnum):
    """Event types that fan out to collaborators."""

    APARTMENT_CREATED = "apartment_created"
    COMMENT_CREATED = "comment_created"
    FAVORITE_CREATED = "favorite_created"


class RealtimeDispatcher:
    """Pushes notification frames to every open channel of a user.

    Delivery is best-effort and at most once per open channel: no queueing,
    no retry, no acknowledgement.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self.registry = registry

    @staticmethod
    def encode(payload: NotificationPayload | dict[str, Any]) -> str:
        if not isinstance(payload, NotificationPayload):
            payload = NotificationPayload.model_validate(payload)
        return dump_outbound(NotificationMessage(data=payload))

    async def send_to_user(self, user_id: str, payload: NotificationPayload | dict[str, Any]) -> int:
        """Send a notification frame to all of ``user_id``'s open channels.

        Returns the number of channels written to. Offline users are a no-op.
        """
        channels = self.registry.channels_for(user_id)
        if not channels:
            logger.debug(f"No active connections for user {user_id}")
            return 0

        message = self.encode(payload)
        sent = 0
        for channel in channels:
            if not channel.is_open:
                continue
            try:
                await channel.send_text(message)
                sent += 1
            except (WebSocketDisconnect, RuntimeError, ConnectionError) as e:
                # Mid-close sockets drop the frame; the close callback cleans up
                logger.warning(f"Dropped notification for user {user_id}: {e}")

        logger.debug(f"Sent notification to {sent}/{len(channels)} connections for user {user_id}")
        return sent

    async def broadcast_except(
        self, excluded_user_id: str | None, payload: NotificationPayload | dict[str, Any]
    ) -> int:
        """Send a notification frame to every connected user but one."""
        total = 0
        for user_id in self.registry.user_ids():
            if user_id == excluded_user_id:
                continue
            total += await self.send_to_user(user_id, payload)

        logger.info(f"Broadcast notification to {total} total connections")
        return total
