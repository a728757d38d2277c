"""In-process registry of live WebSocket channels keyed by user id."""

import logging
from collections.abc import Callable

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)

CloseCallback = Callable[["Channel"], None]


class Channel:
    """One accepted WebSocket connection.

    Close callbacks fire exactly once, whether the socket closed normally or
    errored out; the endpoint calls ``mark_closed`` from its ``finally`` block.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self._closed = False
        self._close_callbacks: list[CloseCallback] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_open(self) -> bool:
        """Check whether frames can still be written to the socket."""
        if self._closed:
            return False
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def add_close_callback(self, callback: CloseCallback) -> None:
        """Run ``callback(channel)`` when the channel closes.

        If the channel is already closed the callback runs immediately. Adding
        a callback that is already registered is a no-op.
        """
        if self._closed:
            callback(self)
            return
        if callback not in self._close_callbacks:
            self._close_callbacks.append(callback)

    def mark_closed(self) -> None:
        """Flag the channel closed and fire its close callbacks once."""
        if self._closed:
            return
        self._closed = True
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            try:
                callback(self)
            except Exception as e:
                logger.error(f"Close callback failed: {e}", exc_info=True)

    async def send_text(self, message: str) -> None:
        await self.websocket.send_text(message)

    def __repr__(self) -> str:
        client = getattr(self.websocket, "client", None)
        return f"<Channel(client={client}, closed={self._closed})>"


class ConnectionRegistry:
    """Maps user id -> set of live channels.

    A channel belongs to at most one user, and users with no channels have no
    entry. Mutations never await, so they cannot interleave on the event loop.
    """

    def __init__(self) -> None:
        self._connections: dict[str, set[Channel]] = {}
        self._owners: dict[Channel, str] = {}

    def register(self, user_id: str, channel: Channel) -> None:
        """Attach ``channel`` to ``user_id`` and arrange removal on close."""
        current_owner = self._owners.get(channel)
        if current_owner == user_id:
            return
        if current_owner is not None:
            # Re-authenticated as someone else: move the channel
            self.unregister(current_owner, channel)

        self._connections.setdefault(user_id, set()).add(channel)
        self._owners[channel] = user_id
        channel.add_close_callback(self._on_channel_closed)

        logger.info(
            f"User {user_id} connected via WebSocket. "
            f"Total connections: {len(self._connections.get(user_id, ()))}"
        )

    def _on_channel_closed(self, channel: Channel) -> None:
        owner = self._owners.get(channel)
        if owner is not None:
            self.unregister(owner, channel)

    def unregister(self, user_id: str, channel: Channel) -> None:
        """Detach ``channel`` from ``user_id``. Missing entries are ignored."""
        channels = self._connections.get(user_id)
        if channels is None or channel not in channels:
            return
        channels.discard(channel)
        if self._owners.get(channel) == user_id:
            del self._owners[channel]
        if not channels:
            del self._connections[user_id]
        logger.debug(f"Unregistered channel for user {user_id}")

    def channels_for(self, user_id: str) -> list[Channel]:
        """Snapshot of a user's channels, safe to iterate across awaits."""
        return list(self._connections.get(user_id, ()))

    def user_ids(self) -> list[str]:
        return list(self._connections)

    def is_connected(self, user_id: str) -> bool:
        return user_id in self._connections

    def count_users(self) -> int:
        return len(self._connections)

    def count_connections(self) -> int:
        return sum(len(channels) for channels in self._connections.values())
