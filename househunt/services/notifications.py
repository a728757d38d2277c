"""Notification fan-out for collaborator events.

Write paths call :meth:`NotificationOrchestrator.notify_event` after their own
commit. The fan-out persists one record per recipient, pushes it over any live
WebSocket and optionally queues a browser push. Nothing it does can fail the
write path that triggered it.

Database writes and broker publishes block, so they run in worker threads
with a session per recipient; the event loop only does the WebSocket writes.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy.orm import Session

from househunt.config import Settings, get_settings
from househunt.database import SessionLocal
from househunt.models import Notification
from househunt.schemas.realtime import NotificationPayload
from househunt.services.auth import get_all_users
from househunt.services.connections import ConnectionRegistry
from househunt.services.notification_records import NotificationRecordService
from househunt.services.push import build_push_payload
from househunt.services.realtime import RealtimeDispatcher

logger = logging.getLogger(__name__)

PushEnqueue = Callable[[str, dict[str, Any]], Any]
SessionFactory = Callable[[], Session]

COMMENT_PREVIEW_LENGTH = 50


def truncate_text(text: str, limit: int = COMMENT_PREVIEW_LENGTH) -> str:
    """Cap free text for a notification message: first ``limit`` chars + '...'."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def notification_payload(notification: Notification) -> NotificationPayload:
    """Wire payload for a stored notification."""
    return NotificationPayload(
        id=notification.id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        created_at=notification.created_at,
        apartment_id=notification.apartment_id,
    )


class NotificationOrchestrator:
    """Resolves recipients for an event and fans the notification out."""

    def __init__(
        self,
        dispatcher: RealtimeDispatcher,
        registry: ConnectionRegistry,
        session_factory: SessionFactory = SessionLocal,
        push_enqueue: PushEnqueue | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.registry = registry
        self.session_factory = session_factory
        self.push_enqueue = push_enqueue
        self.settings = settings or get_settings()

    def _stored_user_ids(self) -> list[str]:
        db = self.session_factory()
        try:
            return [user.id for user in get_all_users(db)]
        finally:
            db.close()

    def _store(self, **fields: Any) -> Notification:
        """Create one record in its own session. Runs in a worker thread."""
        db = self.session_factory()
        try:
            return NotificationRecordService(db).create_notification(**fields)
        finally:
            db.close()

    async def resolve_recipients(self, actor_id: str, exclude_actor: bool = True) -> list[str]:
        """User ids that should receive a notification for ``actor_id``'s event.

        The ``connected`` policy only targets users with a live connection, so
        offline users never get a stored record for the event.
        """
        if self.settings.notification_recipient_policy == "all_users":
            candidates = await asyncio.to_thread(self._stored_user_ids)
        else:
            candidates = self.registry.user_ids()

        if exclude_actor:
            return [user_id for user_id in candidates if user_id != actor_id]
        return candidates

    async def _notify_recipient(
        self,
        semaphore: asyncio.Semaphore,
        recipient_id: str,
        type: str,
        actor_id: str,
        apartment_id: str,
        title: str,
        message: str,
    ) -> Notification:
        async with semaphore:
            notification = await asyncio.to_thread(
                self._store,
                recipient_id=recipient_id,
                actor_id=actor_id,
                apartment_id=apartment_id,
                type=type,
                title=title,
                message=message,
            )

            # The record is stored; live delivery and push are best-effort
            try:
                await self.dispatcher.send_to_user(recipient_id, notification_payload(notification))
                if self.push_enqueue is not None and self.settings.push_configured:
                    await asyncio.to_thread(
                        self.push_enqueue,
                        recipient_id,
                        build_push_payload(
                            title=title,
                            message=message,
                            type=type,
                            apartment_id=apartment_id,
                            tag=f"{type}-{apartment_id}",
                        ),
                    )
            except Exception as e:
                logger.error(
                    f"Stored notification {notification.id} but delivery to user "
                    f"{recipient_id} failed: {e}",
                    exc_info=True,
                )
            return notification

    async def notify_event(
        self,
        type: str,
        actor_id: str,
        apartment_id: str,
        title: str,
        message: str,
        exclude_actor: bool = True,
    ) -> list[Notification]:
        """Create and deliver one notification per recipient.

        Recipients are processed concurrently up to
        ``notification_fanout_limit``. A failure for one recipient is logged
        and does not affect the others; this method never raises.

        Returns:
            The notifications that were stored.
        """
        type = str(type)
        try:
            recipients = await self.resolve_recipients(actor_id, exclude_actor)
        except Exception as e:
            logger.error(f"Could not resolve recipients for {type}: {e}", exc_info=True)
            return []

        if not recipients:
            logger.info("No users to notify")
            return []

        semaphore = asyncio.Semaphore(self.settings.notification_fanout_limit)
        results = await asyncio.gather(
            *(
                self._notify_recipient(
                    semaphore, recipient_id, type, actor_id, apartment_id, title, message
                )
                for recipient_id in recipients
            ),
            return_exceptions=True,
        )

        created = []
        for recipient_id, result in zip(recipients, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    f"Failed to notify user {recipient_id} of {type}: {result}",
                    exc_info=result,
                )
            else:
                created.append(result)

        logger.info(f"Created and sent {len(created)}/{len(recipients)} notifications for {type}")
        return created
