"""Durable notification records: create, list and mark read."""

import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from househunt.models import Apartment, Notification, User
from househunt.schemas.notification import NotificationResponse
from househunt.services.auth import get_user_display_name
from househunt.services.errors import PersistenceError

logger = logging.getLogger(__name__)


class NotificationRecordService:
    """Service for the ``notifications`` table.

    The read flag only ever moves from False to True; there is no way to mark
    a notification unread again.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def create_notification(
        self,
        recipient_id: str,
        actor_id: str,
        apartment_id: str,
        type: str,
        title: str,
        message: str,
    ) -> Notification:
        """Persist one notification and return it with id and timestamp set.

        Raises:
            PersistenceError: the insert or commit failed. Not retried.
        """
        notification = Notification(
            user_id=recipient_id,
            actor_id=actor_id,
            apartment_id=apartment_id,
            type=str(type),
            title=title,
            message=message,
            is_read=False,
        )
        try:
            self.db.add(notification)
            self.db.commit()
            self.db.refresh(notification)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(
                f"Failed to create notification for user {recipient_id}: {e}"
            ) from e
        return notification

    def list_for_user(self, user_id: str, limit: int | None = None) -> list[NotificationResponse]:
        """Get a user's notifications, newest first, with apartment label and actor name."""
        actor = aliased(User)
        query = (
            self.db.query(Notification, Apartment.label, actor)
            .outerjoin(Apartment, Apartment.id == Notification.apartment_id)
            .outerjoin(actor, actor.id == Notification.actor_id)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)

        results = []
        for notification, apartment_label, actor_user in query.all():
            response = NotificationResponse.model_validate(notification)
            response.apartment_label = apartment_label
            response.actor_name = get_user_display_name(actor_user) if actor_user else None
            results.append(response)
        return results

    def unread_count(self, user_id: str) -> int:
        """Count a user's unread notifications."""
        return (
            self.db.query(func.count(Notification.id))
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .scalar()
            or 0
        )

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        """Mark one of the user's notifications read.

        Scoped to the owning recipient so nobody can touch someone else's
        notification. Returns True if a row changed; a missing or already-read
        notification is a no-op.
        """
        try:
            updated = (
                self.db.query(Notification)
                .filter(
                    Notification.id == notification_id,
                    Notification.user_id == user_id,
                    Notification.is_read.is_(False),
                )
                .update({Notification.is_read: True}, synchronize_session="fetch")
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to mark notification {notification_id} read: {e}") from e
        return updated > 0

    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of the user read. Returns rows changed."""
        try:
            updated = (
                self.db.query(Notification)
                .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
                .update({Notification.is_read: True}, synchronize_session="fetch")
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to mark notifications read for {user_id}: {e}") from e
        logger.debug(f"Marked {updated} notifications read for user {user_id}")
        return updated
