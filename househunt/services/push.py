"""Web push delivery to users' stored browser subscriptions."""

import json
import logging
from typing import Any

import requests
from pywebpush import WebPushException, webpush
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from househunt.config import Settings, get_settings
from househunt.models import PushSubscription
from househunt.services.auth import get_all_users
from househunt.services.errors import DeliveryError, PersistenceError

logger = logging.getLogger(__name__)

# Push service responses meaning the endpoint will never accept deliveries again
PERMANENT_FAILURE_STATUSES = frozenset({404, 410})

DEFAULT_ICON = "/icon-192.png"
DEFAULT_TAG = "househunt-notification"
DEFAULT_ACTIONS = [
    {"action": "view", "title": "View Details", "icon": DEFAULT_ICON},
    {"action": "dismiss", "title": "Dismiss"},
]


def build_push_payload(
    title: str,
    message: str,
    type: str | None = None,
    apartment_id: str | None = None,
    url: str | None = None,
    icon: str | None = None,
    badge: str | None = None,
    tag: str | None = None,
    require_interaction: bool = False,
    actions: list[dict[str, str]] | None = None,
) -> dict[str, Any]:
    """Build the JSON body the service worker renders."""
    return {
        "title": title,
        "message": message,
        "body": message,  # alias read by Notification API
        "type": type or "default",
        "apartmentId": apartment_id,
        "url": url or (f"/?apartment={apartment_id}" if apartment_id else "/"),
        "icon": icon or DEFAULT_ICON,
        "badge": badge or DEFAULT_ICON,
        "tag": tag or DEFAULT_TAG,
        "requireInteraction": require_interaction,
        "actions": actions if actions is not None else DEFAULT_ACTIONS,
    }


class PushService:
    """Sends web push notifications and prunes dead subscriptions."""

    def __init__(self, db: Session, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()

    @property
    def is_available(self) -> bool:
        return self.settings.push_configured

    def list_subscriptions(self, user_id: str) -> list[PushSubscription]:
        """Get all stored subscriptions for a user."""
        return self.db.query(PushSubscription).filter(PushSubscription.user_id == user_id).all()

    def subscribe(self, user_id: str, endpoint: str, p256dh: str, auth: str) -> PushSubscription:
        """Store a subscription, keyed on its globally unique endpoint.

        Re-subscribing an endpoint updates the existing row (and moves it to
        ``user_id`` if another user held it) instead of duplicating it.
        """
        try:
            subscription = (
                self.db.query(PushSubscription).filter(PushSubscription.endpoint == endpoint).first()
            )
            if subscription:
                subscription.user_id = user_id
                subscription.p256dh_key = p256dh
                subscription.auth_key = auth
            else:
                subscription = PushSubscription(
                    user_id=user_id,
                    endpoint=endpoint,
                    p256dh_key=p256dh,
                    auth_key=auth,
                )
                self.db.add(subscription)
            self.db.commit()
            self.db.refresh(subscription)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to save push subscription: {e}") from e
        return subscription

    def unsubscribe(self, endpoint: str, user_id: str | None = None) -> bool:
        """Delete a subscription by endpoint. Returns False if none existed."""
        query = self.db.query(PushSubscription).filter(PushSubscription.endpoint == endpoint)
        if user_id is not None:
            query = query.filter(PushSubscription.user_id == user_id)
        subscription = query.first()
        if not subscription:
            return False
        self._delete(subscription)
        return True

    def _delete(self, subscription: PushSubscription) -> None:
        try:
            self.db.delete(subscription)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to remove push subscription: {e}") from e

    def _send(self, subscription: PushSubscription, data: str) -> None:
        """Deliver one push. Raises DeliveryError on failure."""
        try:
            webpush(
                subscription_info={
                    "endpoint": subscription.endpoint,
                    "keys": {
                        "p256dh": subscription.p256dh_key,
                        "auth": subscription.auth_key,
                    },
                },
                data=data,
                vapid_private_key=self.settings.vapid_private_key,
                vapid_claims={"sub": self.settings.vapid_subject},
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            raise DeliveryError(
                str(e),
                permanent=status_code in PERMANENT_FAILURE_STATUSES,
                status_code=status_code,
            ) from e
        except requests.RequestException as e:
            raise DeliveryError(str(e)) from e

    def send_to_user(self, user_id: str, payload: dict[str, Any]) -> int:
        """Send push notification to all of a user's subscribed devices.

        Returns the number of successful deliveries. Subscriptions the push
        service reports as gone are deleted; transient failures are logged and
        left for the next event.
        """
        if not self.is_available:
            logger.debug("Push notifications not configured")
            return 0

        subscriptions = self.list_subscriptions(user_id)
        if not subscriptions:
            logger.debug(f"No push subscriptions for user {user_id}")
            return 0

        data = json.dumps(payload)
        success_count = 0
        for subscription in subscriptions:
            try:
                self._send(subscription, data)
                success_count += 1
            except DeliveryError as e:
                if e.permanent:
                    logger.info(
                        f"Removing expired subscription {subscription.id} (status {e.status_code})"
                    )
                    try:
                        self._delete(subscription)
                    except PersistenceError as pe:
                        logger.error(f"Could not prune subscription {subscription.id}: {pe}")
                else:
                    logger.warning(f"Push failed for subscription {subscription.id}: {e}")

        logger.info(
            f"Sent push to {success_count}/{len(subscriptions)} devices for user {user_id}"
        )
        return success_count

    def send_to_all_except(self, excluded_user_id: str | None, payload: dict[str, Any]) -> int:
        """Send push notification to every known user but one."""
        if not self.is_available:
            return 0

        total = 0
        for user in get_all_users(self.db):
            if user.id == excluded_user_id:
                continue
            total += self.send_to_user(user.id, payload)

        logger.info(f"Sent push notifications to {total} total subscriptions")
        return total
