"""Celery tasks for web push delivery."""

import logging
from typing import Any

from sqlalchemy.orm import Session

from househunt.celery_app import app as celery_app
from househunt.database import SessionLocal
from househunt.services.push import PushService

logger = logging.getLogger(__name__)


@celery_app.task
def deliver_push(user_id: str, payload: dict[str, Any]) -> dict:
    """Deliver a push notification to one user's devices."""
    db: Session = SessionLocal()
    try:
        sent = PushService(db).send_to_user(user_id, payload)
        return {"sent": sent}
    finally:
        db.close()


def enqueue_push(user_id: str, payload: dict[str, Any]) -> bool:
    """Queue a push delivery without failing the caller if the broker is down."""
    try:
        deliver_push.delay(user_id, payload)
        return True
    except Exception as e:
        logger.error(f"Failed to enqueue push for user {user_id}: {e}")
        return False
