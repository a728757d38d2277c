"""Notification feed and push subscription API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from househunt.api.dependencies import (
    get_connection_registry,
    get_current_user,
    get_notification_records,
    get_push_service,
)
from househunt.config import get_settings
from househunt.models import PushSubscription
from househunt.models.user import User
from househunt.schemas.notification import (
    MarkReadResponse,
    NotificationResponse,
    PushSubscribeRequest,
    PushSubscriptionResponse,
    PushUnsubscribeRequest,
    RealtimeStatsResponse,
    UnreadCountResponse,
    VapidPublicKeyResponse,
)
from househunt.services.connections import ConnectionRegistry
from househunt.services.notification_records import NotificationRecordService
from househunt.services.push import PushService

router = APIRouter(prefix="/api", tags=["notifications"])


@router.get("/notifications", response_model=list[NotificationResponse])
def get_notifications(
    current_user: Annotated[User, Depends(get_current_user)],
    records: Annotated[NotificationRecordService, Depends(get_notification_records)],
    limit: int | None = Query(default=None, ge=1, le=500),
) -> list[NotificationResponse]:
    """Get the current user's notifications, newest first."""
    return records.list_for_user(current_user.id, limit=limit)


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
    current_user: Annotated[User, Depends(get_current_user)],
    records: Annotated[NotificationRecordService, Depends(get_notification_records)],
) -> UnreadCountResponse:
    """Get the number of unread notifications for the bell badge."""
    return UnreadCountResponse(unread=records.unread_count(current_user.id))


# Declared before /{notification_id}/read so "read-all" is not taken as an id
@router.patch("/notifications/read-all", response_model=MarkReadResponse)
def mark_all_notifications_read(
    current_user: Annotated[User, Depends(get_current_user)],
    records: Annotated[NotificationRecordService, Depends(get_notification_records)],
) -> MarkReadResponse:
    """Mark all of the current user's notifications as read."""
    updated = records.mark_all_read(current_user.id)
    return MarkReadResponse(updated=updated)


@router.patch("/notifications/{notification_id}/read", response_model=MarkReadResponse)
def mark_notification_read(
    notification_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    records: Annotated[NotificationRecordService, Depends(get_notification_records)],
) -> MarkReadResponse:
    """Mark one notification as read. Unknown or foreign ids are a no-op."""
    changed = records.mark_read(notification_id, current_user.id)
    return MarkReadResponse(updated=1 if changed else 0)


@router.get("/push/vapid-public-key", response_model=VapidPublicKeyResponse)
async def get_vapid_public_key() -> VapidPublicKeyResponse:
    """Get the VAPID public key for push notification subscription."""
    settings = get_settings()
    return VapidPublicKeyResponse(public_key=settings.vapid_public_key)


@router.post("/push/subscribe", response_model=PushSubscriptionResponse)
def subscribe_push(
    request: PushSubscribeRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    push_service: Annotated[PushService, Depends(get_push_service)],
) -> PushSubscription:
    """Subscribe this browser to push notifications."""
    subscription = request.subscription
    return push_service.subscribe(
        user_id=current_user.id,
        endpoint=subscription.endpoint,
        p256dh=subscription.keys.p256dh,
        auth=subscription.keys.auth,
    )


@router.post("/push/unsubscribe", status_code=status.HTTP_200_OK)
def unsubscribe_push(
    request: PushUnsubscribeRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    push_service: Annotated[PushService, Depends(get_push_service)],
) -> dict:
    """Unsubscribe this browser from push notifications."""
    removed = push_service.unsubscribe(request.endpoint, user_id=current_user.id)
    return {"success": True, "removed": removed}


@router.get("/realtime/stats", response_model=RealtimeStatsResponse)
async def get_realtime_stats(
    current_user: Annotated[User, Depends(get_current_user)],
    registry: Annotated[ConnectionRegistry, Depends(get_connection_registry)],
) -> RealtimeStatsResponse:
    """Get live connection counts."""
    return RealtimeStatsResponse(
        users=registry.count_users(), connections=registry.count_connections()
    )
