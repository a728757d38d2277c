"""Notification-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class NotificationResponse(BaseModel):
    """Schema for a notification in the current user's feed."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    actor_id: str
    apartment_id: str
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime
    apartment_label: str | None = None
    actor_name: str | None = None


class UnreadCountResponse(BaseModel):
    """Schema for the unread badge count."""

    unread: int


class MarkReadResponse(BaseModel):
    """Schema for mark-as-read results."""

    success: bool = True
    updated: int = 0


class PushSubscriptionKeys(BaseModel):
    """Keys the browser hands out with a push subscription."""

    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscriptionInfo(BaseModel):
    """Browser ``PushSubscription.toJSON()`` shape."""

    endpoint: str = Field(..., min_length=1, max_length=2000)
    keys: PushSubscriptionKeys


class PushSubscribeRequest(BaseModel):
    """Schema for creating a push subscription."""

    subscription: PushSubscriptionInfo


class PushUnsubscribeRequest(BaseModel):
    """Schema for removing a push subscription."""

    endpoint: str = Field(..., min_length=1, max_length=2000)


class PushSubscriptionResponse(BaseModel):
    """Schema for push subscription response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    endpoint: str
    created_at: datetime


class VapidPublicKeyResponse(BaseModel):
    """Schema for VAPID public key response."""

    public_key: str | None


class RealtimeStatsResponse(BaseModel):
    """Schema for live connection diagnostics."""

    users: int
    connections: int
