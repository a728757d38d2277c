"""Pydantic schemas for API requests and responses."""

from househunt.schemas.apartment import (
    ApartmentCreate,
    ApartmentResponse,
    CommentCreate,
    CommentResponse,
    FavoriteToggleResponse,
)
from househunt.schemas.auth import UserResponse
from househunt.schemas.notification import (
    MarkReadResponse,
    NotificationResponse,
    PushSubscribeRequest,
    PushSubscriptionResponse,
    PushUnsubscribeRequest,
    UnreadCountResponse,
    VapidPublicKeyResponse,
)

__all__ = [
    "UserResponse",
    "ApartmentCreate",
    "ApartmentResponse",
    "CommentCreate",
    "CommentResponse",
    "FavoriteToggleResponse",
    "NotificationResponse",
    "UnreadCountResponse",
    "MarkReadResponse",
    "PushSubscribeRequest",
    "PushUnsubscribeRequest",
    "PushSubscriptionResponse",
    "VapidPublicKeyResponse",
]
