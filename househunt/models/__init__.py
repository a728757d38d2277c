"""SQLAlchemy models."""

from househunt.models.apartment import Apartment, Comment, Favorite
from househunt.models.notification import Notification
from househunt.models.push_subscription import PushSubscription
from househunt.models.user import User

__all__ = [
    "User",
    "Apartment",
    "Comment",
    "Favorite",
    "Notification",
    "PushSubscription",
]
