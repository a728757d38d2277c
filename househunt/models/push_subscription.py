"""Push subscription model for web push notifications."""

from sqlalchemy import Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from househunt.database import Base
from househunt.models.mixins import CreatedAtMixin, UUIDPrimaryKeyMixin


class PushSubscription(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """Stores web push notification subscriptions."""

    __tablename__ = "push_subscriptions"

    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # A browser push endpoint belongs to exactly one row
    endpoint = Column(Text, nullable=False, unique=True)
    p256dh_key = Column(Text, nullable=False)
    auth_key = Column(Text, nullable=False)

    # Relationships
    user = relationship("User", backref="push_subscriptions")
