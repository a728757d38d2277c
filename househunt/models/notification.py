"""Notification model for in-app notifications."""

from sqlalchemy import Boolean, Column, ForeignKey, String, Text, false
from sqlalchemy.orm import relationship

from househunt.database import Base
from househunt.models.mixins import CreatedAtMixin, UUIDPrimaryKeyMixin


class Notification(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """One notification per (event, recipient) pair."""

    __tablename__ = "notifications"

    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    actor_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    apartment_id = Column(
        String(36), ForeignKey("apartments.id", ondelete="CASCADE"), nullable=False
    )
    type = Column(String(50), nullable=False)  # apartment_created, comment_created, ...
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    # Only ever flipped to True
    is_read = Column(Boolean, default=False, server_default=false(), nullable=False, index=True)

    # Relationships
    recipient = relationship("User", foreign_keys=[user_id])
    actor = relationship("User", foreign_keys=[actor_id])
    apartment = relationship("Apartment")
