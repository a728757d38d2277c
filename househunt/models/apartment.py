"""Apartment, comment and favorite models."""

from sqlalchemy import Column, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from househunt.database import Base
from househunt.models.mixins import CreatedAtMixin, TimestampMixin, UUIDPrimaryKeyMixin


class Apartment(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """An apartment listing pinned on the shared map."""

    __tablename__ = "apartments"

    label = Column(Text, nullable=False)
    address = Column(Text, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    rent = Column(String(50), nullable=True)
    bedrooms = Column(String(20), nullable=True)
    bathrooms = Column(String(20), nullable=True)
    status = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    listing_link = Column(Text, nullable=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # Relationships
    created_by_user = relationship("User", foreign_keys=[created_by])
    comments = relationship("Comment", back_populates="apartment", cascade="all, delete-orphan")
    favorites = relationship("Favorite", back_populates="apartment", cascade="all, delete-orphan")


class Comment(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """A comment left on an apartment."""

    __tablename__ = "comments"

    apartment_id = Column(
        String(36), ForeignKey("apartments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    text = Column(Text, nullable=False)

    # Relationships
    apartment = relationship("Apartment", back_populates="comments")
    user = relationship("User")


class Favorite(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """A user's favorite mark on an apartment."""

    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("apartment_id", "user_id", name="uq_favorite_user"),)

    apartment_id = Column(
        String(36), ForeignKey("apartments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # Relationships
    apartment = relationship("Apartment", back_populates="favorites")
