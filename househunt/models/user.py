"""User model."""

from sqlalchemy import Column, String

from househunt.database import Base
from househunt.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """User mirrored from the identity provider's claims."""

    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=True, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    profile_image_url = Column(String(500), nullable=True)
