"""Authentication service for bearer tokens and user records."""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from househunt.config import get_settings
from househunt.models.user import User

settings = get_settings()

# Claims copied onto the users table on every authenticated request
PROFILE_CLAIMS = ("email", "first_name", "last_name", "profile_image_url")


def create_access_token(user_id: str, email: str | None = None, **claims: Any) -> str:
    """Create a JWT access token.

    Production tokens come from the identity provider; this is for tests and
    local tooling that share the signing secret.
    """
    expire = datetime.now(UTC) + timedelta(minutes=settings.jwt_expiration_minutes)
    to_encode = {"sub": str(user_id), "exp": expire, **claims}
    if email is not None:
        to_encode["email"] = email
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return payload
    except JWTError:
        return None


def get_user(db: Session, user_id: str) -> User | None:
    """Get a user by id."""
    return db.query(User).filter(User.id == user_id).first()


def upsert_user(db: Session, user_id: str, claims: dict | None = None) -> User:
    """Create the user on first sight, refresh profile fields from token claims."""
    claims = claims or {}
    user = get_user(db, user_id)
    if user is None:
        user = User(id=user_id)
        db.add(user)

    changed = user in db.new
    for claim in PROFILE_CLAIMS:
        value = claims.get(claim)
        if value is not None and getattr(user, claim) != value:
            setattr(user, claim, value)
            changed = True

    if changed:
        db.commit()
        db.refresh(user)
    return user


def get_all_users(db: Session) -> list[User]:
    """Get every known user."""
    return db.query(User).all()


def get_user_display_name(user: User | None) -> str:
    """Human-readable name used in notification messages."""
    if user is None:
        return "Someone"
    if user.first_name and user.last_name:
        return f"{user.first_name} {user.last_name}"
    if user.first_name:
        return user.first_name
    if user.email:
        return user.email.split("@")[0]
    return "Someone"
