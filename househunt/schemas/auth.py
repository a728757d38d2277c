"""Authentication schemas."""

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """User information response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str | None
    first_name: str | None
    last_name: str | None
    profile_image_url: str | None = None
