"""Apartment, comment and favorite schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class ApartmentCreate(BaseModel):
    """Create a new apartment."""

    label: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=500)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    rent: str | None = Field(None, max_length=50)
    bedrooms: str | None = Field(None, max_length=20)
    bathrooms: str | None = Field(None, max_length=20)
    status: str | None = Field(None, max_length=50)
    notes: str | None = Field(None, max_length=5000)
    listing_link: HttpUrl | None = None


class ApartmentResponse(BaseModel):
    """Apartment response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    label: str
    address: str
    latitude: float
    longitude: float
    rent: str | None
    bedrooms: str | None
    bathrooms: str | None
    status: str | None
    notes: str | None
    listing_link: str | None
    created_by: str
    created_at: datetime
    updated_at: datetime
    comment_count: int = 0
    is_favorited: bool = False


class CommentCreate(BaseModel):
    """Create a comment on an apartment."""

    text: str = Field(..., min_length=1, max_length=5000)


class CommentAuthor(BaseModel):
    """Author details shown next to a comment."""

    first_name: str | None
    last_name: str | None
    profile_image_url: str | None


class CommentResponse(BaseModel):
    """Comment response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    apartment_id: str
    user_id: str
    text: str
    created_at: datetime
    user: CommentAuthor | None = None


class FavoriteToggleResponse(BaseModel):
    """Result of toggling a favorite."""

    is_favorited: bool
