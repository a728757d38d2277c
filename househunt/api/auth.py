"""Authentication API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from househunt.api.dependencies import get_current_user
from househunt.models.user import User
from househunt.schemas.auth import UserResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/user", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get current user information."""
    return current_user
