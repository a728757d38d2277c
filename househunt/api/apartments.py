"""Apartment, comment and favorite API endpoints.

Each create path commits first and then hands the event to the notification
orchestrator; fan-out problems never change the response.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from househunt.api.dependencies import get_current_user, get_notification_orchestrator
from househunt.database import get_db
from househunt.models import Apartment, Comment, Favorite, User
from househunt.schemas.apartment import (
    ApartmentCreate,
    ApartmentResponse,
    CommentAuthor,
    CommentCreate,
    CommentResponse,
    FavoriteToggleResponse,
)
from househunt.services.auth import get_user_display_name
from househunt.services.errors import PersistenceError
from househunt.services.notifications import NotificationOrchestrator, truncate_text
from househunt.services.realtime import NotificationEventType

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["apartments"])


def _commit(db: Session, obj, action: str) -> None:
    try:
        db.add(obj)
        db.commit()
        db.refresh(obj)
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to {action}: {e}") from e


def get_apartment_or_404(db: Session, apartment_id: str) -> Apartment:
    """Get an apartment by id or raise 404."""
    apartment = db.query(Apartment).filter(Apartment.id == apartment_id).first()
    if not apartment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Apartment not found")
    return apartment


def build_apartment_response(db: Session, apartment: Apartment, user: User) -> ApartmentResponse:
    """Apartment response with comment count and the user's favorite flag."""
    comment_count = (
        db.query(func.count(Comment.id)).filter(Comment.apartment_id == apartment.id).scalar()
    )
    is_favorited = (
        db.query(Favorite.id)
        .filter(Favorite.apartment_id == apartment.id, Favorite.user_id == user.id)
        .first()
        is not None
    )
    response = ApartmentResponse.model_validate(apartment)
    response.comment_count = comment_count or 0
    response.is_favorited = is_favorited
    return response


@router.get("/apartments", response_model=list[ApartmentResponse])
def get_apartments(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Get all apartments, most recently updated first."""
    apartments = db.query(Apartment).order_by(Apartment.updated_at.desc()).all()

    apartment_ids = [apt.id for apt in apartments]
    comment_counts = {}
    favorited = set()
    if apartment_ids:
        counts = (
            db.query(Comment.apartment_id, func.count(Comment.id))
            .filter(Comment.apartment_id.in_(apartment_ids))
            .group_by(Comment.apartment_id)
            .all()
        )
        comment_counts = dict(counts)
        favorited = {
            apartment_id
            for (apartment_id,) in db.query(Favorite.apartment_id)
            .filter(Favorite.user_id == current_user.id, Favorite.apartment_id.in_(apartment_ids))
            .all()
        }

    result = []
    for apartment in apartments:
        response = ApartmentResponse.model_validate(apartment)
        response.comment_count = comment_counts.get(apartment.id, 0)
        response.is_favorited = apartment.id in favorited
        result.append(response)
    return result


@router.get("/apartments/{apartment_id}", response_model=ApartmentResponse)
def get_apartment(
    apartment_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Get a specific apartment."""
    apartment = get_apartment_or_404(db, apartment_id)
    return build_apartment_response(db, apartment, current_user)


@router.post("/apartments", response_model=ApartmentResponse, status_code=status.HTTP_201_CREATED)
async def create_apartment(
    apartment_data: ApartmentCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    notifications: Annotated[NotificationOrchestrator, Depends(get_notification_orchestrator)],
):
    """Create a new apartment and notify collaborators."""
    data = apartment_data.model_dump()
    if data["listing_link"] is not None:
        data["listing_link"] = str(data["listing_link"])

    apartment = Apartment(**data, created_by=current_user.id)
    _commit(db, apartment, "create apartment")

    user_name = get_user_display_name(current_user)
    await notifications.notify_event(
        NotificationEventType.APARTMENT_CREATED,
        actor_id=current_user.id,
        apartment_id=apartment.id,
        title="New Apartment Added",
        message=f"{user_name} added a new apartment: {apartment.label or apartment.address}",
    )

    return build_apartment_response(db, apartment, current_user)


@router.get("/apartments/{apartment_id}/comments", response_model=list[CommentResponse])
def get_comments(
    apartment_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Get comments for an apartment, oldest first."""
    rows = (
        db.query(Comment, User)
        .outerjoin(User, User.id == Comment.user_id)
        .filter(Comment.apartment_id == apartment_id)
        .order_by(Comment.created_at)
        .all()
    )
    result = []
    for comment, author in rows:
        response = CommentResponse.model_validate(comment)
        if author is not None:
            response.user = CommentAuthor(
                first_name=author.first_name,
                last_name=author.last_name,
                profile_image_url=author.profile_image_url,
            )
        result.append(response)
    return result


@router.post(
    "/apartments/{apartment_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    apartment_id: str,
    comment_data: CommentCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    notifications: Annotated[NotificationOrchestrator, Depends(get_notification_orchestrator)],
):
    """Comment on an apartment and notify collaborators."""
    apartment = get_apartment_or_404(db, apartment_id)

    comment = Comment(apartment_id=apartment.id, user_id=current_user.id, text=comment_data.text)
    _commit(db, comment, "create comment")

    user_name = get_user_display_name(current_user)
    await notifications.notify_event(
        NotificationEventType.COMMENT_CREATED,
        actor_id=current_user.id,
        apartment_id=apartment.id,
        title="New Comment Added",
        message=(
            f"{user_name} commented on {apartment.label or apartment.address}: "
            f"{truncate_text(comment.text)}"
        ),
    )

    return comment


@router.get("/favorites", response_model=list[str])
def get_favorites(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Get ids of apartments the current user has favorited."""
    rows = db.query(Favorite.apartment_id).filter(Favorite.user_id == current_user.id).all()
    return [apartment_id for (apartment_id,) in rows]


@router.post("/apartments/{apartment_id}/favorite", response_model=FavoriteToggleResponse)
async def toggle_favorite(
    apartment_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    notifications: Annotated[NotificationOrchestrator, Depends(get_notification_orchestrator)],
):
    """Toggle the current user's favorite on an apartment.

    Only favoriting notifies collaborators; un-favoriting is silent.
    """
    apartment = get_apartment_or_404(db, apartment_id)

    existing = (
        db.query(Favorite)
        .filter(Favorite.apartment_id == apartment.id, Favorite.user_id == current_user.id)
        .first()
    )
    if existing:
        try:
            db.delete(existing)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to remove favorite: {e}") from e
        return FavoriteToggleResponse(is_favorited=False)

    _commit(db, Favorite(apartment_id=apartment.id, user_id=current_user.id), "add favorite")

    user_name = get_user_display_name(current_user)
    await notifications.notify_event(
        NotificationEventType.FAVORITE_CREATED,
        actor_id=current_user.id,
        apartment_id=apartment.id,
        title="Apartment Favorited",
        message=f'{user_name} marked "{apartment.label}" as a favorite',
    )
    return FavoriteToggleResponse(is_favorited=True)
