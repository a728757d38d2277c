"""FastAPI dependencies for authentication, database and notification services."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, WebSocket, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, sessionmaker

from househunt.config import get_settings
from househunt.database import get_db, get_session_factory
from househunt.models.user import User
from househunt.services.auth import decode_access_token, upsert_user
from househunt.services.connections import ConnectionRegistry
from househunt.services.notification_records import NotificationRecordService
from househunt.services.notifications import NotificationOrchestrator
from househunt.services.push import PushService
from househunt.services.realtime import RealtimeDispatcher
from househunt.tasks.push import enqueue_push

security = HTTPBearer()


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    token = credentials.credentials
    payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return upsert_user(db, str(user_id), payload)


def _registry_from_app(app) -> ConnectionRegistry:
    registry = getattr(app.state, "connection_registry", None)
    if registry is None:
        registry = ConnectionRegistry()
        app.state.connection_registry = registry
    return registry


def get_connection_registry(request: Request) -> ConnectionRegistry:
    """Get the application's connection registry."""
    return _registry_from_app(request.app)


def get_ws_connection_registry(websocket: WebSocket) -> ConnectionRegistry:
    """Get the application's connection registry from a WebSocket scope."""
    return _registry_from_app(websocket.app)


def get_notification_records(
    db: Annotated[Session, Depends(get_db)],
) -> NotificationRecordService:
    """Get notification record service with dependencies."""
    return NotificationRecordService(db)


def get_realtime_dispatcher(
    registry: Annotated[ConnectionRegistry, Depends(get_connection_registry)],
) -> RealtimeDispatcher:
    """Get realtime dispatcher bound to the app registry."""
    return RealtimeDispatcher(registry)


def get_notification_orchestrator(
    dispatcher: Annotated[RealtimeDispatcher, Depends(get_realtime_dispatcher)],
    registry: Annotated[ConnectionRegistry, Depends(get_connection_registry)],
    session_factory: Annotated[sessionmaker, Depends(get_session_factory)],
) -> NotificationOrchestrator:
    """Get notification orchestrator with dependencies."""
    return NotificationOrchestrator(
        dispatcher=dispatcher,
        registry=registry,
        session_factory=session_factory,
        push_enqueue=enqueue_push,
        settings=get_settings(),
    )


def get_push_service(
    db: Annotated[Session, Depends(get_db)],
) -> PushService:
    """Get push service with dependencies."""
    return PushService(db)
