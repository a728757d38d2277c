"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from househunt.api import apartments, auth, notifications, websocket
from househunt.config import get_settings
from househunt.services.connections import ConnectionRegistry
from househunt.services.errors import PersistenceError

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    # Startup: one connection registry per application instance
    app.state.connection_registry = ConnectionRegistry()
    yield
    # Shutdown: live sockets are closed by the server
    logger.info(
        f"Shutting down with {app.state.connection_registry.count_connections()} open connections"
    )


app = FastAPI(
    title="HouseHunt API",
    description="Collaborative apartment hunting with real-time notifications",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    """Storage failures on the primary write path surface as 500s."""
    logger.error(f"Persistence error on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database operation failed"},
    )


# Register routers
app.include_router(auth.router)
app.include_router(apartments.router)
app.include_router(notifications.router)
app.include_router(websocket.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}
