"""Pytest configuration and fixtures."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from starlette.websockets import WebSocketState

from househunt.database import Base, get_db, get_session_factory
from househunt.main import app
from househunt.models import Apartment, User
from househunt.services.auth import create_access_token
from househunt.services.connections import Channel

# Postgres when TEST_DATABASE_URL is set (CI, docker compose), SQLite file otherwise
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///./test.db")
IS_SQLITE = TEST_DATABASE_URL.startswith("sqlite")

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False} if IS_SQLITE else {},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def schema():
    """Create every table once per test session."""
    if not IS_SQLITE:
        from sqlalchemy_utils import create_database, database_exists

        if not database_exists(TEST_DATABASE_URL):
            create_database(TEST_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


@pytest.fixture(autouse=True)
def db():
    """Session shared by the test and the app; rows are wiped afterwards."""
    session = TestingSessionLocal()
    yield session

    session.rollback()
    # Children before parents so foreign keys never block the wipe
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def client(db):
    """TestClient whose requests and sockets all use the test session.

    Entering the client runs the lifespan, so each test gets a fresh
    connection registry. Fan-out threads open their own test sessions.
    """
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(db, user_id: str, first_name: str | None = None, **fields) -> User:
    """Insert a user row."""
    user = User(id=user_id, first_name=first_name, **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_apartment(db, created_by: str, label: str = "Sunny Loft") -> Apartment:
    """Insert an apartment row."""
    apartment = Apartment(
        label=label,
        address="12 Elm Street",
        latitude=45.5,
        longitude=-73.6,
        created_by=created_by,
    )
    db.add(apartment)
    db.commit()
    db.refresh(apartment)
    return apartment


def make_channel(open_: bool = True) -> Channel:
    """A Channel over a mocked WebSocket that records sent frames."""
    websocket = MagicMock()
    state = WebSocketState.CONNECTED if open_ else WebSocketState.DISCONNECTED
    websocket.client_state = state
    websocket.application_state = state
    websocket.send_text = AsyncMock()
    return Channel(websocket)


def auth_headers_for(user_id: str, **claims) -> dict[str, str]:
    """Bearer headers for a token the identity provider would issue."""
    token = create_access_token(user_id, **claims)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def users(db):
    """Three collaborators: alice, bob and carol."""
    return {
        "alice": make_user(db, "user-alice", first_name="Alice", last_name="Martin"),
        "bob": make_user(db, "user-bob", first_name="Bob"),
        "carol": make_user(db, "user-carol", email="carol@example.com"),
    }


@pytest.fixture
def apartment(db, users):
    """An apartment created by alice."""
    return make_apartment(db, users["alice"].id)


@pytest.fixture
def auth_headers(client):
    """Auth headers for a user created on first request from token claims."""
    return auth_headers_for(
        "user-alice", email="alice@example.com", first_name="Alice", last_name="Martin"
    )
