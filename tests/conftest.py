"""Shared pytest fixtures for testing."""

import os
import tempfile
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

# Set test environment before the application module is imported
os.environ["ENVIRONMENT"] = "development"
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="voiceverse-uploads-"))
for _key in (
    "ELEVENLABS_API_KEY",
    "GOOGLE_TRANSLATE_API_KEY",
    "OPENAI_API_KEY",
    "STRIPE_SECRET_KEY",
    "STRIPE_WEBHOOK_SECRET",
    "EMAIL_FROM",
    "EMAIL_PASS",
    "VOICEVERSE_DEV_MODE",
):
    os.environ.pop(_key, None)

from voiceverse.config import AppConfig  # noqa: E402
from voiceverse.database import close_database, get_session, init_database  # noqa: E402


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def database(tmp_path):
    """Initialize a fresh SQLite database for each test."""
    db = init_database(database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.create_all()
    yield db
    await close_database()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Session on the test database; committed on exit."""
    async with get_session() as session:
        yield session


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        environment="development",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        upload_dir=str(tmp_path / "uploads"),
        jwt_secret="test-secret",
        log_requests=False,
        libretranslate_api_url="http://libretranslate.invalid/translate",
    )


@pytest_asyncio.fixture
async def app(config: AppConfig, database) -> FastAPI:
    """Create test FastAPI application."""
    from voiceverse.api.app import create_app

    return create_app(config)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Test Data Fixtures
# =============================================================================


async def create_user(username: str = None, **fields):
    from voiceverse.api.auth import hash_password
    from voiceverse.database.repositories import UserRepository

    username = username or f"user{uuid4().hex[:8]}"
    async with get_session() as session:
        user = await UserRepository(session).create(
            email=f"{username}@example.com",
            username=username,
            password_hash=hash_password("password123"),
            display_name=username,
            **fields,
        )
    return user


@pytest_asyncio.fixture
async def test_user(database):
    """Create a test user in the database."""
    return await create_user("tester")


@pytest_asyncio.fixture
async def other_user(database):
    return await create_user("someone")


@pytest.fixture
def auth_headers(app: FastAPI, test_user):
    token = app.state.authenticator.create_jwt(test_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_headers(app: FastAPI, other_user):
    token = app.state.authenticator.create_jwt(other_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_audio(database, test_user):
    """An uploaded audio row owned by the test user."""
    from voiceverse.database.repositories import AudioFileRepository

    async with get_session() as session:
        audio = await AudioFileRepository(session).create(
            user_id=test_user.id,
            filename="sample.mp3",
            original_name="sample.mp3",
            path="audio/original/sample.mp3",
            mimetype="audio/mpeg",
            size=128,
        )
    return audio


@pytest.fixture
def sample_mp3() -> bytes:
    """ID3 header followed by silence."""
    return b"ID3" + bytes(509)
