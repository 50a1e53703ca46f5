"""Shared fixtures and utilities for tests."""

import os

# Settings are read at import time, so the environment must be in place
# before any application module is imported.
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("AUTO_STITCH_ENABLED", "false")
os.environ.setdefault("FRONTEND_URL", "http://localhost:5173")
os.environ.setdefault("JSON_LOGS", "false")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.security import create_access_token
from core.storage.local import LocalStorage
from database.engine import Base
import database.models  # noqa: F401


OWNER_EMAIL = "owner@example.com"
OTHER_EMAIL = "other@example.com"
CANDIDATE_EMAIL = "jane.doe@example.com"

# Minimal bytes standing in for a WebM recording
FAKE_WEBM = b"\x1aE\xdf\xa3" + b"webm-payload" * 64


class FakeTranscoder:
    """Records calls and copies bytes instead of running ffmpeg."""

    def __init__(self, fail_on_concat: bool = False):
        self.overlays = []
        self.concats = []
        self.fail_on_concat = fail_on_concat

    async def overlay(self, input_path: Path, output_path: Path, question_number: int, question_text: str) -> Path:
        self.overlays.append((question_number, question_text))
        output_path.write_bytes(input_path.read_bytes())
        return output_path

    async def concat(self, input_paths, output_path: Path) -> Path:
        from core.errors import TranscodingError

        if self.fail_on_concat:
            raise TranscodingError("ffmpeg exited with status 1", stderr="boom")
        self.concats.append([p.name for p in input_paths])
        output_path.write_bytes(b"".join(p.read_bytes() for p in input_paths))
        return output_path


# ==================== Database ==================== #

@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


# ==================== Collaborators ==================== #

@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "blobs"))


@pytest.fixture
def transcoder():
    return FakeTranscoder()


@pytest.fixture
def email_service():
    service = MagicMock()
    service.send = AsyncMock()
    return service


# ==================== Seed data ==================== #

@pytest_asyncio.fixture
async def interviewer(db_session):
    from api.services.interviewers import ensure_interviewer

    return await ensure_interviewer(db_session, OWNER_EMAIL, "Olivia Owner")


@pytest_asyncio.fixture
async def role(db_session, interviewer):
    from api.services.roles import create_role

    return await create_role(db_session, interviewer.id, "Backend Engineer")


@pytest_asyncio.fixture
async def questions(db_session, role):
    from api.services.questions import create_question

    return [
        await create_question(db_session, role.id, "Tell us about yourself", 1),
        await create_question(db_session, role.id, "Describe a hard bug you fixed", 2),
    ]


@pytest_asyncio.fixture
async def link(db_session, role, questions):
    from api.services.interviews import get_or_create_interview
    from api.services.links import create_link

    interview = await get_or_create_interview(db_session, role.id)
    return await create_link(db_session, CANDIDATE_EMAIL, interview.id)


async def _expire_link(session: AsyncSession, token: str) -> None:
    """Move a link's expiry into the past."""
    from datetime import datetime, timedelta, timezone
    from database.models.interview_links import InterviewLink

    await session.execute(
        update(InterviewLink)
        .where(InterviewLink.unique_token == token)
        .values(expires_at=datetime.now(timezone.utc) - timedelta(days=1))
    )
    await session.commit()


# ==================== Auth ==================== #

def _auth_headers(email: str = OWNER_EMAIL, name: str = "Olivia Owner") -> dict:
    token = create_access_token(subject=email, email=email, name=name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner_headers():
    return _auth_headers()


@pytest.fixture
def other_headers():
    return _auth_headers(OTHER_EMAIL, "Oscar Other")


@pytest.fixture
def make_auth_headers():
    """Factory for bearer headers of arbitrary interviewers."""
    return _auth_headers


@pytest.fixture
def expire_link():
    return _expire_link


@pytest.fixture
def webm_bytes():
    return FAKE_WEBM


@pytest.fixture
def candidate_email():
    return CANDIDATE_EMAIL


# ==================== API ==================== #

@pytest.fixture
def client(storage, transcoder, email_service):
    """
    Test client against a fresh in-memory database.

    The lifespan creates the tables on entry and disposes the engine on
    exit, which drops the in-memory database between tests.
    """
    from fastapi.testclient import TestClient

    from api.dependencies import get_blob_storage, get_mailer, get_video_transcoder
    from api.main import app

    app.dependency_overrides[get_blob_storage] = lambda: storage
    app.dependency_overrides[get_mailer] = lambda: email_service
    app.dependency_overrides[get_video_transcoder] = lambda: transcoder

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def run_in_app(client):
    """Run ``fn(session)`` on the application's engine inside the client loop."""
    from database.engine import AsyncSessionLocal

    def _run(fn, *args):
        async def _call():
            async with AsyncSessionLocal() as session:
                return await fn(session, *args)

        return client.portal.call(_call)

    return _run


@pytest.fixture
def failing_transcoder():
    return FakeTranscoder(fail_on_concat=True)
