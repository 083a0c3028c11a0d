"""
Test fixtures for the wodlog backend.

Uses an in-memory SQLite database (aiosqlite) so repository and API tests
run offline; the extraction service is replaced per test.
"""
import os

# Must be set before wodlog.core.config builds its settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("LOG_FORMAT", "console")

from datetime import datetime, timezone
from typing import Any, Dict

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import wodlog.models  # noqa: F401  (registers tables)
from wodlog.core.database import Base, get_db
from wodlog.main import app


NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


@pytest.fixture
async def api_client(session_maker):
    """httpx client bound to the FastAPI app, with get_db on the test database."""

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Sample payloads
# ---------------------------------------------------------------------------


@pytest.fixture
def fran_payload() -> Dict[str, Any]:
    """Structured extraction of a for-time couplet."""
    return {
        "title": "Fran",
        "description": "Classic couplet. Go fast.",
        "date": "2025-03-14T18:30:00Z",
        "confidence": 0.92,
        "privacy": "public",
        "workout": [
            {"type": "movement", "movement": {"amount": "21-15-9", "exercise": "Thrusters", "unit": "95"}},
            {"type": "movement", "movement": {"amount": "21-15-9", "exercise": "Pull-ups", "unit": None}},
        ],
        "score": [
            {"name": "Finish Time", "type": "time", "value": "4:06", "metadata": {"timeInSeconds": 246}},
        ],
    }


@pytest.fixture
def amrap_payload() -> Dict[str, Any]:
    """Structured extraction of an AMRAP with a rounds + reps score."""
    return {
        "title": "Cindy-ish",
        "date": "2025-03-10T07:00:00+00:00",
        "confidence": 0.8,
        "workout": [
            {"type": "descriptive", "descriptive": {"text": "AMRAP 20", "type": "instruction"}},
            {"type": "movement", "movement": {"amount": 10, "exercise": "Pull-ups", "unit": None}},
            {"type": "movement", "movement": {"amount": 15, "exercise": "Push-ups", "unit": None}},
            {"type": "movement", "movement": {"amount": 15, "exercise": "Air Squats", "unit": None}},
        ],
        "score": [
            {
                "name": "Total",
                "type": "rounds",
                "value": "8 rounds + 25 reps",
                "metadata": {"rounds": 8, "repsIntoNextRound": 25},
            },
        ],
    }


@pytest.fixture
def intervals_payload() -> Dict[str, Any]:
    """Rounds with rest, each scored with start/stop stamps."""
    return {
        "title": "3 Rounds",
        "date": "2025-03-12T07:00:00Z",
        "confidence": 0.7,
        "workout": [
            {"type": "movement", "movement": {"amount": 400, "exercise": "Run", "unit": "m"}},
            {"type": "movement", "movement": {"amount": 21, "exercise": "KB Swings", "unit": "53"}},
            {"type": "descriptive", "descriptive": {"text": "Rest 3:00", "type": "rest"}},
        ],
        "score": [
            {"name": "Round 1", "type": "time", "value": "1:13",
             "metadata": {"startTime": "0:00", "stopTime": "1:13", "roundTime": 73}},
            {"name": "Round 2", "type": "time", "value": "1:20",
             "metadata": {"startTime": "4:13", "stopTime": "5:33"}},
        ],
    }


@pytest.fixture
def legacy_payload() -> Dict[str, Any]:
    """Old flat extraction format."""
    return {
        "rawText": ["Helen", "3 rounds", "400m run", "21 KB swings", "12 pull ups"],
        "type": "time",
        "rounds": 3,
        "movements": ["400 Run", "21 KB Swings", "12 Pull Ups"],
        "times": [705],
        "reps": None,
        "confidence": 0.6,
        "date": "2025-03-01T09:00:00Z",
    }


@pytest.fixture
def legacy_row() -> Dict[str, Any]:
    """Legacy row as stored before the structured schema existed."""
    return {
        "id": "7b0b8b8e-7c84-4f53-9d7e-0c3a4f1d2e10",
        "user_id": "athlete-1",
        "date": datetime(2024, 11, 2, 8, 0),
        "privacy": "public",
        "confidence": 0.5,
        "image_url": "workouts/athlete-1/board.jpg",
        "name": None,
        "raw_text": None,
        "title": None,
        "description": None,
        "workout_type": "reps",
        "rounds": 5,
        "movements": ["21 Thrusters", "15 Pull-ups", "Rope Climb"],
        "times": None,
        "reps": [150, 120],
        "workout_elements": [],
        "score_elements": [],
    }
