import os

# Point the app at SQLite before any pattern_mirror module reads settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")

import copy
import json
import uuid
from datetime import datetime, timezone
from typing import List, Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from pattern_mirror.api_v1 import deps
from pattern_mirror.auth import get_optional_user
from pattern_mirror.core import models  # noqa: F401  (registers tables)
from pattern_mirror.core.database import Base, get_db
from pattern_mirror.errors import GenerationFailure
from pattern_mirror.main import app
from pattern_mirror.schemas import (
    ReadingResponse,
    StoredJournalResponse,
    StoredReading,
    UserInput,
)

READING_JSON = {
    "headline": "A steady mind finding room to breathe again",
    "coreTheme": "Patterns here often point to careful thinking. You're not slow, you're thorough.",
    "strengths": [
        "Notices details others tend to miss",
        "Keeps commitments with quiet consistency",
        "Learns well through patient repetition",
    ],
    "watchOuts": [
        "May carry too much on your own",
        "Tends to delay rest until exhausted",
    ],
    "next7Days": [
        "Notice when your energy dips",
        "Choose one task to finish",
        "Protect a short quiet hour",
    ],
    "journalPrompt": "Where do you feel most like yourself lately?",
    "disclaimer": "This is a lens, not a rule; you decide what matters.",
}

VALID_INPUT = {"name": "Ada", "birthDate": "1990-01-01", "birthCity": "London, UK"}


class FakeCompletionClient:
    """Returns scripted completions in order and records every call."""

    def __init__(self, responses: Optional[list] = None):
        self.responses = list(responses or [])
        self.calls = []

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def complete(self, system_prompt, user_prompt, params):
        self.calls.append({"system": system_prompt, "user": user_prompt, "params": params})
        if not self.responses:
            raise GenerationFailure("No scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class InMemoryReadingStore:
    """Test double for the ReadingStore contract."""

    def __init__(self):
        self.readings = {}
        self.journal_responses: List[StoredJournalResponse] = []

    async def save(self, inputs, reading, owner_id=None):
        reading_id = str(uuid.uuid4())
        self.readings[reading_id] = StoredReading(
            reading_id=reading_id,
            inputs=inputs,
            reading=reading,
            created_at=datetime.now(timezone.utc),
            user_id=uuid.UUID(str(owner_id)) if owner_id else None,
        )
        return reading_id

    async def get(self, reading_id):
        return self.readings.get(reading_id)

    async def list_by_owner(self, owner_id):
        rows = [r for r in self.readings.values() if r.user_id and str(r.user_id) == str(owner_id)]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    async def list_all(self, limit=100):
        rows = sorted(self.readings.values(), key=lambda r: r.created_at, reverse=True)
        return rows[:min(limit, 100)]

    async def save_journal_response(self, reading_id, prompt, accepted, answer=None):
        self.journal_responses.append(StoredJournalResponse(
            reading_id=reading_id,
            prompt=prompt,
            accepted=accepted,
            answer=answer,
            created_at=datetime.now(timezone.utc),
        ))

    async def list_journal_responses(self, reading_id):
        return [r for r in self.journal_responses if r.reading_id == reading_id]


class CollectingAnalyticsRecorder:
    def __init__(self):
        self.events = []

    async def record(self, event_type, reading_id=None, user_id=None, metadata=None):
        self.events.append({
            "event_type": event_type,
            "reading_id": reading_id,
            "user_id": user_id,
            "metadata": metadata,
        })

    def of_type(self, event_type):
        return [e for e in self.events if e["event_type"] == event_type]


@pytest.fixture
def reading_json():
    return copy.deepcopy(READING_JSON)

@pytest.fixture
def reading_text(reading_json):
    return json.dumps(reading_json)

@pytest.fixture
def user_input():
    return UserInput.model_validate(VALID_INPUT)

@pytest.fixture
def reading_response(reading_json):
    return ReadingResponse.model_validate(reading_json)

@pytest.fixture
def fake_client():
    return FakeCompletionClient()

@pytest.fixture
def memory_store():
    return InMemoryReadingStore()

@pytest.fixture
def analytics():
    return CollectingAnalyticsRecorder()

@pytest.fixture
def client(fake_client, memory_store, analytics):
    """TestClient wired to fakes; anonymous unless a test overrides get_optional_user."""
    async def no_db():
        yield None

    app.dependency_overrides[get_db] = no_db
    app.dependency_overrides[deps.get_completion_client] = lambda: fake_client
    app.dependency_overrides[deps.get_reading_store] = lambda: memory_store
    app.dependency_overrides[deps.get_analytics_recorder] = lambda: analytics
    app.dependency_overrides[get_optional_user] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest_asyncio.fixture
async def db_session():
    """A fresh in-memory SQLite database with all tables."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()

@pytest.fixture
def sqlite_file_url(tmp_path):
    """A file-backed SQLite database usable from the TestClient's own event loop."""
    path = tmp_path / "pattern_mirror.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return f"sqlite+aiosqlite:///{path}"

@pytest.fixture
def db_client(sqlite_file_url, analytics):
    """TestClient backed by a real SQLite database (auth flows)."""
    engine = create_async_engine(sqlite_file_url, poolclass=NullPool)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def sqlite_db():
        async with session_factory() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = sqlite_db
    app.dependency_overrides[deps.get_analytics_recorder] = lambda: analytics
    yield TestClient(app)
    app.dependency_overrides.clear()
