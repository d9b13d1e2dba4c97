"""SqlReadingStore against an in-memory SQLite database."""
import uuid

import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.exc import OperationalError

from pattern_mirror.core.models import User
from pattern_mirror.errors import StorageFailure
from pattern_mirror.schemas import UserInput
from pattern_mirror.services.storage import SqlReadingStore


async def make_user(db_session, username="ada"):
    user = User(username=username, hashed_password="x")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.mark.asyncio
async def test_save_then_get_round_trips(db_session, user_input, reading_response):
    store = SqlReadingStore(db_session)
    reading_id = await store.save(user_input, reading_response)

    stored = await store.get(reading_id)
    assert stored is not None
    assert stored.reading_id == reading_id
    assert stored.inputs == user_input
    assert stored.reading == reading_response
    assert stored.user_id is None
    assert stored.created_at is not None


@pytest.mark.asyncio
async def test_each_save_gets_a_fresh_id(db_session, user_input, reading_response):
    store = SqlReadingStore(db_session)
    first = await store.save(user_input, reading_response)
    second = await store.save(user_input, reading_response)
    assert first != second
    uuid.UUID(first)


@pytest.mark.asyncio
@pytest.mark.parametrize("reading_id", [str(uuid.uuid4()), "not-a-uuid", ""])
async def test_get_unknown_returns_none(db_session, reading_id):
    store = SqlReadingStore(db_session)
    assert await store.get(reading_id) is None


@pytest.mark.asyncio
async def test_list_by_owner_newest_first(db_session, reading_response):
    ada = await make_user(db_session, "ada")
    grace = await make_user(db_session, "grace")
    store = SqlReadingStore(db_session)

    ids = []
    for city in ("London", "Paris", "Rome"):
        inputs = UserInput.model_validate({"name": "Ada", "birthDate": "1990-01-01", "birthCity": city})
        ids.append(await store.save(inputs, reading_response, ada.id))
    await store.save(UserInput.model_validate({"name": "Grace", "birthDate": "1906-12-09", "birthCity": "NYC"}), reading_response, grace.id)
    await store.save(UserInput.model_validate({"name": "Anon", "birthDate": "2000-01-01", "birthCity": "Oslo"}), reading_response)

    readings = await store.list_by_owner(ada.id)
    assert [r.reading_id for r in readings] == list(reversed(ids))
    assert all(r.user_id == ada.id for r in readings)
    assert await store.list_by_owner(str(grace.id)) != []
    assert await store.list_by_owner("not-a-uuid") == []


@pytest.mark.asyncio
async def test_list_all_is_capped(db_session, user_input, reading_response):
    store = SqlReadingStore(db_session)
    for _ in range(3):
        await store.save(user_input, reading_response)
    assert len(await store.list_all()) == 3
    assert len(await store.list_all(limit=2)) == 2
    assert len(await store.list_all(limit=500)) == 3


@pytest.mark.asyncio
async def test_journal_responses_are_appended(db_session, user_input, reading_response):
    store = SqlReadingStore(db_session)
    reading_id = await store.save(user_input, reading_response)

    await store.save_journal_response(reading_id, "Where?", accepted=True, answer="Here.")
    responses = await store.list_journal_responses(reading_id)
    assert len(responses) == 1
    assert responses[0].accepted is True
    assert responses[0].answer == "Here."
    assert responses[0].reading_id == reading_id
    assert await store.list_journal_responses(str(uuid.uuid4())) == []


@pytest.mark.asyncio
async def test_database_errors_become_storage_failure(user_input, reading_response):
    session = MagicMock()
    session.commit = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full")))
    session.rollback = AsyncMock()
    store = SqlReadingStore(session)

    with pytest.raises(StorageFailure):
        await store.save(user_input, reading_response)
    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_lookup_errors_become_storage_failure():
    session = MagicMock()
    session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("gone")))
    store = SqlReadingStore(session)

    with pytest.raises(StorageFailure):
        await store.get(str(uuid.uuid4()))
