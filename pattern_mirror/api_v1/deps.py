from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from pattern_mirror.core.database import AsyncSessionLocal, get_db
from pattern_mirror.core.settings import settings
from pattern_mirror.errors import InvalidInput
from pattern_mirror.generation.llm_client import CompletionClient
from pattern_mirror.schemas import UserInput
from pattern_mirror.services.analytics import AnalyticsRecorder
from pattern_mirror.services.journal import JournalService
from pattern_mirror.services.readings import ReadingService
from pattern_mirror.services.storage import ReadingStore, SqlReadingStore
from pattern_mirror.services.validation import validate_user_input


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise InvalidInput([("body", "Request body must be valid JSON")])


async def validated_user_input(request: Request) -> UserInput:
    """Declare before service dependencies so bad input is rejected first."""
    return validate_user_input(await read_json_body(request))


@lru_cache
def get_completion_client() -> CompletionClient:
    """
    One completion client per process, built from settings on first use.
    Raises ConfigurationError (not cached) while no credential is configured.
    """
    return CompletionClient(settings)


def get_reading_store(db: AsyncSession = Depends(get_db)) -> ReadingStore:
    return SqlReadingStore(db)


@lru_cache
def get_analytics_recorder() -> AnalyticsRecorder:
    return AnalyticsRecorder(AsyncSessionLocal)


def get_reading_service(
    store: ReadingStore = Depends(get_reading_store),
    client: CompletionClient = Depends(get_completion_client),
) -> ReadingService:
    return ReadingService(store, client)


def get_journal_service(
    store: ReadingStore = Depends(get_reading_store),
    client: CompletionClient = Depends(get_completion_client),
) -> JournalService:
    return JournalService(store, client)


UserInputDep = Annotated[UserInput, Depends(validated_user_input)]
ReadingStoreDep = Annotated[ReadingStore, Depends(get_reading_store)]
AnalyticsDep = Annotated[AnalyticsRecorder, Depends(get_analytics_recorder)]
ReadingServiceDep = Annotated[ReadingService, Depends(get_reading_service)]
JournalServiceDep = Annotated[JournalService, Depends(get_journal_service)]
