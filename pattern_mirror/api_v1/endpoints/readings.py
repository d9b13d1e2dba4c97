import logging
from typing import List
from fastapi import APIRouter, BackgroundTasks

from pattern_mirror.api_v1.deps import (
    AnalyticsDep,
    ReadingServiceDep,
    ReadingStoreDep,
    UserInputDep,
)
from pattern_mirror.auth import AdminUserDep, CurrentUserDep, OptionalUserDep
from pattern_mirror.core.models import AnalyticsEventType
from pattern_mirror.core.settings import settings
from pattern_mirror.errors import ReadingNotFound
from pattern_mirror import schemas

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": schemas.ErrorResponse},
    404: {"model": schemas.ErrorResponse},
    500: {"model": schemas.ErrorResponse},
}

@router.post("/generate-reading", response_model=schemas.GenerateReadingResponse, responses=ERROR_RESPONSES)
async def generate_reading(
    inputs: UserInputDep,
    service: ReadingServiceDep,
    analytics: AnalyticsDep,
    user: OptionalUserDep,
    background_tasks: BackgroundTasks,
):
    """Validate the form, generate a reading and store it"""
    owner_id = user.id if user else None
    reading_id = await service.generate(inputs, owner_id)
    background_tasks.add_task(
        analytics.record,
        AnalyticsEventType.READING_GENERATED,
        reading_id=reading_id,
        user_id=owner_id,
        metadata={"hasBirthTime": inputs.birth_time is not None, "hasFocusArea": inputs.focus_area is not None},
    )
    return schemas.GenerateReadingResponse(reading_id=reading_id)

@router.post("/readings/{reading_id}/regenerate", response_model=schemas.GenerateReadingResponse, responses=ERROR_RESPONSES)
async def regenerate_reading(
    reading_id: str,
    service: ReadingServiceDep,
    analytics: AnalyticsDep,
    user: OptionalUserDep,
    background_tasks: BackgroundTasks,
):
    """Generate a new reading from the inputs of an existing one"""
    owner_id = user.id if user else None
    new_reading_id = await service.regenerate(reading_id, owner_id)
    background_tasks.add_task(
        analytics.record,
        AnalyticsEventType.READING_REGENERATED,
        reading_id=new_reading_id,
        user_id=owner_id,
        metadata={"previousReadingId": reading_id},
    )
    return schemas.GenerateReadingResponse(reading_id=new_reading_id)

@router.get("/readings", response_model=List[schemas.StoredReading])
async def list_my_readings(
    store: ReadingStoreDep,
    user: CurrentUserDep,
):
    """Readings owned by the signed-in user, newest first"""
    return await store.list_by_owner(user.id)

@router.get("/admin/readings", response_model=List[schemas.StoredReading])
async def list_all_readings(
    store: ReadingStoreDep,
    _: AdminUserDep,
):
    return await store.list_all(limit=settings.ADMIN_LIST_LIMIT)

@router.get("/readings/{reading_id}", response_model=schemas.StoredReading, responses=ERROR_RESPONSES)
async def get_reading(
    reading_id: str,
    store: ReadingStoreDep,
):
    stored = await store.get(reading_id)
    if stored is None:
        raise ReadingNotFound(f"No reading with id {reading_id}")
    return stored
