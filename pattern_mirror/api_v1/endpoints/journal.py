import logging
from dataclasses import dataclass
from typing import Annotated, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Request

from pattern_mirror.api_v1.deps import (
    AnalyticsDep,
    JournalServiceDep,
    ReadingStoreDep,
    read_json_body,
)
from pattern_mirror.auth import OptionalUserDep
from pattern_mirror.core.models import AnalyticsEventType
from pattern_mirror.errors import InvalidInput
from pattern_mirror.schemas import UserInput
from pattern_mirror.services.journal import JournalService
from pattern_mirror.services.validation import validate_user_input
from pattern_mirror import schemas

logger = logging.getLogger(__name__)

router = APIRouter()


@dataclass(frozen=True)
class JournalPromptRequest:
    journal_prompt: str
    user_inputs: Optional[UserInput] = None
    reading_id: Optional[str] = None


async def journal_prompt_request(request: Request) -> JournalPromptRequest:
    """Parses `{journalPrompt, userInputs?, readingId?}`."""
    body = await read_json_body(request)
    if not isinstance(body, dict):
        raise InvalidInput([("body", "Expected a JSON object")])

    journal_prompt = body.get("journalPrompt")
    if not isinstance(journal_prompt, str) or not journal_prompt.strip():
        raise InvalidInput([("journalPrompt", "Journal prompt is required")])

    user_inputs = None
    if body.get("userInputs") is not None:
        try:
            user_inputs = validate_user_input(body["userInputs"])
        except InvalidInput as e:
            raise InvalidInput([(f"userInputs.{field}", message) for field, message in e.errors])

    reading_id = body.get("readingId")
    if reading_id is not None and not isinstance(reading_id, str):
        raise InvalidInput([("readingId", "Reading id must be a string")])

    return JournalPromptRequest(journal_prompt.strip(), user_inputs, reading_id or None)


JournalPromptRequestDep = Annotated[JournalPromptRequest, Depends(journal_prompt_request)]

ERROR_RESPONSES = {
    400: {"model": schemas.ErrorResponse},
    404: {"model": schemas.ErrorResponse},
    409: {"model": schemas.ErrorResponse},
    500: {"model": schemas.ErrorResponse},
}

@router.post("/answer-prompt", response_model=schemas.AnswerPromptResponse, responses=ERROR_RESPONSES)
async def answer_prompt(
    payload: JournalPromptRequestDep,
    service: JournalServiceDep,
    analytics: AnalyticsDep,
    user: OptionalUserDep,
    background_tasks: BackgroundTasks,
):
    """Accept the journal prompt and generate an answer to it"""
    answer = await service.answer(payload.journal_prompt, payload.user_inputs, payload.reading_id)
    background_tasks.add_task(
        analytics.record,
        AnalyticsEventType.PROMPT_ACCEPTED,
        reading_id=payload.reading_id,
        user_id=user.id if user else None,
    )
    return schemas.AnswerPromptResponse(answer=answer)

@router.post("/reject-prompt", response_model=schemas.PromptStateResponse, responses=ERROR_RESPONSES)
async def reject_prompt(
    payload: JournalPromptRequestDep,
    store: ReadingStoreDep,
    analytics: AnalyticsDep,
    user: OptionalUserDep,
    background_tasks: BackgroundTasks,
):
    """Decline the journal prompt"""
    # Declining never calls the completion service, so no client is required
    state = await JournalService(store).decline(payload.reading_id)
    background_tasks.add_task(
        analytics.record,
        AnalyticsEventType.PROMPT_REJECTED,
        reading_id=payload.reading_id,
        user_id=user.id if user else None,
    )
    return schemas.PromptStateResponse(state=state.value)
