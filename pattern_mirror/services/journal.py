"""
Journal prompt follow-up.

Each displayed reading carries one journal prompt the user can accept (get a
generated answer) or decline. `JournalPromptFlow` holds the per-prompt state
machine; `JournalService` drives it through one request.

    pending --accept--> generating --succeed--> answered
                        generating --fail-----> pending
    pending --reject--> declined

`answered` and `declined` are terminal.
"""

import enum
import logging
from typing import Optional

from pattern_mirror.errors import (
    ConfigurationError,
    PatternMirrorError,
    PromptAlreadyResolved,
    ReadingNotFound,
)
from pattern_mirror.generation.llm_client import JOURNAL_PARAMS, CompletionClient
from pattern_mirror.generation.parsing import parse_answer_text
from pattern_mirror.generation.prompts import build_journal_prompts
from pattern_mirror.schemas import UserInput
from pattern_mirror.services.storage import ReadingStore

logger = logging.getLogger(__name__)


class JournalPromptState(str, enum.Enum):
    PENDING = "pending"
    GENERATING = "generating"
    ANSWERED = "answered"
    DECLINED = "declined"


TRANSITIONS = {
    (JournalPromptState.PENDING, "accept"): JournalPromptState.GENERATING,
    (JournalPromptState.PENDING, "reject"): JournalPromptState.DECLINED,
    (JournalPromptState.GENERATING, "succeed"): JournalPromptState.ANSWERED,
    (JournalPromptState.GENERATING, "fail"): JournalPromptState.PENDING,
}


class JournalPromptFlow:
    """State of one journal prompt. Invalid transitions raise PromptAlreadyResolved."""

    def __init__(self, state: JournalPromptState = JournalPromptState.PENDING):
        self.state = state
        self.answer: Optional[str] = None
        self.error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (JournalPromptState.ANSWERED, JournalPromptState.DECLINED)

    def _apply(self, action: str) -> JournalPromptState:
        next_state = TRANSITIONS.get((self.state, action))
        if next_state is None:
            raise PromptAlreadyResolved(f"Cannot {action} a journal prompt in state '{self.state.value}'")
        self.state = next_state
        return next_state

    def accept(self) -> JournalPromptState:
        self.error = None
        return self._apply("accept")

    def reject(self) -> JournalPromptState:
        return self._apply("reject")

    def succeed(self, answer: str) -> JournalPromptState:
        state = self._apply("succeed")
        self.answer = answer
        return state

    def fail(self, error: str) -> JournalPromptState:
        state = self._apply("fail")
        self.error = error
        return state


class JournalService:
    """Generates journal answers and records accepted ones."""

    def __init__(self, store: ReadingStore, completion_client: Optional[CompletionClient] = None):
        self.store = store
        self.completion_client = completion_client

    async def restore_flow(self, reading_id: Optional[str]) -> JournalPromptFlow:
        """Answered if the reading already has a stored accepted answer, else pending."""
        if reading_id:
            for response in await self.store.list_journal_responses(reading_id):
                if response.accepted and response.answer:
                    flow = JournalPromptFlow(JournalPromptState.ANSWERED)
                    flow.answer = response.answer
                    return flow
        return JournalPromptFlow()

    async def answer(
        self,
        journal_prompt: str,
        inputs: Optional[UserInput] = None,
        reading_id: Optional[str] = None,
    ) -> str:
        """
        Accepts the prompt and generates an answer.

        On failure the flow returns to pending and the error propagates so the
        caller can show it and allow another attempt.
        """
        if self.completion_client is None:
            raise ConfigurationError("No completion client configured")
        if reading_id:
            stored = await self.store.get(reading_id)
            if stored is None:
                raise ReadingNotFound(f"No reading with id {reading_id}")
            inputs = inputs or stored.inputs

        flow = await self.restore_flow(reading_id)
        flow.accept()

        system_prompt, user_prompt = build_journal_prompts(journal_prompt, inputs)
        try:
            raw = await self.completion_client.complete(system_prompt, user_prompt, JOURNAL_PARAMS)
            answer = parse_answer_text(raw)
        except PatternMirrorError as e:
            flow.fail(str(e))
            logger.warning(f"Journal answer generation failed for reading {reading_id}: {e}")
            raise

        flow.succeed(answer)
        if reading_id:
            await self.store.save_journal_response(reading_id, journal_prompt, accepted=True, answer=answer)
        return answer

    async def decline(self, reading_id: Optional[str] = None) -> JournalPromptState:
        flow = await self.restore_flow(reading_id)
        return flow.reject()
