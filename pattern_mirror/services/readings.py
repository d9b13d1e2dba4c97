"""
Service / facade layer for readings.

Runs the generation pipeline in order: build prompts, call the completion
service, parse the result, persist. Nothing is stored unless every step
succeeds, so a reading is never saved partially populated.
"""

import logging
from typing import Optional

from pattern_mirror.errors import ReadingNotFound
from pattern_mirror.generation.llm_client import READING_PARAMS, CompletionClient
from pattern_mirror.generation.parsing import parse_reading_response
from pattern_mirror.generation.prompts import build_reading_prompts
from pattern_mirror.schemas import ReadingResponse, UserInput
from pattern_mirror.services.storage import OwnerId, ReadingStore

logger = logging.getLogger(__name__)


class ReadingService:
    """
    Example usage:
        service = ReadingService(SqlReadingStore(db), completion_client)
        reading_id = await service.generate(inputs, owner_id=user.id)
    """

    def __init__(self, store: ReadingStore, completion_client: CompletionClient):
        self.store = store
        self.completion_client = completion_client

    async def generate_reading(self, inputs: UserInput) -> ReadingResponse:
        system_prompt, user_prompt = build_reading_prompts(inputs)
        raw = await self.completion_client.complete(system_prompt, user_prompt, READING_PARAMS)
        return parse_reading_response(raw)

    async def generate(self, inputs: UserInput, owner_id: Optional[OwnerId] = None) -> str:
        """Generate and store a new reading. Returns its id."""
        logger.info("Starting reading generation")
        reading = await self.generate_reading(inputs)
        reading_id = await self.store.save(inputs, reading, owner_id)
        logger.info(f"Reading generated and saved with ID: {reading_id}")
        return reading_id

    async def regenerate(self, reading_id: str, owner_id: Optional[OwnerId] = None) -> str:
        """Generate a brand-new reading from the inputs of an existing one."""
        previous = await self.store.get(reading_id)
        if previous is None:
            raise ReadingNotFound(f"No reading with id {reading_id}")
        return await self.generate(previous.inputs, owner_id)
