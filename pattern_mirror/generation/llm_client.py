# pattern_mirror/generation/llm_client.py
"""
Completion client for Pattern Mirror.
Wraps a single request/response call to the Google Gemini API. The provider
client is injected at construction so tests can substitute a fake.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from google import genai
from google.genai import types as genai_types

from pattern_mirror.core.settings import Settings
from pattern_mirror.errors import ConfigurationError, GenerationFailure

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionParams:
    """Decoding parameters for one completion call."""
    temperature: float
    max_output_tokens: Optional[int] = None
    json_mode: bool = False


# Main reading: low randomness, provider-enforced JSON, provider-default length
READING_PARAMS = CompletionParams(temperature=0.2, json_mode=True)
# Journal answer: warmer, free text, capped length
JOURNAL_PARAMS = CompletionParams(temperature=0.7, max_output_tokens=500)


class CompletionClient:
    """Issues completion calls against the configured Gemini model."""

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        if not settings.GEMINI_API_KEY:
            raise ConfigurationError("GEMINI_API_KEY is required but not set")
        self.settings = settings
        self.model = settings.GEMINI_MODEL
        self.client = client if client is not None else self._build_client(settings)
        log.info(f"Completion client ready for model: {self.model}")

    @staticmethod
    def _build_client(settings: Settings) -> "genai.Client":
        http_options = genai_types.HttpOptions(
            base_url=settings.GEMINI_BASE_URL or None,
            timeout=int(settings.COMPLETION_TIMEOUT_S * 1000),
        )
        return genai.Client(api_key=settings.GEMINI_API_KEY, http_options=http_options)

    def _build_config(self, system_prompt: str, params: CompletionParams) -> genai_types.GenerateContentConfig:
        config_args = {
            "system_instruction": system_prompt,
            "temperature": params.temperature,
        }
        if params.max_output_tokens is not None:
            config_args["max_output_tokens"] = params.max_output_tokens
        if params.json_mode:
            config_args["response_mime_type"] = "application/json"
        return genai_types.GenerateContentConfig(**config_args)

    async def complete(self, system_prompt: str, user_prompt: str, params: CompletionParams) -> str:
        """
        Runs one completion and returns its raw text.

        Raises:
            GenerationFailure: the call errored, was blocked, or returned no text.
        """
        config = self._build_config(system_prompt, params)
        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=user_prompt,
                config=config,
            )
        except Exception as e:
            log.error(f"Completion call failed: {e}", exc_info=True)
            raise GenerationFailure(str(e)) from e

        feedback = getattr(response, "prompt_feedback", None)
        if feedback and feedback.block_reason:
            log.error(f"Prompt blocked by Gemini: {feedback.block_reason}")
            raise GenerationFailure(f"Prompt blocked: {feedback.block_reason}")

        if not response.text:
            log.warning("Empty response from completion service")
            raise GenerationFailure("No content in completion response")

        return response.text
