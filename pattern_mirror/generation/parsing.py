import json
import logging
import re

from pydantic import ValidationError

from pattern_mirror.errors import MalformedResponse
from pattern_mirror.schemas import ReadingResponse

log = logging.getLogger(__name__)

OPENING_FENCE = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
CLOSING_FENCE = re.compile(r"\n?```$")


def strip_code_fences(text: str) -> str:
    """
    Removes a surrounding markdown code fence (optionally tagged ``json``).
    Unfenced text is only trimmed.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = OPENING_FENCE.sub("", cleaned, count=1)
        cleaned = CLOSING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'response'}: {err['msg']}" for err in exc.errors()
    )


def parse_reading_response(text: str) -> ReadingResponse:
    """
    Parses completion text into a fully populated ReadingResponse.

    Raises:
        MalformedResponse: the text is not a JSON object after fence stripping,
            or the object violates the reading schema.
    """
    cleaned = strip_code_fences(text)
    # Huge integer literals and deep nesting raise outside JSONDecodeError
    try:
        data = json.loads(cleaned)
    except (ValueError, RecursionError) as e:
        log.error(f"Failed to parse completion as JSON: {e}. Response text: {text[:500]}")
        raise MalformedResponse(f"Response is not valid JSON: {e}", raw_text=text) from e

    if not isinstance(data, dict):
        raise MalformedResponse("Response JSON is not an object", raw_text=text)

    try:
        return ReadingResponse.model_validate(data)
    except ValidationError as e:
        details = _describe(e)
        log.error(f"Completion JSON violates reading schema: {details}")
        raise MalformedResponse(f"Response does not match reading schema: {details}", raw_text=text) from e


def parse_answer_text(text: str) -> str:
    """Free-text variant used for journal answers."""
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        raise MalformedResponse("Response contained no answer text", raw_text=text or "")
    return cleaned
