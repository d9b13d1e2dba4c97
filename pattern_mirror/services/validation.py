"""
Input validation for reading requests.

`validate_user_input` turns an arbitrary decoded JSON body into a frozen
`UserInput`, or raises `InvalidInput` listing every failing field with a
human-readable message. It never touches the network.
"""

import logging
from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from pattern_mirror.errors import InvalidInput
from pattern_mirror.schemas import UserInput

logger = logging.getLogger(__name__)

# (field, pydantic error type) -> message shown to the user
FIELD_MESSAGES: Dict[Tuple[str, str], str] = {
    ("name", "missing"): "Name is required",
    ("name", "string_too_short"): "Name is required",
    ("name", "string_too_long"): "Name too long",
    ("birthDate", "missing"): "Birth date is required",
    ("birthDate", "string_pattern_mismatch"): "Invalid date format (use YYYY-MM-DD)",
    ("birthTime", "string_pattern_mismatch"): "Invalid time format (use HH:mm)",
    ("birthCity", "missing"): "Birth city is required",
    ("birthCity", "string_too_short"): "Birth city is required",
    ("birthCity", "string_too_long"): "City name too long",
    ("focusArea", "string_too_long"): "Focus area too long (max 200 characters)",
}


def _field_errors(exc: ValidationError) -> List[Tuple[str, str]]:
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "body"
        message = FIELD_MESSAGES.get((field, err["type"]), err["msg"])
        errors.append((field, message))
    return errors


def validate_user_input(payload: Any) -> UserInput:
    """Validate a raw form payload. Raises InvalidInput with every field error."""
    if not isinstance(payload, dict):
        raise InvalidInput([("body", "Expected a JSON object")])
    try:
        return UserInput.model_validate(payload)
    except ValidationError as e:
        invalid = InvalidInput(_field_errors(e))
        logger.info(f"Rejected reading input: {invalid.details}")
        raise invalid from e
