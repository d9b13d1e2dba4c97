"""
Error taxonomy for the reading pipeline.

Every error carries the HTTP status it maps to, a short human-readable
`error` message and an optional `details` string. `main.py` registers a
single exception handler that renders them as `{"error": ..., "details": ...}`.
"""

from typing import List, Optional, Tuple


class PatternMirrorError(Exception):
    """Base class for all errors surfaced to API clients."""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, details: Optional[str] = None, error: Optional[str] = None):
        super().__init__(details or error or self.error)
        if error:
            self.error = error
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.details:
            body["details"] = self.details
        return body


class InvalidInput(PatternMirrorError):
    """Client-correctable validation failure. Keeps every (field, message) pair."""

    status_code = 400
    error = "Invalid input"

    def __init__(self, errors: List[Tuple[str, str]]):
        self.errors = list(errors)
        super().__init__(details=", ".join(f"{field}: {message}" for field, message in self.errors))


class ConfigurationError(PatternMirrorError):
    """Server misconfiguration detected before any network call."""

    status_code = 500
    error = "Server configuration error"


class GenerationFailure(PatternMirrorError):
    """The completion service errored or returned nothing usable."""

    status_code = 500
    error = "Failed to generate reading"


class MalformedResponse(PatternMirrorError):
    """The completion text could not be parsed into the expected shape."""

    status_code = 500
    error = "Failed to parse generated response"

    def __init__(self, details: str, raw_text: str):
        super().__init__(details=details)
        self.raw_text = raw_text


class StorageFailure(PatternMirrorError):
    status_code = 500
    error = "Failed to store data"


class ReadingNotFound(PatternMirrorError):
    status_code = 404
    error = "Reading not found"


class PromptAlreadyResolved(PatternMirrorError):
    """A journal prompt transition was attempted from a terminal state."""

    status_code = 409
    error = "Journal prompt already resolved"
