from pydantic import BaseModel, Field, ConfigDict, StringConstraints, field_validator
from typing import Annotated, Optional, List, Any
from datetime import datetime
import uuid

DATE_PATTERN = r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$"
TIME_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"

# Base schemas
class BaseSchema(BaseModel):
    """Base schema for all Pydantic models to inherit from."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

# --- Reading inputs ---
class UserInput(BaseSchema):
    """Validated form submission. Immutable once built."""
    model_config = ConfigDict(populate_by_name=True, frozen=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    birth_date: str = Field(..., alias="birthDate", pattern=DATE_PATTERN)
    birth_time: Optional[str] = Field(None, alias="birthTime", pattern=TIME_PATTERN)
    birth_city: str = Field(..., alias="birthCity", min_length=1, max_length=100)
    focus_area: Optional[str] = Field(None, alias="focusArea", max_length=200)

    @field_validator("birth_time", "focus_area", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        # HTML forms submit untouched optional inputs as ""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

# --- Generated reading ---
ShortText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=300)]
LongText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1500)]

class ReadingResponse(BaseSchema):
    """The seven-field reading returned by the completion service."""
    headline: ShortText
    core_theme: LongText = Field(..., alias="coreTheme")
    strengths: List[ShortText] = Field(..., min_length=3, max_length=3)
    watch_outs: List[ShortText] = Field(..., alias="watchOuts", min_length=2, max_length=2)
    next_7_days: List[ShortText] = Field(..., alias="next7Days", min_length=3, max_length=3)
    journal_prompt: ShortText = Field(..., alias="journalPrompt")
    disclaimer: LongText

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)

class StoredReading(BaseSchema):
    reading_id: str = Field(..., alias="readingId")
    inputs: UserInput
    reading: ReadingResponse
    created_at: datetime = Field(..., alias="createdAt")
    user_id: Optional[uuid.UUID] = Field(None, alias="userId")

class StoredJournalResponse(BaseSchema):
    reading_id: str = Field(..., alias="readingId")
    prompt: str
    accepted: bool
    answer: Optional[str] = None
    created_at: datetime = Field(..., alias="createdAt")

# --- API payloads ---
class GenerateReadingResponse(BaseSchema):
    reading_id: str = Field(..., alias="readingId")

class ErrorResponse(BaseSchema):
    error: str
    details: Optional[str] = None

class AnswerPromptResponse(BaseSchema):
    answer: str

class PromptStateResponse(BaseSchema):
    state: str

# --- Users ---
class UserBase(BaseSchema):
    username: str = Field(..., min_length=3, max_length=255)

class UserCreate(UserBase):
    password: str = Field(..., min_length=8)

class User(UserBase):
    id: uuid.UUID

# Token schemas
class Token(BaseSchema):
    """Schema for an authentication token."""
    access_token: str
    token_type: str = "bearer"

class TokenData(BaseSchema):
    """Schema for the data encoded in a token."""
    username: Optional[str] = None
