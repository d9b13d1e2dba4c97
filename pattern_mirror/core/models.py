from sqlalchemy import (
    String, DateTime, Text, Uuid, ForeignKey, Boolean, Enum, JSON, Index
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship, Mapped, mapped_column
from datetime import datetime, timezone
from typing import Optional, Dict, Any
import uuid as uuid_pkg
import enum

from .database import Base

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsEventType(str, enum.Enum):
    """Closed set of analytics event kinds."""
    READING_GENERATED = "reading_generated"
    READING_VIEWED = "reading_viewed"
    READING_REGENERATED = "reading_regenerated"
    PROMPT_ACCEPTED = "prompt_accepted"
    PROMPT_REJECTED = "prompt_rejected"
    USER_SIGNUP = "user_signup"
    USER_LOGIN = "user_login"


class User(Base):
    """An account that can own readings."""
    __tablename__ = "users"

    id: Mapped[uuid_pkg.UUID] = mapped_column(Uuid, primary_key=True, default=uuid_pkg.uuid4)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    readings = relationship("Reading", back_populates="owner")


class Reading(Base):
    """A generated reading together with the inputs it was generated from."""
    __tablename__ = "readings"

    id: Mapped[uuid_pkg.UUID] = mapped_column(Uuid, primary_key=True, default=uuid_pkg.uuid4)
    user_id: Mapped[Optional[uuid_pkg.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    inputs: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False)
    reading: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    owner = relationship("User", back_populates="readings")
    journal_responses = relationship("JournalResponse", back_populates="reading")

    __table_args__ = (
        Index("ix_readings_user_id_created_at", "user_id", "created_at"),
    )


class JournalResponse(Base):
    """The user's accept/reject decision on a reading's journal prompt."""
    __tablename__ = "journal_responses"

    id: Mapped[uuid_pkg.UUID] = mapped_column(Uuid, primary_key=True, default=uuid_pkg.uuid4)
    reading_id: Mapped[uuid_pkg.UUID] = mapped_column(Uuid, ForeignKey("readings.id"), nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    accepted: Mapped[bool] = mapped_column(Boolean, nullable=False)
    answer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    reading = relationship("Reading", back_populates="journal_responses")


class AnalyticsEvent(Base):
    """Append-only usage event. No foreign keys so a write never fails on a stale id."""
    __tablename__ = "analytics_events"

    id: Mapped[uuid_pkg.UUID] = mapped_column(Uuid, primary_key=True, default=uuid_pkg.uuid4)
    event_type: Mapped[AnalyticsEventType] = mapped_column(
        Enum(AnalyticsEventType, name="analytics_event_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    reading_id: Mapped[Optional[uuid_pkg.UUID]] = mapped_column(Uuid, nullable=True)
    user_id: Mapped[Optional[uuid_pkg.UUID]] = mapped_column(Uuid, nullable=True)
    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
