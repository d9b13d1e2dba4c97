"""
Repository: persistence for readings and journal responses.

`ReadingStore` is the contract the rest of the service codes against.
`SqlReadingStore` is the production implementation on top of an SQLAlchemy
async session. Everything is append-only: there is no update or delete.

Important notes:
- `get` returns None for unknown or malformed ids; not-found is a normal outcome.
- Database errors are re-raised as `StorageFailure` so routes can tell them
  apart from generation errors.
- Each write commits before returning so an id handed back is durable.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pattern_mirror.core.models import JournalResponse as JournalResponseModel
from pattern_mirror.core.models import Reading as ReadingModel
from pattern_mirror.errors import StorageFailure
from pattern_mirror.schemas import (
    ReadingResponse,
    StoredJournalResponse,
    StoredReading,
    UserInput,
)

logger = logging.getLogger(__name__)

OwnerId = Union[uuid.UUID, str]


def _as_uuid(value: OwnerId) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


class ReadingStore(Protocol):
    async def save(self, inputs: UserInput, reading: ReadingResponse, owner_id: Optional[OwnerId] = None) -> str: ...

    async def get(self, reading_id: str) -> Optional[StoredReading]: ...

    async def list_by_owner(self, owner_id: OwnerId) -> List[StoredReading]: ...

    async def list_all(self, limit: int = 100) -> List[StoredReading]: ...

    async def save_journal_response(
        self, reading_id: str, prompt: str, accepted: bool, answer: Optional[str] = None
    ) -> None: ...

    async def list_journal_responses(self, reading_id: str) -> List[StoredJournalResponse]: ...


class SqlReadingStore:
    """DB access only. No business logic here."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _to_stored(row: ReadingModel) -> StoredReading:
        return StoredReading(
            reading_id=str(row.id),
            inputs=UserInput.model_validate(row.inputs),
            reading=ReadingResponse.model_validate(row.reading),
            created_at=row.created_at,
            user_id=row.user_id,
        )

    async def save(self, inputs: UserInput, reading: ReadingResponse, owner_id: Optional[OwnerId] = None) -> str:
        """Persist a new reading and return its freshly generated id."""
        row = ReadingModel(
            id=uuid.uuid4(),
            user_id=_as_uuid(owner_id) if owner_id is not None else None,
            inputs=inputs.to_json(),
            reading=reading.to_json(),
            created_at=datetime.now(timezone.utc),
        )
        try:
            self.db.add(row)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to save reading: {e}")
            raise StorageFailure(str(e)) from e
        logger.info(f"Saved reading with ID: {row.id}")
        return str(row.id)

    async def get(self, reading_id: str) -> Optional[StoredReading]:
        """Exact-match lookup. Unknown and malformed ids both return None."""
        key = _as_uuid(reading_id)
        if key is None:
            return None
        try:
            result = await self.db.execute(select(ReadingModel).where(ReadingModel.id == key))
        except SQLAlchemyError as e:
            logger.error(f"Failed to load reading {reading_id}: {e}")
            raise StorageFailure(str(e)) from e
        row = result.scalar_one_or_none()
        return self._to_stored(row) if row else None

    async def _list(self, stmt) -> List[StoredReading]:
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list readings: {e}")
            raise StorageFailure(str(e)) from e
        return [self._to_stored(row) for row in result.scalars().all()]

    async def list_by_owner(self, owner_id: OwnerId) -> List[StoredReading]:
        """All readings for one owner, newest first."""
        key = _as_uuid(owner_id)
        if key is None:
            return []
        return await self._list(
            select(ReadingModel)
            .where(ReadingModel.user_id == key)
            .order_by(ReadingModel.created_at.desc())
        )

    async def list_all(self, limit: int = 100) -> List[StoredReading]:
        """Administrative listing, newest first, never more than 100 rows."""
        limit = max(1, min(limit, 100))
        return await self._list(
            select(ReadingModel).order_by(ReadingModel.created_at.desc()).limit(limit)
        )

    async def save_journal_response(
        self, reading_id: str, prompt: str, accepted: bool, answer: Optional[str] = None
    ) -> None:
        key = _as_uuid(reading_id)
        if key is None:
            raise StorageFailure(f"Invalid reading id: {reading_id}")
        row = JournalResponseModel(
            reading_id=key,
            prompt=prompt,
            accepted=accepted,
            answer=answer,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self.db.add(row)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to save journal response for reading {reading_id}: {e}")
            raise StorageFailure(str(e)) from e

    async def list_journal_responses(self, reading_id: str) -> List[StoredJournalResponse]:
        key = _as_uuid(reading_id)
        if key is None:
            return []
        try:
            result = await self.db.execute(
                select(JournalResponseModel)
                .where(JournalResponseModel.reading_id == key)
                .order_by(JournalResponseModel.created_at)
            )
        except SQLAlchemyError as e:
            raise StorageFailure(str(e)) from e
        return [
            StoredJournalResponse(
                reading_id=str(row.reading_id),
                prompt=row.prompt,
                accepted=row.accepted,
                answer=row.answer,
                created_at=row.created_at,
            )
            for row in result.scalars().all()
        ]
