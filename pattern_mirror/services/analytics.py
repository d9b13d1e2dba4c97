"""
Best-effort usage analytics.

`AnalyticsRecorder.record` writes one `analytics_events` row in its own
session. It never raises: every failure is logged and dropped, so routes can
schedule it as a background task without it touching their response.
"""

import logging
import uuid
from typing import Any, Callable, Dict, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from pattern_mirror.core.models import AnalyticsEvent, AnalyticsEventType

logger = logging.getLogger(__name__)

IdLike = Union[uuid.UUID, str, None]


def _coerce_uuid(value: IdLike) -> Optional[uuid.UUID]:
    if value is None or isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


class AnalyticsRecorder:
    """Fire-and-forget event logger."""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def record(
        self,
        event_type: AnalyticsEventType,
        reading_id: IdLike = None,
        user_id: IdLike = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            event = AnalyticsEvent(
                event_type=AnalyticsEventType(event_type),
                reading_id=_coerce_uuid(reading_id),
                user_id=_coerce_uuid(user_id),
                event_metadata=metadata or None,
            )
            async with self.session_factory() as session:
                session.add(event)
                await session.commit()
            logger.debug(f"Tracked analytics event {event.event_type.value}")
        except Exception as e:
            logger.error(f"Failed to track analytics event {event_type}: {e}")
