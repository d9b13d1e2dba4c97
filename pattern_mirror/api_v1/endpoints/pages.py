import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import HTMLResponse, RedirectResponse
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from pattern_mirror.api_v1.deps import AnalyticsDep, ReadingStoreDep
from pattern_mirror.api_v1.endpoints.auth import set_session_cookie
from pattern_mirror.auth import (
    AUTH_CODE_PURPOSE,
    OptionalUserDep,
    create_access_token,
    decode_token,
    get_user_by_username,
)
from pattern_mirror.core.database import get_db
from pattern_mirror.core.models import AnalyticsEventType
from pattern_mirror.pages import render_home, render_not_found, render_result

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/", response_class=HTMLResponse)
async def home():
    return render_home()

@router.get("/result", response_class=HTMLResponse)
async def result(
    store: ReadingStoreDep,
    analytics: AnalyticsDep,
    user: OptionalUserDep,
    background_tasks: BackgroundTasks,
    rid: Optional[str] = Query(None),
):
    """Render a stored reading, or the not-found page"""
    stored = await store.get(rid) if rid else None
    if stored is None:
        logger.info(f"Result page requested for unknown reading: {rid}")
        return HTMLResponse(render_not_found(), status_code=status.HTTP_404_NOT_FOUND)

    background_tasks.add_task(
        analytics.record,
        AnalyticsEventType.READING_VIEWED,
        reading_id=stored.reading_id,
        user_id=user.id if user else None,
    )
    return HTMLResponse(render_result(stored))

@router.get("/auth/callback", name="auth_callback")
async def auth_callback(
    code: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Exchange an auth code for a session, then drop the code from the URL"""
    response = RedirectResponse(url="/")
    if not code:
        return response
    try:
        token_data = decode_token(code, purpose=AUTH_CODE_PURPOSE)
    except JWTError as e:
        logger.warning(f"Rejected auth code: {e}")
        return response

    user = await get_user_by_username(db, token_data.username) if token_data.username else None
    if user is None:
        logger.warning("Auth code refers to an unknown account")
        return response

    set_session_cookie(response, create_access_token(data={"sub": user.username}))
    logger.info(f"Session established from auth code for '{user.username}'")
    return response
