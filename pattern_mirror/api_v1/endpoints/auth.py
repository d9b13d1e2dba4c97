from typing import Annotated
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from pattern_mirror.api_v1.deps import AnalyticsDep
from pattern_mirror.auth import (
    CurrentUserDep,
    authenticate_user,
    create_access_token,
    create_auth_code,
    create_user,
    get_user_by_username,
)
from pattern_mirror.core.database import get_db
from pattern_mirror.core.models import AnalyticsEventType
from pattern_mirror.core.settings import settings
from pattern_mirror import schemas

logger = logging.getLogger(__name__)

router = APIRouter()

username_taken = HTTPException(
    status_code=status.HTTP_400_BAD_REQUEST,
    detail="Username already registered"
)

def set_session_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
    )

@router.post("/signup", response_model=schemas.Token, status_code=status.HTTP_201_CREATED)
async def signup(
    user_in: schemas.UserCreate,
    request: Request,
    response: Response,
    analytics: AnalyticsDep,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    """Create an account and sign it in"""
    if await get_user_by_username(db, user_in.username):
        raise username_taken
    user = await create_user(db, user_in)
    if user is None:
        raise username_taken
    logger.info(f"Created account '{user.username}'")

    # Email delivery is out of scope; the confirmation link is logged instead
    confirm_url = request.url_for("auth_callback").include_query_params(code=create_auth_code(user.username))
    logger.info(f"Confirmation link for '{user.username}': {confirm_url}")

    access_token = create_access_token(data={"sub": user.username})
    set_session_cookie(response, access_token)
    background_tasks.add_task(analytics.record, AnalyticsEventType.USER_SIGNUP, user_id=user.id)
    return schemas.Token(access_token=access_token)

@router.post("/token", response_model=schemas.Token)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    response: Response,
    analytics: AnalyticsDep,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    """Login and get access token"""
    user = await authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(data={"sub": user.username})
    set_session_cookie(response, access_token)
    background_tasks.add_task(analytics.record, AnalyticsEventType.USER_LOGIN, user_id=user.id)
    return schemas.Token(access_token=access_token)

@router.post("/signout", status_code=status.HTTP_204_NO_CONTENT)
async def signout():
    """Clear the session cookie"""
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response

@router.get("/me", response_model=schemas.User)
async def read_current_user(current_user: CurrentUserDep):
    """Get current user info"""
    return current_user
