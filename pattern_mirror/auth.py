from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
import logging

from pattern_mirror.core.database import get_db
from pattern_mirror.core.models import User
from pattern_mirror.core.settings import settings
from pattern_mirror import schemas

logger = logging.getLogger(__name__)

# Security
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/token", auto_error=False)

ACCESS_PURPOSE = "access"
AUTH_CODE_PURPOSE = "auth_code"

# Exception for unauthorized access
credentials_exception = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)

def _encode(data: dict, purpose: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta, "purpose": purpose})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token"""
    return _encode(data, ACCESS_PURPOSE, expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

def create_auth_code(username: str) -> str:
    """Create a short-lived code that /auth/callback can exchange for a session"""
    return _encode({"sub": username}, AUTH_CODE_PURPOSE, timedelta(minutes=settings.AUTH_CODE_EXPIRE_MINUTES))

def decode_token(token: str, purpose: str = ACCESS_PURPOSE) -> schemas.TokenData:
    """Decode a token of the given purpose. Raises JWTError if invalid."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("purpose") != purpose:
        raise JWTError(f"Token is not an {purpose} token")
    return schemas.TokenData(username=payload.get("sub"))

async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    """Get a user by username"""
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()

async def authenticate_user(db: AsyncSession, username: str, password: str) -> Optional[User]:
    """Authenticate a user"""
    user = await get_user_by_username(db, username)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user

async def create_user(db: AsyncSession, user_create: schemas.UserCreate) -> Optional[User]:
    """Create a new user. Returns None if the username was taken concurrently."""
    hashed_password = get_password_hash(user_create.password)
    db_user = User(
        username=user_create.username,
        hashed_password=hashed_password
    )
    db.add(db_user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(f"Signup lost a race for username '{user_create.username}'")
        return None
    await db.refresh(db_user)
    return db_user

async def get_optional_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> Optional[schemas.User]:
    """The signed-in user, or None for anonymous requests and unusable tokens"""
    token = token or request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    try:
        token_data = decode_token(token)
    except JWTError as e:
        logger.info(f"Ignoring invalid session token: {e}")
        return None
    if token_data.username is None:
        return None
    user = await get_user_by_username(db, username=token_data.username)
    if user is None:
        return None
    return schemas.User.model_validate(user)

async def get_current_user(
    user: Optional[schemas.User] = Depends(get_optional_user)
) -> schemas.User:
    """Get the current authenticated user"""
    if user is None:
        raise credentials_exception
    return user

async def require_admin(
    user: schemas.User = Depends(get_current_user)
) -> schemas.User:
    """Only accounts listed in ADMIN_USERNAMES"""
    if user.username not in settings.ADMIN_USERNAMES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user

# Type annotations for dependencies
OptionalUserDep = Annotated[Optional[schemas.User], Depends(get_optional_user)]
CurrentUserDep = Annotated[schemas.User, Depends(get_current_user)]
AdminUserDep = Annotated[schemas.User, Depends(require_admin)]
