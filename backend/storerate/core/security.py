"""
Security utilities — JWT tokens, password hashing, role gates.

Uses:
  - bcrypt for password hashing (direct, no passlib)
  - python-jose for JWT token creation/verification
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storerate.config import get_settings
from storerate.core.database import get_db
from storerate.models.user import Role, User

logger = logging.getLogger(__name__)

settings = get_settings()

# ── OAuth2 scheme ─────────────────────────────────────────────────
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_prefix}/auth/login", auto_error=False
)

# ── JWT config ────────────────────────────────────────────────────
ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(pwd_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        # bcrypt refuses inputs over 72 bytes; such a password never matches
        return False


def _token_claims(user: User) -> dict:
    return {"sub": str(user.id), "role": user.role.value}


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = _token_claims(user)
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def create_refresh_token(user: User) -> str:
    """Create a JWT refresh token."""
    to_encode = _token_claims(user)
    expire = datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_expire_days)
    to_encode.update({"exp": expire, "type": "refresh"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def load_token_user(
    db: AsyncSession, token: str, token_type: str = "access"
) -> User:
    """Resolve a token of the given type to a live user row."""
    payload = decode_token(token)

    if payload.get("type") != token_type:
        raise _unauthorized("Invalid token type")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token")

    user = await db.scalar(select(User).where(User.id == user_id))
    if user is None:
        logger.warning("Token for unknown user id=%s rejected", user_id)
        raise _unauthorized("User not found")

    return user


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """FastAPI dependency — extract current user from JWT token."""
    if token is None:
        raise _unauthorized("Access token required")
    return await load_token_user(db, token)


async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like ``get_current_user`` but anonymous callers get ``None``."""
    if token is None:
        return None
    return await load_token_user(db, token)


def require_roles(*roles: Role):
    """Dependency factory — reject callers whose role is not in ``roles``."""
    allowed = frozenset(roles)

    async def _check(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            logger.warning(
                "User %s with role %s denied (needs one of %s)",
                current_user.id,
                current_user.role.value,
                sorted(r.value for r in allowed),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied",
            )
        return current_user

    return _check


require_admin = require_roles(Role.SYSTEM_ADMIN)
require_store_owner = require_roles(Role.STORE_OWNER)
require_normal_user = require_roles(Role.NORMAL_USER)
