"""
Authentication API endpoints.

POST /auth/register — Register a new normal user
POST /auth/login    — Login, returns JWT access + refresh tokens
POST /auth/refresh  — Refresh access token
GET  /auth/me       — Current user profile
PUT  /auth/password — Change own password
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storerate.core.database import get_db
from storerate.core.security import (
    create_access_token,
    create_refresh_token,
    get_current_user,
    hash_password,
    load_token_user,
    verify_password,
)
from storerate.models.user import Role, User
from storerate.schemas.auth import (
    LoginRequest,
    MessageResponse,
    PasswordChangeRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserEnvelope,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _build_token_response(user: User, message: str | None = None) -> TokenResponse:
    """Build JWT token pair response for a user."""
    return TokenResponse(
        message=message,
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Register a new user account."""
    existing = await db.scalar(select(User.id).where(User.email == body.email))
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists",
        )

    user = User(
        name=body.name,
        email=body.email,
        password_hash=hash_password(body.password),
        address=body.address,
        role=Role.NORMAL_USER,
    )
    try:
        db.add(user)
        await db.flush()
        await db.refresh(user)
    except SQLAlchemyError:
        logger.exception("Registration failed for %s", body.email)
        raise HTTPException(status_code=500, detail="Failed to register user")

    logger.info("User %s registered (%s)", user.id, user.email)
    return _build_token_response(user, "User registered successfully")


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate user and return JWT tokens."""
    user = await db.scalar(select(User).where(User.email == body.email.lower()))

    if not user or not verify_password(body.password, user.password_hash):
        logger.warning("Failed login for %s", body.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    return _build_token_response(user, "Login successful")


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Refresh access token using refresh token."""
    user = await load_token_user(db, body.refresh_token, token_type="refresh")
    return _build_token_response(user)


@router.get("/me", response_model=UserEnvelope)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user profile."""
    return UserEnvelope(user=UserResponse.model_validate(current_user))


@router.put("/password", response_model=MessageResponse)
async def change_password(
    body: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change the caller's password after re-checking the current one."""
    if not verify_password(body.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    try:
        current_user.password_hash = hash_password(body.new_password)
        await db.flush()
    except SQLAlchemyError:
        logger.exception("Password change failed for user %s", current_user.id)
        raise HTTPException(status_code=500, detail="Failed to update password")

    logger.info("Password changed for user %s", current_user.id)
    return MessageResponse(message="Password updated successfully")
