"""Pydantic schemas for authentication and the caller's own profile."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from storerate.models.user import Role
from storerate.schemas.common import Address, Email, Password, UserName


# ── Auth Request/Response ─────────────────────────────────────────

class RegisterRequest(BaseModel):
    """Self-registration; the account is always a normal user."""
    name: UserName
    email: Email
    password: Password
    address: Optional[Address] = None


class LoginRequest(BaseModel):
    """Login request."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    """Token refresh request."""
    refresh_token: str


class PasswordChangeRequest(BaseModel):
    """Change the caller's password."""
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: Password = Field(..., alias="newPassword")


# ── User Response ─────────────────────────────────────────────────

class UserResponse(BaseModel):
    """User profile in API responses."""
    id: int
    name: str
    email: str
    address: Optional[str] = None
    role: Role
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserEnvelope(BaseModel):
    user: UserResponse


class TokenResponse(BaseModel):
    """JWT token pair response."""
    message: Optional[str] = None
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
