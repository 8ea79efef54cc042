"""Pydantic schemas for administrator user management."""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, field_validator

from storerate.models.user import Role
from storerate.schemas.auth import UserResponse
from storerate.schemas.common import Address, Email, Password, UserName

INVALID_ROLE_MESSAGE = (
    "Invalid role. Must be one of: " + ", ".join(r.value for r in Role)
)


def parse_role(value) -> Role:
    """Coerce a raw role string into ``Role`` or raise ``ValueError``."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        raise ValueError(INVALID_ROLE_MESSAGE)


RoleField = Annotated[Role, BeforeValidator(parse_role)]


class AdminUserCreate(BaseModel):
    name: UserName
    email: Email
    password: Password
    address: Optional[Address] = None
    role: RoleField = Role.NORMAL_USER


class AdminUserUpdate(BaseModel):
    """Full update; ``password`` is only changed when supplied."""
    name: UserName
    email: Email
    password: Optional[Password] = None
    address: Optional[Address] = None
    role: RoleField

    @field_validator("password", mode="before")
    @classmethod
    def blank_password_means_unchanged(cls, value):
        return value or None


class RoleUpdate(BaseModel):
    role: RoleField


class UserDetail(UserResponse):
    """User with the owner's overall store rating (store owners only)."""
    store_rating: Optional[str] = None


class UserDetailEnvelope(BaseModel):
    user: UserDetail


class UserMutationResponse(BaseModel):
    message: str
    user: UserResponse


class UserListItem(BaseModel):
    id: int
    name: str
    email: str
    role: Role
    address: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    users: list[UserListItem]


class DashboardStatistics(BaseModel):
    totalUsers: int
    totalStores: int
    totalRatings: int


class AdminDashboardResponse(BaseModel):
    statistics: DashboardStatistics
