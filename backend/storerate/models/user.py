"""
User model — accounts and role-based access.

Roles form a closed set; every authorization point compares ``Role`` members.
"""
import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storerate.core.database import Base


class Role(str, enum.Enum):
    """User role."""

    SYSTEM_ADMIN = "system_admin"
    NORMAL_USER = "normal_user"
    STORE_OWNER = "store_owner"


class User(Base):
    """Registered user account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(60), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(400), nullable=True)
    role: Mapped[Role] = mapped_column(
        Enum(
            Role,
            name="user_role",
            native_enum=False,
            length=20,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
        default=Role.NORMAL_USER,
        server_default=Role.NORMAL_USER.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    stores = relationship("Store", back_populates="owner", passive_deletes=True)
    ratings = relationship("Rating", back_populates="user", passive_deletes=True)

    def __repr__(self):
        return f"<User id={self.id} email={self.email} role={self.role.value}>"
