"""
User and Role models for RBAC.

Security considerations:
- Passwords are hashed with Argon2id (memory-hard, side-channel resistant)
- Exactly one role per user; the role name is the sole authorization input
- All timestamps use UTC
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Optional
from sqlalchemy import String, DateTime, ForeignKey, Enum, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.auth.password import hash_password, verify_password


class UserStatus(str, PyEnum):
    """Account status. Only active accounts may log in."""
    ACTIVE = "active"
    INACTIVE = "inactive"

    @classmethod
    def _missing_(cls, value):
        # Accept "ACTIVE", " Inactive " and friends
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class Role(Base):
    """Named role. Names are stored in canonical uppercase form."""

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Role {self.name}>"


class User(Base):
    """
    User account.

    Deleting a user leaves their audit entries in place with a null
    user reference.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Authentication
    username: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(150), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    # Authorization
    role_id: Mapped[int] = mapped_column(
        ForeignKey("roles.id", ondelete="RESTRICT"),
        nullable=False,
    )
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserStatus.ACTIVE,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    role: Mapped["Role"] = relationship("Role", lazy="selectin")

    def __repr__(self) -> str:
        return f"<User {self.username}>"

    @property
    def role_name(self) -> Optional[str]:
        return self.role.name if self.role else None

    @property
    def is_enabled(self) -> bool:
        """Login eligibility."""
        return self.status == UserStatus.ACTIVE

    def set_password(self, password: str) -> None:
        """Hash and set password using Argon2id."""
        self.password_hash = hash_password(password)

    def verify_password(self, password: str) -> bool:
        return verify_password(password, self.password_hash)
