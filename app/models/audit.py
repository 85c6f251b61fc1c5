"""
Audit log model.

Every state-changing action in the registry leaves a row here:
who did it (nullable, survives user deletion as NULL), what was done,
a JSON detail document, and when.
"""

import json
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Optional
from sqlalchemy import String, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class AuditAction(str, PyEnum):
    """Action tags written by the registry. The column itself is free-form."""
    # Authentication
    CHANGE_PASSWORD = "CHANGE_PASSWORD"
    SETUP_ADMIN = "SETUP_ADMIN"

    # User management
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"

    # Students
    CREATE_STUDENT = "CREATE_STUDENT"
    UPDATE_STUDENT = "UPDATE_STUDENT"
    DELETE_STUDENT = "DELETE_STUDENT"

    # Teachers
    CREATE_TEACHER = "CREATE_TEACHER"
    UPDATE_TEACHER = "UPDATE_TEACHER"
    DELETE_TEACHER = "DELETE_TEACHER"
    ASSIGN_USER_TO_TEACHER = "ASSIGN_USER_TO_TEACHER"
    REVOKE_USER_FROM_TEACHER = "REVOKE_USER_FROM_TEACHER"

    # Courses
    CREATE_COURSE = "CREATE_COURSE"
    UPDATE_COURSE = "UPDATE_COURSE"
    DELETE_COURSE = "DELETE_COURSE"

    # Enrollments and grades
    CREATE_ENROLLMENT = "CREATE_ENROLLMENT"
    REMOVE_ENROLLMENT = "REMOVE_ENROLLMENT"
    UPDATE_GRADE = "UPDATE_GRADE"

    # Absences
    ADD_ABSENCE = "ADD_ABSENCE"
    REMOVE_ABSENCE = "REMOVE_ABSENCE"

    # Settings
    UPDATE_SEMESTER = "UPDATE_SEMESTER"


class AuditLog(Base):
    """
    Immutable audit log entry.

    Records are append-only; the API exposes no update or delete.
    Insertion order (descending id) is the reverse-chronological order.
    """

    __tablename__ = "logs"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Who (null for system actions, unknown actors and deleted users)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # What
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # When
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True
    )

    # Relationships
    user: Mapped[Optional["User"]] = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} by {self.user_id} at {self.timestamp}>"

    @property
    def username(self) -> Optional[str]:
        return self.user.username if self.user else None

    def get_details(self) -> Optional[dict[str, Any]]:
        if not self.details:
            return None
        return json.loads(self.details)

    @classmethod
    def create(
        cls,
        action: str,
        user_id: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> "AuditLog":
        """Factory method to create audit log entries."""
        return cls(
            action=action.value if isinstance(action, AuditAction) else action,
            user_id=user_id,
            details=json.dumps(details, default=str) if details else None,
        )


# Import for type hints
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from app.models.user import User
