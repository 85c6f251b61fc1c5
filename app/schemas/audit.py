"""
Audit log schemas.
"""

from typing import Any, Optional
from datetime import datetime

from app.models.audit import AuditLog
from app.schemas.common import CamelModel


class AuditLogResponse(CamelModel):
    """Audit log entry as returned by the API."""

    id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    action: str
    details: Optional[dict[str, Any]] = None
    timestamp: datetime

    @classmethod
    def from_entry(cls, entry: AuditLog) -> "AuditLogResponse":
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            username=entry.username,
            action=entry.action,
            details=entry.get_details(),
            timestamp=entry.timestamp,
        )
