"""
Audit log sink.

Domain operations call ``record`` after their own transaction has
committed. The write goes through a separate session so a failure here
can neither roll back nor poison the caller's unit of work, and it never
raises: faults are logged and dropped.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import async_session_maker
from app.core.exceptions import NotFound
from app.core.utils import apply_filter, count_of, paginate
from app.models.audit import AuditAction, AuditLog
from app.models.user import User
from app.schemas.audit import AuditLogResponse
from app.schemas.common import PaginatedResponse

logger = logging.getLogger(__name__)

# Actor for actions taken before anyone is authenticated (admin bootstrap)
SYSTEM_ACTOR = "SYSTEM"

Actor = Union[str, int, None]


class AuditLogService:
    """
    Append-only audit trail.

    Args:
        session_factory: Factory for the sessions audit writes go through
    """

    def __init__(self, session_factory: async_sessionmaker = async_session_maker):
        self.session_factory = session_factory

    async def record(
        self,
        actor: Actor,
        action: Union[AuditAction, str],
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """
        Persist one audit entry.

        Args:
            actor: Username, user id, None or SYSTEM_ACTOR. Unknown actors
                are recorded with a null user reference.
            action: Action tag
            details: JSON-serializable detail document

        Returns:
            The stored entry, or None if the write failed
        """
        try:
            async with self.session_factory() as session:
                user_id = await self._resolve_actor(session, actor)
                entry = AuditLog.create(action=action, user_id=user_id, details=details)
                session.add(entry)
                await session.commit()
                return entry
        except Exception:
            logger.exception("Failed to write audit entry %s for actor %r", action, actor)
            return None

    async def _resolve_actor(self, session: AsyncSession, actor: Actor) -> Optional[int]:
        if actor is None or actor == SYSTEM_ACTOR:
            return None

        if isinstance(actor, int):
            user = await session.get(User, actor)
            return user.id if user else None

        username = actor.strip()
        if not username:
            return None
        result = await session.execute(select(User.id).where(User.username == username))
        return result.scalar_one_or_none()

    async def query(
        self,
        db: AsyncSession,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
    ) -> PaginatedResponse:
        """
        Page through entries, newest first.

        Filters are optional and AND-combined.
        """
        query = select(AuditLog)
        count_query = count_of(AuditLog)

        if action:
            query, count_query = apply_filter(query, count_query, AuditLog.action == action)
        if user_id is not None:
            query, count_query = apply_filter(query, count_query, AuditLog.user_id == user_id)
        if date_from is not None:
            query, count_query = apply_filter(query, count_query, AuditLog.timestamp >= date_from)
        if date_to is not None:
            query, count_query = apply_filter(query, count_query, AuditLog.timestamp <= date_to)

        query = query.order_by(AuditLog.id.desc())
        return await paginate(db, query, count_query, page, limit, AuditLogResponse.from_entry)

    async def get(self, db: AsyncSession, log_id: int) -> AuditLog:
        entry = await db.get(AuditLog, log_id)
        if entry is None:
            raise NotFound("Log")
        return entry


audit_log = AuditLogService()


def get_audit_log() -> AuditLogService:
    """Dependency returning the process-wide audit sink."""
    return audit_log
