"""
Audit log endpoints.

Read only: entries are written by the audit sink and never edited or
removed over HTTP. Admin only.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.auth.audit import AuditLogService, get_audit_log
from app.schemas.audit import AuditLogResponse
from app.schemas.common import PaginatedResponse

router = APIRouter()


@router.get("", response_model=PaginatedResponse[AuditLogResponse])
async def list_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """
    List audit entries, most recent first.

    Filters are optional and combined with AND.
    """
    return await audit.query(
        db,
        action=action,
        user_id=user_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )


@router.get("/{log_id}", response_model=AuditLogResponse)
async def get_log(
    log_id: int,
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    entry = await audit.get(db, log_id)
    return AuditLogResponse.from_entry(entry)
