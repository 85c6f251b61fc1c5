"""
Key/value settings endpoints.

Reading is open to Admin and Teacher; writes are Admin only. Changing
the current semester is audited.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.config import CURRENT_SEMESTER_KEY
from app.core.database import get_db
from app.core.utils import get_or_404
from app.models.setting import Setting
from app.models.audit import AuditAction
from app.auth.audit import AuditLogService, get_audit_log
from app.auth.dependencies import require_role
from app.auth.roles import ADMIN
from app.auth.policy import Principal
from app.schemas.setting import (
    SettingValue,
    SettingResponse,
    SemesterUpdate,
    SemesterResponse,
)
from app.schemas.common import MessageResponse

router = APIRouter()


async def _upsert(
    db: AsyncSession,
    audit: AuditLogService,
    actor: str,
    key: str,
    value: Optional[str],
) -> Setting:
    result = await db.execute(select(Setting).where(Setting.key == key))
    setting = result.scalar_one_or_none()
    old_value = setting.value if setting else None

    if setting is None:
        setting = Setting(key=key, value=value)
        db.add(setting)
    else:
        setting.value = value

    await db.commit()

    if key == CURRENT_SEMESTER_KEY:
        await audit.record(
            actor,
            AuditAction.UPDATE_SEMESTER,
            {"key": key, "oldValue": old_value, "newValue": value},
        )

    return setting


@router.get("", response_model=list[SettingResponse])
async def list_settings(
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Setting).order_by(Setting.key))
    return [SettingResponse.model_validate(s) for s in result.scalars().all()]


# =============================================================================
# Current semester
# =============================================================================

@router.get("/current-semester", response_model=SemesterResponse)
async def get_current_semester(
    db: AsyncSession = Depends(get_db),
):
    """Current semester, or null when never set."""
    result = await db.execute(select(Setting.value).where(Setting.key == CURRENT_SEMESTER_KEY))
    return SemesterResponse(semester=result.scalar_one_or_none())


@router.put("/current-semester", response_model=SemesterResponse)
async def set_current_semester(
    semester_data: SemesterUpdate,
    principal: Principal = Depends(require_role(ADMIN)),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    setting = await _upsert(db, audit, principal.username, CURRENT_SEMESTER_KEY, semester_data.semester)
    return SemesterResponse(semester=setting.value)


# =============================================================================
# By key
# =============================================================================

@router.get("/{key}", response_model=SettingResponse)
async def get_setting(
    key: str,
    db: AsyncSession = Depends(get_db),
):
    setting = await get_or_404(db, Setting, "Setting", key=key)
    return SettingResponse.model_validate(setting)


@router.put("/{key}", response_model=SettingResponse)
async def put_setting(
    key: str,
    setting_data: SettingValue,
    principal: Principal = Depends(require_role(ADMIN)),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """Create or replace the value stored under ``key``."""
    setting = await _upsert(db, audit, principal.username, key, setting_data.value)
    return SettingResponse.model_validate(setting)


@router.delete("/{key}", response_model=MessageResponse)
async def delete_setting(
    key: str,
    db: AsyncSession = Depends(get_db),
):
    setting = await get_or_404(db, Setting, "Setting", key=key)
    await db.delete(setting)
    await db.commit()
    return MessageResponse(message="Setting deleted successfully")
