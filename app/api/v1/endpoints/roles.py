"""
Role management endpoints.

Admin only. Role names are stored in canonical uppercase form.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.exceptions import AlreadyExists, Conflict, NotFound
from app.core.utils import count_of, exists, get_or_404, paginate
from app.models.user import Role, User
from app.auth.roles import normalize_role_name
from app.schemas.user import RoleCreate, RoleResponse
from app.schemas.common import MessageResponse, PaginatedResponse

router = APIRouter()


@router.get("", response_model=PaginatedResponse[RoleResponse])
async def list_roles(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    query = select(Role).order_by(Role.id)
    return await paginate(db, query, count_of(Role), page, limit, RoleResponse.model_validate)


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    role_data: RoleCreate,
    db: AsyncSession = Depends(get_db),
):
    if await exists(db, select(Role.id).where(Role.name == role_data.name)):
        raise AlreadyExists("Role already exists")

    role = Role(name=role_data.name)
    db.add(role)
    await db.commit()
    return RoleResponse.model_validate(role)


@router.get("/name/{name}", response_model=RoleResponse)
async def get_role_by_name(
    name: str,
    db: AsyncSession = Depends(get_db),
):
    """Lookup is case-insensitive."""
    canonical = normalize_role_name(name)
    if canonical is None:
        raise NotFound("Role")
    role = await get_or_404(db, Role, "Role", name=canonical)
    return RoleResponse.model_validate(role)


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: int,
    db: AsyncSession = Depends(get_db),
):
    role = await get_or_404(db, Role, "Role", id=role_id)
    return RoleResponse.model_validate(role)


@router.put("/{role_id}", response_model=RoleResponse)
async def rename_role(
    role_id: int,
    role_data: RoleCreate,
    db: AsyncSession = Depends(get_db),
):
    role = await get_or_404(db, Role, "Role", id=role_id)

    if role_data.name != role.name:
        taken = select(Role.id).where(Role.name == role_data.name, Role.id != role.id)
        if await exists(db, taken):
            raise AlreadyExists("Role already exists")
        role.name = role_data.name
        await db.commit()

    return RoleResponse.model_validate(role)


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Fails with 409 while any user holds the role."""
    role = await get_or_404(db, Role, "Role", id=role_id)

    if await exists(db, select(User.id).where(User.role_id == role.id)):
        raise Conflict("Role is assigned to users")

    await db.delete(role)
    await db.commit()
    return MessageResponse(message="Role deleted successfully")
