"""
User management endpoints.

Admin only (enforced by the route policy).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.exceptions import AlreadyExists
from app.core.utils import apply_filter, apply_search_filter, count_of, exists, get_or_404, paginate
from app.models.user import Role, User, UserStatus
from app.models.audit import AuditAction
from app.auth.audit import AuditLogService, get_audit_log
from app.auth.dependencies import require_role
from app.auth.policy import Principal
from app.auth.roles import ADMIN, normalize_role_name
from app.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
    user_to_response,
)
from app.schemas.common import MessageResponse, PaginatedResponse

router = APIRouter()


async def _ensure_unique(
    db: AsyncSession,
    username: Optional[str],
    email: Optional[str],
    exclude_id: Optional[int] = None,
) -> None:
    if username is not None:
        query = select(User.id).where(User.username == username)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if await exists(db, query):
            raise AlreadyExists("Username already exists")

    if email is not None:
        query = select(User.id).where(User.email == email)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if await exists(db, query):
            raise AlreadyExists("Email already exists")


# =============================================================================
# User CRUD
# =============================================================================

@router.get("", response_model=PaginatedResponse[UserResponse])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    email: Optional[str] = None,
    role: Optional[str] = None,
    status_filter: Optional[UserStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    """
    List users with pagination and filtering.

    - email: case-insensitive substring
    - role: role name, case-insensitive
    - status: account status
    """
    query = select(User)
    count_query = count_of(User)

    query, count_query = apply_search_filter(query, count_query, email, User.email)

    role_name = normalize_role_name(role)
    if role_name:
        role_ids = select(Role.id).where(Role.name == role_name)
        query, count_query = apply_filter(query, count_query, User.role_id.in_(role_ids))
    if status_filter is not None:
        query, count_query = apply_filter(query, count_query, User.status == status_filter)

    query = query.order_by(User.id)
    return await paginate(db, query, count_query, page, limit, user_to_response)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    principal: Principal = Depends(require_role(ADMIN)),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """Create a user account. Username and email must be unused."""
    await _ensure_unique(db, user_data.username, user_data.email)
    role = await get_or_404(db, Role, "Role", id=user_data.role_id)

    user = User(
        username=user_data.username,
        email=user_data.email,
        role=role,
        status=user_data.status,
    )
    user.set_password(user_data.password)

    db.add(user)
    await db.commit()

    await audit.record(
        principal.username,
        AuditAction.CREATE_USER,
        {"userId": user.id, "username": user.username, "email": user.email, "role": role.name},
    )

    return user_to_response(user)


@router.get("/username/{username}", response_model=UserResponse)
async def get_user_by_username(
    username: str,
    db: AsyncSession = Depends(get_db),
):
    """Get a specific user by username."""
    user = await get_or_404(db, User, "User", username=username)
    return user_to_response(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a specific user by ID."""
    user = await get_or_404(db, User, "User", id=user_id)
    return user_to_response(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    principal: Principal = Depends(require_role(ADMIN)),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """
    Update a user.

    The password is re-hashed only when supplied.
    """
    user = await get_or_404(db, User, "User", id=user_id)
    await _ensure_unique(db, user_data.username, user_data.email, exclude_id=user.id)

    changes = {}

    if user_data.username is not None and user_data.username != user.username:
        changes["username"] = {"old": user.username, "new": user_data.username}
        user.username = user_data.username

    if user_data.email is not None and user_data.email != user.email:
        changes["email"] = {"old": user.email, "new": user_data.email}
        user.email = user_data.email

    if user_data.role_id is not None and user_data.role_id != user.role_id:
        role = await get_or_404(db, Role, "Role", id=user_data.role_id)
        changes["role"] = {"old": user.role_name, "new": role.name}
        user.role = role

    if user_data.status is not None and user_data.status != user.status:
        changes["status"] = {"old": user.status.value, "new": user_data.status.value}
        user.status = user_data.status

    if user_data.password:
        user.set_password(user_data.password)
        changes["password"] = "changed"

    await db.commit()

    if changes:
        await audit.record(
            principal.username,
            AuditAction.UPDATE_USER,
            {"userId": user.id, "changes": changes},
        )

    return user_to_response(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    principal: Principal = Depends(require_role(ADMIN)),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """
    Delete a user.

    Past audit entries keep a null user reference; a linked teacher
    record is unlinked.
    """
    user = await get_or_404(db, User, "User", id=user_id)
    details = {"userId": user.id, "username": user.username, "email": user.email}

    await db.delete(user)
    await db.commit()

    await audit.record(principal.username, AuditAction.DELETE_USER, details)

    return MessageResponse(message="User deleted successfully")
