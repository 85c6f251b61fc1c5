"""
Authentication service.

- login: verify credentials and issue a bearer token
- get_current_user: resolve the request principal back to its identity
- change_password: re-hash after verifying the current password
- setup_admin: one-time administrator bootstrap
"""

import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.audit import SYSTEM_ACTOR, AuditLogService, get_audit_log
from app.auth.jwt import create_access_token
from app.auth.password import hash_password, needs_rehash, verify_password
from app.auth.policy import Principal
from app.auth.roles import ADMIN, TEACHER, normalize_role_name
from app.core.database import get_db
from app.core.exceptions import (
    AlreadyExists,
    InvalidCredentials,
    InvalidOldPassword,
    Unauthorized,
)
from app.models.audit import AuditAction
from app.models.user import Role, User, UserStatus
from app.schemas.auth import LoginResponse
from app.schemas.user import UserResponse, user_to_response

logger = logging.getLogger(__name__)

# Verified against when the username is unknown, so both login failure
# paths cost one hash verification.
_DUMMY_HASH = hash_password("registry-timing-equalizer")


class AuthService:
    """
    Authentication operations over one request's database session.

    Args:
        db: Request-scoped session
        audit: Audit sink, written to after each committed change
    """

    def __init__(self, db: AsyncSession, audit: AuditLogService):
        self.db = db
        self.audit = audit

    async def _get_user(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def login(self, username: str, password: str) -> LoginResponse:
        """
        Verify credentials and issue a token.

        Raises:
            InvalidCredentials: unknown user, wrong password, inactive
                account or any internal fault. The caller cannot tell which.
        """
        try:
            user = await self._get_user(username)

            if user is None:
                verify_password(password, _DUMMY_HASH)
                raise InvalidCredentials()

            if not user.verify_password(password) or not user.is_enabled:
                raise InvalidCredentials()

            if needs_rehash(user.password_hash):
                user.set_password(password)
                await self.db.commit()

            token = create_access_token(user.username, normalize_role_name(user.role_name))
            return LoginResponse(token=token, user=user_to_response(user))
        except InvalidCredentials:
            logger.info("Failed login for %r", username)
            raise
        except Exception:
            logger.exception("Login failed with an internal error")
            raise InvalidCredentials()

    async def get_current_user(self, principal: Principal) -> UserResponse:
        """
        Resolve the principal to its identity.

        Tokens outlive deleted users; such a principal is Unauthorized.
        """
        user = await self._get_user(principal.username)
        if user is None:
            raise Unauthorized("User no longer exists")
        return user_to_response(user)

    async def change_password(
        self,
        principal: Principal,
        old_password: str,
        new_password: str,
    ) -> None:
        """
        Replace the caller's password.

        Raises:
            Unauthorized: the principal's identity no longer exists
            InvalidOldPassword: old_password does not verify
        """
        user = await self._get_user(principal.username)
        if user is None:
            raise Unauthorized("User no longer exists")

        if not user.verify_password(old_password):
            raise InvalidOldPassword()

        user.set_password(new_password)
        await self.db.commit()

        await self.audit.record(
            principal.username,
            AuditAction.CHANGE_PASSWORD,
            {"userId": user.id, "username": user.username},
        )

    async def _get_or_create_role(self, name: str) -> Role:
        result = await self.db.execute(select(Role).where(Role.name == name))
        role = result.scalar_one_or_none()
        if role is None:
            role = Role(name=name)
            self.db.add(role)
            await self.db.flush()
        return role

    async def setup_admin(self, username: str, email: str, password: str) -> UserResponse:
        """
        Create the first administrator.

        Succeeds at most once: fails if the username or email is taken or
        if any user already holds the ADMIN role. The check is
        query-before-insert and is not atomic under concurrent bootstraps.

        Raises:
            AlreadyExists: bootstrap already done, or identity collision
        """
        admin_exists = await self.db.execute(
            select(User.id).join(Role, User.role_id == Role.id).where(Role.name == ADMIN).limit(1)
        )
        if admin_exists.first() is not None:
            raise AlreadyExists("Admin user already exists")

        taken = await self.db.execute(
            select(User.id).where((User.username == username) | (User.email == email)).limit(1)
        )
        if taken.first() is not None:
            raise AlreadyExists("Username or email already exists")

        admin_role = await self._get_or_create_role(ADMIN)
        await self._get_or_create_role(TEACHER)

        user = User(
            username=username,
            email=email,
            role=admin_role,
            status=UserStatus.ACTIVE,
        )
        user.set_password(password)
        self.db.add(user)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise AlreadyExists("Username or email already exists")

        await self.audit.record(
            SYSTEM_ACTOR,
            AuditAction.SETUP_ADMIN,
            {
                "userId": user.id,
                "username": user.username,
                "email": user.email,
                "role": admin_role.name,
            },
        )
        logger.info("Administrator %s created", user.username)

        return user_to_response(user)


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
) -> AuthService:
    return AuthService(db, audit)
