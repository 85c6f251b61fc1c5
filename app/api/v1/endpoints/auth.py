"""
Authentication endpoints.

Provides:
- Login (username/password → JWT bearer token)
- Logout (client-side no-op)
- Current user
- Password change
- First-run administrator bootstrap
"""

from fastapi import APIRouter, Depends, status

from app.auth.dependencies import get_current_principal
from app.auth.policy import Principal
from app.auth.service import AuthService, get_auth_service
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    ChangePasswordRequest,
    SetupAdminRequest,
)
from app.schemas.common import MessageResponse
from app.schemas.user import UserResponse

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
):
    """
    Authenticate and return a bearer token with the user summary.

    Unknown user, wrong password and disabled account all answer the same
    401 "Invalid credentials".
    """
    return await service.login(login_data.username, login_data.password)


@router.post("/logout", response_model=MessageResponse)
async def logout():
    """
    Logout.

    Tokens are stateless and not revoked server side; the client drops
    its copy.
    """
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    principal: Principal = Depends(get_current_principal),
    service: AuthService = Depends(get_auth_service),
):
    """Get the identity behind the bearer token."""
    return await service.get_current_user(principal)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    password_data: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    service: AuthService = Depends(get_auth_service),
):
    """
    Change the caller's password.

    Requires the current password. Existing tokens stay valid until expiry.
    """
    await service.change_password(
        principal,
        password_data.old_password,
        password_data.new_password,
    )
    return MessageResponse(message="Password changed successfully")


@router.post("/setup-admin", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def setup_admin(
    setup_data: SetupAdminRequest,
    service: AuthService = Depends(get_auth_service),
):
    """
    Create the first administrator.

    Public, and only ever succeeds once: afterwards every call is a 409.
    """
    return await service.setup_admin(
        setup_data.username,
        setup_data.email,
        setup_data.password,
    )
