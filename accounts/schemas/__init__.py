"""Pydantic schemas for API requests and responses."""

from accounts.schemas.auth import (
    AccountDelete,
    AccountUpdate,
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
    UserEnvelope,
    UserLogin,
    UserRegister,
)
from accounts.schemas.user import AdminUserResponse, Identity, UserResponse

__all__ = [
    "UserRegister",
    "UserLogin",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    "AccountUpdate",
    "AccountDelete",
    "MessageResponse",
    "UserEnvelope",
    "UserResponse",
    "AdminUserResponse",
    "Identity",
]
