"""Authentication and account request/response schemas."""

from pydantic import BaseModel, ConfigDict, Field

from accounts.schemas.user import UserResponse


class RequestModel(BaseModel):
    """Base for request bodies; accepts camelCase keys from clients."""

    model_config = ConfigDict(populate_by_name=True)


class UserRegister(RequestModel):
    """User registration request."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)
    confirm_password: str = Field(..., min_length=1, alias="confirmPassword")


class UserLogin(RequestModel):
    """User login request."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class ForgotPasswordRequest(RequestModel):
    email: str = Field(..., min_length=1, max_length=255)


class ResetPasswordRequest(RequestModel):
    """Redeem a reset code for a new password."""

    email: str = Field(..., min_length=1, max_length=255)
    otp: str = Field(..., min_length=1, max_length=6)
    password: str = Field(..., min_length=1, max_length=128)
    confirm_password: str = Field(..., min_length=1, alias="confirmPassword")


class AccountUpdate(RequestModel):
    """Profile update. Every field is optional."""

    name: str | None = Field(None, max_length=255)
    email: str | None = Field(None, max_length=255)
    current_password: str | None = Field(None, alias="currentPassword")
    new_password: str | None = Field(None, max_length=128, alias="newPassword")
    confirm_new_password: str | None = Field(None, alias="confirmNewPassword")


class AccountDelete(RequestModel):
    password: str | None = None


class MessageResponse(BaseModel):
    message: str


class UserEnvelope(BaseModel):
    """Successful response carrying a user projection."""

    success: bool = True
    message: str
    user: UserResponse
