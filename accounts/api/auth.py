"""Authentication API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from fastapi.concurrency import run_in_threadpool

from accounts.api.dependencies import (
    RequestPayload,
    get_current_identity,
    get_password_reset_service,
    get_token_service,
    get_user_store,
    parse_body,
    read_payload,
)
from accounts.config import Settings, get_settings
from accounts.errors import (
    AccountError,
    DuplicateEmailError,
    InvalidCredentialsError,
    ValidationError,
)
from accounts.schemas.auth import (
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
    UserEnvelope,
    UserLogin,
    UserRegister,
)
from accounts.schemas.user import Identity, UserResponse
from accounts.services.authorization import SESSION_COOKIE
from accounts.services.images import ImageHost, get_image_host
from accounts.services.password_reset import PasswordResetService
from accounts.services.tokens import TokenService
from accounts.services.users import UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/register", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
async def register(
    payload: Annotated[RequestPayload, Depends(read_payload)],
    store: Annotated[UserStore, Depends(get_user_store)],
    image_host: Annotated[ImageHost, Depends(get_image_host)],
):
    """Register a new user, optionally with an avatar image."""
    user_data = parse_body(UserRegister, payload.data)
    if user_data.password != user_data.confirm_password:
        raise ValidationError("Passwords do not match")

    # Check before uploading so a duplicate never leaves a hosted image behind
    if store.find_by_email(user_data.email):
        raise DuplicateEmailError()

    hosted = None
    if payload.image is not None:
        hosted = await image_host.upload_file(payload.image.filename, payload.image.file)

    try:
        user = await run_in_threadpool(
            store.create,
            user_data.name,
            user_data.email,
            user_data.password,
            image=hosted.url if hosted else "",
        )
    except AccountError:
        if hosted:
            await image_host.discard(hosted.public_id)
        raise

    logger.info(f"Registered user {user.id}")
    return UserEnvelope(
        message="User registered successfully",
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=UserEnvelope)
async def login(
    payload: Annotated[RequestPayload, Depends(read_payload)],
    response: Response,
    store: Annotated[UserStore, Depends(get_user_store)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Login with email and password; the session token is set as a cookie."""
    credentials = parse_body(UserLogin, payload.data)
    user = await run_in_threadpool(store.authenticate, credentials.email, credentials.password)
    if not user:
        logger.warning(f"Failed login for {credentials.email}")
        raise InvalidCredentialsError()

    response.set_cookie(
        SESSION_COOKIE,
        tokens.issue(user.id),
        max_age=tokens.max_age_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return UserEnvelope(message="Login successful", user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response, settings: Annotated[Settings, Depends(get_settings)]):
    """Logout by clearing the session cookie; the token itself is not revoked."""
    response.delete_cookie(
        SESSION_COOKIE,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserEnvelope)
async def get_me(identity: Annotated[Identity, Depends(get_current_identity)]):
    """Get current user information."""
    return UserEnvelope(
        message="Authenticated",
        user=UserResponse.model_validate(identity.model_dump()),
    )


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: Annotated[RequestPayload, Depends(read_payload)],
    resets: Annotated[PasswordResetService, Depends(get_password_reset_service)],
):
    """Email a one-time reset code to the user."""
    request = parse_body(ForgotPasswordRequest, payload.data)
    await run_in_threadpool(resets.request_reset, request.email)
    return MessageResponse(message="OTP sent to email")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    payload: Annotated[RequestPayload, Depends(read_payload)],
    resets: Annotated[PasswordResetService, Depends(get_password_reset_service)],
):
    """Set a new password using the emailed reset code."""
    request = parse_body(ResetPasswordRequest, payload.data)
    if request.password != request.confirm_password:
        raise ValidationError("Passwords do not match")

    await run_in_threadpool(resets.redeem_reset, request.email, request.otp, request.password)
    return MessageResponse(message="Password reset successful")
