"""Account management endpoints for the signed-in user."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response
from fastapi.concurrency import run_in_threadpool

from accounts.api.dependencies import (
    RequestPayload,
    get_current_identity,
    get_user_store,
    parse_body,
    read_payload,
)
from accounts.config import Settings, get_settings
from accounts.errors import (
    AccountError,
    ImageHostError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from accounts.schemas.auth import AccountDelete, AccountUpdate, MessageResponse, UserEnvelope
from accounts.schemas.user import Identity, UserResponse
from accounts.services.authorization import SESSION_COOKIE
from accounts.services.images import ImageHost, get_image_host
from accounts.services.users import UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/account", tags=["account"])


@router.put("", response_model=UserEnvelope)
async def update_account(
    identity: Annotated[Identity, Depends(get_current_identity)],
    payload: Annotated[RequestPayload, Depends(read_payload)],
    store: Annotated[UserStore, Depends(get_user_store)],
    image_host: Annotated[ImageHost, Depends(get_image_host)],
):
    """Update name, email, password and/or avatar.

    A password change needs the current password and a confirmed new one.
    A new avatar replaces the old hosted image.
    """
    update = parse_body(AccountUpdate, payload.data)
    user = store.find_by_id(identity.id)
    if user is None:
        raise NotFoundError()

    patch: dict[str, str] = {}
    if update.name:
        patch["name"] = update.name
    if update.email and update.email != user.email:
        patch["email"] = update.email

    if update.current_password and update.new_password:
        if not update.confirm_new_password:
            raise ValidationError("Please confirm your new password")
        if update.new_password != update.confirm_new_password:
            raise ValidationError("New passwords do not match")
        verified = await run_in_threadpool(
            store.hasher.verify, update.current_password, user.password_hash
        )
        if not verified:
            raise InvalidCredentialsError("Current password is incorrect")
        patch["password"] = update.new_password

    old_image = user.image
    hosted = None
    if payload.image is not None:
        hosted = await image_host.upload_file(payload.image.filename, payload.image.file)
        patch["image"] = hosted.url

    try:
        user = await run_in_threadpool(store.update, user.id, patch)
    except AccountError:
        if hosted:
            await image_host.discard(hosted.public_id)
        raise

    if hosted and old_image:
        try:
            await image_host.destroy_url(old_image)
        except ImageHostError:
            # The profile already points at the new image; the old one is orphaned
            logger.error(f"Could not remove previous avatar for user {user.id}")

    logger.info(f"Updated account {user.id} ({', '.join(sorted(patch)) or 'no changes'})")
    return UserEnvelope(
        message="Account updated successfully",
        user=UserResponse.model_validate(user),
    )


@router.delete("", response_model=MessageResponse)
async def delete_account(
    identity: Annotated[Identity, Depends(get_current_identity)],
    payload: Annotated[RequestPayload, Depends(read_payload)],
    response: Response,
    store: Annotated[UserStore, Depends(get_user_store)],
    image_host: Annotated[ImageHost, Depends(get_image_host)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Delete the account after re-checking the password."""
    request = parse_body(AccountDelete, payload.data)
    if not request.password:
        raise ValidationError("Password is required to delete account")

    user = store.find_by_id(identity.id)
    if user is None or not await run_in_threadpool(
        store.hasher.verify, request.password, user.password_hash
    ):
        raise InvalidCredentialsError("Password is incorrect")

    if user.image:
        await image_host.destroy_url(user.image)

    store.delete(user.id)
    response.delete_cookie(
        SESSION_COOKIE,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return MessageResponse(message="Account deleted successfully")
