"""FastAPI dependencies for authentication, services and request bodies."""

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Annotated, Any, TypeVar

import pydantic
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from accounts.config import Settings, get_settings
from accounts.database import get_db
from accounts.errors import ValidationError
from accounts.models.enums import Role
from accounts.schemas.user import Identity
from accounts.services.authorization import (
    SESSION_COOKIE,
    check_role,
    extract_token,
    resolve_identity,
)
from accounts.services.images import ImageHost, get_image_host
from accounts.services.mailer import Mailer, get_mailer
from accounts.services.password_reset import PasswordResetService
from accounts.services.tokens import TokenService
from accounts.services.users import UserStore

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def get_user_store(db: Annotated[Session, Depends(get_db)]) -> UserStore:
    """Get the credential store bound to the request's session."""
    return UserStore(db)


def get_token_service(settings: Annotated[Settings, Depends(get_settings)]) -> TokenService:
    return TokenService.from_settings(settings)


def get_password_reset_service(
    store: Annotated[UserStore, Depends(get_user_store)],
    mailer: Annotated[Mailer, Depends(get_mailer)],
) -> PasswordResetService:
    """Get password reset service with dependencies."""
    return PasswordResetService(store, mailer)


def get_current_identity(
    request: Request,
    store: Annotated[UserStore, Depends(get_user_store)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    authorization: Annotated[str | None, Header()] = None,
) -> Identity:
    """Resolve the caller from the session cookie or a bearer header."""
    token = extract_token(request.cookies.get(SESSION_COOKIE), authorization)
    return resolve_identity(token, tokens, store)


def require_role(*roles: Role) -> Callable[..., Identity]:
    """Build a dependency that admits only callers holding one of ``roles``."""

    def check(identity: Annotated[Identity, Depends(get_current_identity)]) -> Identity:
        return check_role(identity, roles)

    return check


@dataclass
class RequestPayload:
    """Fields of a JSON or form body, plus an optional uploaded avatar."""

    data: dict[str, Any] = field(default_factory=dict)
    image: UploadFile | None = None


async def read_payload(request: Request) -> RequestPayload:
    """Read a JSON body, or a form body that may carry an ``image`` file."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        payload = RequestPayload()
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if key == "image" and value.filename:
                    payload.image = value
                continue
            payload.data[key] = value
        return payload

    body = await request.body()
    if not body:
        return RequestPayload()
    try:
        data = json.loads(body)
    except ValueError as e:
        raise ValidationError("Malformed JSON body") from e
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return RequestPayload(data=data)


def parse_body(model: type[ModelT], data: dict[str, Any]) -> ModelT:
    """Validate request fields against a schema, as a 400 on failure."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        errors = e.errors()
        if any(err["type"] in ("missing", "string_too_short") for err in errors):
            raise ValidationError("All fields are required") from e
        first = errors[0]
        field_name = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"Invalid {field_name}: {first['msg']}") from e
