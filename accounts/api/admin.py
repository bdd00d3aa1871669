"""Administrative endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from accounts.api.dependencies import get_user_store, require_role
from accounts.models.enums import Role
from accounts.schemas.user import AdminUserResponse, Identity
from accounts.services.users import UserStore

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.get("/users", response_model=list[AdminUserResponse])
async def list_users(
    _admin: Annotated[Identity, Depends(require_role(Role.ADMIN))],
    store: Annotated[UserStore, Depends(get_user_store)],
):
    """List all user accounts."""
    return store.list_users()
