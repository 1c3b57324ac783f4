"""
User management router.

Entry/exit only, no logic here. `/me` routes are declared before `/{user_id}`.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.dependencies import (
    verify_user,
    require_role,
    require_permission,
    require_ownership,
    require_verification,
)
from api.apps.auth.models import User
from api.apps.auth.permissions import Role, Resource, Action
from api.apps.auth.schemas import ChangePasswordRequest, serialize_user
from api.apps.auth.services import AuthService
from api.apps.users.schemas import InviteUserRequest, UpdateProfileRequest, UpdateUserRequest
from api.apps.users.services import UserService
from api.config.settings import settings
from api.core.dependencies import get_auth_service
from api.db.session import get_session
from api.utils.responses import success_response, auth_response

router = APIRouter(prefix=f"{settings.API_PREFIX}/users", tags=["Users"])


def get_user_service(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(session)


@router.get(
    "",
    dependencies=[
        Depends(require_role(Role.OWNER, Role.MANAGER)),
        Depends(require_permission(Resource.USERS, Action.READ)),
    ],
)
async def list_users(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(verify_user),
    service: UserService = Depends(get_user_service),
):
    """Active accounts created by the caller."""
    users, total = await service.list_users(user, limit=limit, offset=offset)
    return success_response(
        status_code=200,
        message="Users retrieved",
        data={"users": [serialize_user(u) for u in users], "count": total},
    )


@router.get("/me")
async def get_me(user: User = Depends(verify_user)):
    return success_response(
        status_code=200,
        message="User profile",
        data={"user": serialize_user(user)},
    )


@router.put("/me")
async def update_me(
    data: UpdateProfileRequest,
    user: User = Depends(verify_user),
    service: UserService = Depends(get_user_service),
):
    """Name, phone and picture only."""
    user = await service.update_profile(user, data)
    return success_response(
        status_code=200,
        message="Profile updated successfully",
        data={"user": serialize_user(user)},
    )


@router.put("/me/password")
async def change_password(
    data: ChangePasswordRequest,
    user: User = Depends(verify_user),
    auth: AuthService = Depends(get_auth_service),
):
    user, token = await auth.change_password(user, data)
    return auth_response(
        status_code=200,
        message="Password changed successfully",
        user=serialize_user(user),
        token=token,
    )


@router.post(
    "",
    status_code=201,
    dependencies=[
        Depends(require_role(Role.OWNER)),
        Depends(require_permission(Resource.USERS, Action.CREATE)),
        Depends(require_verification),
    ],
)
async def invite_user(
    data: InviteUserRequest,
    user: User = Depends(verify_user),
    auth: AuthService = Depends(get_auth_service),
):
    """Create a passwordless account and mail its setup link."""
    invited = await auth.create_invited_user(
        inviter=user,
        full_name=data.full_name,
        email=data.email,
        phone_number=data.phone_number,
        role=data.role,
    )
    return success_response(
        status_code=201,
        message=f"User invited successfully. Setup email sent to {invited.email}",
        data={"user": serialize_user(invited)},
    )


@router.get("/{user_id}", dependencies=[Depends(require_ownership("user_id"))])
async def get_user(
    user_id: str,
    user: User = Depends(verify_user),
    service: UserService = Depends(get_user_service),
):
    target = await service.get_user(user, user_id)
    return success_response(
        status_code=200,
        message="User retrieved",
        data={"user": serialize_user(target)},
    )


@router.put("/{user_id}", dependencies=[Depends(require_ownership("user_id"))])
async def update_user(
    user_id: str,
    data: UpdateUserRequest,
    user: User = Depends(verify_user),
    service: UserService = Depends(get_user_service),
):
    target = await service.update_user(user, user_id, data)
    return success_response(
        status_code=200,
        message="User updated successfully",
        data={"user": serialize_user(target)},
    )


@router.delete(
    "/{user_id}",
    dependencies=[
        Depends(require_role(Role.OWNER)),
        Depends(require_permission(Resource.USERS, Action.DELETE)),
    ],
)
async def delete_user(
    user_id: str,
    user: User = Depends(verify_user),
    service: UserService = Depends(get_user_service),
):
    """Deactivate (never hard-delete) an account."""
    await service.deactivate_user(user, user_id)
    return success_response(status_code=200, message="User deactivated successfully")
