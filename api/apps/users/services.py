"""
User management business logic.

Owners see and manage only the accounts they invited (`created_by`); every
user may read and edit their own profile. Deactivation is a flag flip.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.models import User
from api.apps.auth.permissions import Role
from api.apps.users.schemas import UpdateProfileRequest, UpdateUserRequest
from api.utils.exceptions import (
    NotCreatorException,
    PermissionDeniedException,
    ResourceNotFoundException,
    SelfDeleteException,
)
from api.utils.logger import get_logger

logger = get_logger(__name__)


def _apply(user: User, changes: dict[str, Any]) -> None:
    for field, value in changes.items():
        setattr(user, field, value)


class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_users(self, actor: User, limit: int = 50, offset: int = 0) -> tuple[list[User], int]:
        """Active accounts invited by `actor`, newest first."""
        filters = {"created_by": actor.id, "is_active": True}
        users = await User.find_many(self.session, limit=limit, offset=offset, filters=filters)
        total = await User.count(self.session, filters=filters)
        return users, total

    async def _load_managed(self, actor: User, user_id: str, include_inactive: bool = False) -> User:
        """Fetch a user the actor may manage: themself, or an account they created."""
        user = await User.get_by_id(self.session, user_id)
        if user is None or (not user.is_active and not include_inactive):
            raise ResourceNotFoundException("User not found")
        if user.id != actor.id and user.created_by != actor.id:
            raise NotCreatorException("You can only manage users you created")
        return user

    async def get_user(self, actor: User, user_id: str) -> User:
        return await self._load_managed(actor, user_id)

    async def update_user(self, actor: User, user_id: str, data: UpdateUserRequest) -> User:
        """
        Partial update.

        Guard: role / active changes need the owner role.
        Guard: nobody deactivates themself.
        Deactivated accounts stay addressable here so they can be re-enabled.
        """
        user = await self._load_managed(actor, user_id, include_inactive=True)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        privileged = {"role", "is_active"} & changes.keys()
        if privileged and actor.role != Role.OWNER:
            raise PermissionDeniedException("Only business owners can change user roles or active status")
        if user.id == actor.id and changes.get("is_active") is False:
            raise SelfDeleteException("You cannot deactivate your own account")

        _apply(user, changes)
        await user.save(self.session)
        logger.info(f"{actor.email} updated user {user.email}: {sorted(changes)}")
        return user

    async def update_profile(self, actor: User, data: UpdateProfileRequest) -> User:
        _apply(actor, data.model_dump(exclude_unset=True, exclude_none=True))
        await actor.save(self.session)
        return actor

    async def deactivate_user(self, actor: User, user_id: str) -> User:
        """Soft delete. Owners cannot remove themselves."""
        user = await User.get_by_id(self.session, user_id)
        if user is not None and user.id == actor.id:
            raise SelfDeleteException()
        if user is None:
            raise ResourceNotFoundException("User not found")
        if user.created_by != actor.id:
            raise NotCreatorException("You can only delete users you created")

        await user.deactivate(self.session)
        logger.info(f"{actor.email} deactivated user {user.email}")
        return user
