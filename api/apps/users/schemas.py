"""
User management schemas.
"""

from typing import Optional

from pydantic import Field

from api.apps.auth.permissions import Role
from api.apps.auth.schemas import CamelModel, Email, FullName, PhoneNumber


class InviteUserRequest(CamelModel):
    """Owner invites a subordinate account. No password: the invitee sets it."""
    full_name: FullName
    email: Email
    phone_number: PhoneNumber
    role: Role


class UpdateProfileRequest(CamelModel):
    """Fields any user may change on their own account."""
    full_name: Optional[FullName] = None
    phone_number: Optional[PhoneNumber] = None
    profile_picture: Optional[str] = Field(None, max_length=1024)


class UpdateUserRequest(UpdateProfileRequest):
    """`role` and `is_active` are owner-only."""
    role: Optional[Role] = None
    is_active: Optional[bool] = None
