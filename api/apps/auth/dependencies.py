"""
Request gatekeeper and authorization gates.

`verify_user` runs first on every secured route: bearer token -> verified id
-> loaded, active account. The gates below are dependency factories that
build on it; FastAPI resolves a route's `dependencies=[...]` in order and the
first failing gate ends the request.

    @router.post(
        "/",
        dependencies=[
            Depends(require_role(Role.OWNER)),
            Depends(require_permission(Resource.USERS, Action.CREATE)),
        ],
    )
"""

from typing import Optional
import uuid

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.models import User
from api.apps.auth.permissions import Role, Resource, Action, has_role, has_permission
from api.core.dependencies import get_token_issuer
from api.db.session import get_session
from api.utils.exceptions import UnauthorizedException, PermissionDeniedException
from api.utils.logger import get_logger
from api.utils.security import TokenIssuer, InvalidTokenError

logger = get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


# ── Gatekeeper ────────────────────────────────────────────────────────────────

async def verify_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    session: AsyncSession = Depends(get_session),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> User:
    """
    FastAPI dependency: validates the Bearer token and returns the acting user.

    Raises 401 for a missing token, a bad/expired token, a vanished account
    or a deactivated account. `isActive` is re-read on every request, so
    deactivation cuts off tokens that have not expired yet.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException()

    try:
        user_id = issuer.verify(credentials.credentials)
    except InvalidTokenError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise UnauthorizedException("Invalid or expired token. Please log in again.") from None

    user = await User.get_by_id(session, user_id)
    if user is None:
        raise UnauthorizedException("The user belonging to this token no longer exists.")

    if not user.is_active:
        raise UnauthorizedException("Your account has been deactivated. Please contact support.")

    request.state.user = user
    return user


async def require_verification(user: User = Depends(verify_user)) -> User:
    """Only accounts with a confirmed email pass."""
    if not user.is_verified:
        raise PermissionDeniedException("Please verify your email address to access this resource")
    return user


# ── Gate factories ────────────────────────────────────────────────────────────

def require_role(*roles: Role | str):
    """Pass iff the actor's role is one of `roles`."""
    allowed = tuple(Role(r) for r in roles)
    label = ", ".join(r.value for r in allowed)

    async def role_gate(user: User = Depends(verify_user)) -> User:
        if not has_role(user.role, allowed):
            logger.warning(f"Role gate denied {user.email} ({user.role.value}); needs {label}")
            raise PermissionDeniedException(f"Access denied. Required role: {label}")
        return user

    return role_gate


def require_permission(resource: Resource | str, action: Action | str):
    """Pass iff the permission matrix grants `action` on `resource` to the actor's role."""
    resource = Resource(resource)
    action = Action(action)

    async def permission_gate(user: User = Depends(verify_user)) -> User:
        if not has_permission(user.role, resource, action):
            logger.warning(
                f"Permission gate denied {user.email} ({user.role.value}): {action.value} {resource.value}"
            )
            raise PermissionDeniedException(
                f"You do not have permission to {action.value} {resource.value}"
            )
        return user

    return permission_gate


def require_ownership(param: str = "id"):
    """Owners pass for any target; everyone else only for their own id in path `param`."""

    async def ownership_gate(request: Request, user: User = Depends(verify_user)) -> User:
        if user.role == Role.OWNER:
            return user

        target = request.path_params.get(param)
        try:
            is_self = target is not None and uuid.UUID(str(target)) == user.id
        except ValueError:
            is_self = False
        if not is_self:
            raise PermissionDeniedException("You can only access your own resources")
        return user

    return ownership_gate


async def require_same_tenant(user: User = Depends(verify_user)) -> User:
    """
    Tenant isolation hook.

    There is no tenant entity yet, so this only requires an authenticated actor;
    per-record isolation is the `created_by` check in each service.
    """
    return user
