"""
Auth router.

Entry/exit only, no logic here. Calls AuthService.
"""

from datetime import timedelta
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from api.apps.auth.dependencies import verify_user
from api.apps.auth.models import User
from api.apps.auth.schemas import (
    RegisterRequest,
    LoginRequest,
    EmailRequest,
    ResetPasswordRequest,
    SetupPasswordRequest,
    serialize_user,
)
from api.apps.auth.services import AuthService
from api.config.settings import settings
from api.core.dependencies import get_auth_service, get_oauth_manager, get_token_issuer
from api.core.oauth import OAuthManager, OAuthError
from api.core.rate_limit import limiter, AUTH_LIMIT
from api.utils.exceptions import BaseAPIException
from api.utils.logger import get_logger
from api.utils.responses import success_response, auth_response
from api.utils.security import TokenIssuer, InvalidTokenError

logger = get_logger(__name__)
router = APIRouter(prefix=f"{settings.API_PREFIX}/auth", tags=["Auth"])

FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, a password reset link has been sent."


@router.post("/register", status_code=201)
@limiter.limit(AUTH_LIMIT)
async def register(
    request: Request,
    data: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Register a tenant owner. Returns the user and a session token."""
    user, token = await service.register(data)
    return auth_response(
        status_code=201,
        message="Registration successful! Please check your email to verify your account.",
        user=serialize_user(user),
        token=token,
    )


@router.post("/login")
@limiter.limit(AUTH_LIMIT)
async def login(
    request: Request,
    data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Authenticate and receive a session token."""
    user, token = await service.login(data)
    return auth_response(
        status_code=200,
        message="Login successful",
        user=serialize_user(user),
        token=token,
    )


@router.get("/verify-email/{token}")
async def verify_email(
    token: str,
    service: AuthService = Depends(get_auth_service),
):
    """Confirm email ownership with the mailed token."""
    user = await service.verify_email(token)
    return success_response(
        status_code=200,
        message="Email verified successfully! Welcome aboard.",
        data={"user": serialize_user(user)},
    )


@router.post("/resend-verification")
@limiter.limit(AUTH_LIMIT)
async def resend_verification(
    request: Request,
    data: EmailRequest,
    service: AuthService = Depends(get_auth_service),
):
    await service.resend_verification(data.email)
    return success_response(
        status_code=200,
        message="Verification email sent! Please check your inbox.",
    )


@router.post("/forgot-password")
@limiter.limit(AUTH_LIMIT)
async def forgot_password(
    request: Request,
    data: EmailRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Same answer whether or not the email is registered."""
    await service.forgot_password(data.email)
    return success_response(status_code=200, message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password/{token}")
@limiter.limit(AUTH_LIMIT)
async def reset_password(
    request: Request,
    token: str,
    data: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
):
    user, session_token = await service.reset_password(token, data.password)
    return auth_response(
        status_code=200,
        message="Password reset successful",
        user=serialize_user(user),
        token=session_token,
    )


@router.post("/setup-password/{token}")
@limiter.limit(AUTH_LIMIT)
async def setup_password(
    request: Request,
    token: str,
    data: SetupPasswordRequest,
    service: AuthService = Depends(get_auth_service),
):
    """First password for an invited account."""
    user, session_token = await service.setup_password(token, data.password)
    return auth_response(
        status_code=200,
        message="Account setup complete",
        user=serialize_user(user),
        token=session_token,
    )


@router.get("/me")
async def me(user: User = Depends(verify_user)):
    """Return the currently authenticated user's profile."""
    return success_response(
        status_code=200,
        message="User profile",
        data={"user": serialize_user(user)},
    )


# ── Federated sign-in ─────────────────────────────────────────────────────────

@router.get("/providers")
async def providers(oauth: OAuthManager = Depends(get_oauth_manager)):
    """Configured external sign-in providers."""
    return success_response(
        status_code=200,
        message="Available sign-in providers",
        data={"providers": oauth.get_available_providers()},
    )


def _client_redirect(**params: str) -> RedirectResponse:
    # The token travels in the query string so the SPA can pick it up
    url = f"{settings.CLIENT_URL.rstrip('/')}/auth/callback?{urlencode(params)}"
    return RedirectResponse(url=url, status_code=302)


@router.get("/{provider}")
async def oauth_start(
    provider: str,
    oauth: OAuthManager = Depends(get_oauth_manager),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Redirect the browser to the provider's consent screen."""
    state = issuer.issue_oauth_state(
        provider, lifetime=timedelta(minutes=settings.OAUTH_STATE_EXPIRE_MINUTES)
    )
    try:
        url = oauth.get_authorize_url(provider, state)
    except OAuthError as e:
        logger.warning(f"OAuth start failed for {provider}: {e}")
        return _client_redirect(error=str(e))
    return RedirectResponse(url=url, status_code=302)


@router.get("/{provider}/callback")
async def oauth_callback(
    provider: str,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    oauth: OAuthManager = Depends(get_oauth_manager),
    issuer: TokenIssuer = Depends(get_token_issuer),
    service: AuthService = Depends(get_auth_service),
):
    """Finish the provider handshake and hand a session token to the web client."""
    if error or not code or not state:
        logger.warning(f"OAuth callback from {provider} without code: {error}")
        return _client_redirect(error="Authentication was cancelled or failed")

    try:
        issuer.verify_oauth_state(state, provider)
        profile = await oauth.authenticate(provider, code)
        user = await service.resolve_federated_account(profile)
    except InvalidTokenError:
        return _client_redirect(error="Sign-in session expired. Please try again.")
    except OAuthError as e:
        logger.error(f"OAuth callback failed for {provider}: {e}")
        return _client_redirect(error="Authentication failed")
    except BaseAPIException as e:
        return _client_redirect(error=e.detail)

    return _client_redirect(token=issuer.issue(user.id))
