"""
Dependency injection for FastAPI.

Provides singleton instances of the stateless collaborators, built once from
settings, and the per-request AuthService. Tests swap any of these through
`app.dependency_overrides`.
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.services import AuthService, TokenLifetimes
from api.config.settings import settings
from api.core.email import EmailService
from api.core.oauth import OAuthManager, GoogleOAuth, FacebookOAuth
from api.db.session import get_session
from api.utils.security import CredentialHasher, TokenIssuer


@lru_cache()
def get_password_hasher() -> CredentialHasher:
    """Get bcrypt hasher singleton."""
    return CredentialHasher(rounds=settings.BCRYPT_ROUNDS)


@lru_cache()
def get_token_issuer() -> TokenIssuer:
    """Get session token issuer singleton."""
    return TokenIssuer(
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        lifetime=timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS),
    )


@lru_cache()
def get_token_lifetimes() -> TokenLifetimes:
    return TokenLifetimes(
        verification=timedelta(hours=settings.VERIFICATION_TOKEN_EXPIRE_HOURS),
        password_reset=timedelta(hours=settings.PASSWORD_RESET_TOKEN_EXPIRE_HOURS),
        password_setup=timedelta(hours=settings.PASSWORD_SETUP_TOKEN_EXPIRE_HOURS),
    )


@lru_cache()
def get_email_service() -> EmailService:
    """Get mailer singleton."""
    return EmailService(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        timeout=settings.SMTP_TIMEOUT_SECONDS,
        from_email=settings.EMAIL_FROM,
        from_name=settings.EMAIL_FROM_NAME,
        client_url=settings.CLIENT_URL,
        app_name=settings.COMPANY_NAME,
    )


@lru_cache()
def get_oauth_manager() -> OAuthManager:
    """Get OAuth provider registry singleton."""
    callback_base = f"{settings.API_URL.rstrip('/')}{settings.API_PREFIX}/auth"
    return OAuthManager([
        GoogleOAuth(
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            redirect_uri=f"{callback_base}/google/callback",
        ),
        FacebookOAuth(
            client_id=settings.FACEBOOK_APP_ID,
            client_secret=settings.FACEBOOK_APP_SECRET,
            redirect_uri=f"{callback_base}/facebook/callback",
        ),
    ])


def get_auth_service(
    background: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    hasher: CredentialHasher = Depends(get_password_hasher),
    issuer: TokenIssuer = Depends(get_token_issuer),
    mailer: EmailService = Depends(get_email_service),
    lifetimes: TokenLifetimes = Depends(get_token_lifetimes),
) -> AuthService:
    """Per-request account lifecycle service."""
    return AuthService(
        session=session,
        hasher=hasher,
        issuer=issuer,
        mailer=mailer,
        background=background,
        lifetimes=lifetimes,
    )
