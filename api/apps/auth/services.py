"""
Auth business logic.

AuthService owns the account lifecycle: registration, login, email
verification, password reset, invited-account setup, password change and
federated sign-in. It is built per request with its collaborators injected
(see `api.core.dependencies.get_auth_service`), so nothing here reads the
environment.

Durable state is committed before any email is scheduled; email delivery runs
on BackgroundTasks and can never fail the request.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Optional

from fastapi import BackgroundTasks
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.apps.auth.models import User, AuthProvider, TokenPurpose
from api.apps.auth.permissions import Role
from api.apps.auth.schemas import (
    RegisterRequest,
    LoginRequest,
    ChangePasswordRequest,
    MIN_PASSWORD_LENGTH,
)
from api.core.email import EmailService
from api.core.oauth import OAuthProfile
from api.db.base_model import utc_now
from api.utils.exceptions import (
    AccountDeactivatedException,
    AlreadyVerifiedException,
    DuplicateEmailException,
    InvalidCredentialsException,
    InvalidOrExpiredTokenException,
    PasswordTooShortException,
    ProviderMismatchException,
    ResourceNotFoundException,
)
from api.utils.logger import get_logger
from api.utils.metrics import auth_events, token_consumption
from api.utils.security import (
    CredentialHasher,
    TokenIssuer,
    generate_single_use_token,
    hash_token,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenLifetimes:
    """Validity windows for the single-use token purposes."""
    verification: timedelta = timedelta(hours=24)
    password_reset: timedelta = timedelta(hours=1)
    password_setup: timedelta = timedelta(hours=24)

    def for_purpose(self, purpose: TokenPurpose) -> timedelta:
        return getattr(self, TokenPurpose(purpose).value)

    def hours(self, purpose: TokenPurpose) -> int:
        return max(1, int(self.for_purpose(purpose).total_seconds() // 3600))


class AuthService:
    def __init__(
        self,
        session: AsyncSession,
        hasher: CredentialHasher,
        issuer: TokenIssuer,
        mailer: EmailService,
        background: BackgroundTasks,
        lifetimes: TokenLifetimes = TokenLifetimes(),
    ):
        self.session = session
        self.hasher = hasher
        self.issuer = issuer
        self.mailer = mailer
        self.background = background
        self.lifetimes = lifetimes

    # ── Internals ─────────────────────────────────────────────────────────

    async def _hash_password(self, password: str) -> str:
        # bcrypt is CPU-bound; keep it off the event loop
        return await run_in_threadpool(self.hasher.hash_password, password)

    async def _verify_password(self, password: str, hashed: Optional[str]) -> bool:
        return await run_in_threadpool(self.hasher.verify_password, password, hashed)

    def _schedule(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Fire-and-forget side effect, run after the response is produced."""
        self.background.add_task(func, *args, **kwargs)

    def _issue_token(self, user: User, purpose: TokenPurpose) -> str:
        """Attach a fresh single-use token to `user` (not yet committed). Returns the raw value."""
        token = generate_single_use_token(self.lifetimes.for_purpose(purpose))
        user.set_token(purpose, token)
        return token.raw

    async def _insert(self, user: User) -> User:
        """Persist a new account. The unique email index is the final word on duplicates."""
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.warning(f"Insert rejected by unique constraint for {user.email}")
            raise DuplicateEmailException() from None
        await self.session.refresh(user)
        return user

    async def _email_taken(self, email: str) -> bool:
        return await User.exists(self.session, email=email)

    async def consume_token(self, purpose: TokenPurpose, raw_token: str, **changes: Any) -> User:
        """
        Spend a single-use token.

        One conditional UPDATE matches the digest and a future expiry, clears
        both token columns and applies `changes` in the same statement. Two
        concurrent requests cannot both get a row back. Unknown, spent and
        expired tokens all fail the same way.
        """
        hash_attr, expires_attr = User.token_columns(purpose)
        now = utc_now()
        stmt = (
            update(User)
            .where(
                getattr(User, hash_attr) == hash_token(raw_token),
                getattr(User, expires_attr) > now,
            )
            .values({hash_attr: None, expires_attr: None, "updated_at": now, **changes})
            .returning(User.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        user_id = result.scalar_one_or_none()
        if user_id is None:
            token_consumption.labels(TokenPurpose(purpose).value, "rejected").inc()
            await self.session.rollback()
            raise InvalidOrExpiredTokenException()

        await self.session.commit()
        user = await self.session.get(User, user_id, populate_existing=True)
        token_consumption.labels(TokenPurpose(purpose).value, "consumed").inc()
        logger.info(f"Consumed {TokenPurpose(purpose).value} token for user {user_id}")
        return user

    # ── Registration & Login ──────────────────────────────────────────────

    async def register(self, data: RegisterRequest) -> tuple[User, str]:
        """
        Create a tenant owner, send the verification email, log them in.

        Guard: Reject duplicate emails (case-insensitive).
        """
        if await self._email_taken(data.email):
            auth_events.labels("register", "duplicate").inc()
            raise DuplicateEmailException()

        user = User(
            full_name=data.full_name,
            email=data.email,
            phone_number=data.phone_number,
            role=Role.OWNER,
            agreed_to_terms=True,
            is_verified=False,
            is_active=True,
            auth_provider=AuthProvider.LOCAL,
        )
        user.hashed_password = await self._hash_password(data.password)
        raw = self._issue_token(user, TokenPurpose.VERIFICATION)
        await self._insert(user)

        self._schedule(
            self.mailer.send_verification,
            user.email, user.full_name, raw,
            expires_hours=self.lifetimes.hours(TokenPurpose.VERIFICATION),
        )
        logger.info(f"Registered new owner: {user.email}")
        auth_events.labels("register", "success").inc()
        return user, self.issuer.issue(user.id)

    async def login(self, data: LoginRequest) -> tuple[User, str]:
        """
        Authenticate with email + password.

        Guard: Unknown email, missing password and wrong password all raise the
        same InvalidCredentials.
        Guard: Reject deactivated accounts.
        """
        user = await User.find_one(self.session, email=data.email)
        valid = await self._verify_password(data.password, user.hashed_password if user else None)
        if user is None or not valid:
            auth_events.labels("login", "invalid_credentials").inc()
            raise InvalidCredentialsException()

        if not user.is_active:
            auth_events.labels("login", "deactivated").inc()
            raise AccountDeactivatedException()

        user.last_login = utc_now()
        await user.save(self.session)

        logger.info(f"User logged in: {user.email}")
        auth_events.labels("login", "success").inc()
        return user, self.issuer.issue(user.id)

    # ── Email verification ────────────────────────────────────────────────

    async def verify_email(self, raw_token: str) -> User:
        user = await self.consume_token(TokenPurpose.VERIFICATION, raw_token, is_verified=True)
        self._schedule(self.mailer.send_welcome, user.email, user.full_name)
        return user

    async def resend_verification(self, email: str) -> None:
        user = await User.find_one(self.session, email=email)
        if user is None:
            raise ResourceNotFoundException("No account found with this email")
        if user.is_verified:
            raise AlreadyVerifiedException()

        # Overwriting the slot invalidates the previous link
        raw = self._issue_token(user, TokenPurpose.VERIFICATION)
        await user.save(self.session)

        self._schedule(
            self.mailer.send_verification,
            user.email, user.full_name, raw,
            expires_hours=self.lifetimes.hours(TokenPurpose.VERIFICATION),
        )

    # ── Password reset ────────────────────────────────────────────────────

    async def forgot_password(self, email: str) -> None:
        """Issue a reset link when the account exists. Callers answer identically either way."""
        user = await User.find_one(self.session, email=email)
        if user is None or not user.is_active:
            logger.info("Password reset requested for an unknown or inactive email")
            return

        raw = self._issue_token(user, TokenPurpose.PASSWORD_RESET)
        await user.save(self.session)

        self._schedule(
            self.mailer.send_password_reset,
            user.email, user.full_name, raw,
            expires_hours=self.lifetimes.hours(TokenPurpose.PASSWORD_RESET),
        )

    async def reset_password(self, raw_token: str, password: str) -> tuple[User, str]:
        hashed = await self._hash_password(password)
        user = await self.consume_token(TokenPurpose.PASSWORD_RESET, raw_token, hashed_password=hashed)
        logger.info(f"Password reset for {user.email}")
        return user, self.issuer.issue(user.id)

    # ── Invited accounts ──────────────────────────────────────────────────

    async def create_invited_user(
        self,
        inviter: User,
        full_name: str,
        email: str,
        phone_number: str,
        role: Role,
    ) -> User:
        """
        Create a subordinate account with no password and mail it a setup link.

        The invite stands even if the email cannot be delivered.
        """
        if await self._email_taken(email):
            raise DuplicateEmailException("A user with this email already exists")

        user = User(
            full_name=full_name,
            email=email,
            phone_number=phone_number,
            role=role,
            created_by=inviter.id,
            is_verified=False,
            is_first_login=True,
            is_active=True,
            agreed_to_terms=True,
            auth_provider=AuthProvider.LOCAL,
        )
        raw = self._issue_token(user, TokenPurpose.PASSWORD_SETUP)
        await self._insert(user)

        self._schedule(
            self.mailer.send_invite,
            user.email, user.full_name, raw,
            inviter=inviter.full_name,
            role=user.role.value,
            expires_hours=self.lifetimes.hours(TokenPurpose.PASSWORD_SETUP),
        )
        logger.info(f"{inviter.email} invited {user.email} as {user.role.value}")
        return user

    async def setup_password(self, raw_token: str, password: str) -> tuple[User, str]:
        """Set the first password of an invited account. Also confirms the email."""
        if len(password) < MIN_PASSWORD_LENGTH:
            raise PasswordTooShortException()

        hashed = await self._hash_password(password)
        user = await self.consume_token(
            TokenPurpose.PASSWORD_SETUP,
            raw_token,
            hashed_password=hashed,
            is_first_login=False,
            is_verified=True,
        )
        logger.info(f"Invited account activated: {user.email}")
        return user, self.issuer.issue(user.id)

    # ── Authenticated self-service ────────────────────────────────────────

    async def change_password(self, user: User, data: ChangePasswordRequest) -> tuple[User, str]:
        if not user.has_password:
            raise InvalidCredentialsException("This account has no password set")
        if not await self._verify_password(data.current_password, user.hashed_password):
            raise InvalidCredentialsException("Current password is incorrect")

        user.hashed_password = await self._hash_password(data.new_password)
        await user.save(self.session)

        logger.info(f"Password changed for {user.email}")
        return user, self.issuer.issue(user.id)

    # ── Federated identity ────────────────────────────────────────────────

    @staticmethod
    def placeholder_email(profile: OAuthProfile) -> str:
        """Stable stand-in for providers that withhold the address."""
        return f"{profile.provider_user_id}@{profile.provider}.user".lower()

    async def resolve_federated_account(self, profile: OAuthProfile) -> User:
        """
        Map a provider assertion onto an account.

        Lookup order: (provider, subject id), then email. An email owned by a
        different sign-in method is a ProviderMismatch. Unknown identities get
        a new verified owner account.
        """
        provider = AuthProvider(profile.provider)
        user = await User.find_one(
            self.session,
            auth_provider=provider,
            auth_provider_id=profile.provider_user_id,
        )

        email = (profile.email or self.placeholder_email(profile)).strip().lower()
        if user is None:
            user = await User.find_one(self.session, email=email)
            if user is not None and user.auth_provider != provider:
                logger.warning(f"{provider.value} sign-in for {email} blocked: registered via {user.auth_provider.value}")
                raise ProviderMismatchException()

        if user is not None:
            if not user.is_active:
                raise AccountDeactivatedException()
            if user.auth_provider_id is None:
                user.auth_provider_id = profile.provider_user_id
            user.last_login = utc_now()
            await user.save(self.session)
            return user

        user = User(
            full_name=(profile.name or email.split("@")[0])[:100],
            email=email,
            profile_picture=profile.picture_url,
            role=Role.OWNER,
            is_verified=True,
            is_active=True,
            agreed_to_terms=True,
            auth_provider=provider,
            auth_provider_id=profile.provider_user_id,
            last_login=utc_now(),
        )
        await self._insert(user)
        logger.info(f"Created {provider.value} account: {user.email}")
        return user

