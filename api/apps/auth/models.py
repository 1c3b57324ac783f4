"""
Auth ORM model.

User accounts with role-based access control and single-use security tokens.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    String,
    Boolean,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from api.apps.auth.permissions import Role
from api.db.base_model import BaseModel, ActiveFlagMixin
from api.utils.security import SingleUseToken


class AuthProvider(str, Enum):
    LOCAL = "local"
    GOOGLE = "google"
    FACEBOOK = "facebook"


class TokenPurpose(str, Enum):
    """Single-use token slots. Each slot is a (hash, expiry) column pair."""

    VERIFICATION = "verification"
    PASSWORD_RESET = "password_reset"
    PASSWORD_SETUP = "password_setup"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(ActiveFlagMixin, BaseModel):
    """
    User account.

    `created_by` is the ownership boundary: owners manage only the accounts
    they invited. Accounts are never hard-deleted; `is_active` is the flag.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("agreed_to_terms", name="ck_users_agreed_to_terms"),
        UniqueConstraint("auth_provider", "auth_provider_id", name="uq_users_provider_subject"),
    )

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    hashed_password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_picture: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, name="role_enum", values_callable=_enum_values, validate_strings=True),
        nullable=False,
        default=Role.OWNER,
    )

    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_first_login: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    agreed_to_terms: Mapped[bool] = mapped_column(Boolean, nullable=False)

    verification_token_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    verification_token_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    password_reset_token_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    password_reset_token_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    password_setup_token_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    password_setup_token_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    auth_provider: Mapped[AuthProvider] = mapped_column(
        SAEnum(AuthProvider, name="auth_provider_enum", values_callable=_enum_values),
        nullable=False,
        default=AuthProvider.LOCAL,
    )
    auth_provider_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id"), nullable=True, index=True
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return value.strip().lower()

    @validates("hashed_password")
    def _reject_plaintext(self, key: str, value: Optional[str]) -> Optional[str]:
        # Only bcrypt output may land in this column
        if value is not None and not value.startswith("$2"):
            raise ValueError("hashed_password only accepts a bcrypt hash")
        return value

    @property
    def has_password(self) -> bool:
        return self.hashed_password is not None

    # ── Single-use token slots ────────────────────────────────────────────

    @staticmethod
    def token_columns(purpose: TokenPurpose) -> tuple[str, str]:
        """Attribute names (hash, expiry) backing a token purpose."""
        prefix = TokenPurpose(purpose).value
        return f"{prefix}_token_hash", f"{prefix}_token_expires_at"

    def set_token(self, purpose: TokenPurpose, token: SingleUseToken) -> None:
        """Store a new token for `purpose`, overwriting (and so invalidating) any previous one."""
        hash_attr, expires_attr = self.token_columns(purpose)
        setattr(self, hash_attr, token.hashed)
        setattr(self, expires_attr, token.expires_at)

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role.value if self.role else None}>"
