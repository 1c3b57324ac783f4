"""
Auth Pydantic schemas.

Input validation and output serialization for auth routes.
JSON bodies are camelCase on the wire; Python attributes stay snake_case.
"""

from datetime import datetime
from typing import Annotated, Any, Optional
import re
import uuid

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel

from api.apps.auth.models import AuthProvider
from api.apps.auth.permissions import Role
from api.utils.security import BCRYPT_MAX_BYTES


class CamelModel(BaseModel):
    """Base for every request/response body: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Field rules ───────────────────────────────────────────────────────────────

FULL_NAME_PATTERN = re.compile(r"^[a-zA-Z\s]+$")
PHONE_PATTERN = re.compile(r"^[+]?[\d\s()-]{10,}$")
PASSWORD_SYMBOLS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")
MIN_PASSWORD_LENGTH = 8


def _normalize_email(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


Email = Annotated[EmailStr, BeforeValidator(_normalize_email)]


def check_password_strength(password: str) -> str:
    """8+ chars, upper, lower, digit and symbol. Raises ValueError with the first failed rule."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes long")
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must contain at least 1 uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must contain at least 1 lowercase letter")
    if not re.search(r"\d", password):
        raise ValueError("Password must contain at least 1 number")
    if not PASSWORD_SYMBOLS.search(password):
        raise ValueError("Password must contain at least 1 symbol")
    return password


def check_password_length(password: str) -> str:
    # bcrypt only ever reads the first 72 bytes
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes long")
    return password


def check_full_name(value: str) -> str:
    value = value.strip()
    if not 2 <= len(value) <= 50:
        raise ValueError("Full name must be between 2 and 50 characters")
    if not FULL_NAME_PATTERN.match(value):
        raise ValueError("Full name can only contain letters and spaces")
    return value


def check_phone_number(value: str) -> str:
    value = value.strip()
    if not PHONE_PATTERN.match(value):
        raise ValueError("Please provide a valid phone number")
    return value


FullName = Annotated[str, AfterValidator(check_full_name)]
PhoneNumber = Annotated[str, AfterValidator(check_phone_number)]
StrongPassword = Annotated[str, AfterValidator(check_password_strength)]
BoundedPassword = Annotated[str, AfterValidator(check_password_length)]


def check_passwords_match(confirm: str, info: ValidationInfo, field: str = "password") -> str:
    # Skip when the password itself already failed validation
    if field in info.data and confirm != info.data[field]:
        raise ValueError("Passwords do not match")
    return confirm


# ── Request Schemas ───────────────────────────────────────────────────────────

class RegisterRequest(CamelModel):
    """Self-registration of a tenant owner."""
    full_name: FullName
    email: Email
    password: StrongPassword
    confirm_password: str
    phone_number: PhoneNumber
    agreed_to_terms: bool

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        return check_passwords_match(v, info)

    @field_validator("agreed_to_terms")
    @classmethod
    def validate_terms(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("You must agree to the terms and conditions to register")
        return v


class LoginRequest(CamelModel):
    """Login with email + password. Strength is not re-checked here."""
    email: Email
    password: str = Field(..., min_length=1)


class EmailRequest(CamelModel):
    """Body for resend-verification and forgot-password."""
    email: Email


class ResetPasswordRequest(CamelModel):
    password: StrongPassword
    confirm_password: str

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        return check_passwords_match(v, info)


class SetupPasswordRequest(CamelModel):
    """
    First-login password for invited accounts.

    Only the byte cap is enforced here; the minimum length is checked by the
    service before the token is looked up.
    """
    password: BoundedPassword
    confirm_password: Optional[str] = None

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        if v is None:
            return v
        return check_passwords_match(v, info)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: StrongPassword
    confirm_password: str

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        return check_passwords_match(v, info, field="new_password")


# ── Response Schemas ──────────────────────────────────────────────────────────

class UserResponse(CamelModel):
    """Public user data. Password hash and token columns never appear here."""
    id: uuid.UUID
    full_name: str
    email: str
    phone_number: Optional[str] = None
    role: Role
    profile_picture: Optional[str] = None
    is_verified: bool
    is_active: bool
    is_first_login: bool
    agreed_to_terms: bool
    auth_provider: AuthProvider
    created_by: Optional[uuid.UUID] = None
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


def serialize_user(user) -> dict[str, Any]:
    """ORM user -> camelCase JSON-ready dict."""
    return UserResponse.model_validate(user).model_dump(mode="json", by_alias=True)
