from typing import Any, Optional

from fastapi import HTTPException, status


class BaseAPIException(HTTPException):
    """Base exception for API errors.
    Ensures clarity and actionable next steps."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred. Please try again.",
        error: Optional[dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.error = error or {}


# ============== Validation ==============


class ValidationFailedException(BaseAPIException):
    """Malformed or missing input. Carries per-field messages."""

    def __init__(
        self,
        details: Optional[list[dict[str, str]]] = None,
        detail: str = "Validation failed",
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error={"details": details or []},
        )


class PasswordTooShortException(BaseAPIException):
    def __init__(self, detail: str = "Password must be at least 8 characters long"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


# ============== Authentication & Verification ==============


class InvalidCredentialsException(BaseAPIException):
    """Triggered when login fails. Identical for unknown email and wrong password."""

    def __init__(self, detail: str = "Invalid email or password"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )


class AccountDeactivatedException(BaseAPIException):
    def __init__(
        self,
        detail: str = "Your account has been deactivated. Please contact support.",
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )


class UnauthorizedException(BaseAPIException):
    """Missing, invalid or expired session token, or a vanished account."""

    def __init__(
        self,
        detail: str = "You are not logged in. Please log in to access this resource.",
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )
        self.headers = {"WWW-Authenticate": "Bearer"}


class InvalidOrExpiredTokenException(BaseAPIException):
    """Single-use token unknown, consumed, or expired. Never says which."""

    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class AlreadyVerifiedException(BaseAPIException):
    def __init__(self, detail: str = "This email is already verified"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class ProviderMismatchException(BaseAPIException):
    """Email is registered through a different sign-in method."""

    def __init__(
        self,
        detail: str = "An account with this email already exists. Please log in with your original sign-in method.",
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


# ============== Account Lifecycle ==============


class DuplicateEmailException(BaseAPIException):
    """Prevents duplicate registration by email."""

    def __init__(self, detail: str = "Email already in use"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class SelfDeleteException(BaseAPIException):
    def __init__(self, detail: str = "You cannot delete your own account"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


# ============== Staff & Permissions ==============


class PermissionDeniedException(BaseAPIException):
    """Authenticated but not allowed: role, permission, ownership or verification."""

    def __init__(
        self, detail: str = "You do not have permission to perform this action"
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


class NotCreatorException(PermissionDeniedException):
    """The target record belongs to another account."""

    def __init__(self, detail: str = "You can only manage records you created"):
        super().__init__(detail=detail)


# ============== General Operational Exceptions ==============


class ResourceNotFoundException(BaseAPIException):
    """Generic fallback for missing resources."""

    def __init__(self, detail: str = "The requested information could not be found."):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )
