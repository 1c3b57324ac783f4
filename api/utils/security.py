"""
Credential primitives.

- CredentialHasher: bcrypt password hashing (per-call salt, tunable cost).
- hash_token / generate_single_use_token: out-of-band tokens stored as SHA-256 digests.
- TokenIssuer: signed, time-limited session bearer tokens (JWT).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import hashlib
import secrets

import jwt
from jwt.exceptions import InvalidTokenError as JWTError
from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError
from pwdlib.hashers.bcrypt import BcryptHasher

from api.utils.logger import get_logger

logger = get_logger(__name__)

BCRYPT_MAX_BYTES = 72


# ── Passwords ─────────────────────────────────────────────────────────────────

class CredentialHasher:
    """Salted adaptive hashing for passwords."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._hasher = PasswordHash((BcryptHasher(rounds=rounds),))
        self._dummy_hash = self._hasher.hash(secrets.token_hex(16))

    def hash_password(self, password: str) -> str:
        """Hash a password with a fresh salt."""
        return self._hasher.hash(password)

    def verify_password(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        """
        Verify a password against a stored hash.

        Accounts without a password still pay for one bcrypt round-trip so the
        response time does not reveal whether the account has a usable secret.
        """
        usable = bool(hashed_password)
        try:
            matches = self._hasher.verify(plain_password, hashed_password or self._dummy_hash)
        except (UnknownHashError, ValueError) as e:
            logger.warning(f"Password verification failed on malformed input: {e.__class__.__name__}")
            return False
        return usable and matches


# ── Single-use tokens ─────────────────────────────────────────────────────────

def hash_token(raw_token: str) -> str:
    """Deterministic digest used to look single-use tokens up in storage."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class SingleUseToken:
    """Raw value goes out by email once; only `hashed` and `expires_at` are stored."""
    raw: str
    hashed: str
    expires_at: datetime


def generate_single_use_token(lifetime: timedelta, nbytes: int = 32) -> SingleUseToken:
    raw = secrets.token_hex(nbytes)
    return SingleUseToken(
        raw=raw,
        hashed=hash_token(raw),
        expires_at=datetime.now(timezone.utc) + lifetime,
    )


# ── Session tokens ────────────────────────────────────────────────────────────

class InvalidTokenError(Exception):
    """Signature mismatch, malformed token, wrong type, or expired. Callers never tell them apart."""


class TokenIssuer:
    """Issues and verifies HS256 session tokens binding a user id."""

    ACCESS = "access"
    OAUTH_STATE = "oauth_state"

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=7),
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.lifetime = lifetime

    def _encode(self, claims: dict[str, Any], lifetime: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {**claims, "iat": now, "exp": now + lifetime}
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def _decode(self, token: str, expected_type: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except JWTError as e:
            raise InvalidTokenError(str(e)) from e
        if payload.get("type") != expected_type:
            raise InvalidTokenError(f"Expected {expected_type} token")
        return payload

    def issue(self, user_id: Any) -> str:
        """Create a session token for `user_id`."""
        return self._encode({"sub": str(user_id), "type": self.ACCESS}, self.lifetime)

    def verify(self, token: str) -> str:
        """Return the user id bound to `token` or raise InvalidTokenError."""
        return self._decode(token, self.ACCESS)["sub"]

    def issue_oauth_state(self, provider: str, lifetime: timedelta = timedelta(minutes=10)) -> str:
        """CSRF state for the OAuth redirect dance, bound to one provider."""
        return self._encode(
            {"sub": provider, "type": self.OAUTH_STATE, "nonce": secrets.token_hex(8)},
            lifetime,
        )

    def verify_oauth_state(self, state: str, provider: str) -> None:
        if self._decode(state, self.OAUTH_STATE)["sub"] != provider:
            raise InvalidTokenError("OAuth state was issued for another provider")
