"""
Tests for credential primitives: password hashing, single-use tokens and
session tokens.

Run with: PYTHONPATH=. uv run pytest tests/test_security.py -v
"""

from datetime import timedelta

import jwt
import pytest

from api.utils.security import (
    CredentialHasher,
    TokenIssuer,
    InvalidTokenError,
    generate_single_use_token,
    hash_token,
)

SECRET = "unit-test-secret-key-of-reasonable-length"


@pytest.fixture
def fast_hasher():
    return CredentialHasher(rounds=4)


def test_password_round_trip(fast_hasher):
    """verify(p, hash(p)) holds and a wrong password fails."""
    hashed = fast_hasher.hash_password("P@ssw0rd1")
    assert hashed != "P@ssw0rd1"
    assert fast_hasher.verify_password("P@ssw0rd1", hashed)
    assert not fast_hasher.verify_password("P@ssw0rd2", hashed)


def test_password_hash_is_salted(fast_hasher):
    """Hashing the same password twice gives different outputs."""
    assert fast_hasher.hash_password("same-input") != fast_hasher.hash_password("same-input")


def test_verify_without_stored_hash_is_false(fast_hasher):
    """Accounts with no password never verify, whatever is presented."""
    assert fast_hasher.verify_password("anything", None) is False
    assert fast_hasher.verify_password("", None) is False


def test_passwordless_verify_never_hashes_on_the_request_path(fast_hasher, monkeypatch):
    """The stand-in hash exists from construction, so every passwordless check costs one verify."""

    def no_hashing(*args, **kwargs):
        raise AssertionError("hashed during verification")

    monkeypatch.setattr(fast_hasher._hasher, "hash", no_hashing)

    assert fast_hasher.verify_password("anything", None) is False
    assert fast_hasher.verify_password("anything", None) is False


def test_verify_malformed_hash_is_false(fast_hasher):
    assert fast_hasher.verify_password("P@ssw0rd1", "not-a-bcrypt-hash") is False


def test_hash_token_is_deterministic_sha256_hex():
    digest = hash_token("abc")
    assert digest == hash_token("abc")
    assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_single_use_token_shape():
    """Raw token is 32 random bytes as hex; only the digest is meant for storage."""
    token = generate_single_use_token(timedelta(hours=1))
    assert len(token.raw) == 64
    int(token.raw, 16)
    assert token.hashed == hash_token(token.raw)
    assert token.hashed != token.raw
    assert generate_single_use_token(timedelta(hours=1)).raw != token.raw


def test_session_token_round_trip():
    issuer = TokenIssuer(SECRET)
    token = issuer.issue("user-123")
    assert issuer.verify(token) == "user-123"


def test_expired_session_token_rejected():
    issuer = TokenIssuer(SECRET, lifetime=timedelta(seconds=-1))
    with pytest.raises(InvalidTokenError):
        issuer.verify(issuer.issue("user-123"))


def test_tampered_session_token_rejected():
    """Wrong signature and garbage input fail with the same error type as expiry."""
    token = TokenIssuer("another-secret-entirely-different-key").issue("user-123")
    with pytest.raises(InvalidTokenError):
        TokenIssuer(SECRET).verify(token)
    with pytest.raises(InvalidTokenError):
        TokenIssuer(SECRET).verify("not.a.jwt")


def test_token_without_expiry_rejected():
    token = jwt.encode({"sub": "user-123", "type": "access"}, SECRET, algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        TokenIssuer(SECRET).verify(token)


def test_oauth_state_is_not_a_session_token():
    issuer = TokenIssuer(SECRET)
    state = issuer.issue_oauth_state("google")
    with pytest.raises(InvalidTokenError):
        issuer.verify(state)
    issuer.verify_oauth_state(state, "google")
    with pytest.raises(InvalidTokenError):
        issuer.verify_oauth_state(state, "facebook")
