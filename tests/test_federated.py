"""
Tests for federated sign-in: account resolution from provider profiles and
the redirect endpoints. No provider is contacted.

Run with: PYTHONPATH=. uv run pytest tests/test_federated.py -v
"""

import pytest
from fastapi import BackgroundTasks

from api.apps.auth.models import AuthProvider
from api.apps.auth.permissions import Role
from api.apps.auth.services import AuthService
from api.core.dependencies import get_oauth_manager
from api.core.oauth import OAuthManager, GoogleOAuth, FacebookOAuth, OAuthProfile, _OAuthProvider
from api.utils.exceptions import AccountDeactivatedException, ProviderMismatchException
from main import app


@pytest.fixture
def service(db_session, hasher, issuer, mailer):
    return AuthService(
        session=db_session,
        hasher=hasher,
        issuer=issuer,
        mailer=mailer,
        background=BackgroundTasks(),
    )


def google_profile(**overrides) -> OAuthProfile:
    data = {
        "provider": "google",
        "provider_user_id": "g-123",
        "email": "ada@gmail.com",
        "name": "Ada Lovelace",
        "picture_url": "https://img.test/ada.png",
    }
    data.update(overrides)
    return OAuthProfile(**data)


# ── Account resolution ────────────────────────────────────────────────────────

async def test_new_identity_creates_verified_owner(service):
    user = await service.resolve_federated_account(google_profile())

    assert user.email == "ada@gmail.com"
    assert user.role == Role.OWNER
    assert user.is_verified is True
    assert user.auth_provider == AuthProvider.GOOGLE
    assert user.auth_provider_id == "g-123"
    assert user.hashed_password is None
    assert user.profile_picture == "https://img.test/ada.png"


async def test_returning_identity_resolves_to_same_account(service):
    first = await service.resolve_federated_account(google_profile())
    # Provider-side email change does not fork the account
    again = await service.resolve_federated_account(google_profile(email="ada@new.com"))

    assert again.id == first.id
    assert again.last_login is not None


async def test_missing_email_gets_placeholder(service):
    profile = OAuthProfile(provider="facebook", provider_user_id="FB-9", name="")

    user = await service.resolve_federated_account(profile)

    assert user.email == "fb-9@facebook.user"
    assert user.full_name == "fb-9"
    assert user.auth_provider == AuthProvider.FACEBOOK


async def test_email_owned_by_password_account_is_a_mismatch(service, make_user):
    await make_user("ada@gmail.com")

    with pytest.raises(ProviderMismatchException):
        await service.resolve_federated_account(google_profile())


async def test_email_owned_by_other_provider_is_a_mismatch(service):
    await service.resolve_federated_account(
        OAuthProfile(provider="facebook", provider_user_id="fb-1", email="ada@gmail.com")
    )

    with pytest.raises(ProviderMismatchException):
        await service.resolve_federated_account(google_profile())


async def test_deactivated_federated_account_is_refused(service, db_session):
    user = await service.resolve_federated_account(google_profile())
    user.is_active = False
    await db_session.commit()

    with pytest.raises(AccountDeactivatedException):
        await service.resolve_federated_account(google_profile())


# ── Endpoints ─────────────────────────────────────────────────────────────────

@pytest.fixture
def configured_oauth():
    manager = OAuthManager([
        GoogleOAuth("gid", "gsecret", "http://test/api/auth/google/callback"),
        FacebookOAuth(None, None, "http://test/api/auth/facebook/callback"),
    ])
    app.dependency_overrides[get_oauth_manager] = lambda: manager
    return manager


async def test_providers_lists_configured_only(client, configured_oauth):
    res = await client.get("/api/auth/providers")

    assert res.status_code == 200
    assert res.json()["data"]["providers"] == ["google"]


async def test_start_redirects_to_consent_screen(client, configured_oauth):
    res = await client.get("/api/auth/google")

    assert res.status_code == 302
    location = res.headers["location"]
    assert location.startswith(GoogleOAuth.AUTHORIZE_URL)
    assert "client_id=gid" in location
    assert "state=" in location


async def test_start_unconfigured_provider_redirects_with_error(client, configured_oauth):
    res = await client.get("/api/auth/facebook")

    assert res.status_code == 302
    assert res.headers["location"].startswith("http://client.test/auth/callback?error=")


async def test_callback_without_code_redirects_with_error(client, configured_oauth):
    res = await client.get("/api/auth/google/callback", params={"error": "access_denied"})

    assert res.status_code == 302
    assert res.headers["location"].startswith("http://client.test/auth/callback?error=")


async def test_callback_with_forged_state_redirects_with_error(client, configured_oauth):
    res = await client.get(
        "/api/auth/google/callback",
        params={"code": "abc", "state": "forged"},
    )

    assert res.status_code == 302
    assert "error=" in res.headers["location"]
    assert "token=" not in res.headers["location"]


# ── Providers ─────────────────────────────────────────────────────────────────

def test_provider_without_code_flow_cannot_be_built():
    class HalfProvider(_OAuthProvider):
        name = "half"

        async def exchange_code(self, client, code):
            return {}

    with pytest.raises(TypeError):
        HalfProvider("id", "secret", "http://test/callback")
