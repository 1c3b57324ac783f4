"""
End-to-end account lifecycle over HTTP: register, login, email verification,
password reset and invited-account setup.

Run with: PYTHONPATH=. uv run pytest tests/test_auth_flows.py -v
"""

from datetime import timedelta

from sqlalchemy import update

from api.apps.auth.models import User
from api.apps.auth.permissions import Role
from api.apps.auth.services import AuthService
from api.db.base_model import utc_now
from helpers import STRONG_PASSWORD, auth_header, registration_payload

API = "/api/auth"
SECRET_FIELDS = {
    "password",
    "hashedPassword",
    "verificationTokenHash",
    "passwordResetTokenHash",
    "passwordSetupTokenHash",
}


# ── Registration ──────────────────────────────────────────────────────────────

async def test_register_creates_unverified_owner(client, mailer):
    res = await client.post(f"{API}/register", json=registration_payload())

    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "success"
    user = body["data"]["user"]
    assert user["email"] == "jane@x.com"
    assert user["role"] == "owner"
    assert user["isVerified"] is False
    assert user["isActive"] is True
    assert body["data"]["token"]
    assert not SECRET_FIELDS & user.keys()

    sent = mailer.last("verification", to="jane@x.com")
    assert len(sent.context["token"]) == 64


async def test_register_normalizes_email(client):
    res = await client.post(f"{API}/register", json=registration_payload(email="  Jane@X.COM "))
    assert res.status_code == 201
    assert res.json()["data"]["user"]["email"] == "jane@x.com"


async def test_register_duplicate_email_is_case_insensitive(client):
    await client.post(f"{API}/register", json=registration_payload())
    res = await client.post(f"{API}/register", json=registration_payload(email="JANE@x.com"))

    assert res.status_code == 400
    assert res.json()["status"] == "failure"
    assert res.json()["message"] == "Email already in use"


async def test_unique_index_catches_duplicate_missed_by_precheck(client, monkeypatch):
    """Two registrations racing past the lookup still yield one account."""
    await client.post(f"{API}/register", json=registration_payload())

    async def never_taken(self, email):
        return False

    monkeypatch.setattr(AuthService, "_email_taken", never_taken)
    res = await client.post(f"{API}/register", json=registration_payload(email="JANE@x.com"))

    assert res.status_code == 400
    assert res.json()["message"] == "Email already in use"


async def test_register_succeeds_when_email_delivery_fails(client, dead_smtp, session_factory):
    res = await client.post(f"{API}/register", json=registration_payload())

    assert res.status_code == 201
    async with session_factory() as session:
        assert await User.exists(session, email="jane@x.com")


async def test_register_validation_failures_use_field_details(client):
    res = await client.post(
        f"{API}/register",
        json=registration_payload(password="weak", confirmPassword="weak", agreedToTerms=False),
    )

    assert res.status_code == 400
    body = res.json()
    assert body["status"] == "failure"
    assert body["message"] == "Validation failed"
    fields = {d["field"] for d in body["error"]["details"]}
    assert "password" in fields
    assert "agreedToTerms" in fields


async def test_register_password_mismatch(client):
    res = await client.post(
        f"{API}/register",
        json=registration_payload(confirmPassword="P@ssw0rd2"),
    )
    assert res.status_code == 400
    messages = [d["message"] for d in res.json()["error"]["details"]]
    assert "Passwords do not match" in messages


# ── Login ─────────────────────────────────────────────────────────────────────

async def test_login_succeeds_and_records_last_login(client, make_user, load_user):
    user, _ = await make_user("sam@x.com")

    res = await client.post(f"{API}/login", json={"email": "SAM@x.com", "password": STRONG_PASSWORD})

    assert res.status_code == 200
    token = res.json()["data"]["token"]
    me = await client.get(f"{API}/me", headers=auth_header(token))
    assert me.json()["data"]["user"]["email"] == "sam@x.com"
    assert (await load_user(user.id)).last_login is not None


async def test_login_failures_are_indistinguishable(client, make_user):
    """Unknown email, wrong password and a passwordless account answer identically."""
    await make_user("sam@x.com")
    await make_user("invitee@x.com", password=None)

    unknown = await client.post(f"{API}/login", json={"email": "nobody@x.com", "password": STRONG_PASSWORD})
    wrong = await client.post(f"{API}/login", json={"email": "sam@x.com", "password": "Wr0ng!pass"})
    no_password = await client.post(f"{API}/login", json={"email": "invitee@x.com", "password": STRONG_PASSWORD})

    assert unknown.status_code == wrong.status_code == no_password.status_code == 401
    assert unknown.json() == wrong.json() == no_password.json()


async def test_login_deactivated_account(client, make_user):
    await make_user("gone@x.com", is_active=False)

    res = await client.post(f"{API}/login", json={"email": "gone@x.com", "password": STRONG_PASSWORD})

    assert res.status_code == 401
    assert "deactivated" in res.json()["message"]


# ── Email verification ────────────────────────────────────────────────────────

async def test_verify_email_end_to_end(client, mailer):
    reg = await client.post(f"{API}/register", json=registration_payload())
    session_token = reg.json()["data"]["token"]
    raw = mailer.token_for("verification", to="jane@x.com")

    res = await client.get(f"{API}/verify-email/{raw}")

    assert res.status_code == 200
    assert res.json()["data"]["user"]["isVerified"] is True
    assert mailer.last("welcome", to="jane@x.com")

    me = await client.get(f"{API}/me", headers=auth_header(session_token))
    assert me.json()["data"]["user"]["isVerified"] is True

    # Spent
    again = await client.get(f"{API}/verify-email/{raw}")
    assert again.status_code == 400
    assert again.json()["message"] == "Invalid or expired token"


async def test_verify_email_unknown_token(client):
    res = await client.get(f"{API}/verify-email/{'0' * 64}")
    assert res.status_code == 400
    assert res.json()["message"] == "Invalid or expired token"


async def test_resend_verification_replaces_previous_token(client, mailer):
    await client.post(f"{API}/register", json=registration_payload())
    first = mailer.token_for("verification", to="jane@x.com")

    res = await client.post(f"{API}/resend-verification", json={"email": "jane@x.com"})
    assert res.status_code == 200
    second = mailer.token_for("verification", to="jane@x.com")
    assert first != second

    stale = await client.get(f"{API}/verify-email/{first}")
    assert stale.status_code == 400
    fresh = await client.get(f"{API}/verify-email/{second}")
    assert fresh.status_code == 200


async def test_resend_verification_guards(client, make_user):
    await make_user("done@x.com", is_verified=True)

    unknown = await client.post(f"{API}/resend-verification", json={"email": "nobody@x.com"})
    verified = await client.post(f"{API}/resend-verification", json={"email": "done@x.com"})

    assert unknown.status_code == 404
    assert verified.status_code == 400
    assert verified.json()["message"] == "This email is already verified"


# ── Password reset ────────────────────────────────────────────────────────────

async def test_forgot_password_does_not_reveal_accounts(client, make_user, mailer):
    await make_user("sam@x.com")

    known = await client.post(f"{API}/forgot-password", json={"email": "sam@x.com"})
    unknown = await client.post(f"{API}/forgot-password", json={"email": "nobody@x.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert [e.to for e in mailer.sent if e.template == "password_reset"] == ["sam@x.com"]


async def test_reset_password_is_single_use(client, make_user, mailer):
    await make_user("sam@x.com")
    await client.post(f"{API}/forgot-password", json={"email": "sam@x.com"})
    raw = mailer.token_for("password_reset", to="sam@x.com")
    new_password = "N3w!Passw0rd"

    res = await client.post(
        f"{API}/reset-password/{raw}",
        json={"password": new_password, "confirmPassword": new_password},
    )
    assert res.status_code == 200
    assert res.json()["data"]["token"]

    old = await client.post(f"{API}/login", json={"email": "sam@x.com", "password": STRONG_PASSWORD})
    new = await client.post(f"{API}/login", json={"email": "sam@x.com", "password": new_password})
    assert old.status_code == 401
    assert new.status_code == 200

    replay = await client.post(
        f"{API}/reset-password/{raw}",
        json={"password": "An0ther!Pass", "confirmPassword": "An0ther!Pass"},
    )
    assert replay.status_code == 400


async def test_reset_password_expired_token(client, make_user, mailer, session_factory):
    user, _ = await make_user("sam@x.com")
    await client.post(f"{API}/forgot-password", json={"email": "sam@x.com"})
    raw = mailer.token_for("password_reset", to="sam@x.com")

    async with session_factory() as session:
        await session.execute(
            update(User)
            .where(User.id == user.id)
            .values(password_reset_token_expires_at=utc_now() - timedelta(minutes=1))
        )
        await session.commit()

    res = await client.post(
        f"{API}/reset-password/{raw}",
        json={"password": "N3w!Passw0rd", "confirmPassword": "N3w!Passw0rd"},
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Invalid or expired token"


# ── Invited accounts ──────────────────────────────────────────────────────────

async def test_invited_user_sets_up_password(client, owner, mailer, load_user):
    _, owner_token = owner
    invite = await client.post(
        "/api/users",
        headers=auth_header(owner_token),
        json={
            "fullName": "Bob Clerk",
            "email": "bob@x.com",
            "phoneNumber": "+2348022222222",
            "role": "clerk",
        },
    )
    assert invite.status_code == 201
    invited = invite.json()["data"]["user"]
    assert invited["isFirstLogin"] is True
    assert invited["isVerified"] is False

    sent = mailer.last("invite", to="bob@x.com")
    assert sent.context["role"] == "clerk"
    raw = sent.context["token"]

    # No password yet
    blocked = await client.post(f"{API}/login", json={"email": "bob@x.com", "password": STRONG_PASSWORD})
    assert blocked.status_code == 401

    res = await client.post(f"{API}/setup-password/{raw}", json={"password": STRONG_PASSWORD})
    assert res.status_code == 200
    user = res.json()["data"]["user"]
    assert user["isFirstLogin"] is False
    assert user["isVerified"] is True

    login = await client.post(f"{API}/login", json={"email": "bob@x.com", "password": STRONG_PASSWORD})
    assert login.status_code == 200
    assert login.json()["data"]["user"]["role"] == Role.CLERK.value

    stored = await load_user(invited["id"])
    assert stored.password_setup_token_hash is None


async def test_setup_password_too_short(client, owner, mailer):
    _, owner_token = owner
    await client.post(
        "/api/users",
        headers=auth_header(owner_token),
        json={"fullName": "Bob Clerk", "email": "bob@x.com", "phoneNumber": "+2348022222222", "role": "clerk"},
    )
    raw = mailer.token_for("invite", to="bob@x.com")

    res = await client.post(f"{API}/setup-password/{raw}", json={"password": "short"})

    assert res.status_code == 400
    assert res.json()["message"] == "Password must be at least 8 characters long"

    # Token was not spent by the rejected attempt
    ok = await client.post(f"{API}/setup-password/{raw}", json={"password": STRONG_PASSWORD})
    assert ok.status_code == 200
