import pytest

from taxassist.config import settings
from taxassist.core.security import decode_session_token
from taxassist.models.subscription import Subscription
from taxassist.models.user import User


pytestmark = pytest.mark.asyncio


async def register_user(client, **overrides):
    body = {
        "name": "Layla",
        "email": "layla@example.com",
        "password": "StrongPass!23",
        "jobTitle": "Tax Advisor",
    }
    body.update(overrides)
    return await client.post("/api/v1/auth/register", json=body)


async def login_user(client, email: str, password: str):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


def session_cookie(resp) -> str | None:
    for header in resp.headers.get_list("set-cookie"):
        if header.startswith(f"{settings.session_cookie_name}="):
            return header
    return None


async def test_register_and_login_flow(client):
    resp = await register_user(client, email="Layla@Example.com")
    assert resp.status_code == 200
    body = resp.json()
    assert body["email"] == "layla@example.com"
    assert body["jobTitle"] == "Tax Advisor"
    assert "password" not in body and "password_hash" not in body

    # Duplicate email should fail
    dup = await register_user(client)
    assert dup.status_code == 400
    assert dup.json() == {"error": "Email already registered"}

    login_resp = await login_user(client, "layla@example.com", "StrongPass!23")
    assert login_resp.status_code == 200
    login_body = login_resp.json()
    assert login_body["success"] is True
    assert login_body["user"]["email"] == "layla@example.com"
    assert decode_session_token(login_body["accessToken"])["email"] == "layla@example.com"
    assert session_cookie(login_resp) is not None

    # Invalid password
    bad_login = await login_user(client, "layla@example.com", "wrong")
    assert bad_login.status_code == 401
    assert bad_login.json() == {"error": "Incorrect email or password"}


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"name": ""}, "Missing required fields"),
        ({"email": None}, "Missing required fields"),
        ({"password": ""}, "Missing required fields"),
        ({"jobTitle": None}, "Missing required fields"),
        ({"jobTitle": "Astronaut"}, "Invalid job title"),
    ],
)
async def test_register_validation(client, overrides, message):
    resp = await register_user(client, **overrides)
    assert resp.status_code == 400
    assert resp.json() == {"error": message}
    assert await User.all().count() == 0


async def test_register_grants_default_quota(client, monkeypatch):
    monkeypatch.setattr(settings, "default_call_seconds", 300)
    resp = await register_user(client)
    sub = await Subscription.get(user_id=resp.json()["id"])
    assert sub.call_seconds == 300


async def test_register_without_default_quota(client, monkeypatch):
    monkeypatch.setattr(settings, "default_call_seconds", None)
    resp = await register_user(client)
    assert await Subscription.filter(user_id=resp.json()["id"]).count() == 0


async def test_me(client, create_user, auth_headers):
    user, _ = await create_user()

    resp = await client.get("/api/v1/auth/me", headers=auth_headers(user))
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == str(user.id)
    assert body["jobTitle"] == "Tax Consultant"
    assert body["language"] is None


async def test_me_with_session_cookie(client, create_user, auth_headers):
    user, _ = await create_user()
    token = auth_headers(user)["Authorization"].split(" ", 1)[1]

    resp = await client.get("/api/v1/auth/me", headers={"Cookie": f"{settings.session_cookie_name}={token}"})
    assert resp.status_code == 200
    assert resp.json()["email"] == user.email


async def test_me_unauthenticated(client):
    resp = await client.get("/api/v1/auth/me")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}

    resp = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}


async def test_token_login_sets_session_cookie(client, create_user, one_time_token):
    user, _ = await create_user(email="dash@example.com")

    resp = await client.post("/api/v1/auth/token-login", json={"token": one_time_token("dash@example.com")})

    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    cookie = session_cookie(resp)
    assert cookie is not None
    assert "HttpOnly" in cookie
    token = cookie.split(";", 1)[0].split("=", 1)[1]
    assert decode_session_token(token)["sub"] == str(user.id)


@pytest.mark.parametrize("case", ["missing", "expired", "bad_signature", "no_email", "unknown_user"])
async def test_token_login_failures(client, create_user, one_time_token, case):
    await create_user(email="dash@example.com")
    body = {
        "missing": {},
        "expired": {"token": one_time_token("dash@example.com", minutes=-1)},
        "bad_signature": {"token": one_time_token("dash@example.com", secret="not-our-secret")},
        "no_email": {"token": one_time_token(None, sub="123")},
        "unknown_user": {"token": one_time_token("nobody@example.com")},
    }[case]

    resp = await client.post("/api/v1/auth/token-login", json=body)

    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid token"}
    assert session_cookie(resp) is None


async def test_token_login_replay_in_single_use_mode(client, create_user, one_time_token, monkeypatch):
    monkeypatch.setattr(settings, "one_time_token_single_use", True)
    await create_user(email="dash@example.com")
    token = one_time_token("dash@example.com")

    first = await client.post("/api/v1/auth/token-login", json={"token": token})
    second = await client.post("/api/v1/auth/token-login", json={"token": token})

    assert first.status_code == 200
    assert second.status_code == 401
    assert second.json() == {"error": "Invalid token"}


async def test_logout_clears_cookie_and_redirects(client):
    resp = await client.post("/api/v1/auth/logout")
    assert resp.status_code == 303
    assert resp.headers["location"] == settings.dashboard_url
    cookie = session_cookie(resp)
    assert cookie is not None
    assert "Max-Age=0" in cookie
