from urllib.parse import parse_qs, urlparse

import pytest

from auction_api import CognitoError, cognito
from auction_api.cognito import CognitoTokens
from dashboard.auth.cognito_auth import (
    JWT_COOKIE_NAME,
    TOKEN_COOKIE_NAME,
    create_jwt,
    user_from_id_token,
    verify_jwt,
)


def query(response):
    return parse_qs(urlparse(response.headers["location"]).query)


def test_session_jwt_round_trip():
    token = create_jwt({"username": "alice", "email": "alice@example.com", "is_admin": True})
    claims = verify_jwt(token)
    assert claims["sub"] == "alice"
    assert claims["is_admin"] is True
    assert verify_jwt(token + "x") is None


def test_admin_flag_comes_from_groups(id_token):
    assert user_from_id_token(id_token("root", groups=["admin"]))["is_admin"] is True
    staff = user_from_id_token(id_token("alice", groups=["staff"]))
    assert staff == {"username": "alice", "email": "alice@example.com", "is_admin": False}


def test_pages_require_a_session(anonymous):
    response = anonymous.get("/inventory", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/login"


def test_public_pages(anonymous):
    assert anonymous.get("/health").json() == {"status": "healthy"}
    assert anonymous.get("/login").status_code == 200
    assert anonymous.get("/signup").status_code == 200


def test_auth_api_answers_401(anonymous):
    response = anonymous.get("/auth/me")
    assert response.status_code == 401
    assert response.json() == {"detail": "Not authenticated"}


def test_session_without_id_token_has_expired(anonymous):
    anonymous.cookies.set(JWT_COOKIE_NAME, create_jwt({"username": "alice"}))
    response = anonymous.get("/dashboard", follow_redirects=False)
    assert response.headers["location"] == "/login?error=session_expired"


def test_login_sets_both_cookies(anonymous, id_token, monkeypatch):
    async def fake_sign_in(username, password):
        assert (username, password) == ("alice", "hunter2")
        return CognitoTokens(id_token=id_token("alice", groups=["admin"]), expires_in=3600)

    monkeypatch.setattr(cognito, "sign_in", fake_sign_in)

    response = anonymous.post("/login", data={"username": " alice ", "password": "hunter2"},
                              follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/dashboard"
    assert JWT_COOKIE_NAME in response.cookies
    assert TOKEN_COOKIE_NAME in response.cookies
    assert verify_jwt(response.cookies[JWT_COOKIE_NAME])["is_admin"] is True

    me = anonymous.get("/auth/me")
    assert me.json() == {"username": "alice", "email": "alice@example.com", "is_admin": True}


@pytest.mark.parametrize("code, expected", [
    ("NotAuthorizedException", "invalid_credentials"),
    ("NEW_PASSWORD_REQUIRED", "challenge"),
    ("NetworkError", "unavailable"),
])
def test_login_failures(anonymous, monkeypatch, code, expected):
    async def fake_sign_in(username, password):
        raise CognitoError(code, "nope")

    monkeypatch.setattr(cognito, "sign_in", fake_sign_in)

    response = anonymous.post("/login", data={"username": "alice", "password": "x"}, follow_redirects=False)
    assert query(response) == {"error": [expected]}


def test_unconfirmed_login_goes_to_confirmation(anonymous, monkeypatch):
    async def fake_sign_in(username, password):
        raise CognitoError("UserNotConfirmedException", "User is not confirmed.")

    monkeypatch.setattr(cognito, "sign_in", fake_sign_in)

    response = anonymous.post("/login", data={"username": "new user", "password": "x"}, follow_redirects=False)
    assert response.headers["location"].startswith("/signup?")
    assert query(response) == {"confirm": ["new user"]}


def test_login_needs_both_fields(anonymous):
    response = anonymous.post("/login", data={"username": "alice"}, follow_redirects=False)
    assert response.headers["location"] == "/login?error=missing_params"


def test_signup_password_mismatch(anonymous):
    response = anonymous.post("/signup", data={
        "username": "bob", "email": "bob@example.com",
        "password": "a", "confirm_password": "b",
    })
    assert response.status_code == 400
    assert "Passwords do not match" in response.text


def test_signup_then_confirm(anonymous, monkeypatch):
    calls = []

    async def fake_sign_up(username, password, email):
        calls.append(("sign_up", username, email))
        return {}

    async def fake_confirm(username, code):
        calls.append(("confirm", username, code))
        return {}

    monkeypatch.setattr(cognito, "sign_up", fake_sign_up)
    monkeypatch.setattr(cognito, "confirm_sign_up", fake_confirm)

    response = anonymous.post("/signup", data={
        "username": "bob", "email": "Bob@Example.com",
        "password": "pw", "confirm_password": "pw",
    }, follow_redirects=False)
    assert query(response)["confirm"] == ["bob"]

    response = anonymous.post("/signup/confirm", data={"username": "bob", "code": " 123456 "},
                              follow_redirects=False)
    assert response.headers["location"].startswith("/login?notice=")
    assert calls == [("sign_up", "bob", "bob@example.com"), ("confirm", "bob", "123456")]


def test_logout_clears_cookies(staff):
    response = staff.get("/logout", follow_redirects=False)
    assert response.headers["location"] == "/login"
    cleared = response.headers.get_list("set-cookie")
    assert any(c.startswith(f"{JWT_COOKIE_NAME}=") for c in cleared)
    assert any(c.startswith(f"{TOKEN_COOKIE_NAME}=") for c in cleared)


def test_admin_pages_need_admin(staff):
    response = staff.get("/admin")
    assert response.status_code == 403
    assert "Administrator access required" in response.text
