import re
from datetime import timedelta
from jose import jwt
from adblockpro.models import User, AccountStatus
from adblockpro.security import create_refresh_token, create_access_token
from adblockpro.utils import utcnow
from conftest import PASSWORD, register, auth_headers


def test_register_returns_user_and_token_pair(client, db, sent_emails):
    resp = register(client, email="  Alice@Example.COM ")
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    data = body["data"]
    assert data["user"]["email"] == "alice@example.com"
    assert data["user"]["role"] == "user"
    assert data["user"]["plan"] == "free"
    assert data["user"]["isVerified"] is False
    assert "password" not in str(data["user"]).lower()
    assert data["token"] and data["refreshToken"]

    assert len(sent_emails) == 1
    assert sent_emails[0]["to"] == "alice@example.com"
    assert "/verify-email?token=" in sent_emails[0]["html"]


def test_register_duplicate_email_any_case(client):
    assert register(client, email="bob@example.com").status_code == 201
    resp = register(client, email="BOB@example.com")
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "User already exists"}


def test_register_rejects_weak_password(client, db):
    resp = register(client, password="short")
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["errors"][0]["field"] == "password"
    assert db.query(User).count() == 0


def test_login_failures_are_indistinguishable(client):
    register(client)
    wrong_password = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Wrong1234"})
    unknown_email = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": PASSWORD})
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"success": False, "message": "Invalid credentials"}


def test_login_stamps_last_login(client, db):
    register(client)
    resp = client.post("/api/auth/login", json={"email": "ALICE@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    user = db.query(User).filter_by(email="alice@example.com").one()
    assert user.last_login is not None
    assert resp.json()["data"]["user"]["lastLogin"] is not None


def test_suspended_user_rejected_only_after_correct_password(client, make_user):
    make_user(email="sus@example.com", status=AccountStatus.suspended)
    bad = client.post("/api/auth/login", json={"email": "sus@example.com", "password": "Wrong1234"})
    assert bad.status_code == 401
    good = client.post("/api/auth/login", json={"email": "sus@example.com", "password": PASSWORD})
    assert good.status_code == 403
    assert good.json()["message"] == "Account is suspended"


def test_refresh_rotates_pair_and_access_token_opens_me(client):
    refresh_token = register(client).json()["data"]["refreshToken"]
    resp = client.post("/api/auth/refresh", json={"refreshToken": refresh_token})
    assert resp.status_code == 200
    pair = resp.json()["data"]
    assert pair["token"] and pair["refreshToken"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {pair['token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "alice@example.com"
    assert me.json()["data"]["settings"]["privacy"]["blockWebRTC"] is False


def test_refresh_rejects_bad_tokens(client, make_user):
    user = make_user()
    tampered = jwt.encode({"sub": str(user.id), "type": "refresh"}, "not-the-refresh-secret", algorithm="HS256")
    expired = create_refresh_token(user.id, expires_delta=timedelta(seconds=-1))
    access = create_access_token(user.id)
    for token in (tampered, expired, access):
        resp = client.post("/api/auth/refresh", json={"refreshToken": token})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid refresh token"

    missing = client.post("/api/auth/refresh", json={})
    assert missing.status_code == 401
    assert missing.json()["message"] == "Refresh token required"


def test_refresh_token_for_deleted_user(client, db, make_user):
    user = make_user()
    token = create_refresh_token(user.id)
    db.delete(user)
    db.commit()
    resp = client.post("/api/auth/refresh", json={"refreshToken": token})
    assert resp.status_code == 401


def test_me_requires_token(client, make_user):
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Not authorized, no token"

    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Not authorized, token failed"

    # refresh tokens are not accepted as access tokens
    user = make_user()
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {create_refresh_token(user.id)}"})
    assert resp.status_code == 401


def test_forgot_password_unknown_email(client):
    resp = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found"


def _request_reset(client, sent_emails):
    resp = client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    assert resp.status_code == 200
    match = re.search(r"/reset-password\?token=([0-9a-f]+)", sent_emails[-1]["html"])
    assert match
    return match.group(1)


def test_reset_password_is_single_use(client, sent_emails):
    register(client)
    token = _request_reset(client, sent_emails)

    resp = client.post("/api/auth/reset-password", json={"token": token, "password": "NewPassw0rd"})
    assert resp.status_code == 200

    login = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "NewPassw0rd"})
    assert login.status_code == 200

    again = client.post("/api/auth/reset-password", json={"token": token, "password": "OtherPassw0rd"})
    assert again.status_code == 400
    assert again.json()["message"] == "Invalid or expired token"


def test_reset_token_expires_after_thirty_minutes(client, db, sent_emails, monkeypatch):
    register(client)
    token = _request_reset(client, sent_emails)

    later = utcnow() + timedelta(minutes=31)
    monkeypatch.setattr("adblockpro.services.auth.utcnow", lambda: later)
    resp = client.post("/api/auth/reset-password", json={"token": token, "password": "NewPassw0rd"})
    assert resp.status_code == 400

    user = db.query(User).filter_by(email="alice@example.com").one()
    assert user.reset_password_token is None
    assert user.reset_password_expire is None


def test_verify_email(client, db):
    register(client)
    user = db.query(User).filter_by(email="alice@example.com").one()
    token = user.verification_token

    assert client.get("/api/auth/verify-email", params={"token": "nope"}).status_code == 400
    resp = client.get("/api/auth/verify-email", params={"token": token})
    assert resp.status_code == 200
    db.refresh(user)
    assert user.is_verified is True
    assert user.verification_token is None
    # one-way: the token cannot be used twice
    assert client.get("/api/auth/verify-email", params={"token": token}).status_code == 400


def test_logout_is_acknowledged(client, make_user):
    user = make_user()
    resp = client.post("/api/auth/logout", headers=auth_headers(user.id))
    assert resp.status_code == 200
    assert resp.json()["success"] is True
