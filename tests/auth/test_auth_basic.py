import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from auth_service.database import Base, engine
from auth_service.main import app
from auth_service.rate_limiter import sliding_window_limiter
from common import settings
from common.auth import decode_token

client = TestClient(app)


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def register(username: str, password: str = "Secret123", email: str = None):
    return client.post(
        "/api/auth/register",
        json={
            "full_name": username.title(),
            "username": username,
            "email": email or f"{username}@hotel-staff.com",
            "password": password,
        },
    )


def login(username: str, password: str = "Secret123") -> dict:
    res = client.post("/api/auth/login", data={"username": username, "password": password})
    assert res.status_code == 200, res.text
    return res.json()["data"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_first_user_is_admin_and_later_users_are_receptionists():
    first = register("alice")
    assert first.status_code == 201
    assert first.json()["data"]["role"] == "admin"
    assert "hashed_password" not in first.json()["data"]

    second = register("bob")
    assert second.status_code == 201
    assert second.json()["data"]["role"] == "receptionist"


def test_duplicate_username_or_email_is_rejected():
    register("alice")
    assert register("alice", email="other@hotel-staff.com").status_code == 400
    res = register("alicia", email="alice@hotel-staff.com")
    assert res.status_code == 400
    assert res.json()["message"] == "Username or email already exists"


@pytest.mark.parametrize(
    "password,message",
    [
        ("Ab1", "Password must be at least 8 characters long"),
        ("12345678", "Password must contain at least one letter"),
        ("abcdefgh", "Password must contain at least one digit"),
    ],
)
def test_weak_passwords_are_rejected(password, message):
    res = register("weak", password=password)
    assert res.status_code == 400
    assert res.json()["message"] == message


def test_login_returns_token_pair_with_claims():
    register("alice")
    tokens = login("alice")

    assert tokens["token_type"] == "bearer"
    assert tokens["expires_in"] > 0
    assert tokens["refresh_token"]

    claims = decode_token(tokens["access_token"])
    assert claims["sub"] == "alice"
    assert claims["role"] == "admin"
    assert claims["type"] == "access"


def test_login_with_wrong_password_fails():
    register("alice")
    res = client.post("/api/auth/login", data={"username": "alice", "password": "Wrong1234"})
    assert res.status_code == 401
    assert res.json()["success"] is False


def test_me_requires_valid_token():
    register("alice")
    tokens = login("alice")

    res = client.get("/api/auth/me", headers=bearer(tokens["access_token"]))
    assert res.status_code == 200
    assert res.json()["data"]["username"] == "alice"

    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers=bearer("garbage")).status_code == 401


def test_refresh_rotates_token():
    register("alice")
    tokens = login("alice")

    res = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert res.status_code == 200
    rotated = res.json()["data"]
    assert rotated["refresh_token"] != tokens["refresh_token"]

    reused = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert reused.status_code == 401
    assert reused.json()["message"] == "Invalid or expired refresh token"

    again = client.post("/api/auth/refresh", json={"refresh_token": rotated["refresh_token"]})
    assert again.status_code == 200


def test_logout_revokes_refresh_token():
    register("alice")
    tokens = login("alice")

    res = client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]})
    assert res.status_code == 200

    assert client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}).status_code == 401
    # logging out twice is harmless
    assert client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]}).status_code == 200


def test_admin_manages_roles():
    register("alice")
    bob_id = register("bob").json()["data"]["id"]
    admin = bearer(login("alice")["access_token"])
    bob_token = login("bob")["access_token"]

    users = client.get("/api/auth/users", headers=admin)
    assert users.status_code == 200
    assert [u["username"] for u in users.json()["data"]] == ["alice", "bob"]

    assert client.get("/api/auth/users", headers=bearer(bob_token)).status_code == 403

    res = client.put(f"/api/auth/users/{bob_id}/role", json={"role": "manager"}, headers=admin)
    assert res.status_code == 200
    assert res.json()["data"]["role"] == "manager"

    # tokens minted before the role change no longer validate
    assert client.get("/api/auth/me", headers=bearer(bob_token)).status_code == 401
    fresh = login("bob")["access_token"]
    assert client.get("/api/auth/me", headers=bearer(fresh)).json()["data"]["role"] == "manager"


def test_admin_cannot_demote_self():
    alice_id = register("alice").json()["data"]["id"]
    admin = bearer(login("alice")["access_token"])

    res = client.put(f"/api/auth/users/{alice_id}/role", json={"role": "manager"}, headers=admin)
    assert res.status_code == 400
    assert res.json()["message"] == "Admins cannot remove their own admin role"

    missing = client.put("/api/auth/users/999/role", json={"role": "manager"}, headers=admin)
    assert missing.status_code == 404


def test_sliding_window_limiter_throttles_per_path(monkeypatch):
    monkeypatch.setattr(settings, "TESTING", False)
    limiter = sliding_window_limiter(max_requests=2, window_seconds=60)

    throttled = FastAPI()

    @throttled.post("/login", dependencies=[Depends(limiter)])
    def fake_login():
        return {"ok": True}

    @throttled.post("/register", dependencies=[Depends(limiter)])
    def fake_register():
        return {"ok": True}

    tc = TestClient(throttled)
    assert tc.post("/login").status_code == 200
    assert tc.post("/login").status_code == 200

    blocked = tc.post("/login")
    assert blocked.status_code == 429
    assert int(blocked.headers["Retry-After"]) >= 1

    assert tc.post("/register").status_code == 200
