from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from common import cache
from common.settings import ALGORITHM, AUDIENCE, ISSUER, SECRET_KEY
from rooms_service.database import Base, engine
from rooms_service.main import app

client = TestClient(app)


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def make_token(username: str, role: str, user_id: int = 1) -> str:
    payload = {
        "sub": username,
        "role": role,
        "user_id": user_id,
        "type": "access",
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=15),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def auth(role: str) -> dict:
    return {"Authorization": f"Bearer {make_token(role + '1', role)}"}


ROOM_PAYLOAD = {
    "room_number": "101",
    "room_type": "Double",
    "price_per_night": "120.00",
    "capacity": 2,
    "description": "Sea view",
}


def create_room(**overrides) -> dict:
    payload = {**ROOM_PAYLOAD, **overrides}
    res = client.post("/api/rooms", json=payload, headers=auth("admin"))
    assert res.status_code == 201, res.text
    return res.json()["data"]


def test_create_room_requires_auth():
    res = client.post("/api/rooms", json=ROOM_PAYLOAD)
    assert res.status_code in (401, 403)


def test_receptionist_cannot_create_room():
    res = client.post("/api/rooms", json=ROOM_PAYLOAD, headers=auth("receptionist"))
    assert res.status_code == 403
    assert res.json()["success"] is False


def test_manager_can_create_room():
    res = client.post("/api/rooms", json=ROOM_PAYLOAD, headers=auth("manager"))
    assert res.status_code == 201
    data = res.json()["data"]
    assert data["room_number"] == "101"
    assert Decimal(data["price_per_night"]) == Decimal("120.00")
    assert data["is_available"] is True


def test_duplicate_room_number_is_rejected():
    create_room()
    res = client.post("/api/rooms", json=ROOM_PAYLOAD, headers=auth("admin"))
    assert res.status_code == 400
    assert res.json()["message"] == "Room number 101 already exists"


def test_price_must_be_positive():
    res = client.post(
        "/api/rooms", json={**ROOM_PAYLOAD, "price_per_night": "0"}, headers=auth("admin")
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Validation failed"


def test_service_account_can_read_room():
    room = create_room()
    res = client.get(f"/api/rooms/{room['id']}", headers=auth("service_account"))
    assert res.status_code == 200
    assert res.json()["data"]["room_type"] == "Double"


def test_get_missing_room_returns_404():
    res = client.get("/api/rooms/999", headers=auth("receptionist"))
    assert res.status_code == 404
    assert res.json()["message"] == "Room with ID 999 not found"


def test_list_rooms_filters_and_sorts():
    create_room(room_number="101", room_type="Single", price_per_night="80.00", capacity=1)
    create_room(room_number="201", room_type="Double", price_per_night="120.00", capacity=2)
    create_room(room_number="301", room_type="Suite", price_per_night="300.00", capacity=4, is_available=False)

    headers = auth("receptionist")

    res = client.get("/api/rooms", headers=headers)
    body = res.json()
    assert res.status_code == 200
    assert body["total_count"] == 3
    assert [r["room_number"] for r in body["data"]] == ["101", "201", "301"]

    by_price = client.get(
        "/api/rooms", params={"sort_by": "price", "sort_order": "desc"}, headers=headers
    ).json()
    assert [r["room_number"] for r in by_price["data"]] == ["301", "201", "101"]

    available = client.get("/api/rooms", params={"is_available": "false"}, headers=headers).json()
    assert [r["room_number"] for r in available["data"]] == ["301"]

    roomy = client.get(
        "/api/rooms", params={"min_capacity": 2, "max_price": "150"}, headers=headers
    ).json()
    assert [r["room_number"] for r in roomy["data"]] == ["201"]

    paged = client.get("/api/rooms", params={"page_size": 2, "page_number": 2}, headers=headers).json()
    assert paged["total_pages"] == 2
    assert paged["has_previous"] is True
    assert [r["room_number"] for r in paged["data"]] == ["301"]


def test_update_room_changes_only_given_fields():
    room = create_room()
    res = client.put(
        f"/api/rooms/{room['id']}", json={"price_per_night": "150.00"}, headers=auth("manager")
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert Decimal(data["price_per_night"]) == Decimal("150.00")
    assert data["room_type"] == "Double"
    assert data["updated_at"] is not None


def test_update_to_taken_room_number_is_rejected():
    create_room(room_number="101")
    other = create_room(room_number="102")
    res = client.put(f"/api/rooms/{other['id']}", json={"room_number": "101"}, headers=auth("admin"))
    assert res.status_code == 400


def test_receptionist_can_toggle_availability():
    room = create_room()
    res = client.patch(
        f"/api/rooms/{room['id']}/availability", json={"is_available": False}, headers=auth("receptionist")
    )
    assert res.status_code == 200
    assert res.json()["data"]["is_available"] is False


def test_delete_room():
    room = create_room()
    assert client.delete(f"/api/rooms/{room['id']}", headers=auth("receptionist")).status_code == 403

    res = client.delete(f"/api/rooms/{room['id']}", headers=auth("admin"))
    assert res.status_code == 200
    assert client.get(f"/api/rooms/{room['id']}", headers=auth("admin")).status_code == 404


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def delete(self, key):
        self.store.pop(key, None)


def test_room_reads_are_cached_and_invalidated(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache, "_redis_client", fake)

    room = create_room()
    headers = auth("receptionist")

    client.get(f"/api/rooms/{room['id']}", headers=headers)
    assert f"room:{room['id']}" in fake.store

    client.put(f"/api/rooms/{room['id']}", json={"room_type": "Suite"}, headers=auth("admin"))
    assert f"room:{room['id']}" not in fake.store

    res = client.get(f"/api/rooms/{room['id']}", headers=headers)
    assert res.json()["data"]["room_type"] == "Suite"


def test_invalidation_leaves_other_rooms_cached(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache, "_redis_client", fake)

    room = create_room()
    headers = auth("receptionist")
    client.get(f"/api/rooms/{room['id']}", headers=headers)
    # a room whose key shares the prefix of the updated one
    fake.store[f"room:{room['id']}0"] = '{"id": 10}'

    client.put(f"/api/rooms/{room['id']}", json={"room_type": "Suite"}, headers=auth("admin"))
    assert f"room:{room['id']}" not in fake.store
    assert f"room:{room['id']}0" in fake.store


def test_room_timestamps_carry_utc_offset():
    room = create_room()
    created = datetime.fromisoformat(room["created_at"].replace("Z", "+00:00"))
    assert created.utcoffset() == timedelta(0)
