from datetime import date, datetime

import mongomock
import pytest
from fastapi.testclient import TestClient

import main
from main import create_app

TODAY = date(2024, 3, 15)


@pytest.fixture
def db():
    return mongomock.MongoClient()["daily_reflection_test"]


@pytest.fixture
def client(db, monkeypatch):
    monkeypatch.setattr(main, "today", lambda: TODAY)
    return TestClient(create_app(db=db))


def register(client, email="ada@example.com", password="secret123", name="Ada"):
    res = client.post("/api/auth/register", json={"email": email, "password": password, "name": name})
    assert res.status_code == 201, res.text
    client.cookies.clear()
    body = res.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['token']}"}


@pytest.fixture
def user(client):
    return register(client)


def add_reflection(db, user_id, content, day, created_at=None, mood=None, tags=None):
    from bson import ObjectId
    doc = {
        "user_id": ObjectId(user_id),
        "content": content,
        "mood": mood,
        "tags": tags or [],
        "date": day,
        "created_at": created_at or datetime.fromisoformat(day + "T09:00:00"),
    }
    return db["reflection"].insert_one(doc).inserted_id
