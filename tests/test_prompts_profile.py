from main import DEFAULT_PROMPTS
from tests.conftest import add_reflection, register


def test_default_prompts_listed_first(client, user):
    _, headers = user
    prompts = client.get("/api/prompts", headers=headers).json()
    assert len(prompts) == len(DEFAULT_PROMPTS) == 10
    assert prompts[0]["_id"] == "default_0"
    assert prompts[0]["text"] == "What are you most grateful for today?"
    assert all(p["isDefault"] for p in prompts)


def test_create_and_delete_custom_prompt(client, user):
    _, headers = user
    res = client.post("/api/prompts", headers=headers, json={"text": " What made you laugh? "})
    assert res.status_code == 201
    created = res.json()
    assert created["text"] == "What made you laugh?"
    assert created["category"] == "reflection"
    assert created["isDefault"] is False

    prompts = client.get("/api/prompts", headers=headers).json()
    assert prompts[-1]["_id"] == created["_id"]

    assert client.delete(f"/api/prompts/{created['_id']}", headers=headers).status_code == 200
    assert len(client.get("/api/prompts", headers=headers).json()) == 10
    assert client.delete(f"/api/prompts/{created['_id']}", headers=headers).status_code == 404


def test_prompt_validation(client, user):
    _, headers = user
    assert client.post("/api/prompts", headers=headers, json={"text": ""}).status_code == 400
    res = client.delete("/api/prompts/default_3", headers=headers)
    assert res.status_code == 400
    assert res.json()["detail"] == "Cannot delete default prompts"


def test_custom_prompts_are_private(client, user):
    _, headers = user
    created = client.post("/api/prompts", headers=headers, json={"text": "Mine", "category": "joy"}).json()
    _, other = register(client, email="bob@example.com")
    assert len(client.get("/api/prompts", headers=other).json()) == 10
    assert client.delete(f"/api/prompts/{created['_id']}", headers=other).status_code == 404


def test_profile(client, user, db):
    user_id, headers = user
    for day in ("2024-03-13", "2024-03-14", "2024-03-15", "2024-03-15"):
        add_reflection(db, user_id, "entry", day)
    body = client.get("/api/profile", headers=headers).json()
    assert body["id"] == user_id
    assert body["email"] == "ada@example.com"
    assert body["name"] == "Ada"
    assert body["totalReflections"] == 4
    assert body["currentStreak"] == 3
    assert body["longestStreak"] == 3


def test_update_profile(client, user, db):
    user_id, headers = user
    add_reflection(db, user_id, "entry", "2024-03-10")
    res = client.put("/api/profile", headers=headers, json={"name": "  Ada L. ", "bio": "   "})
    assert res.status_code == 200
    body = res.json()
    assert body["name"] == "Ada L."
    assert body["bio"] is None
    assert body["currentStreak"] == 0
    assert body["longestStreak"] == 1


def test_profile_for_deleted_user(client, user, db):
    _, headers = user
    db["user"].delete_many({})
    assert client.get("/api/profile", headers=headers).status_code == 404
    assert client.get("/api/auth/me", headers=headers).status_code == 404


def test_prompt_records_carry_created_at(client, user):
    _, headers = user
    created = client.post("/api/prompts", headers=headers, json={"text": "Best meal today?"}).json()
    assert sorted(created) == ["_id", "category", "createdAt", "isDefault", "text"]
    prompts = client.get("/api/prompts", headers=headers).json()
    assert all(sorted(p) == ["_id", "category", "createdAt", "isDefault", "text"] for p in prompts)
    assert prompts[-1]["createdAt"] == created["createdAt"]


def test_startup_creates_indexes(db):
    from fastapi.testclient import TestClient
    from main import create_app

    with TestClient(create_app(db=db)):
        pass
    indexes = db["user"].index_information()
    assert indexes["email_1"]["unique"] is True
    assert "user_id_1" in db["reflection"].index_information()
