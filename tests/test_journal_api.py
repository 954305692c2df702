from fastapi.testclient import TestClient

from .helpers import add_task, contents, sign_in


def test_mood_is_listed_newest_first(alice) -> None:
    for mood in ["😀", "😐", "😴"]:
        assert alice.post("/api/mood", json={"mood": mood}).status_code == 201

    moods = [m["mood"] for m in alice.get("/api/mood").json()]
    assert moods == ["😴", "😐", "😀"]

    assert [m["mood"] for m in alice.get("/api/mood", params={"limit": 1}).json()] == ["😴"]


def test_mood_list_defaults_to_ten(alice) -> None:
    for _ in range(12):
        alice.post("/api/mood", json={"mood": "🙂"})

    assert len(alice.get("/api/mood").json()) == 10


def test_empty_mood_is_rejected(alice) -> None:
    assert alice.post("/api/mood", json={"mood": ""}).status_code == 400


def test_gratitude_create_and_delete(alice) -> None:
    entry = alice.post("/api/gratitude", json={"content": "  Sunny morning  "}).json()
    assert entry["content"] == "Sunny morning"
    assert entry["timestamp"]

    assert alice.delete(f"/api/gratitude/{entry['id']}").status_code == 204
    assert alice.get("/api/gratitude").json() == []
    assert alice.delete(f"/api/gratitude/{entry['id']}").status_code == 404


def test_notes_are_private(alice, bob) -> None:
    note = alice.post("/api/notes", json={"content": "Door code 1234"}).json()
    bob.post("/api/notes", json={"content": "Bob's note"})

    assert contents(alice.get("/api/notes").json()) == ["Door code 1234"]
    assert contents(bob.get("/api/notes").json()) == ["Bob's note"]
    assert bob.delete(f"/api/notes/{note['id']}").status_code == 404


def test_journal_routes_require_a_session(client) -> None:
    assert client.get("/api/mood").status_code == 401
    assert client.post("/api/gratitude", json={"content": "x"}).status_code == 401
    assert client.get("/api/notes").status_code == 401
    assert client.get("/api/custom-cards").status_code == 401


def test_custom_cards_pinned_first(alice) -> None:
    alice.post("/api/custom-cards", json={"title": "Groceries"})
    pinned = alice.post("/api/custom-cards", json={"title": "Workout", "isPinned": True}).json()
    alice.post("/api/custom-cards", json={"title": "Reading"})

    titles = [c["title"] for c in alice.get("/api/custom-cards").json()]

    assert titles == ["Workout", "Reading", "Groceries"]
    assert alice.get(f"/api/custom-cards/{pinned['id']}").json()["isPinned"] is True


def test_custom_card_tasks_lifecycle(alice) -> None:
    card = alice.post("/api/custom-cards", json={"title": "Packing"}).json()

    task = alice.post(f"/api/custom-cards/{card['id']}/tasks", json={"content": "Passport", "priority": 3}).json()
    assert task["cardId"] == card["id"]

    updated = alice.patch(f"/api/custom-cards/{card['id']}/tasks/{task['id']}", json={"completed": True}).json()
    assert updated["completed"] is True

    renamed = alice.patch(f"/api/custom-cards/{card['id']}", json={"title": "Packing list"}).json()
    assert renamed["title"] == "Packing list"

    assert alice.delete(f"/api/custom-cards/{card['id']}").status_code == 204
    assert alice.get(f"/api/custom-cards/{card['id']}").status_code == 404
    assert alice.get(f"/api/custom-cards/{card['id']}/tasks").status_code == 404


def test_custom_cards_are_private(alice, bob) -> None:
    card = alice.post("/api/custom-cards", json={"title": "Secret"}).json()
    task = alice.post(f"/api/custom-cards/{card['id']}/tasks", json={"content": "x"}).json()

    assert bob.get("/api/custom-cards").json() == []
    assert bob.get(f"/api/custom-cards/{card['id']}/tasks").status_code == 404
    assert bob.post(f"/api/custom-cards/{card['id']}/tasks", json={"content": "y"}).status_code == 404
    assert bob.delete(f"/api/custom-cards/{card['id']}/tasks/{task['id']}").status_code == 404


def test_self_wipe_only_touches_own_data(alice, bob) -> None:
    add_task(alice, "Alice task")
    alice.post("/api/mood", json={"mood": "😀"})
    card = alice.post("/api/custom-cards", json={"title": "Card"}).json()
    alice.post(f"/api/custom-cards/{card['id']}/tasks", json={"content": "x"})
    add_task(bob, "Bob task")

    assert alice.delete("/api/user/data").status_code == 204

    assert alice.get("/api/tasks").json() == []
    assert alice.get("/api/mood").json() == []
    assert alice.get("/api/custom-cards").json() == []
    assert contents(bob.get("/api/tasks").json()) == ["Bob task"]
    # The account itself survives
    assert alice.get("/api/auth/user").status_code == 200


def test_admin_wipe_requires_admin(app, alice, bob) -> None:
    add_task(bob, "Bob task")

    assert alice.delete("/api/data").status_code == 403

    with TestClient(app) as admin:
        sign_in(admin, "admin", "admin@example.com")
        assert admin.delete("/api/data").status_code == 204

    assert bob.get("/api/tasks").json() == []


def test_health(client) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}
