import pytest

from models import CustomTask
from storage import DatabaseStorage, NotFoundError


@pytest.fixture()
def storage(db) -> DatabaseStorage:
    return DatabaseStorage(db)


@pytest.fixture()
def users(storage: DatabaseStorage):
    a = storage.create_user(username="alice", email="Alice@Example.com", hashed_password="x")
    b = storage.create_user(username="bob", email="bob@example.com", hashed_password="x")
    return a, b


def _task(content, category="today", **extra):
    return {"content": content, "category": category, **extra}


def test_emails_are_stored_lowercase(storage: DatabaseStorage, users) -> None:
    alice, _ = users

    assert alice.email == "alice@example.com"
    assert storage.get_user_by_email("ALICE@example.com").id == alice.id


def test_tasks_filter_by_owner_and_category(storage: DatabaseStorage, users) -> None:
    alice, bob = users
    storage.create_task(alice.id, _task("a1"))
    storage.create_task(alice.id, _task("a2", "other"))
    storage.create_task(bob.id, _task("b1"))
    storage.create_task(None, _task("public"))

    assert [t.content for t in storage.get_tasks(alice.id)] == ["a1", "a2"]
    assert [t.content for t in storage.get_tasks(alice.id, "today")] == ["a1"]
    assert [t.content for t in storage.get_tasks(bob.id, "other")] == []
    assert [t.content for t in storage.get_tasks(None)] == ["public"]


def test_task_defaults(storage: DatabaseStorage, users) -> None:
    task = storage.create_task(users[0].id, _task("defaults"))

    assert task.completed is False
    assert task.priority == 0
    assert task.estimated_time is None
    assert task.created_at is not None


def test_foreign_task_is_not_found(storage: DatabaseStorage, users) -> None:
    alice, bob = users
    task = storage.create_task(alice.id, _task("mine"))

    with pytest.raises(NotFoundError):
        storage.update_task(task.id, bob.id, {"completed": True})
    with pytest.raises(NotFoundError):
        storage.delete_task(task.id, bob.id)
    with pytest.raises(NotFoundError):
        storage.get_task(task.id, None)

    assert storage.get_task(task.id, alice.id).completed is False


def test_deleting_a_card_removes_its_tasks(storage: DatabaseStorage, users, db) -> None:
    alice, _ = users
    card = storage.create_custom_card(alice.id, {"title": "Trip"})
    storage.create_custom_task(card.id, alice.id, {"content": "Tickets"})

    storage.delete_custom_card(card.id, alice.id)

    assert db.query(CustomTask).count() == 0
    with pytest.raises(NotFoundError):
        storage.get_custom_card_tasks(card.id, alice.id)


def test_clear_user_data_counts_rows(storage: DatabaseStorage, users) -> None:
    alice, bob = users
    storage.create_task(alice.id, _task("t"))
    storage.create_mood_entry(alice.id, "😀")
    storage.create_gratitude_entry(alice.id, "coffee")
    storage.create_note(alice.id, "note")
    card = storage.create_custom_card(alice.id, {"title": "c"})
    storage.create_custom_task(card.id, alice.id, {"content": "ct"})
    storage.create_task(bob.id, _task("bob"))

    counts = storage.clear_user_data(alice.id)

    assert counts == {
        "custom_tasks": 1,
        "tasks": 1,
        "mood_entries": 1,
        "gratitude_entries": 1,
        "notes": 1,
        "custom_cards": 1,
    }
    assert storage.get_tasks(alice.id) == []
    assert [t.content for t in storage.get_tasks(bob.id)] == ["bob"]
    assert storage.get_user_by_id(alice.id) is not None


def test_clear_all_data_includes_public_rows(storage: DatabaseStorage, users) -> None:
    alice, bob = users
    storage.create_task(alice.id, _task("a"))
    storage.create_task(bob.id, _task("b"))
    storage.create_note(None, "public")

    counts = storage.clear_all_data()

    assert counts["tasks"] == 2
    assert counts["notes"] == 1
    assert storage.get_notes(None) == []
