"""Data access for the productivity tables.

Every read and write is scoped by owner. ``user_id=None`` addresses the
ownerless rows written through the public fallback routes; those are never
returned for a real user id and vice versa.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from models import CustomCard, CustomTask, GratitudeEntry, MoodEntry, Note, Task, User

logger = logging.getLogger(__name__)

CONTENT_MODELS = (Task, MoodEntry, GratitudeEntry, Note, CustomCard)


class NotFoundError(LookupError):
    """Raised when a row does not exist or belongs to another owner."""


def _owned(model, user_id: Optional[int]):
    if user_id is None:
        return model.user_id.is_(None)
    return model.user_id == user_id


class DatabaseStorage:
    def __init__(self, db: Session):
        self.db = db

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def _apply(self, row, updates: Dict[str, Any]):
        for key, value in updates.items():
            setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        return row

    def _delete(self, row) -> None:
        self.db.delete(row)
        self.db.commit()

    # Users

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.lower()).first()

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def get_user_by_google_id(self, google_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.google_id == google_id).first()

    def create_user(
        self,
        *,
        username: str,
        email: str,
        hashed_password: Optional[str] = None,
        google_id: Optional[str] = None,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
        is_admin: bool = False,
    ) -> User:
        user = self._save(User(
            username=username,
            email=email.lower(),
            hashed_password=hashed_password,
            google_id=google_id,
            display_name=display_name,
            avatar_url=avatar_url,
            is_admin=is_admin,
        ))
        logger.info("Created user %s (id=%s)", user.username, user.id)
        return user

    def link_google_account(self, user: User, *, google_id: str, display_name=None, avatar_url=None) -> User:
        return self._apply(user, {
            "google_id": google_id,
            "display_name": display_name or user.display_name,
            "avatar_url": avatar_url or user.avatar_url,
        })

    # Tasks

    def get_tasks(self, user_id: Optional[int], category: Optional[str] = None) -> List[Task]:
        query = self.db.query(Task).filter(_owned(Task, user_id))
        if category is not None:
            query = query.filter(Task.category == category)
        return query.order_by(Task.id).all()

    def get_task(self, task_id: int, user_id: Optional[int]) -> Task:
        task = self.db.query(Task).filter(Task.id == task_id, _owned(Task, user_id)).first()
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def create_task(self, user_id: Optional[int], data: Dict[str, Any]) -> Task:
        task = self._save(Task(user_id=user_id, **data))
        logger.debug("Created task %s in %s for user %s", task.id, task.category, user_id)
        return task

    def update_task(self, task_id: int, user_id: Optional[int], updates: Dict[str, Any]) -> Task:
        return self._apply(self.get_task(task_id, user_id), updates)

    def delete_task(self, task_id: int, user_id: Optional[int]) -> None:
        self._delete(self.get_task(task_id, user_id))
        logger.debug("Deleted task %s for user %s", task_id, user_id)

    # Mood

    def get_mood_entries(self, user_id: Optional[int], limit: Optional[int] = 10) -> List[MoodEntry]:
        query = (
            self.db.query(MoodEntry)
            .filter(_owned(MoodEntry, user_id))
            .order_by(MoodEntry.timestamp.desc(), MoodEntry.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def create_mood_entry(self, user_id: Optional[int], mood: str) -> MoodEntry:
        return self._save(MoodEntry(user_id=user_id, mood=mood))

    # Gratitude

    def get_gratitude_entries(self, user_id: Optional[int], limit: Optional[int] = 10) -> List[GratitudeEntry]:
        query = (
            self.db.query(GratitudeEntry)
            .filter(_owned(GratitudeEntry, user_id))
            .order_by(GratitudeEntry.timestamp.desc(), GratitudeEntry.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def create_gratitude_entry(self, user_id: Optional[int], content: str) -> GratitudeEntry:
        return self._save(GratitudeEntry(user_id=user_id, content=content))

    def delete_gratitude_entry(self, entry_id: int, user_id: Optional[int]) -> None:
        entry = (
            self.db.query(GratitudeEntry)
            .filter(GratitudeEntry.id == entry_id, _owned(GratitudeEntry, user_id))
            .first()
        )
        if entry is None:
            raise NotFoundError(f"Gratitude entry {entry_id} not found")
        self._delete(entry)

    # Notes

    def get_notes(self, user_id: Optional[int], limit: Optional[int] = None) -> List[Note]:
        query = (
            self.db.query(Note)
            .filter(_owned(Note, user_id))
            .order_by(Note.timestamp.desc(), Note.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def create_note(self, user_id: Optional[int], content: str) -> Note:
        return self._save(Note(user_id=user_id, content=content))

    def delete_note(self, note_id: int, user_id: Optional[int]) -> None:
        note = self.db.query(Note).filter(Note.id == note_id, _owned(Note, user_id)).first()
        if note is None:
            raise NotFoundError(f"Note {note_id} not found")
        self._delete(note)

    # Custom cards

    def get_custom_cards(self, user_id: Optional[int]) -> List[CustomCard]:
        return (
            self.db.query(CustomCard)
            .filter(_owned(CustomCard, user_id))
            .order_by(CustomCard.is_pinned.desc(), CustomCard.timestamp.desc(), CustomCard.id.desc())
            .all()
        )

    def get_custom_card(self, card_id: int, user_id: Optional[int]) -> CustomCard:
        card = self.db.query(CustomCard).filter(CustomCard.id == card_id, _owned(CustomCard, user_id)).first()
        if card is None:
            raise NotFoundError(f"Custom card {card_id} not found")
        return card

    def create_custom_card(self, user_id: Optional[int], data: Dict[str, Any]) -> CustomCard:
        return self._save(CustomCard(user_id=user_id, **data))

    def update_custom_card(self, card_id: int, user_id: Optional[int], updates: Dict[str, Any]) -> CustomCard:
        return self._apply(self.get_custom_card(card_id, user_id), updates)

    def delete_custom_card(self, card_id: int, user_id: Optional[int]) -> None:
        # ORM cascade takes the card's tasks with it
        self._delete(self.get_custom_card(card_id, user_id))

    # Custom card tasks

    def get_custom_card_tasks(self, card_id: int, user_id: Optional[int]) -> List[CustomTask]:
        self.get_custom_card(card_id, user_id)
        return self.db.query(CustomTask).filter(CustomTask.card_id == card_id).order_by(CustomTask.id).all()

    def _get_custom_task(self, card_id: int, task_id: int, user_id: Optional[int]) -> CustomTask:
        self.get_custom_card(card_id, user_id)
        task = self.db.query(CustomTask).filter(CustomTask.id == task_id, CustomTask.card_id == card_id).first()
        if task is None:
            raise NotFoundError(f"Custom task {task_id} not found")
        return task

    def create_custom_task(self, card_id: int, user_id: Optional[int], data: Dict[str, Any]) -> CustomTask:
        self.get_custom_card(card_id, user_id)
        return self._save(CustomTask(card_id=card_id, **data))

    def update_custom_task(self, card_id: int, task_id: int, user_id: Optional[int], updates: Dict[str, Any]) -> CustomTask:
        return self._apply(self._get_custom_task(card_id, task_id, user_id), updates)

    def delete_custom_task(self, card_id: int, task_id: int, user_id: Optional[int]) -> None:
        self._delete(self._get_custom_task(card_id, task_id, user_id))

    # Wipes

    def clear_user_data(self, user_id: int) -> Dict[str, int]:
        """Delete every content row owned by ``user_id``; the account itself stays."""
        card_ids = self.db.query(CustomCard.id).filter(CustomCard.user_id == user_id)
        counts = {
            CustomTask.__tablename__: self.db.query(CustomTask)
            .filter(CustomTask.card_id.in_(card_ids.scalar_subquery()))
            .delete(synchronize_session=False)
        }
        for model in CONTENT_MODELS:
            counts[model.__tablename__] = (
                self.db.query(model).filter(model.user_id == user_id).delete(synchronize_session=False)
            )
        self.db.commit()
        logger.info("Cleared data for user %s: %s", user_id, counts)
        return counts

    def clear_all_data(self) -> Dict[str, int]:
        """Delete every content row of every user, public rows included."""
        counts = {CustomTask.__tablename__: self.db.query(CustomTask).delete(synchronize_session=False)}
        for model in CONTENT_MODELS:
            counts[model.__tablename__] = self.db.query(model).delete(synchronize_session=False)
        self.db.commit()
        logger.warning("Cleared all content data: %s", counts)
        return counts
