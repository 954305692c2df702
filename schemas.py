"""Request/response models.

JSON goes out in camelCase (``estimatedTime``, ``isPinned``); requests may use
either camelCase or snake_case field names.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Category = Literal["today", "other"]

MAX_TASK_LENGTH = 500
MAX_ENTRY_LENGTH = 2000


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _clean_text(v: Optional[str], what: str, max_length: int) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError(f"{what} cannot be empty")
    if len(v) > max_length:
        raise ValueError(f"{what} must be at most {max_length} characters")
    return v


def _not_null(v, info):
    if v is None:
        raise ValueError(f"{info.field_name} cannot be null")
    return v


# Users

class UserCreate(ApiModel):
    username: str
    email: EmailStr
    password: str
    confirm_password: Optional[str] = None

    @field_validator("username")
    @classmethod
    def username_validator(cls, v):
        v = v.strip()
        if len(v) < 3 or len(v) > 50:
            raise ValueError("Username must be between 3 and 50 characters")
        return v

    @field_validator("password")
    @classmethod
    def password_validator(cls, v):
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(ApiModel):
    email: EmailStr
    password: str


class GoogleLogin(ApiModel):
    credential: str


class User(ApiModel):
    id: int
    username: str
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_admin: bool = False
    created_at: Optional[datetime] = None


class LoginResponse(ApiModel):
    message: str
    user: User


class Message(ApiModel):
    message: str


# Tasks

class TaskBase(ApiModel):
    content: str
    completed: bool = False
    priority: int = Field(default=0, ge=0, le=3)
    category: Category
    estimated_time: Optional[str] = Field(default=None, max_length=50)

    @field_validator("content")
    @classmethod
    def content_validator(cls, v):
        return _clean_text(v, "Task content", MAX_TASK_LENGTH)


class TaskCreate(TaskBase):
    pass


class TaskDraft(TaskBase):
    """Task body posted to ``/api/tasks/{category}``, where the path names the category."""

    category: Optional[Category] = None


class TaskUpdate(ApiModel):
    content: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[int] = Field(default=None, ge=0, le=3)
    category: Optional[Category] = None
    estimated_time: Optional[str] = Field(default=None, max_length=50)

    @field_validator("content", "completed", "priority", "category")
    @classmethod
    def reject_null(cls, v, info):
        return _not_null(v, info)

    @field_validator("content")
    @classmethod
    def content_validator(cls, v):
        return _clean_text(v, "Task content", MAX_TASK_LENGTH)


class Task(TaskBase):
    id: int
    created_at: Optional[datetime] = None
    user_id: Optional[int] = None


# Mood, gratitude, notes

class MoodCreate(ApiModel):
    mood: str = Field(min_length=1, max_length=32)


class MoodEntry(MoodCreate):
    id: int
    timestamp: datetime
    user_id: Optional[int] = None


class EntryCreate(ApiModel):
    content: str

    @field_validator("content")
    @classmethod
    def content_validator(cls, v):
        return _clean_text(v, "Content", MAX_ENTRY_LENGTH)


class Entry(EntryCreate):
    id: int
    timestamp: datetime
    user_id: Optional[int] = None


# Custom cards

class CustomCardCreate(ApiModel):
    title: str
    is_pinned: bool = False
    order: int = 0

    @field_validator("title")
    @classmethod
    def title_validator(cls, v):
        return _clean_text(v, "Title", 200)


class CustomCardUpdate(ApiModel):
    title: Optional[str] = None
    is_pinned: Optional[bool] = None
    order: Optional[int] = None

    @field_validator("title", "is_pinned", "order")
    @classmethod
    def reject_null(cls, v, info):
        return _not_null(v, info)

    @field_validator("title")
    @classmethod
    def title_validator(cls, v):
        return _clean_text(v, "Title", 200)


class CustomCard(CustomCardCreate):
    id: int
    timestamp: datetime
    user_id: Optional[int] = None


class CustomTaskCreate(ApiModel):
    content: str
    completed: bool = False
    priority: int = Field(default=0, ge=0, le=3)

    @field_validator("content")
    @classmethod
    def content_validator(cls, v):
        return _clean_text(v, "Task content", MAX_TASK_LENGTH)


class CustomTaskUpdate(ApiModel):
    content: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[int] = Field(default=None, ge=0, le=3)

    @field_validator("content", "completed", "priority")
    @classmethod
    def reject_null(cls, v, info):
        return _not_null(v, info)

    @field_validator("content")
    @classmethod
    def content_validator(cls, v):
        return _clean_text(v, "Task content", MAX_TASK_LENGTH)


class CustomTask(CustomTaskCreate):
    id: int
    card_id: int
    timestamp: datetime
