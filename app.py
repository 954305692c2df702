import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import Session

import auth
from auth import get_current_user, limiter, require_admin
from config import Settings, get_settings
from database import get_db
from models import User as DBUser
from schemas import (
    Category,
    CustomCard,
    CustomCardCreate,
    CustomCardUpdate,
    CustomTask,
    CustomTaskCreate,
    CustomTaskUpdate,
    Entry,
    EntryCreate,
    MoodCreate,
    MoodEntry,
    Task,
    TaskCreate,
    TaskDraft,
    TaskUpdate,
)
from storage import DatabaseStorage, NotFoundError

logger = logging.getLogger(__name__)


# Owner resolution: authenticated routes act for the session user,
# public fallback routes act on ownerless rows.
async def session_owner(current_user: DBUser = Depends(get_current_user)) -> Optional[int]:
    return current_user.id


async def public_owner() -> Optional[int]:
    return None


def get_storage(db: Session = Depends(get_db)) -> DatabaseStorage:
    return DatabaseStorage(db)


def task_routes(owner) -> APIRouter:
    router = APIRouter()

    @router.get("", response_model=List[Task])
    async def list_tasks(user_id=Depends(owner), storage: DatabaseStorage = Depends(get_storage)):
        return storage.get_tasks(user_id)

    @router.get("/{category}", response_model=List[Task])
    async def list_category(
        category: Category,
        user_id=Depends(owner),
        storage: DatabaseStorage = Depends(get_storage),
    ):
        return storage.get_tasks(user_id, category)

    @router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
    async def create_task(
        task: TaskCreate,
        user_id=Depends(owner),
        storage: DatabaseStorage = Depends(get_storage),
    ):
        return storage.create_task(user_id, task.model_dump())

    @router.post("/{category}", response_model=Task, status_code=status.HTTP_201_CREATED)
    async def create_category_task(
        category: Category,
        task: TaskDraft,
        user_id=Depends(owner),
        storage: DatabaseStorage = Depends(get_storage),
    ):
        data = task.model_dump()
        data["category"] = category
        return storage.create_task(user_id, data)

    @router.patch("/{task_id}", response_model=Task)
    async def update_task(
        task_id: int,
        updates: TaskUpdate,
        user_id=Depends(owner),
        storage: DatabaseStorage = Depends(get_storage),
    ):
        return storage.update_task(task_id, user_id, updates.model_dump(exclude_unset=True))

    @router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_task(task_id: int, user_id=Depends(owner), storage: DatabaseStorage = Depends(get_storage)):
        storage.delete_task(task_id, user_id)

    return router


def note_routes(owner) -> APIRouter:
    router = APIRouter()

    @router.get("", response_model=List[Entry])
    async def list_notes(user_id=Depends(owner), storage: DatabaseStorage = Depends(get_storage)):
        return storage.get_notes(user_id)

    @router.post("", response_model=Entry, status_code=status.HTTP_201_CREATED)
    async def create_note(
        note: EntryCreate,
        user_id=Depends(owner),
        storage: DatabaseStorage = Depends(get_storage),
    ):
        return storage.create_note(user_id, note.content)

    @router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_note(note_id: int, user_id=Depends(owner), storage: DatabaseStorage = Depends(get_storage)):
        storage.delete_note(note_id, user_id)

    return router


journal = APIRouter(prefix="/api")


@journal.get("/mood", response_model=List[MoodEntry], tags=["mood"])
async def list_mood(
    limit: int = Query(10, ge=1, le=100),
    user_id=Depends(session_owner),
    storage: DatabaseStorage = Depends(get_storage),
):
    return storage.get_mood_entries(user_id, limit)


@journal.post("/mood", response_model=MoodEntry, status_code=status.HTTP_201_CREATED, tags=["mood"])
async def create_mood(
    entry: MoodCreate,
    user_id=Depends(session_owner),
    storage: DatabaseStorage = Depends(get_storage),
):
    return storage.create_mood_entry(user_id, entry.mood)


@journal.get("/gratitude", response_model=List[Entry], tags=["gratitude"])
async def list_gratitude(
    limit: int = Query(10, ge=1, le=100),
    user_id=Depends(session_owner),
    storage: DatabaseStorage = Depends(get_storage),
):
    return storage.get_gratitude_entries(user_id, limit)


@journal.post("/gratitude", response_model=Entry, status_code=status.HTTP_201_CREATED, tags=["gratitude"])
async def create_gratitude(
    entry: EntryCreate,
    user_id=Depends(session_owner),
    storage: DatabaseStorage = Depends(get_storage),
):
    return storage.create_gratitude_entry(user_id, entry.content)


@journal.delete("/gratitude/{entry_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["gratitude"])
async def delete_gratitude(
    entry_id: int,
    user_id=Depends(session_owner),
    storage: DatabaseStorage = Depends(get_storage),
):
    storage.delete_gratitude_entry(entry_id, user_id)


cards = APIRouter(prefix="/api/custom-cards", tags=["custom-cards"])


@cards.get("", response_model=List[CustomCard])
async def list_cards(user_id=Depends(session_owner), storage: DatabaseStorage = Depends(get_storage)):
    return storage.get_custom_cards(user_id)


@cards.get("/{card_id}", response_model=CustomCard)
async def get_card(card_id: int, user_id=Depends(session_owner), storage: DatabaseStorage = Depends(get_storage)):
    return storage.get_custom_card(card_id, user_id)


@cards.post("", response_model=CustomCard, status_code=status.HTTP_201_CREATED)
async def create_card(
    card: CustomCardCreate,
    user_id=Depends(session_owner),
    storage: DatabaseStorage = Depends(get_storage),
):
    return storage.create_custom_card(user_id, card.model_dump())


@cards.patch("/{card_id}", response_model=CustomCard)
async def update_card(
    card_id: int,
    updates: CustomCardUpdate,
    user_id=Depends(session_owner),
    storage: DatabaseStorage = Depends(get_storage),
):
    return storage.update_custom_card(card_id, user_id, updates.model_dump(exclude_unset=True))


@cards.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card(card_id: int, user_id=Depends(session_owner), storage: DatabaseStorage = Depends(get_storage)):
    storage.delete_custom_card(card_id, user_id)


@cards.get("/{card_id}/tasks", response_model=List[CustomTask])
async def list_card_tasks(
    card_id: int,
    user_id=Depends(session_owner),
    storage: DatabaseStorage = Depends(get_storage),
):
    return storage.get_custom_card_tasks(card_id, user_id)


@cards.post("/{card_id}/tasks", response_model=CustomTask, status_code=status.HTTP_201_CREATED)
async def create_card_task(
    card_id: int,
    task: CustomTaskCreate,
    user_id=Depends(session_owner),
    storage: DatabaseStorage = Depends(get_storage),
):
    return storage.create_custom_task(card_id, user_id, task.model_dump())


@cards.patch("/{card_id}/tasks/{task_id}", response_model=CustomTask)
async def update_card_task(
    card_id: int,
    task_id: int,
    updates: CustomTaskUpdate,
    user_id=Depends(session_owner),
    storage: DatabaseStorage = Depends(get_storage),
):
    return storage.update_custom_task(card_id, task_id, user_id, updates.model_dump(exclude_unset=True))


@cards.delete("/{card_id}/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card_task(
    card_id: int,
    task_id: int,
    user_id=Depends(session_owner),
    storage: DatabaseStorage = Depends(get_storage),
):
    storage.delete_custom_task(card_id, task_id, user_id)


maintenance = APIRouter(prefix="/api", tags=["data"])


@maintenance.delete("/data", status_code=status.HTTP_204_NO_CONTENT)
async def clear_all_data(admin: DBUser = Depends(require_admin), storage: DatabaseStorage = Depends(get_storage)):
    logger.warning("Admin %s wiped all data", admin.id)
    storage.clear_all_data()


@maintenance.delete("/user/data", status_code=status.HTTP_204_NO_CONTENT)
async def clear_my_data(
    current_user: DBUser = Depends(get_current_user),
    storage: DatabaseStorage = Depends(get_storage),
):
    storage.clear_user_data(current_user.id)


@maintenance.get("/health")
async def health():
    return {"status": "ok"}


# Error handlers
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Daily Productivity")
    app.state.settings = settings
    app.state.limiter = limiter
    auth.configure_rate_limit(settings)

    # Add security middlewares
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.allowed_hosts
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(auth.router)
    app.include_router(task_routes(session_owner), prefix="/api/tasks", tags=["tasks"])
    app.include_router(note_routes(session_owner), prefix="/api/notes", tags=["notes"])
    app.include_router(journal)
    app.include_router(cards)
    app.include_router(maintenance)

    if settings.public_api:
        app.include_router(task_routes(public_owner), prefix="/api/public/tasks", tags=["public"])
        app.include_router(note_routes(public_owner), prefix="/api/public/notes", tags=["public"])

    return app
