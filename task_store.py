"""Client-side cache of the "today" and "other" task lists.

The store mirrors server state and applies mutations optimistically. State is
immutable: every change is an action passed through ``reduce``, and listeners
registered with ``subscribe`` see each new state.

Failure policy is the same for every mutation: the optimistic change is rolled
back, ``state.error`` is set and a destructive notice is emitted.
``fetch_tasks`` is the wholesale resync with the server.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

import httpx

from schemas import Category, Task, TaskCreate

logger = logging.getLogger(__name__)

CATEGORIES: Tuple[str, ...] = ("today", "other")


@dataclass(frozen=True)
class TaskState:
    today: Tuple[Task, ...] = ()
    other: Tuple[Task, ...] = ()
    is_loading: bool = False
    error: Optional[str] = None

    def tasks(self, category: str) -> Tuple[Task, ...]:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown category: {category!r}")
        return getattr(self, category)

    def find(self, task_id: int, category: str) -> Optional[Task]:
        for task in self.tasks(category):
            if task.id == task_id:
                return task
        return None


# Actions

@dataclass(frozen=True)
class FetchStarted:
    pass


@dataclass(frozen=True)
class TasksLoaded:
    today: Tuple[Task, ...]
    other: Tuple[Task, ...]


@dataclass(frozen=True)
class FetchFailed:
    error: str


@dataclass(frozen=True)
class TaskAdded:
    task: Task


@dataclass(frozen=True)
class TaskReconciled:
    """Replace the entry with ``local_id`` by the server's version of it."""

    local_id: int
    task: Task


@dataclass(frozen=True)
class TaskRemoved:
    task_id: int
    category: str


@dataclass(frozen=True)
class TaskRestored:
    task: Task
    index: int


@dataclass(frozen=True)
class CompletionSet:
    task_id: int
    category: str
    completed: bool


@dataclass(frozen=True)
class ErrorSet:
    error: str


@dataclass(frozen=True)
class ErrorCleared:
    pass


Action = Union[
    FetchStarted, TasksLoaded, FetchFailed, TaskAdded, TaskReconciled,
    TaskRemoved, TaskRestored, CompletionSet, ErrorSet, ErrorCleared,
]


def _with_category(state: TaskState, category: str, tasks) -> TaskState:
    return replace(state, **{category: tuple(tasks)})


def reduce(state: TaskState, action: Action) -> TaskState:
    """Return the state that results from applying ``action`` to ``state``."""
    if isinstance(action, FetchStarted):
        return replace(state, is_loading=True)

    if isinstance(action, TasksLoaded):
        return TaskState(today=tuple(action.today), other=tuple(action.other))

    if isinstance(action, FetchFailed):
        # Keep the stale lists around
        return replace(state, is_loading=False, error=action.error)

    if isinstance(action, TaskAdded):
        category = action.task.category
        return _with_category(state, category, state.tasks(category) + (action.task,))

    if isinstance(action, TaskReconciled):
        new_state = state
        for category in CATEGORIES:
            tasks = [t for t in new_state.tasks(category) if t.id != action.local_id]
            if len(tasks) != len(new_state.tasks(category)):
                new_state = _with_category(new_state, category, tasks)
        tasks = list(new_state.tasks(action.task.category))
        original = state.find(action.local_id, action.task.category)
        if original is not None:
            index = state.tasks(action.task.category).index(original)
            tasks.insert(index, action.task)
        elif all(t.id != action.task.id for t in tasks):
            # A fetch replaced the lists while the request was in flight
            tasks.append(action.task)
        return _with_category(new_state, action.task.category, tasks)

    if isinstance(action, TaskRemoved):
        tasks = [t for t in state.tasks(action.category) if t.id != action.task_id]
        return _with_category(state, action.category, tasks)

    if isinstance(action, TaskRestored):
        tasks = list(state.tasks(action.task.category))
        if any(t.id == action.task.id for t in tasks):
            return state
        tasks.insert(min(action.index, len(tasks)), action.task)
        return _with_category(state, action.task.category, tasks)

    if isinstance(action, CompletionSet):
        tasks = [
            t.model_copy(update={"completed": action.completed}) if t.id == action.task_id else t
            for t in state.tasks(action.category)
        ]
        return _with_category(state, action.category, tasks)

    if isinstance(action, ErrorSet):
        return replace(state, error=action.error)

    if isinstance(action, ErrorCleared):
        return replace(state, error=None)

    raise TypeError(f"Unknown action: {action!r}")


@dataclass(frozen=True)
class Notice:
    """A user-visible message about the outcome of a store operation."""

    title: str
    description: str
    variant: str = "default"


Listener = Callable[[TaskState], None]


class TaskApi:
    """The four task endpoints the store talks to."""

    def __init__(self, client: httpx.AsyncClient, *, authenticated: bool = True):
        self.client = client
        self.base_url = "/api/tasks" if authenticated else "/api/public/tasks"

    async def list_tasks(self, category: str) -> List[Task]:
        resp = await self.client.get(f"{self.base_url}/{category}")
        resp.raise_for_status()
        return [Task.model_validate(item) for item in resp.json()]

    async def create_task(self, task: TaskCreate) -> Task:
        resp = await self.client.post(self.base_url, json=task.model_dump(mode="json", by_alias=True))
        resp.raise_for_status()
        return Task.model_validate(resp.json())

    async def update_task(self, task_id: int, **changes) -> Task:
        resp = await self.client.patch(f"{self.base_url}/{task_id}", json=changes)
        resp.raise_for_status()
        return Task.model_validate(resp.json())

    async def delete_task(self, task_id: int) -> None:
        resp = await self.client.delete(f"{self.base_url}/{task_id}")
        if resp.status_code == 404:
            # Already gone on the server; nothing left to reconcile
            logger.info("Task %s was already deleted on the server", task_id)
            return
        resp.raise_for_status()


# Response parsing failures surface as ValueError (bad JSON, pydantic ValidationError)
_SYNC_ERRORS = (httpx.HTTPError, ValueError)


class TaskStore:
    """
    Holds ``TaskState`` for one client and syncs it with the task endpoints.

    Tasks whose create request is still in flight carry a negative local id.
    No request is ever sent for such an id: deleting or toggling one is
    applied locally and replayed against the server row once the create
    returns.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        authenticated: bool = True,
        on_notice: Optional[Callable[[Notice], None]] = None,
    ):
        self.api = TaskApi(client, authenticated=authenticated)
        self._state = TaskState()
        self._listeners: List[Listener] = []
        self._on_notice = on_notice
        self._local_ids = itertools.count(-1, -1)
        # local id -> position the task was removed from
        self._deleted_while_saving: Dict[int, int] = {}
        # local id -> completed flag to send once saved
        self._completion_while_saving: Dict[int, bool] = {}
        self._saving: Set[int] = set()

    @property
    def state(self) -> TaskState:
        return self._state

    def dispatch(self, action: Action) -> TaskState:
        self._state = reduce(self._state, action)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, title: str, description: str, variant: str = "default") -> None:
        if self._on_notice is not None:
            self._on_notice(Notice(title, description, variant))

    def next_local_id(self) -> int:
        """Temporary ids are negative so they never collide with server ids."""
        return next(self._local_ids)

    def is_saving(self, task_id: int) -> bool:
        return task_id in self._saving

    async def fetch_tasks(self) -> bool:
        self.dispatch(FetchStarted())
        try:
            today, other = await asyncio.gather(
                self.api.list_tasks("today"),
                self.api.list_tasks("other"),
            )
        except _SYNC_ERRORS as e:
            logger.warning("Error fetching tasks: %s", e)
            self.dispatch(FetchFailed("Failed to load tasks"))
            return False
        self.dispatch(TasksLoaded(tuple(today), tuple(other)))
        logger.debug("Fetched %d today / %d other tasks", len(today), len(other))
        return True

    async def add_task(self, task: Union[TaskCreate, dict]) -> Optional[Task]:
        """
        Show ``task`` at once and save it on the server.

        Returns the saved task, or None when saving failed or the task was
        deleted before the server answered.
        """
        if not isinstance(task, TaskCreate):
            task = TaskCreate.model_validate(task)

        local = Task(id=self.next_local_id(), created_at=datetime.utcnow(), **task.model_dump())
        self._saving.add(local.id)
        self.dispatch(TaskAdded(local))

        try:
            saved = await self.api.create_task(task)
        except _SYNC_ERRORS as e:
            self._saving.discard(local.id)
            self._completion_while_saving.pop(local.id, None)
            if self._deleted_while_saving.pop(local.id, None) is not None:
                logger.info("Task %s was deleted before its create failed: %s", local.id, e)
                return None
            logger.warning("Error adding task: %s", e)
            self.dispatch(TaskRemoved(local.id, local.category))
            self.dispatch(ErrorSet("Failed to add task"))
            self._notify("Error adding task", "Your task could not be saved. Please try again.", "destructive")
            return None

        self._saving.discard(local.id)
        completed = self._completion_while_saving.pop(local.id, saved.completed)
        index = self._deleted_while_saving.pop(local.id, None)
        if index is not None:
            logger.debug("Task %s saved as %s after it was deleted", local.id, saved.id)
            await self._send_delete(saved, index)
            return None

        self.dispatch(TaskReconciled(local.id, saved.model_copy(update={"completed": completed})))
        logger.debug("Task %s saved as %s", local.id, saved.id)
        if completed != saved.completed:
            await self._send_completion(saved, completed)
        return self._state.find(saved.id, saved.category) or saved

    async def delete_task(self, task_id: int, category: Category) -> bool:
        task = self._state.find(task_id, category)
        if task is None:
            logger.warning("Task %s not found in %s for deletion", task_id, category)
            return False
        index = self._state.tasks(category).index(task)

        self.dispatch(TaskRemoved(task_id, category))
        if self.is_saving(task_id):
            self._deleted_while_saving[task_id] = index
        elif not await self._send_delete(task, index):
            return False

        self._notify("Task deleted", "Your task has been removed.")
        return True

    async def toggle_complete(self, task_id: int, category: Category) -> bool:
        task = self._state.find(task_id, category)
        if task is None:
            logger.warning("Task %s not found in %s for toggling", task_id, category)
            return False

        self.dispatch(CompletionSet(task_id, category, not task.completed))
        if self.is_saving(task_id):
            self._completion_while_saving[task_id] = not task.completed
            return True
        return await self._send_completion(task, not task.completed)

    def clear_error(self) -> None:
        self.dispatch(ErrorCleared())

    async def _send_delete(self, task: Task, index: int) -> bool:
        try:
            await self.api.delete_task(task.id)
        except _SYNC_ERRORS as e:
            logger.warning("Error deleting task %s: %s", task.id, e)
            self.dispatch(TaskRestored(task, index))
            self.dispatch(ErrorSet("Failed to delete task"))
            self._notify("Error deleting task", "Your task could not be removed. Please try again.", "destructive")
            return False
        return True

    async def _send_completion(self, task: Task, completed: bool) -> bool:
        try:
            updated = await self.api.update_task(task.id, completed=completed)
        except _SYNC_ERRORS as e:
            logger.warning("Error toggling task %s: %s", task.id, e)
            self.dispatch(CompletionSet(task.id, task.category, task.completed))
            self.dispatch(ErrorSet("Failed to update task"))
            self._notify("Error updating task", "Your task could not be updated. Please try again.", "destructive")
            return False

        self.dispatch(TaskReconciled(task.id, updated))
        return True
