import pytest

from schemas import Task
from task_store import (
    CompletionSet,
    ErrorCleared,
    ErrorSet,
    FetchFailed,
    FetchStarted,
    TaskAdded,
    TaskReconciled,
    TaskRemoved,
    TaskRestored,
    TasksLoaded,
    TaskState,
    reduce,
)


def _task(task_id: int, content: str = "t", category: str = "today", completed: bool = False) -> Task:
    return Task(id=task_id, content=content, category=category, completed=completed)


def test_fetch_failure_keeps_stale_lists() -> None:
    state = TaskState(today=(_task(1),))

    state = reduce(state, FetchStarted())
    assert state.is_loading is True

    state = reduce(state, FetchFailed("Failed to load tasks"))
    assert state.is_loading is False
    assert state.error == "Failed to load tasks"
    assert [t.id for t in state.today] == [1]


def test_loaded_lists_replace_cache_and_clear_error() -> None:
    state = TaskState(today=(_task(1),), error="old", is_loading=True)

    state = reduce(state, TasksLoaded(today=(_task(2),), other=(_task(3, category="other"),)))

    assert [t.id for t in state.today] == [2]
    assert [t.id for t in state.other] == [3]
    assert state.error is None
    assert state.is_loading is False


def test_added_task_goes_to_its_category() -> None:
    state = reduce(TaskState(), TaskAdded(_task(-1, category="other")))

    assert state.today == ()
    assert [t.id for t in state.other] == [-1]


def test_reconcile_replaces_local_entry_in_place() -> None:
    state = TaskState(today=(_task(1), _task(-1, "new"), _task(2)))

    state = reduce(state, TaskReconciled(-1, _task(50, "new")))

    assert [t.id for t in state.today] == [1, 50, 2]


def test_reconcile_after_refetch_does_not_duplicate() -> None:
    # A fetch already brought in the saved row and dropped the local one
    state = TaskState(today=(_task(50, "new"),))

    state = reduce(state, TaskReconciled(-1, _task(50, "new")))

    assert [t.id for t in state.today] == [50]


def test_remove_then_restore_keeps_position() -> None:
    state = TaskState(today=(_task(1), _task(2), _task(3)))

    removed = reduce(state, TaskRemoved(2, "today"))
    assert [t.id for t in removed.today] == [1, 3]

    restored = reduce(removed, TaskRestored(_task(2), 1))
    assert [t.id for t in restored.today] == [1, 2, 3]


def test_completion_set_touches_only_the_target() -> None:
    state = TaskState(today=(_task(1), _task(2)))

    state = reduce(state, CompletionSet(2, "today", True))

    assert [t.completed for t in state.today] == [False, True]


def test_error_set_and_cleared() -> None:
    state = reduce(TaskState(), ErrorSet("Failed to add task"))
    assert state.error == "Failed to add task"

    assert reduce(state, ErrorCleared()).error is None


def test_reducer_never_mutates_previous_state() -> None:
    before = TaskState(today=(_task(1),))

    reduce(before, TaskAdded(_task(2)))
    reduce(before, CompletionSet(1, "today", True))

    assert [t.id for t in before.today] == [1]
    assert before.today[0].completed is False


def test_unknown_category_is_rejected() -> None:
    with pytest.raises(ValueError):
        TaskState().tasks("someday")
