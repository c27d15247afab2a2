from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from threading import RLock
from typing import Any, List, Mapping, Optional

from .models import TaskEntity
from .query import TaskQuery, sort_tasks
from .schemas import TaskCreate
from .settings import Settings

logger = logging.getLogger(__name__)


def new_task_id() -> str:
    return uuid.uuid4().hex


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Abstract store contract for task backends.

    Each method is atomic for the single task it touches. Lookups that miss
    return None; the service layer turns that into NotFound. Backend failures
    surface as StoreError.
    """

    @abstractmethod
    def create(self, data: TaskCreate) -> TaskEntity:
        """Persist a new task, assigning id, created_at and updated_at."""

    @abstractmethod
    def get(self, task_id: str) -> Optional[TaskEntity]:
        """Return a task by id, or None if not found."""

    @abstractmethod
    def update(self, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        """Apply already validated field changes and refresh updated_at. None if not found."""

    @abstractmethod
    def toggle(self, task_id: str) -> Optional[TaskEntity]:
        """Flip the completed flag and refresh updated_at. None if not found."""

    @abstractmethod
    def delete(self, task_id: str) -> Optional[TaskEntity]:
        """Remove a task and return its prior state, or None if not found."""

    @abstractmethod
    def find(self, query: TaskQuery) -> List[TaskEntity]:
        """Return every task matching the query, in the query's sort order."""

    @abstractmethod
    def count(self, query: TaskQuery) -> int:
        """Return the number of tasks matching the query's clauses."""

    def close(self) -> None:
        """Release the store handle. Called once at application shutdown."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[str, TaskEntity] = {}

    def _now(self) -> datetime:
        return datetime.now()

    def create(self, data: TaskCreate) -> TaskEntity:
        now = self._now()
        entity: TaskEntity = {
            "id": new_task_id(),
            "title": data.title,
            "description": data.description,
            "priority": data.priority.value,
            "category": data.category.value,
            "completed": data.completed,
            "due_date": data.due_date,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()  # type: ignore[return-value]

    def get(self, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()  # type: ignore[return-value]

    def _replace(self, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                return None
            updated = existing.copy()
            updated.update(changes)  # type: ignore[typeddict-item]
            # Never move updated_at backwards, even if the wall clock does
            updated["updated_at"] = max(self._now(), existing["updated_at"])
            self._items[task_id] = updated  # type: ignore[assignment]
            return updated.copy()  # type: ignore[return-value]

    def update(self, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        return self._replace(task_id, changes)

    def toggle(self, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                return None
            return self._replace(task_id, {"completed": not existing["completed"]})

    def delete(self, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            return self._items.pop(task_id, None)

    def find(self, query: TaskQuery) -> List[TaskEntity]:
        with self._lock:
            items = [t for t in self._items.values() if query.matches(t)]
        # Return copies to avoid external mutation
        return [t.copy() for t in sort_tasks(items, query.sort)]  # type: ignore[misc]

    def count(self, query: TaskQuery) -> int:
        with self._lock:
            return sum(1 for t in self._items.values() if query.matches(t))


# PUBLIC_INTERFACE
def open_repository(settings: Settings) -> Repository:
    """
    Open the configured store backend. Called once at application startup.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository at settings.sqlite_db_path
    """
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        logger.info("Opening SQLite task store at %s", settings.sqlite_db_path)
        return SQLiteRepository(settings.sqlite_db_path)
    logger.info("Using in-memory task store")
    return InMemoryRepository()
