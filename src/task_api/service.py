"""
Task query/command service.

Stateless between calls: every operation goes straight to the injected
repository. Failures surface immediately as ValidationError, NotFound or
StoreError; nothing is retried.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .exceptions import NotFound, ValidationError
from .models import Priority, TaskEntity
from .query import FieldEquals, TaskFilters, TaskQuery, build_query
from .repositories import Repository
from .schemas import TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Fields a client may change; id and timestamps are owned by the store
EDITABLE_FIELDS = ("title", "description", "priority", "category", "completed", "due_date")


def _validate(model: Type[M], data: Union[M, Mapping[str, Any]]) -> M:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class TaskStats:
    """
    Counts over the whole collection. Each count is a separate store read, so
    writes landing between them can make the snapshot slightly inconsistent.
    """

    total: int
    completed: int
    pending: int
    high_priority_pending: int


# PUBLIC_INTERFACE
class TaskService:
    """CRUD commands, filtered listing and statistics over a task repository."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def list_tasks(self, filters: Optional[TaskFilters] = None) -> List[TaskEntity]:
        """Return all tasks matching the filters, ordered as they request."""
        return self._repo.find(build_query(filters))

    def get_task(self, task_id: str) -> TaskEntity:
        """Return one task or raise NotFound."""
        task = self._repo.get(task_id)
        if task is None:
            raise NotFound()
        return task

    def create_task(self, payload: Union[TaskCreate, Mapping[str, Any]]) -> TaskEntity:
        """Validate and persist a new task. Nothing is stored if validation fails."""
        data = _validate(TaskCreate, payload)
        task = self._repo.create(data)
        logger.info("Created task %s", task["id"])
        return task

    def update_task(self, task_id: str, patch: Union[TaskUpdate, Mapping[str, Any]]) -> TaskEntity:
        """
        Merge the fields present in ``patch`` into the stored task.

        The merged record is validated with the same rules as creation; if any
        field is invalid the whole update is rejected and the task is untouched.
        """
        update = _validate(TaskUpdate, patch)
        existing = self.get_task(task_id)

        provided: Dict[str, Any] = update.model_dump(exclude_unset=True)
        merged = {field: existing[field] for field in EDITABLE_FIELDS}  # type: ignore[literal-required]
        merged.update(provided)
        record = _validate(TaskCreate, merged)

        changes = {field: _plain(getattr(record, field)) for field in provided}
        task = self._repo.update(task_id, changes)
        if task is None:
            raise NotFound()
        logger.info("Updated task %s (%s)", task_id, ", ".join(sorted(changes)) or "no fields")
        return task

    def toggle_task(self, task_id: str) -> TaskEntity:
        """Flip the completed flag."""
        task = self._repo.toggle(task_id)
        if task is None:
            raise NotFound()
        logger.info("Toggled task %s to completed=%s", task_id, task["completed"])
        return task

    def delete_task(self, task_id: str) -> TaskEntity:
        """Delete permanently and return the task as it was."""
        task = self._repo.delete(task_id)
        if task is None:
            raise NotFound()
        logger.info("Deleted task %s", task_id)
        return task

    def stats(self) -> TaskStats:
        """Recompute the statistics snapshot from the store."""
        done = FieldEquals("completed", True)
        open_ = FieldEquals("completed", False)
        return TaskStats(
            total=self._repo.count(TaskQuery()),
            completed=self._repo.count(TaskQuery(clauses=(done,))),
            pending=self._repo.count(TaskQuery(clauses=(open_,))),
            high_priority_pending=self._repo.count(
                TaskQuery(clauses=(FieldEquals("priority", Priority.HIGH.value), open_))
            ),
        )
