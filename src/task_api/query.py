"""
Store-independent task queries.

A TaskQuery is a conjunction of typed clauses plus an ordered list of sort
keys. Store backends compile it into their own execution: the in-memory store
evaluates clauses with ``matches`` and orders with ``sort_tasks``, the SQLite
store renders SQL from the same values.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple, Union

from .models import Priority, TaskEntity

ALL = "all"


# PUBLIC_INTERFACE
class StatusFilter(str, Enum):
    """Completion status filter values."""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


# PUBLIC_INTERFACE
class SortBy(str, Enum):
    """Named orderings. Any other value falls back to newest first."""

    DATE = "date"
    PRIORITY = "priority"


@dataclass(frozen=True)
class FieldEquals:
    """Exact equality on one field."""

    field: str
    value: Any

    def matches(self, task: TaskEntity) -> bool:
        return task[self.field] == self.value  # type: ignore[literal-required]


@dataclass(frozen=True)
class TextContains:
    """Case-insensitive literal substring match on any of several text fields."""

    fields: Tuple[str, ...]
    text: str

    def matches(self, task: TaskEntity) -> bool:
        needle = self.text.lower()
        return any(needle in (task[f] or "").lower() for f in self.fields)  # type: ignore[literal-required]


Clause = Union[FieldEquals, TextContains]


@dataclass(frozen=True)
class SortKey:
    """
    One ordering key. Missing (None) values always sort after present ones.
    When ``order`` is given, values sort by their position in it instead of
    their natural order.
    """

    field: str
    descending: bool = False
    order: Tuple[str, ...] = ()

    def rank(self, value: Any) -> Any:
        if self.order:
            return self.order.index(value)
        return value


@dataclass(frozen=True)
class TaskQuery:
    clauses: Tuple[Clause, ...] = ()
    sort: Tuple[SortKey, ...] = ()

    def matches(self, task: TaskEntity) -> bool:
        return all(c.matches(task) for c in self.clauses)


NEWEST_FIRST = SortKey("created_at", descending=True)
PRIORITY_ORDER = tuple(p.value for p in Priority)


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class TaskFilters:
    """
    Filter selection for listing tasks. "all" (or empty) means no constraint.
    """

    status: str = ALL
    priority: str = ALL
    category: str = ALL
    search: str = ""
    sort_by: Optional[str] = None

    # PUBLIC_INTERFACE
    @classmethod
    def parse(
        cls,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
    ) -> "TaskFilters":
        """
        Build filters from raw request values. Empty values mean "all". Values
        outside the enumerations are kept as given: an unknown priority or
        category matches no task, an unknown status adds no constraint.
        """
        return cls(
            status=status or ALL,
            priority=priority or ALL,
            category=category or ALL,
            search=(search or "").strip(),
            sort_by=sort_by or None,
        )


# PUBLIC_INTERFACE
def build_query(filters: Optional[TaskFilters] = None) -> TaskQuery:
    """
    Translate a filter selection into clauses and sort keys.

    - status: completed/active constrain the completed flag
    - priority, category: exact match unless "all"
    - search: title OR description contains the text, ignoring case
    - sort_by: "priority" (declared enum order, then newest), "date"
      (earliest due date first, undated last, then newest), otherwise newest
    """
    f = filters or TaskFilters()
    clauses: List[Clause] = []

    if f.status == StatusFilter.COMPLETED.value:
        clauses.append(FieldEquals("completed", True))
    elif f.status == StatusFilter.ACTIVE.value:
        clauses.append(FieldEquals("completed", False))

    if f.priority and f.priority != ALL:
        clauses.append(FieldEquals("priority", f.priority))

    if f.category and f.category != ALL:
        clauses.append(FieldEquals("category", f.category))

    if f.search:
        clauses.append(TextContains(("title", "description"), f.search))

    if f.sort_by == SortBy.PRIORITY.value:
        sort: Tuple[SortKey, ...] = (SortKey("priority", order=PRIORITY_ORDER), NEWEST_FIRST)
    elif f.sort_by == SortBy.DATE.value:
        sort = (SortKey("due_date"), NEWEST_FIRST)
    else:
        sort = (NEWEST_FIRST,)

    return TaskQuery(clauses=tuple(clauses), sort=sort)


# PUBLIC_INTERFACE
def sort_tasks(tasks: Iterable[TaskEntity], keys: Iterable[SortKey]) -> List[TaskEntity]:
    """Order tasks by several keys using successive stable sorts, last key first."""
    items = list(tasks)
    for key in reversed(list(keys)):
        present = [t for t in items if t[key.field] is not None]  # type: ignore[literal-required]
        missing = [t for t in items if t[key.field] is None]  # type: ignore[literal-required]
        present.sort(key=lambda t: key.rank(t[key.field]), reverse=key.descending)  # type: ignore[literal-required]
        items = present + missing
    return items
