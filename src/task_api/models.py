from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class Priority(str, Enum):
    """Task priority. Declaration order is the sort order used by sortBy=priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# PUBLIC_INTERFACE
class Category(str, Enum):
    """Task category."""

    GENERAL = "general"
    WORK = "work"
    PERSONAL = "personal"
    SHOPPING = "shopping"
    HEALTH = "health"


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    Storage-level representation of a task, shared by all store backends.

    Fields:
    - id: Opaque identifier assigned by the store
    - title: Short title (1..100 chars, trimmed on input via schemas)
    - description: Optional details (..500 chars)
    - priority: One of Priority values, stored as plain string
    - category: One of Category values, stored as plain string
    - completed: Boolean completion flag
    - due_date: Optional due date, normalized to midnight
    - created_at: Creation timestamp
    - updated_at: Last mutation timestamp
    """

    id: str
    title: str
    description: Optional[str]
    priority: str
    category: str
    completed: bool
    due_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime
