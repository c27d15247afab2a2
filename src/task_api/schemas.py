from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import Category, Priority

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500

# Incoming dueDate may be a date, a datetime, or an ISO8601 string
DueDateInput = Union[date, datetime, str]


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Normalize due date input to midnight of its calendar date.
    - Strings are parsed as ISO datetimes first, then as ISO dates.
    - A trailing 'Z' (as sent by JavaScript's toISOString) is accepted.
    - Time of day and timezone are dropped; only the date is kept.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        d = value.date()
    elif isinstance(value, date):
        d = value
    elif isinstance(value, str):
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            d = datetime.fromisoformat(s).date()
        except ValueError:
            try:
                d = date.fromisoformat(s)
            except ValueError as e:
                raise ValueError(
                    "Invalid dueDate format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e
    else:
        raise ValueError("Invalid type for dueDate; expected date, datetime, or ISO8601 string.")

    return datetime(d.year, d.month, d.day, 0, 0, 0)


def _clean_title(v: str) -> str:
    s = v.strip()
    if not (1 <= len(s) <= TITLE_MAX_LENGTH):
        raise ValueError(f"title length must be between 1 and {TITLE_MAX_LENGTH} characters")
    return s


class _CamelModel(BaseModel):
    """Base model exchanging camelCase keys on the wire while accepting snake_case too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TaskCreate(_CamelModel):
    """
    Schema for creating a new task. Also used to re-validate the merged
    record of an update, so both paths enforce identical rules.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy milk",
                "description": "Two litres, semi-skimmed",
                "priority": "high",
                "category": "shopping",
                "completed": False,
                "dueDate": "2025-02-01",
            }
        }
    )

    title: str = Field(..., description="Short title for the task", min_length=1, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(
        default=None, description="Optional detailed description", max_length=DESCRIPTION_MAX_LENGTH
    )
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    category: Category = Field(default=Category.GENERAL, description="Task category")
    completed: bool = Field(default=False, description="Completion status flag")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date of the task. Accepts ISO8601 date or datetime; only the date is kept",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce the title length after stripping.
        """
        return _clean_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        """
        Normalize dueDate from str/date/datetime to a midnight datetime.
        """
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TaskUpdate(_CamelModel):
    """
    Patch for an existing task.
    All fields are optional; only the fields present in the request are merged.
    Sending null clears optional fields (description, dueDate).
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy milk and bread",
                "priority": "medium",
                "dueDate": "2025-02-02",
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the task", max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(
        default=None, description="Optional detailed description", max_length=DESCRIPTION_MAX_LENGTH
    )
    priority: Optional[Priority] = Field(default=None, description="Task priority")
    category: Optional[Category] = Field(default=None, description="Task category")
    completed: Optional[bool] = Field(default=None, description="Completion status flag")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date of the task. Accepts ISO8601 date or datetime; only the date is kept",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        """
        If title is provided, strip whitespace and enforce its length.
        A null title is left for the merged-record validation to reject.
        """
        if v is None:
            return v
        return _clean_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        """
        Normalize dueDate from str/date/datetime to a midnight datetime.
        """
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TaskOut(_CamelModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "8f14e45fceea167a5a36dedd4bea2543",
                "title": "Buy milk",
                "description": None,
                "priority": "high",
                "category": "shopping",
                "completed": False,
                "dueDate": "2025-02-01T00:00:00",
                "createdAt": "2025-01-25T10:15:30.123456",
                "updatedAt": "2025-01-26T09:00:00.000001",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    priority: Priority = Field(..., description="Task priority")
    category: Category = Field(..., description="Task category")
    completed: bool = Field(..., description="Completion status flag")
    due_date: Optional[datetime] = Field(default=None, description="Due date as an ISO8601 datetime (midnight)")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# PUBLIC_INTERFACE
class TaskDeleted(_CamelModel):
    """Confirmation returned after deleting a task, carrying its prior state."""

    message: str = Field(..., description="Human readable confirmation")
    task: TaskOut = Field(..., description="The task as it was before deletion")


# PUBLIC_INTERFACE
class StatsOut(_CamelModel):
    """Aggregate counts over the task collection."""

    total: int = Field(..., description="Number of tasks")
    completed: int = Field(..., description="Number of completed tasks")
    pending: int = Field(..., description="Number of tasks not yet completed")
    high_priority: int = Field(..., description="Number of high priority tasks not yet completed")
