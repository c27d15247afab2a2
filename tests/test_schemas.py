from datetime import date, datetime

import pytest
from pydantic import ValidationError

from task_api.models import Category, Priority
from task_api.schemas import StatsOut, TaskCreate, TaskOut, TaskUpdate


class TestTaskCreate:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2030-01-31", datetime(2030, 1, 31)),
            ("2030-01-31T13:45:00", datetime(2030, 1, 31)),
            ("2030-01-31T23:59:59.999Z", datetime(2030, 1, 31)),
            (date(2030, 1, 31), datetime(2030, 1, 31)),
            (datetime(2030, 1, 31, 8, 30), datetime(2030, 1, 31)),
            (None, None),
        ],
    )
    def test_due_date_normalized_to_midnight(self, value, expected):
        assert TaskCreate(title="t", due_date=value).due_date == expected

    def test_title_is_stripped(self):
        assert TaskCreate(title="  hello ").title == "hello"

    def test_title_limits(self):
        assert len(TaskCreate(title="x" * 100).title) == 100
        with pytest.raises(ValidationError):
            TaskCreate(title="x" * 101)
        with pytest.raises(ValidationError):
            TaskCreate(title=" \t ")

    def test_enums_are_not_coerced(self):
        assert TaskCreate(title="t", priority="high", category="health").priority is Priority.HIGH
        with pytest.raises(ValidationError):
            TaskCreate(title="t", priority="High")
        with pytest.raises(ValidationError):
            TaskCreate(title="t", category="")

    def test_camel_case_alias(self):
        assert TaskCreate.model_validate({"title": "t", "dueDate": "2030-02-01"}).due_date == datetime(2030, 2, 1)


class TestTaskUpdate:
    def test_only_sent_fields_are_set(self):
        patch = TaskUpdate.model_validate({"completed": True, "dueDate": None})
        assert patch.model_dump(exclude_unset=True) == {"completed": True, "due_date": None}

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            TaskUpdate(title="   ")


class TestOutput:
    def test_task_out_serializes_camel_case(self):
        now = datetime(2030, 1, 1, 9, 0)
        out = TaskOut(
            id="abc",
            title="t",
            description=None,
            priority="low",
            category="work",
            completed=False,
            due_date=None,
            created_at=now,
            updated_at=now,
        )
        data = out.model_dump(by_alias=True, mode="json")
        assert set(data) == {
            "id", "title", "description", "priority", "category", "completed", "dueDate", "createdAt", "updatedAt"
        }
        assert data["category"] == Category.WORK.value

    def test_stats_out_key(self):
        data = StatsOut(total=3, completed=1, pending=2, high_priority=1).model_dump(by_alias=True)
        assert data == {"total": 3, "completed": 1, "pending": 2, "highPriority": 1}
