from datetime import datetime

import pytest

from task_api.query import (
    NEWEST_FIRST,
    FieldEquals,
    SortKey,
    TaskFilters,
    TaskQuery,
    TextContains,
    build_query,
    sort_tasks,
)


def make_task(i, **overrides):
    task = {
        "id": f"t{i}",
        "title": f"Task {i}",
        "description": None,
        "priority": "medium",
        "category": "general",
        "completed": False,
        "due_date": None,
        "created_at": datetime(2030, 1, 1, 12, 0, i),
        "updated_at": datetime(2030, 1, 1, 12, 0, i),
    }
    task.update(overrides)
    return task


class TestBuildQuery:
    def test_defaults_have_no_clauses_and_sort_newest_first(self):
        q = build_query(TaskFilters())
        assert q.clauses == ()
        assert q.sort == (NEWEST_FIRST,)
        assert build_query() == q

    @pytest.mark.parametrize(
        "status,expected",
        [
            ("completed", (FieldEquals("completed", True),)),
            ("active", (FieldEquals("completed", False),)),
            ("all", ()),
        ],
    )
    def test_status(self, status, expected):
        assert build_query(TaskFilters(status=status)).clauses == expected

    def test_all_clauses_combined(self):
        q = build_query(TaskFilters(status="active", priority="high", category="work", search="plan"))
        assert q.clauses == (
            FieldEquals("completed", False),
            FieldEquals("priority", "high"),
            FieldEquals("category", "work"),
            TextContains(("title", "description"), "plan"),
        )

    def test_sort_keys(self):
        assert build_query(TaskFilters(sort_by="date")).sort == (SortKey("due_date"), NEWEST_FIRST)
        priority_sort = build_query(TaskFilters(sort_by="priority")).sort
        assert priority_sort[0].field == "priority"
        assert priority_sort[0].order == ("low", "medium", "high")
        assert priority_sort[1] == NEWEST_FIRST
        assert build_query(TaskFilters(sort_by="title")).sort == (NEWEST_FIRST,)


class TestTaskFiltersParse:
    def test_empty_values_mean_all(self):
        f = TaskFilters.parse(status="", priority=None, category="", search="  ", sort_by="")
        assert f == TaskFilters()

    def test_search_is_stripped(self):
        assert TaskFilters.parse(search="  milk ").search == "milk"

    def test_unknown_sort_is_kept(self):
        assert TaskFilters.parse(sort_by="whatever").sort_by == "whatever"

    def test_values_outside_enumerations_are_kept(self):
        f = TaskFilters.parse(status="done", priority="urgent", category="errands")
        assert (f.status, f.priority, f.category) == ("done", "urgent", "errands")

    def test_unknown_status_adds_no_clause(self):
        q = build_query(TaskFilters.parse(status="done", priority="urgent"))
        assert q.clauses == (FieldEquals("priority", "urgent"),)

    def test_priority_is_case_sensitive(self):
        q = build_query(TaskFilters.parse(priority="High"))
        assert q.clauses == (FieldEquals("priority", "High"),)
        assert not q.matches(make_task(1, priority="high"))


class TestMatching:
    def test_text_contains_handles_missing_description(self):
        clause = TextContains(("title", "description"), "RUN")
        assert clause.matches(make_task(1, title="Morning run"))
        assert clause.matches(make_task(2, description="go for a run"))
        assert not clause.matches(make_task(3))

    def test_query_requires_every_clause(self):
        q = TaskQuery(clauses=(FieldEquals("priority", "high"), FieldEquals("completed", False)))
        assert q.matches(make_task(1, priority="high"))
        assert not q.matches(make_task(2, priority="high", completed=True))
        assert not q.matches(make_task(3))


class TestSortTasks:
    def test_missing_values_sort_last_even_when_descending(self):
        tasks = [make_task(1), make_task(2, due_date=datetime(2030, 2, 1)), make_task(3, due_date=datetime(2030, 1, 1))]
        ordered = sort_tasks(tasks, [SortKey("due_date", descending=True)])
        assert [t["id"] for t in ordered] == ["t2", "t3", "t1"]

    def test_secondary_key_breaks_ties(self):
        tasks = [
            make_task(1, priority="high"),
            make_task(2, priority="low"),
            make_task(3, priority="high"),
            make_task(4, priority="medium"),
        ]
        ordered = sort_tasks(tasks, build_query(TaskFilters(sort_by="priority")).sort)
        assert [t["id"] for t in ordered] == ["t2", "t4", "t3", "t1"]
