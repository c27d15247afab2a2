import httpx
import pytest

from task_api.client import ApiError, FilterSelection, TaskApiClient, TaskClientState
from task_api.exceptions import NotFound, StoreError, ValidationError


@pytest.fixture
def api(client):
    # The FastAPI TestClient is an httpx.Client, so it can stand in for the network
    return TaskApiClient(http=client)


@pytest.fixture
def state(api):
    return TaskClientState(api)


def failing_api(handler):
    return TaskApiClient(http=httpx.Client(base_url="http://tasks.test", transport=httpx.MockTransport(handler)))


class TestFilterSelection:
    def test_defaults_only_send_sort(self):
        assert FilterSelection().to_params() == {"sortBy": "date"}

    def test_all_fields(self):
        f = FilterSelection(status="active", priority="high", category="work", search="plan", sort_by="priority")
        assert f.to_params() == {
            "status": "active",
            "priority": "high",
            "category": "work",
            "search": "plan",
            "sortBy": "priority",
        }


class TestTaskApiClient:
    def test_round_trip(self, api):
        assert api.health()["status"] == "OK"
        task = api.create_task({"title": "Buy milk", "priority": "high", "category": "shopping"})
        assert api.get_task(task["id"]) == task
        assert api.stats()["highPriority"] == 1
        assert api.toggle_task(task["id"])["completed"] is True
        assert api.update_task(task["id"], {"title": "Buy oat milk"})["title"] == "Buy oat milk"
        removed = api.delete_task(task["id"])
        assert removed["id"] == task["id"]
        assert api.list_tasks() == []

    def test_error_mapping(self, api):
        with pytest.raises(NotFound):
            api.get_task("missing")
        with pytest.raises(ValidationError) as info:
            api.create_task({"title": ""})
        assert info.value.detail[0]["field"] == "title"

    def test_server_error_maps_to_store_error(self):
        api = failing_api(lambda request: httpx.Response(500, json={"error": "StoreError", "message": "Storage error"}))
        with pytest.raises(StoreError):
            api.stats()

    def test_timeout_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        api = failing_api(handler)
        with pytest.raises(ApiError, match="timed out"):
            api.list_tasks()
        assert len(calls) == 1

    def test_owned_client_uses_configured_timeout(self, monkeypatch):
        monkeypatch.setenv("TASK_API_TIMEOUT", "2.5")
        with TaskApiClient("http://tasks.test/api") as api:
            assert api._http.timeout.read == 2.5
            assert str(api._http.base_url).startswith("http://tasks.test/api")


class TestTaskClientState:
    def test_create_prepends_and_refreshes_stats(self, state):
        first = state.create_task({"title": "First"})
        second = state.create_task({"title": "Second", "priority": "high"})
        assert [t["id"] for t in state.tasks] == [second["id"], first["id"]]
        assert state.stats == {"total": 2, "completed": 0, "pending": 2, "highPriority": 1}
        assert state.error is None
        assert state.loading is False

    def test_toggle_and_update_replace_in_place(self, state):
        a = state.create_task({"title": "A"})
        b = state.create_task({"title": "B"})
        state.toggle_task(a["id"])
        state.update_task(b["id"], {"description": "details"})
        by_id = {t["id"]: t for t in state.tasks}
        assert by_id[a["id"]]["completed"] is True
        assert by_id[b["id"]]["description"] == "details"
        assert state.stats["completed"] == 1

    def test_delete_removes_locally(self, state):
        a = state.create_task({"title": "A"})
        state.delete_task(a["id"])
        assert state.tasks == []
        assert state.stats["total"] == 0

    def test_failed_command_records_error_and_keeps_view(self, state):
        a = state.create_task({"title": "A", "priority": "low"})
        before_tasks, before_stats = list(state.tasks), dict(state.stats)

        with pytest.raises(ValidationError):
            state.update_task(a["id"], {"priority": "invalid"})
        assert state.error == "Request validation failed"
        assert state.tasks == before_tasks
        assert state.stats == before_stats

        with pytest.raises(NotFound):
            state.delete_task("missing")
        assert state.error == "Task not found"
        assert state.tasks == before_tasks

    def test_update_filters_refetches(self, state):
        state.create_task({"title": "Buy milk", "priority": "high"})
        state.create_task({"title": "Walk dog", "priority": "low"})
        state.toggle_task(state.tasks[0]["id"])

        state.update_filters(status="completed")
        assert [t["title"] for t in state.tasks] == ["Walk dog"]

        state.update_filters(status="all", search="MILK")
        assert [t["title"] for t in state.tasks] == ["Buy milk"]
        assert state.filters.search == "MILK"
        assert state.stats["total"] == 2

    def test_fetch_failure_is_recorded_not_raised(self):
        state = TaskClientState(failing_api(lambda request: httpx.Response(500, json={"message": "Storage error"})))
        state.refresh()
        assert state.error == "Storage error"
        assert state.tasks == []
        assert state.stats["total"] == 0
        assert state.loading is False
