"""
Python client for the task API.

TaskApiClient is a thin httpx wrapper with one method per endpoint. Requests
use a fixed timeout and are never retried; failures are raised as the same
error types the service uses (ValidationError, NotFound, StoreError) or as
ApiError for transport problems.

TaskClientState mirrors what the mobile app keeps in memory: the current
filter selection, the fetched task list and the fetched statistics. Every
successful mutation updates the local list and refetches statistics; a
failed command records the error and leaves the local view unchanged.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional

import httpx

from .exceptions import NotFound, StoreError, TaskError, ValidationError
from .query import ALL
from .settings import get_settings

logger = logging.getLogger(__name__)

Task = Dict[str, Any]


# PUBLIC_INTERFACE
class ApiError(TaskError):
    """The request could not be completed or the response was not understood."""

    error = "ApiError"
    default_message = "Request to task API failed"

    def __init__(self, message: Optional[str] = None, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


def _jsonable(data: Mapping[str, Any]) -> Dict[str, Any]:
    out = {}
    for key, value in data.items():
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        out[key] = value
    return out


def _raise_for_response(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        body = response.json()
    except ValueError:
        body = None
    message = body.get("message") if isinstance(body, dict) else None
    detail = body.get("detail") if isinstance(body, dict) else None

    if response.status_code == 404:
        raise NotFound(message)
    if 400 <= response.status_code < 500:
        raise ValidationError(message, detail=detail if isinstance(detail, list) else None)
    if response.status_code >= 500:
        raise StoreError(message)
    raise ApiError(f"Unexpected response status {response.status_code}", status_code=response.status_code)


# PUBLIC_INTERFACE
class TaskApiClient:
    """
    HTTP client for the task API.

    Args:
        base_url: API root, including any route prefix (e.g. "http://host:8000/api").
            Defaults to TASK_API_BASE_URL.
        timeout: Seconds before a request is abandoned. Defaults to TASK_API_TIMEOUT.
        http: An existing httpx.Client to use instead of creating one (its own
            base URL and timeout then apply). The caller keeps ownership of it.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        http: Optional[httpx.Client] = None,
    ) -> None:
        self._owns_http = http is None
        if http is None:
            settings = get_settings()
            http = httpx.Client(
                base_url=base_url or settings.client_base_url,
                timeout=httpx.Timeout(timeout if timeout is not None else settings.client_timeout),
                headers={"Content-Type": "application/json"},
            )
        self._http = http

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "TaskApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        json: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        try:
            response = self._http.request(
                method,
                path,
                params=dict(params) if params else None,
                json=_jsonable(json) if json is not None else None,
            )
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out", method, path)
            raise ApiError("Request timed out") from e
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(f"Request failed: {e}") from e

        _raise_for_response(response)
        return response.json()

    def list_tasks(self, params: Optional[Mapping[str, str]] = None) -> List[Task]:
        return self._request("GET", "/tasks", params=params)

    def get_task(self, task_id: str) -> Task:
        return self._request("GET", f"/tasks/{task_id}")

    def create_task(self, data: Mapping[str, Any]) -> Task:
        return self._request("POST", "/tasks", json=data)

    def update_task(self, task_id: str, data: Mapping[str, Any]) -> Task:
        return self._request("PUT", f"/tasks/{task_id}", json=data)

    def toggle_task(self, task_id: str) -> Task:
        return self._request("PATCH", f"/tasks/{task_id}/toggle")

    def delete_task(self, task_id: str) -> Task:
        """Delete a task and return its prior state."""
        return self._request("DELETE", f"/tasks/{task_id}")["task"]

    def stats(self) -> Dict[str, int]:
        return self._request("GET", "/tasks/stats/summary")

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class FilterSelection:
    """Client-held filter selection. Not persisted."""

    status: str = ALL
    priority: str = ALL
    category: str = ALL
    search: str = ""
    sort_by: str = "date"

    def to_params(self) -> Dict[str, str]:
        """Query parameters for GET /tasks; "all" and empty search are left out."""
        params = {}
        if self.status != ALL:
            params["status"] = self.status
        if self.priority != ALL:
            params["priority"] = self.priority
        if self.category != ALL:
            params["category"] = self.category
        if self.search:
            params["search"] = self.search
        if self.sort_by:
            params["sortBy"] = self.sort_by
        return params


EMPTY_STATS = {"total": 0, "completed": 0, "pending": 0, "highPriority": 0}


# PUBLIC_INTERFACE
class TaskClientState:
    """Local view of tasks and statistics, kept in step with the API."""

    def __init__(self, api: TaskApiClient, filters: Optional[FilterSelection] = None) -> None:
        self.api = api
        self.filters = filters or FilterSelection()
        self.tasks: List[Task] = []
        self.stats: Dict[str, int] = dict(EMPTY_STATS)
        self.loading = False
        self.error: Optional[str] = None

    @contextmanager
    def _command(self) -> Iterator[None]:
        self.loading = True
        self.error = None
        try:
            yield
        except TaskError as e:
            self.error = e.message
            raise
        finally:
            self.loading = False

    def refresh(self) -> None:
        self.fetch_tasks()
        self.fetch_stats()

    def fetch_tasks(self) -> None:
        """Refetch the list for the current filters. Errors are recorded, not raised."""
        try:
            with self._command():
                self.tasks = self.api.list_tasks(self.filters.to_params())
        except TaskError as e:
            logger.warning("Error fetching tasks: %s", e.message)

    def fetch_stats(self) -> None:
        """Refetch statistics. On failure the previous numbers are kept."""
        try:
            self.stats = self.api.stats()
        except TaskError as e:
            logger.warning("Error fetching stats: %s", e.message)

    def update_filters(self, **changes: str) -> None:
        """Merge filter changes (status, priority, category, search, sort_by) and refetch."""
        self.filters = replace(self.filters, **changes)
        self.refresh()

    def get_task(self, task_id: str) -> Task:
        with self._command():
            return self.api.get_task(task_id)

    def create_task(self, data: Mapping[str, Any]) -> Task:
        with self._command():
            task = self.api.create_task(data)
        self.tasks = [task, *self.tasks]
        self.fetch_stats()
        return task

    def update_task(self, task_id: str, data: Mapping[str, Any]) -> Task:
        with self._command():
            task = self.api.update_task(task_id, data)
        self._replace(task)
        self.fetch_stats()
        return task

    def toggle_task(self, task_id: str) -> Task:
        with self._command():
            task = self.api.toggle_task(task_id)
        self._replace(task)
        self.fetch_stats()
        return task

    def delete_task(self, task_id: str) -> Task:
        with self._command():
            task = self.api.delete_task(task_id)
        self.tasks = [t for t in self.tasks if t["id"] != task_id]
        self.fetch_stats()
        return task

    def _replace(self, task: Task) -> None:
        self.tasks = [task if t["id"] == task["id"] else t for t in self.tasks]
