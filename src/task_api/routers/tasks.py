from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from ..query import TaskFilters
from ..schemas import StatsOut, TaskCreate, TaskDeleted, TaskOut, TaskUpdate
from ..service import TaskService

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)

_ERROR_RESPONSES = {
    400: {"description": "Validation error"},
    404: {"description": "Task not found"},
    500: {"description": "Storage error"},
}


def _get_service(request: Request) -> TaskService:
    """
    Dependency building a service over the store handle opened at startup.
    """
    return TaskService(request.app.state.repository)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description=(
        "List tasks with optional filters.\n\n"
        "Query parameters:\n"
        "- status: all, active or completed\n"
        "- priority: all, low, medium or high\n"
        "- category: all, general, work, personal, shopping or health\n"
        "- search: case-insensitive text matched against title and description\n"
        "- sortBy: 'date' (due date, undated last), 'priority'; newest first otherwise\n\n"
        "Returns every matching task; there is no pagination."
    ),
    responses={500: _ERROR_RESPONSES[500]},
)
def list_tasks(
    status_: Optional[str] = Query(None, alias="status", description="Filter by completion status"),
    priority: Optional[str] = Query(None, description="Filter by priority"),
    category: Optional[str] = Query(None, description="Filter by category"),
    search: Optional[str] = Query(None, description="Search text for title/description"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="Sort order: date or priority"),
    service: TaskService = Depends(_get_service),
) -> List[TaskOut]:
    """
    List tasks matching the filter selection.
    """
    filters = TaskFilters.parse(
        status=status_,
        priority=priority,
        category=category,
        search=search,
        sort_by=sort_by,
    )
    return [TaskOut(**t) for t in service.list_tasks(filters)]  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/stats/summary",
    response_model=StatsOut,
    summary="Task Statistics",
    description="Counts of all, completed, pending and pending high priority tasks.",
    responses={500: _ERROR_RESPONSES[500]},
)
def task_stats(service: TaskService = Depends(_get_service)) -> StatsOut:
    """
    Recompute statistics from the store.
    """
    s = service.stats()
    return StatsOut(total=s.total, completed=s.completed, pending=s.pending, high_priority=s.high_priority_pending)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task and return the stored resource.",
    responses={400: _ERROR_RESPONSES[400]},
)
def create_task(payload: TaskCreate, service: TaskService = Depends(_get_service)) -> TaskOut:
    """
    Create a new task.
    """
    return TaskOut(**service.create_task(payload))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get a single task by ID.",
    responses={404: _ERROR_RESPONSES[404], 500: _ERROR_RESPONSES[500]},
)
def get_task(task_id: str, service: TaskService = Depends(_get_service)) -> TaskOut:
    """
    Retrieve a single task by its ID.
    """
    return TaskOut(**service.get_task(task_id))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description=(
        "Merge the provided fields into an existing task. Omitted fields are left unchanged; "
        "null clears description or dueDate. The merged task is validated as a whole."
    ),
    responses={400: _ERROR_RESPONSES[400], 404: _ERROR_RESPONSES[404]},
)
def update_task(task_id: str, payload: TaskUpdate, service: TaskService = Depends(_get_service)) -> TaskOut:
    """
    Partial update of a task.
    """
    return TaskOut(**service.update_task(task_id, payload))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}/toggle",
    response_model=TaskOut,
    summary="Toggle Task",
    description="Flip the completed flag of a task.",
    responses={404: _ERROR_RESPONSES[404], 500: _ERROR_RESPONSES[500]},
)
def toggle_task(task_id: str, service: TaskService = Depends(_get_service)) -> TaskOut:
    """
    Toggle completion.
    """
    return TaskOut(**service.toggle_task(task_id))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=TaskDeleted,
    summary="Delete Task",
    description="Delete a task by ID and return its prior state.",
    responses={404: _ERROR_RESPONSES[404], 500: _ERROR_RESPONSES[500]},
)
def delete_task(task_id: str, service: TaskService = Depends(_get_service)) -> TaskDeleted:
    """
    Delete a task. Returns 404 if it does not exist, including on repeated deletes.
    """
    task = service.delete_task(task_id)
    return TaskDeleted(message="Task deleted successfully", task=TaskOut(**task))  # type: ignore[arg-type]
