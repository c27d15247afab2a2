import pytest
from fastapi.testclient import TestClient

from task_api.db import SQLiteRepository
from task_api.main import create_app
from task_api.repositories import InMemoryRepository
from task_api.service import TaskService
from task_api.settings import Settings


@pytest.fixture
def settings():
    return Settings(persistence_backend="memory")


@pytest.fixture
def client(settings):
    # Entering the context runs the lifespan, which opens a fresh store
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture(params=["memory", "sqlite"])
def repo(request):
    r = InMemoryRepository() if request.param == "memory" else SQLiteRepository(":memory:")
    yield r
    r.close()


@pytest.fixture
def service(repo):
    return TaskService(repo)
