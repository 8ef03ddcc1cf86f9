import os
import sys
from pathlib import Path

# Configure the environment before any imports that might initialize runtime
os.environ.setdefault("TEST_MODE", "true")
os.environ.setdefault("USE_MEMORY_STORE", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from imanage.service.runtime import reset_runtime_for_tests  # noqa: E402
from imanage.storage.memory import MemoryStore  # noqa: E402
from imanage.storage.sqlite import SqliteStore  # noqa: E402


@pytest.fixture(autouse=True)
def reset_runtime_state():
    reset_runtime_for_tests()
    yield
    reset_runtime_for_tests()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def sqlite_store(tmp_path):
    return SqliteStore(str(tmp_path / "imanage.db"))


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Every store backend that runs without external services."""
    if request.param == "memory":
        return MemoryStore()
    return SqliteStore(str(tmp_path / "imanage.db"))


@pytest.fixture
def runtime(store):
    return reset_runtime_for_tests(store=store)


@pytest.fixture
def client(runtime):
    from fastapi.testclient import TestClient

    from imanage.app import app

    with TestClient(app) as test_client:
        yield test_client
