import sys
from pathlib import Path

import pytest

# Add the backend directory so `ehostelz` package imports resolve during tests
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.append(str(BACKEND_DIR))

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    from fakes import FakeClock

    return FakeClock()


@pytest.fixture
def source():
    from fakes import FakeSource

    return FakeSource()


@pytest.fixture
def app():
    from ehostelz.core.rate_limit import limiter
    from ehostelz.main import app as fastapi_app

    limiter.reset()
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()
