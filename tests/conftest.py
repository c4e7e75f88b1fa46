import pytest
from fastapi.testclient import TestClient

from streamcast.main import create_app
from streamcast.registry import ConnectionRegistry

FAST_TICK = 0.02


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def app(registry):
    return create_app(registry=registry, tick_interval=FAST_TICK)


@pytest.fixture
def client(app):
    return TestClient(app)
