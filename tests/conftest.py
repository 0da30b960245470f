"""
Test Configuration
==================

Pytest configuration with settings factories, fake upstream sessions and
application clients.
"""

from typing import Any, Callable, Generator

import pytest
from fastapi.testclient import TestClient

from rugplay_gateway.api.main import create_app
from rugplay_gateway.config.settings import DeploymentMode, Settings
from rugplay_gateway.core.rendering.orchestrator import RenderOrchestrator
from rugplay_gateway.core.upstream.client import UpstreamClient

from tests.utils.mocks import FakeSession

UPSTREAM_BASE = "https://upstream.test/api"
LOCAL_API_KEY = "local-secret"


def build_settings(**overrides: Any) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    values: dict = {
        "environment": "testing",
        "log_level": "DEBUG",
        "api_key": LOCAL_API_KEY,
        "upstream_base_url": UPSTREAM_BASE,
        "render_timeout": 10.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return build_settings


@pytest.fixture
def local_settings() -> Settings:
    return build_settings(run_mode=DeploymentMode.LOCAL)


@pytest.fixture
def deployed_settings() -> Settings:
    return build_settings(run_mode=DeploymentMode.DEPLOYED, api_key=None)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def app_factory(fake_session: FakeSession) -> Callable[..., TestClient]:
    """Build a test client whose upstream calls go to ``fake_session``."""

    def _build(settings: Settings, orchestrator: RenderOrchestrator = None) -> TestClient:
        client = UpstreamClient(settings)
        client._session = fake_session
        app = create_app(settings, upstream_client=client, render_orchestrator=orchestrator)
        return TestClient(app)

    return _build


@pytest.fixture
def local_client(app_factory, local_settings) -> Generator[TestClient, None, None]:
    yield app_factory(local_settings)


@pytest.fixture
def deployed_client(app_factory, deployed_settings) -> Generator[TestClient, None, None]:
    yield app_factory(deployed_settings)


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on file paths."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
