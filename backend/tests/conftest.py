import pytest
from fastapi.testclient import TestClient

from api.analyze import analyze_limiter, get_law_client, get_pipeline
from main import app
from helpers import make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def api_client():
    """Factory for TestClients with the pipeline / law client swapped for test doubles."""
    clients: list[TestClient] = []

    def _make(*, pipeline=None, law_client=None) -> TestClient:
        if pipeline is not None:
            app.dependency_overrides[get_pipeline] = lambda: pipeline
        if law_client is not None:
            app.dependency_overrides[get_law_client] = lambda: law_client
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    analyze_limiter.reset()
    try:
        yield _make
    finally:
        for client in clients:
            client.__exit__(None, None, None)
        app.dependency_overrides.clear()
        analyze_limiter.reset()
