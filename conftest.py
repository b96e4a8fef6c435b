"""
Pytest configuration and shared fixtures.

Each test gets its own SQLite file, a WallStore bound to it and an app
built around that store.
"""

import pytest
from fastapi.testclient import TestClient

# Clear settings cache before any app imports so a stray .env is not reused
from wallboard.config import Settings, get_settings
get_settings.cache_clear()

from wallboard.main import create_app
from wallboard.storage import WallStore


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Development settings pointing at a throwaway database."""
    return Settings(
        _env_file=None,
        APP_ENV="development",
        DEV_DATABASE_URL=f"sqlite:///{tmp_path / 'wall.db'}",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def store(settings):
    """Wall store with the schema applied."""
    wall_store = WallStore.from_url(settings.database_url)
    wall_store.init_schema()
    yield wall_store
    wall_store.engine.dispose()


@pytest.fixture
def client(settings, store):
    """Test client running the app lifespan around the test store."""
    app = create_app(settings, store=store)
    with TestClient(app) as test_client:
        yield test_client
