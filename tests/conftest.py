"""
Test configuration and fixtures for bgtheme tests.
"""
import pytest
from fastapi.testclient import TestClient

from bgtheme.services.cache import InMemoryStore, ThemeCache
from bgtheme.services.colors.defaults import load_defaults
from bgtheme.services.orchestrator import ThemeOrchestrator
from bgtheme.services.store import ThemeStore
from bgtheme.utils.metrics import reset_metrics as _reset_metrics
from synthetic import encode_png, make_band_image


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset metrics before each test."""
    _reset_metrics()


@pytest.fixture(scope="session")
def defaults():
    """Packaged theme defaults."""
    return load_defaults()


@pytest.fixture
def wallpaper_pixels():
    """Red, green, blue and near-black bands with a little noise."""
    return make_band_image(
        [(200, 40, 40), (40, 160, 60), (30, 60, 200), (25, 25, 30)],
        noise=3,
    )


@pytest.fixture
def wallpaper_png(wallpaper_pixels):
    return encode_png(wallpaper_pixels)


@pytest.fixture
def wallpaper_file(tmp_path, wallpaper_png):
    path = tmp_path / "wallpaper.png"
    path.write_bytes(wallpaper_png)
    return path


@pytest.fixture
def theme_store(tmp_path):
    return ThemeStore(tmp_path / "config")


@pytest.fixture
def orchestrator(defaults, theme_store):
    """Orchestrator with an in-memory cache and a temporary theme store."""
    return ThemeOrchestrator(
        cache=ThemeCache(InMemoryStore()),
        store=theme_store,
        defaults=defaults,
    )


@pytest.fixture
def test_client(orchestrator):
    """Create test client for the FastAPI app backed by the test orchestrator."""
    from main import app
    from bgtheme.api.v1 import get_orchestrator

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()
