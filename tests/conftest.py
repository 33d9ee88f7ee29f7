"""Shared fixtures."""
import pytest
from structlog.testing import capture_logs

from vetted.core.config import Settings
from vetted.core.validation import SchemaRegistry


@pytest.fixture
def settings() -> Settings:
    return Settings(MAX_ERRORS=None, WARN_UNRULED_FIELDS=True)


@pytest.fixture
def registry(settings: Settings) -> SchemaRegistry:
    """Isolated registry so tests never share compiled trees."""
    return SchemaRegistry(settings=settings)


@pytest.fixture
def captured_logs():
    with capture_logs() as logs:
        yield logs
