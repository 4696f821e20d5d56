"""Test configuration and fixtures."""

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_structlog():
    """Keep structlog defaults between tests so capture_logs sees every event."""
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()
