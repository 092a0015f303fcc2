import pytest
import sys
import os

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Import fixtures so they're available to all tests
from tests.fixtures.database import (  # noqa: E402,F401
    test_engine,
    test_session_maker,
    test_session,
    directory,
    connection_engine,
    make_user,
    alice,
    bob,
    carol,
)


# Configure pytest
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "lifecycle: request send/accept/reject/cancel transitions"
    )
    config.addinivalue_line(
        "markers", "blocking: block and unblock"
    )
    config.addinivalue_line(
        "markers", "queries: status, listing and suggestion queries"
    )
    config.addinivalue_line(
        "markers", "directory: user registration and lookups"
    )


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop cached settings so env tweaks in one test don't leak."""
    from devconnect.core.config import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def log_messages():
    """Collect loguru records at DEBUG and above for the duration of a test."""
    from loguru import logger

    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)
