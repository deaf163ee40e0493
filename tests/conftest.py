"""pytest configuration for Open Monitor tests."""

import pytest

from openmonitor.models import DirectoryEntry


# Configure asyncio mode for pytest-asyncio
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture
def directory():
    return {
        "A": DirectoryEntry(name="A", address="1.2.3.4", port=100),
        "B": DirectoryEntry(name="B", address="5.6.7.8", port=200),
    }
