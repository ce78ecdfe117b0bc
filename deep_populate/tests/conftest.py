"""Test configuration and fixtures."""

import logging

import pytest

from deep_populate.populate import DeepPopulator

from .utils import RecordingStore, make_registry, seed


@pytest.fixture
def registry():
    return make_registry()


@pytest.fixture
def store():
    return seed(RecordingStore())


@pytest.fixture
def posts(store):
    return store.find("Post")


@pytest.fixture
def post(store):
    return store.get("Post", 1)


@pytest.fixture
def populator(registry, store):
    return DeepPopulator("Post", registry, store=store)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Keep handlers added by setup_logging from leaking between tests."""
    yield
    package_logger = logging.getLogger("deep_populate")
    for handler in package_logger.handlers:
        handler.close()
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
