"""Shared fixtures for the DFG bridge test suite."""

import pytest

from dfgbridge.chain import Chain, make_signers
from dfgbridge.logging import MemoryHandler, get_manager
from dfgbridge.testing import deploy_bridge_pair


@pytest.fixture
def signers():
    """Four deterministic accounts."""
    return make_signers(4)


@pytest.fixture
def chain():
    """An empty chain on eid 1."""
    return Chain(1, "chain-a")


@pytest.fixture
def deployment():
    """EthBridge on eid 1 and BaseBridge on eid 2 over synchronous mock endpoints."""
    return deploy_bridge_pair()


@pytest.fixture
def async_deployment():
    """The same pair connected through an asynchronous messaging network."""
    return deploy_bridge_pair(asynchronous=True)


@pytest.fixture
def memory_logs():
    """Capture structured log entries for the duration of a test."""
    manager = get_manager()
    handler = MemoryHandler()
    manager.add_handler("memory", handler)
    manager.config.handlers.append("memory")
    try:
        yield handler
    finally:
        manager.config.handlers.remove("memory")
        manager.remove_handler("memory")
