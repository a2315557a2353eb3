"""
Shared test configuration.
"""

import pytest

from kafcat.config import configure, reset_settings
from kafcat.testing import reset_mock_cluster


@pytest.fixture(autouse=True)
def settings():
    """Testing settings on the in-memory engine with short stream timeouts."""
    reset_settings()
    configured = configure(
        environment="testing",
        kafka_backend="memory",
        kafka_exit_idle_timeout=0.2,
        kafka_tail_idle_timeout=0.5,
        kafka_poll_interval=0.05,
    )
    yield configured
    reset_settings()


@pytest.fixture(autouse=True)
def kafka():
    """Fresh in-memory cluster."""
    cluster = reset_mock_cluster()
    yield cluster
    cluster.clear()


@pytest.fixture
def cli_env(monkeypatch):
    """
    Environment for CLI tests.

    The CLI rebuilds settings from the environment, so the short timeouts
    have to be set there too.
    """
    monkeypatch.setenv("ENVIRONMENT", "testing")
    monkeypatch.setenv("KAFKA_BACKEND", "memory")
    monkeypatch.setenv("KAFKA_EXIT_IDLE_TIMEOUT", "0.2")
    monkeypatch.setenv("KAFKA_TAIL_IDLE_TIMEOUT", "0.5")
    monkeypatch.setenv("KAFKA_POLL_INTERVAL", "0.05")
    monkeypatch.delenv("KAFKA_SECURITY_PROTOCOL", raising=False)
