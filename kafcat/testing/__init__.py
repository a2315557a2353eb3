"""
Testing utilities for kafcat.

- MockKafka: in-memory cluster with assertions and failure injection
- MockConsumer, MockProducer, MockAdmin: the "memory" engine

Usage:
    # In your conftest.py
    import pytest
    from kafcat.config import configure, reset_settings
    from kafcat.testing import reset_mock_cluster

    @pytest.fixture
    def kafka():
        configure(environment="testing", kafka_backend="memory")
        yield reset_mock_cluster()
        reset_settings()
"""

from kafcat.testing.mocks import (
    MockAdmin,
    MockConsumer,
    MockKafka,
    MockKafkaError,
    MockMessage,
    MockProducer,
    get_mock_cluster,
    reset_mock_cluster,
)

__all__ = [
    "MockKafka",
    "MockKafkaError",
    "MockMessage",
    "MockConsumer",
    "MockProducer",
    "MockAdmin",
    "get_mock_cluster",
    "reset_mock_cluster",
]
