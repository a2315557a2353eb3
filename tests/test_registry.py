"""
Tests for the engine registry.
"""

import pytest

from kafcat.config import configure
from kafcat.exceptions import ConfigurationError
from kafcat.messaging import ConsumerConfig, KafkaEngine, create_consumer, get_engine, register_engine
from kafcat.messaging import registry
from kafcat.testing import MockAdmin, MockConsumer, MockProducer


class TrackingConsumer(MockConsumer):
    engine = "tracking"


class TestRegistry:

    def test_engine_from_settings(self):
        engine = get_engine()
        assert engine.name == "memory"
        assert engine.consumer_class is MockConsumer
        assert engine.producer_class is MockProducer
        assert engine.admin_class is MockAdmin

    def test_explicit_name_wins(self):
        configure(kafka_backend="confluent")
        assert get_engine("memory").name == "memory"

    def test_unknown_engine(self):
        with pytest.raises(ConfigurationError) as exc_info:
            get_engine("nope")
        assert exc_info.value.code == "unknown_engine"

    def test_available_engines(self):
        assert {"confluent", "aiokafka", "memory"} <= set(registry.available_engines())

    @pytest.mark.asyncio
    async def test_register_custom_engine(self):
        register_engine(KafkaEngine("tracking", TrackingConsumer, MockProducer, MockAdmin))
        try:
            configure(kafka_backend="tracking")
            consumer = await create_consumer(ConsumerConfig(topic="events"))
            assert isinstance(consumer, TrackingConsumer)
            await consumer.close()
        finally:
            registry._engines.pop("tracking", None)

    def test_confluent_engine(self):
        pytest.importorskip("confluent_kafka")
        from kafcat.messaging.confluent import ConfluentConsumer
        assert get_engine("confluent").consumer_class is ConfluentConsumer

    def test_aiokafka_engine(self):
        pytest.importorskip("aiokafka")
        from kafcat.messaging.kafka import KafkaConsumer
        assert get_engine("aiokafka").consumer_class is KafkaConsumer
