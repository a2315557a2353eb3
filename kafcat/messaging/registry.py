"""
Registry of Kafka engines.

An engine is the trio of Consumer, Producer and Admin classes backed by
one client library. The built-in engines are imported on first use, so
only the selected engine's library has to be installed:

    confluent   confluent-kafka (librdkafka), default
    aiokafka    aiokafka (pure asyncio)
    memory      in-process cluster from kafcat.testing.mocks

The engine is picked from Settings.kafka_backend unless named explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from kafcat.config import Settings, get_settings
from kafcat.exceptions import ConfigurationError

if TYPE_CHECKING:
    from kafcat.messaging.base import Admin, Consumer, Producer
    from kafcat.messaging.config import AuthConfig, ConsumerConfig, ProducerConfig


@dataclass(frozen=True)
class KafkaEngine:
    name: str
    consumer_class: type["Consumer"]
    producer_class: type["Producer"]
    admin_class: type["Admin"]


# Global registry
_engines: dict[str, KafkaEngine] = {}

BUILTIN_ENGINES = ("confluent", "aiokafka", "memory")


def register_engine(engine: KafkaEngine) -> None:
    """
    Register (or replace) an engine.

    Example:
        register_engine(KafkaEngine("custom", MyConsumer, MyProducer, MyAdmin))
        configure(kafka_backend="custom")
    """
    _engines[engine.name] = engine


def _load_builtin(name: str) -> KafkaEngine | None:
    if name == "confluent":
        from kafcat.messaging.confluent import ConfluentAdmin, ConfluentConsumer, ConfluentProducer
        return KafkaEngine(name, ConfluentConsumer, ConfluentProducer, ConfluentAdmin)

    if name == "aiokafka":
        from kafcat.messaging.kafka import KafkaAdmin, KafkaConsumer, KafkaProducer
        return KafkaEngine(name, KafkaConsumer, KafkaProducer, KafkaAdmin)

    if name == "memory":
        from kafcat.testing.mocks import MockAdmin, MockConsumer, MockProducer
        return KafkaEngine(name, MockConsumer, MockProducer, MockAdmin)

    return None


def get_engine(name: str | None = None, settings: Settings | None = None) -> KafkaEngine:
    """
    Get an engine by name.

    Args:
        name: Engine name (uses settings.kafka_backend if None)
        settings: Settings to read the default from

    Raises:
        ConfigurationError: If the engine is unknown
        ImportError: If the engine's client library is not installed
    """
    engine_name = name or (settings or get_settings()).kafka_backend

    if engine_name not in _engines:
        engine = _load_builtin(engine_name)
        if engine is None:
            raise ConfigurationError(
                f"Kafka engine '{engine_name}' not found. "
                f"Available: {sorted(set(BUILTIN_ENGINES) | set(_engines))}",
                code="unknown_engine",
            )
        register_engine(engine)

    return _engines[engine_name]


def available_engines() -> list[str]:
    return sorted(set(BUILTIN_ENGINES) | set(_engines))


async def create_consumer(
    config: "ConsumerConfig",
    engine: str | None = None,
    settings: Settings | None = None,
) -> "Consumer":
    """
    Build and start a consumer on the selected engine.

    Example:
        consumer = await create_consumer(ConsumerConfig(topic="events", exit_on_done=True))
    """
    consumer_class = get_engine(engine, settings).consumer_class
    return await consumer_class.from_config(config, settings=settings)


async def create_producer(
    config: "ProducerConfig",
    engine: str | None = None,
    settings: Settings | None = None,
) -> "Producer":
    producer_class = get_engine(engine, settings).producer_class
    return await producer_class.from_config(config, settings=settings)


async def create_admin(
    auth: "AuthConfig",
    engine: str | None = None,
    settings: Settings | None = None,
) -> "Admin":
    admin_class = get_engine(engine, settings).admin_class
    return await admin_class.from_config(auth, settings=settings)
