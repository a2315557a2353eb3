"""
kafcat messaging - engine-neutral Kafka client layer.

Consume one partition from a chosen offset, produce messages, create
topics. The engine (confluent-kafka, aiokafka or in-memory) is picked by
Settings.kafka_backend.

Quick Start:
    from kafcat.messaging import ConsumerConfig, Beginning, create_consumer

    consumer = await create_consumer(ConsumerConfig(topic="events", exit_on_done=True))
    await consumer.set_offset_and_subscribe(Beginning())
    async with consumer.stream() as stream:
        async for message in stream:
            print(message.key, message.payload)
    await consumer.close()

Producing:
    from kafcat.messaging import Message, ProducerConfig, create_producer

    producer = await create_producer(ProducerConfig(topic="events"))
    await producer.write_one(Message(key=b"k1", payload=b"v1"))
    await producer.close()

Configuration:
    # environment variables or .env
    KAFKA_BACKEND=confluent          # or aiokafka, memory
    KAFKA_BOOTSTRAP_SERVERS=kafka:9092
    KAFKA_SECURITY_PROTOCOL=SSL
"""

from kafcat.messaging.base import (
    Admin,
    Consumer,
    Message,
    MessageHandler,
    Producer,
)
from kafcat.messaging.client_config import (
    ClientParams,
    build_client_params,
)
from kafcat.messaging.config import (
    AuthConfig,
    ConsumerConfig,
    ProducerConfig,
    SecurityProtocol,
    TlsConfig,
)
from kafcat.messaging.offsets import (
    Beginning,
    End,
    Offset,
    OffsetInterval,
    OffsetKind,
    OffsetSpec,
    ResolvedOffset,
    Stored,
    TimeInterval,
    parse_offset,
    resolve_offset,
)
from kafcat.messaging.registry import (
    KafkaEngine,
    available_engines,
    create_admin,
    create_consumer,
    create_producer,
    get_engine,
    register_engine,
)
from kafcat.messaging.stream import (
    ConnectionLease,
    MessageStream,
    StreamState,
)

__all__ = [
    # Base classes
    "Message",
    "MessageHandler",
    "Consumer",
    "Producer",
    "Admin",
    # Config
    "AuthConfig",
    "TlsConfig",
    "SecurityProtocol",
    "ConsumerConfig",
    "ProducerConfig",
    "ClientParams",
    "build_client_params",
    # Offsets
    "OffsetSpec",
    "Beginning",
    "End",
    "Stored",
    "Offset",
    "OffsetInterval",
    "TimeInterval",
    "OffsetKind",
    "ResolvedOffset",
    "resolve_offset",
    "parse_offset",
    # Streams
    "ConnectionLease",
    "MessageStream",
    "StreamState",
    # Engines
    "KafkaEngine",
    "register_engine",
    "get_engine",
    "available_engines",
    "create_consumer",
    "create_producer",
    "create_admin",
]
