"""
kafcat - Kafka client abstraction layer and command line tool.

Read a single partition from a chosen offset, stream it until it goes
idle, re-publish messages and create topics, without knowing which Kafka
client library does the work underneath.

Engines:
- confluent: confluent-kafka (librdkafka), default
- aiokafka: pure asyncio
- memory: in-process cluster for tests
"""

from kafcat.config import Settings, configure, get_settings
from kafcat.exceptions import (
    BrokerRoundTripError,
    ClientConnectionError,
    ConfigurationError,
    ConsumerClosedError,
    InvariantViolation,
    KafcatError,
    TopicAdminError,
    UnsupportedSecurityProtocol,
)
from kafcat.messaging import (
    Admin,
    AuthConfig,
    Beginning,
    Consumer,
    ConsumerConfig,
    End,
    Message,
    Offset,
    OffsetInterval,
    Producer,
    ProducerConfig,
    SecurityProtocol,
    Stored,
    TimeInterval,
    TlsConfig,
    create_admin,
    create_consumer,
    create_producer,
    parse_offset,
)

__version__ = "0.1.0"
__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "configure",
    # Errors
    "KafcatError",
    "ConfigurationError",
    "UnsupportedSecurityProtocol",
    "ClientConnectionError",
    "BrokerRoundTripError",
    "TopicAdminError",
    "InvariantViolation",
    "ConsumerClosedError",
    # Messaging
    "Message",
    "Consumer",
    "Producer",
    "Admin",
    "AuthConfig",
    "TlsConfig",
    "SecurityProtocol",
    "ConsumerConfig",
    "ProducerConfig",
    "Beginning",
    "End",
    "Stored",
    "Offset",
    "OffsetInterval",
    "TimeInterval",
    "parse_offset",
    "create_consumer",
    "create_producer",
    "create_admin",
]
