"""
aiokafka engine (pure asyncio).

Requires aiokafka:
    pip install aiokafka
"""

try:
    import aiokafka  # noqa: F401
except ImportError as e:
    raise ImportError(
        "aiokafka is required for the aiokafka engine. "
        "Install with: pip install aiokafka"
    ) from e

from kafcat.messaging.kafka.admin import KafkaAdmin
from kafcat.messaging.kafka.consumer import KafkaConsumer
from kafcat.messaging.kafka.producer import KafkaProducer
from kafcat.messaging.kafka.security import build_ssl_context, client_kwargs

__all__ = [
    "KafkaConsumer",
    "KafkaProducer",
    "KafkaAdmin",
    "build_ssl_context",
    "client_kwargs",
]
