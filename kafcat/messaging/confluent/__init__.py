"""
Confluent Kafka engine (librdkafka).

Requires confluent-kafka:
    pip install confluent-kafka
"""

try:
    import confluent_kafka  # noqa: F401
except ImportError as e:
    raise ImportError(
        "confluent-kafka is required for the confluent engine. "
        "Install with: pip install confluent-kafka"
    ) from e

from kafcat.messaging.confluent.admin import ConfluentAdmin
from kafcat.messaging.confluent.consumer import ConfluentConsumer, to_librdkafka_offset
from kafcat.messaging.confluent.producer import ConfluentProducer

__all__ = [
    "ConfluentConsumer",
    "ConfluentProducer",
    "ConfluentAdmin",
    "to_librdkafka_offset",
]
