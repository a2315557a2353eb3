"""
Confluent Kafka admin client for topic creation.
"""

from __future__ import annotations

import logging
from typing import Any

from confluent_kafka import KafkaError, KafkaException
from confluent_kafka.admin import AdminClient, NewTopic

from kafcat.messaging.base import Admin
from kafcat.messaging.confluent.executor import HandleExecutor


logger = logging.getLogger(__name__)


class ConfluentAdmin(Admin):
    """
    Topic administration using confluent_kafka.admin.AdminClient.

    Example:
        admin = await ConfluentAdmin.from_config(AuthConfig(brokers=["localhost:9092"]))
        await admin.create_topic("user-events", partitions=3)
    """

    engine = "confluent"
    engine_errors = (KafkaException,)

    _admin: Any = None
    _executor: HandleExecutor | None = None

    async def _open(self) -> None:
        self._executor = HandleExecutor("admin")
        self._admin = AdminClient(self._params.to_librdkafka())

    async def _create_topic(self, name: str, partitions: int, replication_factor: int) -> bool:
        topic = NewTopic(name, num_partitions=partitions, replication_factor=replication_factor)

        # create_topics returns a dict of {topic_name: future}
        futures = self._admin.create_topics([topic])

        try:
            await self._executor.run(futures[name].result)
        except KafkaException as e:
            error = e.args[0] if e.args else None
            if isinstance(error, KafkaError) and error.code() == KafkaError.TOPIC_ALREADY_EXISTS:
                return False
            raise
        return True

    async def _close(self) -> None:
        # AdminClient has no explicit close
        self._admin = None
        if self._executor is not None:
            self._executor.shutdown()
            self._executor = None
