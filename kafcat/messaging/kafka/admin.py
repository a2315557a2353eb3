"""
Kafka admin client for topic creation (aiokafka).
"""

from __future__ import annotations

import logging
from typing import Any

from aiokafka.admin import AIOKafkaAdminClient, NewTopic
from aiokafka.errors import KafkaError, TopicAlreadyExistsError, for_code

from kafcat.messaging.base import Admin
from kafcat.messaging.kafka.security import client_kwargs


logger = logging.getLogger(__name__)


class KafkaAdmin(Admin):
    """
    Topic administration using aiokafka.

    Example:
        admin = await KafkaAdmin.from_config(AuthConfig(brokers=["localhost:9092"]))
        await admin.create_topic("user-events", partitions=3)
        await admin.close()
    """

    engine = "aiokafka"
    engine_errors = (KafkaError,)

    _admin: Any = None

    async def _open(self) -> None:
        self._admin = AIOKafkaAdminClient(**client_kwargs(self._params))
        await self._admin.start()

    async def _create_topic(self, name: str, partitions: int, replication_factor: int) -> bool:
        topic = NewTopic(
            name=name,
            num_partitions=partitions,
            replication_factor=replication_factor,
        )

        try:
            response = await self._admin.create_topics([topic])
        except TopicAlreadyExistsError:
            return False

        # (topic, error_code[, error_message]) per requested topic
        for topic_error in getattr(response, "topic_errors", None) or ():
            error_code = topic_error[1]
            if error_code == TopicAlreadyExistsError.errno:
                return False
            if error_code:
                message = topic_error[2] if len(topic_error) > 2 else None
                raise for_code(error_code)(message or f"create_topics failed for {topic_error[0]}")
        return True

    async def _close(self) -> None:
        if self._admin is not None:
            await self._admin.close()
            self._admin = None
