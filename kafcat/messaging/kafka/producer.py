from __future__ import annotations

import logging
from typing import Any

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from kafcat.messaging.base import Producer
from kafcat.messaging.kafka.security import client_kwargs


logger = logging.getLogger(__name__)


class KafkaProducer(Producer):
    """Kafka producer using aiokafka. Delivery is bounded by request_timeout_ms."""

    engine = "aiokafka"
    engine_errors = (KafkaError, TimeoutError)

    _producer: Any = None

    def _build_config(self) -> dict[str, Any]:
        return {
            **client_kwargs(self._params),
            "request_timeout_ms": self._settings.kafka_message_timeout_ms,
        }

    async def _open(self) -> None:
        self._producer = AIOKafkaProducer(**self._build_config())
        await self._producer.start()

    async def _send(
        self,
        key: bytes | None,
        payload: bytes | None,
        headers: dict[str, bytes],
        timestamp: int | None,
    ) -> None:
        metadata = await self._producer.send_and_wait(
            self.topic,
            value=payload,
            key=key,
            headers=list(headers.items()) or None,
            timestamp_ms=timestamp,
        )
        logger.debug(f"Delivered to {metadata.topic}[{metadata.partition}] at offset {metadata.offset}")

    async def _close(self) -> None:
        if self._producer is not None:
            await self._producer.stop()
            self._producer = None
