"""
Confluent Kafka producer implementation.

produce() only enqueues; the delivery report arrives through the
on_delivery callback while poll() runs on the handle's worker thread and
is handed back to the event loop with call_soon_threadsafe.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from confluent_kafka import KafkaException, Producer as CKProducer

from kafcat.messaging.base import Producer
from kafcat.messaging.confluent.executor import HandleExecutor


logger = logging.getLogger(__name__)


def _resolve(future: asyncio.Future, result: Any) -> None:
    if not future.done():
        future.set_result(result)


def _reject(future: asyncio.Future, error: BaseException) -> None:
    if not future.done():
        future.set_exception(error)


class ConfluentProducer(Producer):
    """
    Kafka producer using confluent-kafka.

    A full local queue fails the send immediately (BufferError) instead of
    waiting for space. Delivery is bounded by message.timeout.ms.

    Example:
        producer = await ConfluentProducer.from_config(ProducerConfig(topic="events"))
        await producer.write_one(Message(key=b"k1", payload=b"v1"))
        await producer.close()
    """

    engine = "confluent"
    engine_errors = (KafkaException, BufferError, RuntimeError)

    _producer: Any = None
    _executor: HandleExecutor | None = None

    def _build_config(self) -> dict[str, Any]:
        return {
            **self._params.to_librdkafka(),
            "message.timeout.ms": self._settings.kafka_message_timeout_ms,
        }

    async def _open(self) -> None:
        self._executor = HandleExecutor(f"producer-{self.topic}")
        self._producer = CKProducer(self._build_config())

    async def _send(
        self,
        key: bytes | None,
        payload: bytes | None,
        headers: dict[str, bytes],
        timestamp: int | None,
    ) -> None:
        loop = asyncio.get_running_loop()
        delivered: asyncio.Future = loop.create_future()

        def on_delivery(err: Any, msg: Any) -> None:
            if err is not None:
                loop.call_soon_threadsafe(_reject, delivered, KafkaException(err))
            else:
                loop.call_soon_threadsafe(_resolve, delivered, msg)

        kwargs: dict[str, Any] = {"key": key, "value": payload, "on_delivery": on_delivery}
        if headers:
            kwargs["headers"] = list(headers.items())
        if timestamp is not None:
            kwargs["timestamp"] = timestamp

        await self._executor.run(self._producer.produce, self.topic, **kwargs)

        while not delivered.done():
            await self._executor.run(self._producer.poll, self._settings.kafka_poll_interval)

        msg = await delivered
        logger.debug(f"Delivered to {msg.topic()}[{msg.partition()}] at offset {msg.offset()}")

    async def _close(self) -> None:
        try:
            if self._producer is not None:
                timeout = self._settings.kafka_message_timeout_ms / 1000
                remaining = await self._executor.run(self._producer.flush, timeout)
                if remaining:
                    logger.warning(f"{remaining} message(s) to {self.topic} not delivered on close")
        finally:
            self._producer = None
            if self._executor is not None:
                self._executor.shutdown()
                self._executor = None
