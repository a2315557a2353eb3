"""
Confluent Kafka consumer implementation.

Single-partition consumer using confluent-kafka (librdkafka) with manual
assignment. Resolved offsets are applied through librdkafka's logical
offsets (OFFSET_BEGINNING, OFFSET_END, OFFSET_STORED and the tail base).
"""

from __future__ import annotations

import logging
from typing import Any

from confluent_kafka import (
    OFFSET_BEGINNING,
    OFFSET_END,
    OFFSET_STORED,
    TIMESTAMP_NOT_AVAILABLE,
    Consumer as CKConsumer,
    KafkaException,
    TopicPartition,
)

from kafcat.exceptions import BrokerRoundTripError
from kafcat.messaging.base import Consumer, Message
from kafcat.messaging.confluent.executor import HandleExecutor
from kafcat.messaging.offsets import OffsetKind, ResolvedOffset


logger = logging.getLogger(__name__)

# librdkafka RD_KAFKA_OFFSET_TAIL_BASE: tail(n) == OFFSET_TAIL_BASE - n
OFFSET_TAIL_BASE = -2000


def to_librdkafka_offset(offset: ResolvedOffset) -> int:
    """Map a ResolvedOffset to a librdkafka offset value."""
    if offset.kind == OffsetKind.BEGINNING:
        return OFFSET_BEGINNING
    if offset.kind == OffsetKind.END:
        return OFFSET_END
    if offset.kind == OffsetKind.STORED:
        return OFFSET_STORED
    if offset.kind == OffsetKind.TAIL:
        return OFFSET_TAIL_BASE - offset.value
    return offset.value


class ConfluentConsumer(Consumer):
    """
    Kafka consumer using confluent-kafka.

    Auto commit and partition EOF events are disabled; the group id only
    matters for Stored() offsets.

    Example:
        consumer = await ConfluentConsumer.from_config(ConsumerConfig(topic="events"))
        await consumer.set_offset_and_subscribe(Offset(-11))    # last 10 messages
        message = await consumer.receive_one()
    """

    engine = "confluent"
    # RuntimeError: librdkafka handle used after close
    engine_errors = (KafkaException, RuntimeError)

    _consumer: Any = None
    _executor: HandleExecutor | None = None

    def _build_config(self) -> dict[str, Any]:
        return {
            **self._params.to_librdkafka(),
            "group.id": self.config.group_id,
            "enable.partition.eof": False,
            "session.timeout.ms": self._settings.kafka_session_timeout_ms,
            "enable.auto.commit": False,
        }

    async def _open(self) -> None:
        self._executor = HandleExecutor(f"{self.topic}-{self.partition}")
        self._consumer = CKConsumer(self._build_config())

    async def _assign(self, offset: ResolvedOffset) -> None:
        partition = TopicPartition(self.topic, self.partition, to_librdkafka_offset(offset))
        await self._executor.run(self._consumer.assign, [partition])

    async def _lookup_offset_for_time(
        self, topic: str, partition: int, timestamp_ms: int
    ) -> dict[tuple[str, int], int]:
        # The offset field carries the timestamp in the request
        request = [TopicPartition(topic, partition, timestamp_ms)]
        result = await self._executor.run(
            self._consumer.offsets_for_times,
            request,
            timeout=self._settings.kafka_offset_lookup_timeout,
        )
        offsets: dict[tuple[str, int], int] = {}
        for item in result:
            if item.error is not None:
                raise KafkaException(item.error)
            offsets[(item.topic, item.partition)] = item.offset
        return offsets

    async def _poll(self, timeout: float) -> Message | None:
        msg = await self._executor.run(self._consumer.poll, timeout)
        if msg is None:
            return None
        if msg.error():
            raise KafkaException(msg.error())
        return self._to_message(msg)

    @staticmethod
    def _to_message(msg: Any) -> Message:
        timestamp_type, timestamp = msg.timestamp()
        return Message(
            key=msg.key() or b"",
            payload=msg.value() or b"",
            timestamp=timestamp if timestamp_type != TIMESTAMP_NOT_AVAILABLE else -1,
            headers={name: value or b"" for name, value in (msg.headers() or [])},
            topic=msg.topic(),
            partition=msg.partition(),
            offset=msg.offset(),
        )

    async def _fetch_watermarks(self) -> tuple[int, int]:
        timeout = self._settings.kafka_watermark_timeout
        result = await self._executor.run(
            self._consumer.get_watermark_offsets,
            TopicPartition(self.topic, self.partition),
            timeout=timeout,
        )
        if result is None:
            raise BrokerRoundTripError(
                f"Watermark query on {self.topic}[{self.partition}] timed out after {timeout}s",
                details={"topic": self.topic, "partition": self.partition},
            )
        low, high = result
        return low, high

    async def _close(self) -> None:
        try:
            if self._consumer is not None:
                await self._executor.run(self._consumer.close)
        finally:
            self._consumer = None
            if self._executor is not None:
                self._executor.shutdown()
                self._executor = None
