"""
Kafka consumer implementation (aiokafka).

Single-partition consumer with manual assignment. aiokafka has no logical
offsets, so resolved offsets are applied with explicit seeks.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from aiokafka import AIOKafkaConsumer, TopicPartition
from aiokafka.errors import KafkaError

from kafcat.messaging.base import Consumer, Message
from kafcat.messaging.kafka.security import client_kwargs
from kafcat.messaging.offsets import OffsetKind, ResolvedOffset


logger = logging.getLogger(__name__)


class KafkaConsumer(Consumer):
    """
    Kafka consumer using aiokafka.

    Example:
        consumer = await KafkaConsumer.from_config(ConsumerConfig(topic="events", exit_on_done=True))
        await consumer.set_offset_and_subscribe(Beginning())
        count = await consumer.for_each(print)
    """

    engine = "aiokafka"
    # TimeoutError: lookups bounded with asyncio.wait_for
    engine_errors = (KafkaError, TimeoutError)

    _consumer: Any = None

    @property
    def _partition(self) -> TopicPartition:
        return TopicPartition(self.topic, self.partition)

    def _build_config(self) -> dict[str, Any]:
        return {
            **client_kwargs(self._params),
            "group_id": self.config.group_id,
            "enable_auto_commit": False,
            "session_timeout_ms": self._settings.kafka_session_timeout_ms,
        }

    async def _open(self) -> None:
        self._consumer = AIOKafkaConsumer(**self._build_config())
        await self._consumer.start()

    async def _assign(self, offset: ResolvedOffset) -> None:
        tp = self._partition
        self._consumer.assign([tp])

        if offset.kind == OffsetKind.BEGINNING:
            await self._consumer.seek_to_beginning(tp)
        elif offset.kind == OffsetKind.END:
            await self._consumer.seek_to_end(tp)
        elif offset.kind == OffsetKind.STORED:
            committed = await self._consumer.committed(tp)
            if committed is None:
                # Nothing committed yet: behave like librdkafka's default reset
                await self._consumer.seek_to_end(tp)
            else:
                self._consumer.seek(tp, committed)
        elif offset.kind == OffsetKind.TAIL:
            low, high = await self._fetch_watermarks()
            self._consumer.seek(tp, max(low, high - offset.value))
        else:
            self._consumer.seek(tp, offset.value)

    async def _lookup_offset_for_time(
        self, topic: str, partition: int, timestamp_ms: int
    ) -> dict[tuple[str, int], int]:
        result = await asyncio.wait_for(
            self._consumer.offsets_for_times({TopicPartition(topic, partition): timestamp_ms}),
            timeout=self._settings.kafka_offset_lookup_timeout,
        )
        # None: no message at or after the timestamp
        return {
            (tp.topic, tp.partition): (found.offset if found is not None else -1)
            for tp, found in result.items()
        }

    async def _poll(self, timeout: float) -> Message | None:
        tp = self._partition
        batch = await self._consumer.getmany(tp, timeout_ms=int(timeout * 1000), max_records=1)
        records = batch.get(tp)
        if not records:
            return None
        record = records[0]
        return Message(
            key=record.key or b"",
            payload=record.value or b"",
            timestamp=record.timestamp if record.timestamp is not None else -1,
            headers={name: value or b"" for name, value in (record.headers or ())},
            topic=record.topic,
            partition=record.partition,
            offset=record.offset,
        )

    async def _fetch_watermarks(self) -> tuple[int, int]:
        tp = self._partition

        async def query() -> tuple[int, int]:
            low = await self._consumer.beginning_offsets([tp])
            high = await self._consumer.end_offsets([tp])
            return low[tp], high[tp]

        return await asyncio.wait_for(query(), timeout=self._settings.kafka_watermark_timeout)

    async def _close(self) -> None:
        if self._consumer is not None:
            await self._consumer.stop()
            self._consumer = None
