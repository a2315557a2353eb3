"""
Engine-neutral Kafka client contracts.

Defines the Message model and the abstract Consumer, Producer and Admin.
The shared behaviour (offset resolution, exclusive lease, idle-timeout
polling, error mapping, lifecycle) lives here; an engine only implements
the underscore hooks:

    Consumer: _open, _assign, _lookup_offset_for_time, _poll,
              _fetch_watermarks, _close
    Producer: _open, _send, _close
    Admin:    _open, _create_topic, _close

Engine-specific exceptions listed in `engine_errors` are translated into
KafcatError subclasses at this boundary, so callers never see them.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import weakref
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Self

from kafcat.config import Settings, get_settings
from kafcat.exceptions import (
    BrokerRoundTripError,
    ClientConnectionError,
    ConsumerClosedError,
    InvariantViolation,
    KafcatError,
    TopicAdminError,
)
from kafcat.messaging.client_config import ClientParams, build_client_params
from kafcat.messaging.config import AuthConfig, ConsumerConfig, ProducerConfig
from kafcat.messaging.offsets import OffsetSpec, ResolvedOffset, resolve_offset
from kafcat.messaging.stream import ConnectionLease, MessageStream


logger = logging.getLogger(__name__)


# =============================================================================
# Message
# =============================================================================

@dataclass
class Message:
    """
    A Kafka record, engine independent.

    Absent keys and payloads are represented as b"", and an empty key or
    payload is not sent at all by producers.

    Attributes:
        key: Record key
        payload: Record value
        timestamp: Epoch milliseconds, -1 if the broker did not provide one
        headers: Header name to raw value
        topic: Source topic (informational, set by consumers)
        partition: Source partition (informational)
        offset: Source offset (informational)
    """

    key: bytes = b""
    payload: bytes = b""
    timestamp: int = 0
    headers: dict[str, bytes] = field(default_factory=dict)
    topic: str | None = None
    partition: int | None = None
    offset: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Text-friendly representation; bytes are decoded as UTF-8 with replacement."""
        return {
            "key": self.key.decode("utf-8", errors="replace"),
            "payload": self.payload.decode("utf-8", errors="replace"),
            "timestamp": self.timestamp,
            "headers": {k: v.decode("utf-8", errors="replace") for k, v in self.headers.items()},
            "topic": self.topic,
            "partition": self.partition,
            "offset": self.offset,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        def to_bytes(value: Any) -> bytes:
            if value is None:
                return b""
            if isinstance(value, bytes):
                return value
            return str(value).encode("utf-8")

        return cls(
            key=to_bytes(data.get("key")),
            payload=to_bytes(data.get("payload")),
            timestamp=int(data.get("timestamp") or 0),
            headers={k: to_bytes(v) for k, v in (data.get("headers") or {}).items()},
            topic=data.get("topic"),
            partition=data.get("partition"),
            offset=data.get("offset"),
        )


MessageHandler = Callable[[Message], Awaitable[None] | None]


# =============================================================================
# Consumer
# =============================================================================

class Consumer(ABC):
    """
    Single-partition consumer with manual assignment.

    One consumer owns one engine handle. Operations are serialized through a
    ConnectionLease; a stream keeps the lease until it terminates.

    Example:
        consumer = await create_consumer(ConsumerConfig(topic="events", exit_on_done=True))
        await consumer.set_offset_and_subscribe(Beginning())

        async with consumer.stream() as stream:
            async for message in stream:
                print(message.key, message.payload)

        await consumer.close()
    """

    engine: str = "base"
    engine_errors: tuple[type[BaseException], ...] = ()

    def __init__(self, config: ConsumerConfig, settings: Settings | None = None):
        self.config = config
        self._settings = settings or get_settings()
        # Fails with ConfigurationError before anything touches the network
        self._params: ClientParams = build_client_params(config.auth)
        self._lease = ConnectionLease()
        # Weak, so a stream dropped without aclose() can still be finalized
        self._stream_ref: weakref.ref[MessageStream] | None = None
        self._started = False
        self._closed = False
        self.assignment: ResolvedOffset | None = None

    @classmethod
    async def from_config(cls, config: ConsumerConfig, settings: Settings | None = None) -> Self:
        """
        Build and start a consumer.

        Raises:
            ConfigurationError: Invalid security configuration
            ClientConnectionError: The engine handle could not be created
        """
        consumer = cls(config, settings=settings)
        await consumer.start()
        return consumer

    @property
    def _active_stream(self) -> MessageStream | None:
        return self._stream_ref() if self._stream_ref is not None else None

    @_active_stream.setter
    def _active_stream(self, stream: MessageStream | None) -> None:
        self._stream_ref = weakref.ref(stream) if stream is not None else None

    @property
    def topic(self) -> str:
        return self.config.topic

    @property
    def partition(self) -> int:
        return self.config.effective_partition

    @property
    def idle_timeout(self) -> float:
        if self.config.exit_on_done:
            return self._settings.kafka_exit_idle_timeout
        return self._settings.kafka_tail_idle_timeout

    def is_closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        if self._started:
            return
        self._ensure_open()
        try:
            await self._open()
        except KafcatError:
            raise
        except ImportError:
            raise
        except Exception as e:
            raise ClientConnectionError.wrap(
                e,
                f"Failed to create {self.engine} consumer: {e}",
                brokers=self._params.bootstrap_servers,
            ) from e
        self._started = True
        logger.info(
            f"Consumer started ({self.engine}) on {self.topic}[{self.partition}], "
            f"group '{self.config.group_id}'"
        )

    def _ensure_open(self) -> None:
        if self._closed:
            raise ConsumerClosedError(details={"topic": self.topic, "partition": self.partition})

    @asynccontextmanager
    async def _round_trip(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except KafcatError:
            raise
        except self.engine_errors as e:
            if self._closed:
                # The handle was stopped under an in-flight call
                raise ConsumerClosedError(
                    f"{operation} interrupted by close on {self.topic}[{self.partition}]",
                    details={"topic": self.topic, "partition": self.partition},
                ) from e
            raise BrokerRoundTripError.wrap(
                e,
                f"{operation} failed on {self.topic}[{self.partition}]: {e}",
                topic=self.topic,
                partition=self.partition,
            ) from e

    async def set_offset_and_subscribe(self, spec: OffsetSpec) -> ResolvedOffset:
        """
        Resolve `spec` and assign the configured topic/partition at it.

        Replaces any previous assignment.

        Raises:
            BrokerRoundTripError: Timestamp lookup or assignment failed
            InvariantViolation: Timestamp lookup response lacks the partition
        """
        self._ensure_open()
        async with self._lease.hold(self):
            async with self._round_trip("Offset assignment"):
                resolved = await resolve_offset(
                    spec, self.topic, self.partition, self._lookup_offset_for_time
                )
                await self._assign(resolved)
        self.assignment = resolved
        logger.info(f"Assigned {self.topic}[{self.partition}] at {resolved}")
        return resolved

    async def receive_one(self) -> Message:
        """
        Wait for the next message, without any timeout.

        Raises:
            BrokerRoundTripError: The engine reported an error
            ConsumerClosedError: The consumer was closed while waiting
        """
        self._ensure_open()
        async with self._lease.hold(self):
            message = await self._next_message(None)
        if message is None:
            raise InvariantViolation(
                "Poll loop without a deadline returned no message",
                details={"topic": self.topic, "partition": self.partition},
            )
        return message

    async def get_watermarks(self) -> tuple[int, int]:
        """
        Return (low, high) watermarks of the assigned partition.

        low is the earliest available offset, high the next offset to be
        written.
        """
        self._ensure_open()
        async with self._lease.hold(self):
            async with self._round_trip("Watermark query"):
                low, high = await self._fetch_watermarks()
        logger.debug(f"Watermarks of {self.topic}[{self.partition}]: low={low} high={high}")
        return low, high

    def stream(self) -> MessageStream:
        """
        Return a fresh message stream.

        The stream ends after `idle_timeout` seconds without a message:
        kafka_exit_idle_timeout with exit_on_done, kafka_tail_idle_timeout
        otherwise.
        """
        self._ensure_open()
        return MessageStream(self, self.idle_timeout)

    async def for_each(self, handler: MessageHandler) -> int:
        """
        Apply `handler` to every message of a stream, in order.

        Stops at the first handler error and re-raises it. Returns the
        number of messages handled once the stream went idle.
        """
        count = 0
        async with self.stream() as stream:
            async for message in stream:
                result = handler(message)
                if inspect.isawaitable(result):
                    await result
                count += 1
        return count

    async def _next_message(self, idle_timeout: float | None) -> Message | None:
        """
        Poll until a message arrives or `idle_timeout` seconds pass.

        Returns None on idle expiry. The caller must hold the lease.
        """
        loop = asyncio.get_running_loop()
        deadline = None if idle_timeout is None else loop.time() + idle_timeout
        poll_interval = self._settings.kafka_poll_interval

        while True:
            self._ensure_open()
            wait = poll_interval
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return None
                wait = min(wait, remaining)

            async with self._round_trip("Poll"):
                message = await self._poll(wait)

            if message is not None:
                # Results of a poll that raced with close() are discarded
                self._ensure_open()
                return message

    async def close(self) -> None:
        """
        Release the engine handle.

        Revokes an active stream first, so close never waits on a stream
        that nobody iterates any more. Idempotent.
        """
        if self._closed:
            return
        self._closed = True
        stream = self._active_stream
        if stream is not None:
            stream.revoke()
        async with self._lease.hold(self):
            if self._started:
                try:
                    await self._close()
                except self.engine_errors as e:
                    logger.warning(f"Error while closing {self.engine} consumer: {e}")
        logger.info(f"Consumer closed ({self.engine}) on {self.topic}[{self.partition}]")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # -- engine hooks ---------------------------------------------------------

    @abstractmethod
    async def _open(self) -> None:
        """Create the engine handle."""
        ...

    @abstractmethod
    async def _assign(self, offset: ResolvedOffset) -> None:
        """Assign (topic, partition) at `offset`, replacing any assignment."""
        ...

    @abstractmethod
    async def _lookup_offset_for_time(
        self, topic: str, partition: int, timestamp_ms: int
    ) -> dict[tuple[str, int], int]:
        """Offsets-for-times round-trip, bounded by kafka_offset_lookup_timeout."""
        ...

    @abstractmethod
    async def _poll(self, timeout: float) -> Message | None:
        """Wait at most `timeout` seconds for one message."""
        ...

    @abstractmethod
    async def _fetch_watermarks(self) -> tuple[int, int]:
        """Watermark round-trip, bounded by kafka_watermark_timeout."""
        ...

    @abstractmethod
    async def _close(self) -> None:
        ...


# =============================================================================
# Producer
# =============================================================================

class Producer(ABC):
    """
    Producer bound to one destination topic.

    write_one waits for the delivery report; there is no retry and no
    local queueing beyond the engine's own bound.

    Example:
        producer = await create_producer(ProducerConfig(topic="events"))
        await producer.write_one(Message(key=b"k1", payload=b"v1"))
        await producer.close()
    """

    engine: str = "base"
    engine_errors: tuple[type[BaseException], ...] = ()

    def __init__(self, config: ProducerConfig, settings: Settings | None = None):
        self.config = config
        self._settings = settings or get_settings()
        self._params: ClientParams = build_client_params(config.auth)
        self._started = False
        self._closed = False
        self.sent_count = 0

    @classmethod
    async def from_config(cls, config: ProducerConfig, settings: Settings | None = None) -> Self:
        producer = cls(config, settings=settings)
        await producer.start()
        return producer

    @property
    def topic(self) -> str:
        return self.config.topic

    async def start(self) -> None:
        if self._started:
            return
        try:
            await self._open()
        except KafcatError:
            raise
        except ImportError:
            raise
        except Exception as e:
            raise ClientConnectionError.wrap(
                e,
                f"Failed to create {self.engine} producer: {e}",
                brokers=self._params.bootstrap_servers,
            ) from e
        self._started = True
        logger.info(f"Producer started ({self.engine}) for topic {self.topic}")

    async def write_one(self, message: Message) -> None:
        """
        Send one message and wait for its delivery report.

        An empty key or payload is not set on the record. Headers are
        forwarded, the timestamp only when positive.

        Raises:
            BrokerRoundTripError: Enqueue or delivery failed
        """
        if self._closed:
            raise KafcatError("Producer is closed", code="producer_closed", details={"topic": self.topic})
        if not self._started:
            await self.start()

        key = message.key or None
        payload = message.payload or None
        timestamp = message.timestamp if message.timestamp > 0 else None

        try:
            await self._send(key, payload, dict(message.headers), timestamp)
        except KafcatError:
            raise
        except self.engine_errors as e:
            raise BrokerRoundTripError.wrap(
                e, f"Failed to deliver message to {self.topic}: {e}", topic=self.topic
            ) from e
        self.sent_count += 1

    async def close(self) -> None:
        """Flush and release the engine handle. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._started:
            try:
                await self._close()
            except self.engine_errors as e:
                logger.warning(f"Error while closing {self.engine} producer: {e}")
        logger.info(f"Producer closed ({self.engine}) for topic {self.topic}, {self.sent_count} sent")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @abstractmethod
    async def _open(self) -> None:
        ...

    @abstractmethod
    async def _send(
        self,
        key: bytes | None,
        payload: bytes | None,
        headers: dict[str, bytes],
        timestamp: int | None,
    ) -> None:
        """Send one record and wait for its delivery report."""
        ...

    @abstractmethod
    async def _close(self) -> None:
        ...


# =============================================================================
# Admin
# =============================================================================

class Admin(ABC):
    """
    Topic administration.

    Example:
        admin = await create_admin(AuthConfig(brokers=["localhost:9092"]))
        created = await admin.create_topic("events", partitions=3)
        await admin.close()
    """

    engine: str = "base"
    engine_errors: tuple[type[BaseException], ...] = ()

    replication_factor: int = 1

    def __init__(self, auth: AuthConfig, settings: Settings | None = None):
        self.auth = auth
        self._settings = settings or get_settings()
        self._params: ClientParams = build_client_params(auth)
        self._started = False

    @classmethod
    async def from_config(cls, auth: AuthConfig, settings: Settings | None = None) -> Self:
        admin = cls(auth, settings=settings)
        await admin.start()
        return admin

    async def start(self) -> None:
        if self._started:
            return
        try:
            await self._open()
        except KafcatError:
            raise
        except ImportError:
            raise
        except Exception as e:
            raise ClientConnectionError.wrap(
                e,
                f"Failed to create {self.engine} admin client: {e}",
                brokers=self._params.bootstrap_servers,
            ) from e
        self._started = True

    async def create_topic(self, name: str, partitions: int = 1) -> bool:
        """
        Create `name` with `partitions` partitions and replication factor 1.

        Returns:
            True if created, False if the topic already exists

        Raises:
            TopicAdminError: Any other failure
        """
        if partitions < 1:
            raise TopicAdminError(
                f"Topic {name} needs at least one partition, got {partitions}",
                details={"topic": name, "partitions": partitions},
            )
        if not self._started:
            await self.start()
        try:
            created = await self._create_topic(name, partitions, self.replication_factor)
        except KafcatError:
            raise
        except self.engine_errors as e:
            raise TopicAdminError.wrap(
                e, f"Failed to create topic {name}: {e}", topic=name, partitions=partitions
            ) from e

        if created:
            logger.info(f"Created topic: {name} ({partitions} partition(s))")
        else:
            logger.info(f"Topic already exists: {name}")
        return created

    async def close(self) -> None:
        if self._started:
            self._started = False
            await self._close()

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @abstractmethod
    async def _open(self) -> None:
        ...

    @abstractmethod
    async def _create_topic(self, name: str, partitions: int, replication_factor: int) -> bool:
        """Create the topic; return False if it already exists."""
        ...

    @abstractmethod
    async def _close(self) -> None:
        ...
