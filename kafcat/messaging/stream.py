"""
Exclusive connection lease and the consumer message stream.

A consumer owns exactly one engine handle. Every operation on it
(assign, receive, watermarks) checks out the ConnectionLease for its
duration; a MessageStream checks it out for its whole lifetime, so nothing
else can touch the handle while a stream is open.

Stream states:
    IDLE → POLLING → yields messages while data keeps arriving
                   → TERMINATED, idle_timeout_expired=True   (normal end)
                   → TERMINATED, error set, error raised      (failure)

Idle-timeout expiry ends iteration with StopAsyncIteration: it is
the "caught up" signal, never an exception.

Example:
    async with consumer.stream() as stream:
        async for message in stream:
            print(message.payload)
    if stream.idle_timeout_expired:
        print("caught up")
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, TYPE_CHECKING

from kafcat.exceptions import ConsumerClosedError

if TYPE_CHECKING:
    from kafcat.messaging.base import Consumer, Message


logger = logging.getLogger(__name__)


class ConnectionLease:
    """
    The sole right to use an engine handle.

    Wraps an asyncio.Lock and remembers who holds it so that a holder can
    only release its own lease, and so that a closing consumer can tell
    whether a stream is holding it.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._holder: Any = None

    @property
    def holder(self) -> Any:
        return self._holder

    def locked(self) -> bool:
        return self._lock.locked()

    async def acquire(self, holder: Any) -> None:
        await self._lock.acquire()
        self._holder = holder

    def release(self, holder: Any) -> bool:
        """
        Release the lease if `holder` has it.

        Returns:
            True if the lease was released
        """
        if self._holder is not holder or not self._lock.locked():
            return False
        self._holder = None
        self._lock.release()
        return True

    @asynccontextmanager
    async def hold(self, holder: Any) -> AsyncIterator[None]:
        await self.acquire(holder)
        try:
            yield
        finally:
            self.release(holder)


class StreamState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    TERMINATED = "terminated"


class MessageStream:
    """
    Lazy, single-use async iterator of messages from one consumer.

    Each consumer.stream() call returns a fresh MessageStream. The lease is
    taken on first use (or on `async with`) and released when the stream
    terminates, is closed, is revoked by consumer.close(), or is garbage
    collected while still holding it.

    Attributes:
        idle_timeout: Seconds without a message after which the stream ends
        idle_timeout_expired: True when the stream ended because it was idle
        error: The error that ended the stream, if any
        messages_received: Number of messages yielded so far
    """

    def __init__(self, consumer: "Consumer", idle_timeout: float) -> None:
        self._consumer = consumer
        self.idle_timeout = idle_timeout
        self.state = StreamState.IDLE
        self.idle_timeout_expired = False
        self.error: BaseException | None = None
        self.messages_received = 0
        self._leased = False

    def __aiter__(self) -> "MessageStream":
        return self

    async def __anext__(self) -> "Message":
        if self.state == StreamState.TERMINATED:
            if self.error is not None and isinstance(self.error, ConsumerClosedError):
                raise ConsumerClosedError("Stream was closed by its consumer")
            raise StopAsyncIteration

        await self._checkout()
        self.state = StreamState.POLLING

        try:
            message = await self._consumer._next_message(self.idle_timeout)
        except BaseException as e:
            self.error = e
            self._finish()
            raise

        if message is None:
            self.idle_timeout_expired = True
            logger.info(
                f"No message on {self._consumer.topic}[{self._consumer.partition}] "
                f"for {self.idle_timeout}s, ending stream after {self.messages_received} message(s)"
            )
            self._finish()
            raise StopAsyncIteration

        self.messages_received += 1
        return message

    async def _checkout(self) -> None:
        if self._leased:
            return
        self._consumer._ensure_open()
        await self._consumer._lease.acquire(self)
        self._leased = True
        self._consumer._active_stream = self

    def _finish(self) -> None:
        self.state = StreamState.TERMINATED
        if self._leased:
            self._leased = False
            if self._consumer._active_stream is self:
                self._consumer._active_stream = None
            self._consumer._lease.release(self)

    def revoke(self) -> None:
        """End the stream from outside (consumer shutdown) and give back the lease."""
        if self.state != StreamState.TERMINATED:
            self.error = ConsumerClosedError("Stream was closed by its consumer")
        self._finish()

    async def aclose(self) -> None:
        self._finish()

    def __del__(self) -> None:
        # Dropped without aclose(), e.g. `break` out of a bare `async for`
        if self._leased:
            self._finish()

    async def __aenter__(self) -> "MessageStream":
        await self._checkout()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
