"""
Thread offloading for blocking confluent-kafka calls.

librdkafka calls (poll, offsets_for_times, get_watermark_offsets, flush,
admin futures) block the calling thread. Each engine handle gets its own
single-thread executor, so calls on one handle run strictly in order and
never stall the event loop or another handle.
"""

from __future__ import annotations

import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, TypeVar


T = TypeVar("T")


class HandleExecutor:
    """Single worker thread bound to one confluent-kafka handle."""

    def __init__(self, name: str):
        self.name = name
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"kafcat-{name}")

    async def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args, **kwargs))

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
