"""
Offset specifications and offset resolution.

An offset specification says where a consumer should start reading; it is
what a user types. Resolution turns it into a ResolvedOffset, an
engine-neutral concrete position that each engine knows how to apply to
its partition assignment.

Specifications:
    Beginning()                 earliest available offset
    End()                       next offset to be written
    Stored()                    last committed offset of the group
    Offset(n), n >= 0           absolute offset n
    Offset(n), n < 0            -n-1 messages before the tail
    OffsetInterval(b, e)        starts at absolute offset b
    TimeInterval(b_ms, e_ms)    starts at the first offset with timestamp >= b_ms

Only TimeInterval needs a broker round-trip. The end bounds of the two
intervals are accepted but not applied yet.

Textual syntax (parse_offset):
    beginning | end | stored | <n> | -<n> | <b>..<e> | s@<ms> | s@<b>..<e>
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Union

from kafcat.exceptions import ConfigurationError, InvariantViolation


logger = logging.getLogger(__name__)


# =============================================================================
# Offset specifications
# =============================================================================

@dataclass(frozen=True)
class Beginning:
    """Earliest available offset."""


@dataclass(frozen=True)
class End:
    """Tail of the partition: only messages written from now on."""


@dataclass(frozen=True)
class Stored:
    """Last committed offset of the consumer group."""


@dataclass(frozen=True)
class Offset:
    """
    A raw numeric offset.

    The sign selects the reading: value >= 0 is an absolute offset,
    value < 0 counts back from the tail (-1 is the tail itself).
    """

    value: int

    @property
    def is_absolute(self) -> bool:
        return self.value >= 0

    @property
    def tail_count(self) -> int:
        """Number of messages before the tail; only meaningful when value < 0."""
        return -self.value - 1

    @classmethod
    def absolute(cls, offset: int) -> "Offset":
        if offset < 0:
            raise ConfigurationError(f"Absolute offset must be >= 0, got {offset}", code="invalid_offset")
        return cls(offset)

    @classmethod
    def from_tail(cls, value: int) -> "Offset":
        if value >= 0:
            raise ConfigurationError(f"Tail offset must be < 0, got {value}", code="invalid_offset")
        return cls(value)


@dataclass(frozen=True)
class OffsetInterval:
    """Offset range. `end` is reserved for a future stop-at-offset policy."""

    begin: int
    end: int | None = None


@dataclass(frozen=True)
class TimeInterval:
    """Timestamp range in epoch milliseconds. `end_ms` is reserved."""

    begin_ms: int
    end_ms: int | None = None


OffsetSpec = Union[Beginning, End, Stored, Offset, OffsetInterval, TimeInterval]


# =============================================================================
# Resolved offsets
# =============================================================================

class OffsetKind(str, Enum):
    BEGINNING = "beginning"
    END = "end"
    STORED = "stored"
    ABSOLUTE = "absolute"
    TAIL = "tail"


@dataclass(frozen=True)
class ResolvedOffset:
    """
    Concrete partition position.

    Attributes:
        kind: Which sentinel (or absolute/tail) the engine must apply
        value: The absolute offset for ABSOLUTE, the count for TAIL, else 0
    """

    kind: OffsetKind
    value: int = 0

    @classmethod
    def absolute(cls, offset: int) -> "ResolvedOffset":
        return cls(OffsetKind.ABSOLUTE, offset)

    @classmethod
    def tail(cls, count: int) -> "ResolvedOffset":
        return cls(OffsetKind.TAIL, count)

    def __str__(self) -> str:
        if self.kind in (OffsetKind.ABSOLUTE, OffsetKind.TAIL):
            return f"{self.kind.value}({self.value})"
        return self.kind.value


# (topic, partition, timestamp_ms) -> {(topic, partition): offset}
TimeLookup = Callable[[str, int, int], Awaitable[dict[tuple[str, int], int]]]


async def resolve_offset(
    spec: OffsetSpec,
    topic: str,
    partition: int,
    lookup_time: TimeLookup,
) -> ResolvedOffset:
    """
    Resolve an offset specification for one topic/partition.

    Args:
        spec: Offset specification
        topic: Assigned topic
        partition: Assigned partition
        lookup_time: Engine offsets-for-times round-trip, only awaited for
            TimeInterval. Must return the offsets keyed by (topic, partition);
            a negative offset means no message at or after the timestamp.

    Returns:
        ResolvedOffset

    Raises:
        BrokerRoundTripError: Propagated from lookup_time
        InvariantViolation: If the lookup response lacks the requested partition
    """
    if isinstance(spec, Beginning):
        return ResolvedOffset(OffsetKind.BEGINNING)
    if isinstance(spec, End):
        return ResolvedOffset(OffsetKind.END)
    if isinstance(spec, Stored):
        return ResolvedOffset(OffsetKind.STORED)
    if isinstance(spec, Offset):
        if spec.is_absolute:
            return ResolvedOffset.absolute(spec.value)
        return ResolvedOffset.tail(spec.tail_count)
    if isinstance(spec, OffsetInterval):
        if spec.end is not None:
            logger.warning(
                f"Offset interval end bound {spec.end} is not supported yet; "
                f"reading from offset {spec.begin} without a stop offset"
            )
        return ResolvedOffset.absolute(spec.begin)
    if isinstance(spec, TimeInterval):
        if spec.end_ms is not None:
            logger.warning(
                f"Time interval end bound {spec.end_ms} is not supported yet; "
                f"reading from timestamp {spec.begin_ms} without a stop time"
            )
        offsets = await lookup_time(topic, partition, spec.begin_ms)
        if (topic, partition) not in offsets:
            raise InvariantViolation(
                f"Offsets-for-times response has no entry for {topic}[{partition}]",
                details={"topic": topic, "partition": partition, "returned": sorted(offsets)},
            )
        offset = offsets[(topic, partition)]
        logger.debug(f"Timestamp {spec.begin_ms} resolved to offset {offset} on {topic}[{partition}]")
        if offset < 0:
            return ResolvedOffset(OffsetKind.END)
        return ResolvedOffset.absolute(offset)

    raise ConfigurationError(f"Unknown offset specification: {spec!r}", code="invalid_offset")


# =============================================================================
# Textual syntax
# =============================================================================

_INT = r"-?\d+"
_RANGE_RE = re.compile(rf"^({_INT})\.\.({_INT})?$")
_TIME_RE = re.compile(rf"^s@({_INT})(?:\.\.({_INT})?)?$")


def parse_offset(text: str) -> OffsetSpec:
    """
    Parse the textual offset syntax used on the command line.

    Examples:
        >>> parse_offset("beginning")
        Beginning()
        >>> parse_offset("-1")
        Offset(value=-1)
        >>> parse_offset("10..20")
        OffsetInterval(begin=10, end=20)
        >>> parse_offset("s@1700000000000")
        TimeInterval(begin_ms=1700000000000, end_ms=None)

    Raises:
        ConfigurationError: If the text is not a valid offset
    """
    value = text.strip().lower()

    if value == "beginning":
        return Beginning()
    if value == "end":
        return End()
    if value == "stored":
        return Stored()

    if re.fullmatch(_INT, value):
        return Offset(int(value))

    match = _RANGE_RE.match(value)
    if match:
        begin = int(match.group(1))
        end = int(match.group(2)) if match.group(2) is not None else None
        if begin < 0:
            raise ConfigurationError(f"Offset interval must start at an offset >= 0: {text!r}", code="invalid_offset")
        if end is not None and end < begin:
            raise ConfigurationError(f"Offset interval end is before its start: {text!r}", code="invalid_offset")
        return OffsetInterval(begin, end)

    match = _TIME_RE.match(value)
    if match:
        begin = int(match.group(1))
        end = int(match.group(2)) if match.group(2) is not None else None
        if end is not None and end < begin:
            raise ConfigurationError(f"Time interval end is before its start: {text!r}", code="invalid_offset")
        return TimeInterval(begin, end)

    raise ConfigurationError(
        f"Invalid offset {text!r}: expected beginning, end, stored, <n>, -<n>, "
        "<begin>..<end> or s@<timestamp_ms>[..<timestamp_ms>]",
        code="invalid_offset",
    )
