"""
Tests for offset specifications, resolution and parsing.
"""

import logging

import pytest

from kafcat.exceptions import BrokerRoundTripError, ConfigurationError, InvariantViolation
from kafcat.messaging.offsets import (
    Beginning,
    End,
    Offset,
    OffsetInterval,
    OffsetKind,
    ResolvedOffset,
    Stored,
    TimeInterval,
    parse_offset,
    resolve_offset,
)


class RecordingLookup:
    """Fake offsets-for-times round-trip."""

    def __init__(self, response=None, error=None):
        self.calls = []
        self.response = response
        self.error = error

    async def __call__(self, topic, partition, timestamp_ms):
        self.calls.append((topic, partition, timestamp_ms))
        if self.error is not None:
            raise self.error
        return self.response


async def resolve(spec, lookup=None):
    return await resolve_offset(spec, "events", 0, lookup or RecordingLookup())


class TestResolveOffset:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "spec, expected",
        [
            (Beginning(), ResolvedOffset(OffsetKind.BEGINNING)),
            (End(), ResolvedOffset(OffsetKind.END)),
            (Stored(), ResolvedOffset(OffsetKind.STORED)),
            (Offset(5), ResolvedOffset.absolute(5)),
            (Offset(0), ResolvedOffset.absolute(0)),
            (Offset(-1), ResolvedOffset.tail(0)),
            (Offset(-11), ResolvedOffset.tail(10)),
            (OffsetInterval(7, 9), ResolvedOffset.absolute(7)),
        ],
    )
    async def test_no_round_trip(self, spec, expected):
        """Everything but TimeInterval resolves locally."""
        lookup = RecordingLookup()
        assert await resolve(spec, lookup) == expected
        assert lookup.calls == []

    @pytest.mark.asyncio
    async def test_time_interval_looks_up_once(self):
        lookup = RecordingLookup(response={("events", 0): 42})
        resolved = await resolve(TimeInterval(1_700_000_000_000), lookup)
        assert resolved == ResolvedOffset.absolute(42)
        assert lookup.calls == [("events", 0, 1_700_000_000_000)]

    @pytest.mark.asyncio
    async def test_time_after_last_message_resolves_to_end(self):
        lookup = RecordingLookup(response={("events", 0): -1})
        assert await resolve(TimeInterval(5), lookup) == ResolvedOffset(OffsetKind.END)

    @pytest.mark.asyncio
    async def test_missing_partition_is_invariant_violation(self):
        lookup = RecordingLookup(response={("events", 1): 3})
        with pytest.raises(InvariantViolation):
            await resolve(TimeInterval(5), lookup)

    @pytest.mark.asyncio
    async def test_lookup_error_propagates(self):
        lookup = RecordingLookup(error=BrokerRoundTripError("timed out"))
        with pytest.raises(BrokerRoundTripError):
            await resolve(TimeInterval(5), lookup)

    @pytest.mark.asyncio
    async def test_end_bound_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="kafcat.messaging.offsets"):
            await resolve(OffsetInterval(1, 10))
        assert "not supported yet" in caplog.text

    @pytest.mark.asyncio
    async def test_no_warning_without_end_bound(self, caplog):
        with caplog.at_level(logging.WARNING, logger="kafcat.messaging.offsets"):
            await resolve(OffsetInterval(1))
        assert caplog.text == ""

    @pytest.mark.asyncio
    async def test_unknown_spec(self):
        with pytest.raises(ConfigurationError):
            await resolve("beginning")


class TestOffsetHelpers:

    def test_absolute(self):
        assert Offset.absolute(3) == Offset(3)
        with pytest.raises(ConfigurationError):
            Offset.absolute(-1)

    def test_from_tail(self):
        offset = Offset.from_tail(-3)
        assert not offset.is_absolute
        assert offset.tail_count == 2
        with pytest.raises(ConfigurationError):
            Offset.from_tail(0)

    def test_resolved_str(self):
        assert str(ResolvedOffset(OffsetKind.BEGINNING)) == "beginning"
        assert str(ResolvedOffset.tail(4)) == "tail(4)"


class TestParseOffset:

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("beginning", Beginning()),
            ("END", End()),
            ("stored", Stored()),
            ("42", Offset(42)),
            ("-10", Offset(-10)),
            ("5..", OffsetInterval(5)),
            ("5..9", OffsetInterval(5, 9)),
            ("s@1000", TimeInterval(1000)),
            ("s@1000..2000", TimeInterval(1000, 2000)),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_offset(text) == expected

    @pytest.mark.parametrize("text", ["", "start", "-1..5", "9..5", "s@2000..1000", "s@", "1.5"])
    def test_invalid(self, text):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_offset(text)
        assert exc_info.value.code == "invalid_offset"
