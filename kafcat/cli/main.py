"""
kafcat command line.

Usage:
    kafcat <command> [options]

Commands:
    consume         Print messages of one topic partition
    produce         Send lines read from stdin to a topic
    copy            Copy messages from one topic to another
    watermarks      Show low/high watermarks of a partition
    create-topic    Create a topic (replication factor 1)
    version         Show version

Offsets (-o/--offset):
    beginning | end | stored | <n> | -<n> | <b>..<e> | s@<ms> | s@<b>..<e>

Examples:
    kafcat consume -t events -o beginning -e
    kafcat consume -t events -o -10 --format json
    echo "k1:v1" | kafcat produce -t events -K :
    kafcat copy --from events --to events-backup -e
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, TextIO

from kafcat.config import Settings, configure, configure_logging
from kafcat.exceptions import ConfigurationError, KafcatError


# Output colors
class Colors:
    HEADER = '\033[95m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


def color(text: str, c: str) -> str:
    """Apply a color to text."""
    return f"{c}{text}{Colors.ENDC}"


def success(text: str) -> str:
    return color(text, Colors.GREEN)


def error(text: str) -> str:
    return color(text, Colors.FAIL)


def warning(text: str) -> str:
    return color(text, Colors.WARNING)


def info(text: str) -> str:
    return color(text, Colors.CYAN)


def bold(text: str) -> str:
    return color(text, Colors.BOLD)


# =============================================================================
# Helpers
# =============================================================================

def load_settings(args: argparse.Namespace) -> Settings:
    """Apply command line overrides on top of env/.env settings."""
    overrides: dict[str, Any] = {}
    if getattr(args, "brokers", None):
        overrides["kafka_bootstrap_servers"] = args.brokers
    if getattr(args, "engine", None):
        overrides["kafka_backend"] = args.engine
    if getattr(args, "verbose", 0):
        overrides["log_level"] = "DEBUG" if args.verbose > 1 else "INFO"

    settings = configure(**overrides)
    configure_logging(settings)
    return settings


def format_message(message: Any, fmt: str = "text", key_delimiter: str | None = None) -> str:
    """
    Render a message as one output line.

    text: payload, prefixed by key and delimiter when a delimiter is given
    json: Message.to_dict() as a JSON object
    """
    if fmt == "json":
        return json.dumps(message.to_dict(), ensure_ascii=False)

    payload = message.payload.decode("utf-8", errors="replace")
    if key_delimiter is not None:
        key = message.key.decode("utf-8", errors="replace")
        return f"{key}{key_delimiter}{payload}"
    return payload


def parse_line(line: str, fmt: str = "text", key_delimiter: str | None = None) -> Any:
    """
    Parse one input line into a Message.

    Raises:
        ConfigurationError: If a json line is not a JSON object
    """
    from kafcat.messaging import Message

    line = line.rstrip("\r\n")

    if fmt == "json":
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON input line: {e}", code="invalid_input") from e
        if not isinstance(data, dict):
            raise ConfigurationError("JSON input lines must be objects", code="invalid_input")
        return Message.from_dict(data)

    if key_delimiter is not None and key_delimiter in line:
        key, payload = line.split(key_delimiter, 1)
        return Message(key=key.encode("utf-8"), payload=payload.encode("utf-8"))
    return Message(payload=line.encode("utf-8"))


async def read_lines(stream: TextIO):
    """Yield lines from a blocking text stream without stalling the loop."""
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, stream.readline)
        if not line:
            return
        yield line


def consumer_config(args: argparse.Namespace, topic: str, settings: Settings):
    from kafcat.messaging import ConsumerConfig

    return ConsumerConfig.from_settings(
        topic,
        partition=args.partition,
        exit_on_done=args.exit,
        group_id=args.group,
        settings=settings,
    )


# =============================================================================
# Commands
# =============================================================================

def cmd_version(args: argparse.Namespace) -> int:
    """Show version."""
    from kafcat import __version__
    print(f"kafcat {bold(__version__)}")
    return 0


def cmd_consume(args: argparse.Namespace) -> int:
    """Print messages of one topic partition to stdout."""
    from kafcat.messaging import create_consumer, parse_offset

    settings = load_settings(args)
    spec = parse_offset(args.offset)

    async def consume() -> int:
        consumer = await create_consumer(consumer_config(args, args.topic, settings), settings=settings)
        count = 0
        try:
            await consumer.set_offset_and_subscribe(spec)
            async with consumer.stream() as stream:
                async for message in stream:
                    print(format_message(message, args.format, args.key_delimiter), flush=True)
                    count += 1
                    if args.count and count >= args.count:
                        break
        finally:
            await consumer.close()
        return count

    count = asyncio.run(consume())
    print(info(f"{count} message(s) consumed from {args.topic}"), file=sys.stderr)
    return 0


def cmd_produce(args: argparse.Namespace) -> int:
    """Send lines from stdin to a topic, one message per line."""
    from kafcat.messaging import ProducerConfig, create_producer

    settings = load_settings(args)

    async def produce() -> int:
        producer = await create_producer(
            ProducerConfig.from_settings(args.topic, settings=settings), settings=settings
        )
        count = 0
        try:
            async for line in read_lines(sys.stdin):
                if not line.strip():
                    continue
                await producer.write_one(parse_line(line, args.format, args.key_delimiter))
                count += 1
        finally:
            await producer.close()
        return count

    count = asyncio.run(produce())
    print(success(f"{count} message(s) sent to {args.topic}"), file=sys.stderr)
    return 0


def cmd_copy(args: argparse.Namespace) -> int:
    """Copy messages from one topic partition to another topic."""
    from kafcat.messaging import Message, ProducerConfig, create_consumer, create_producer, parse_offset

    settings = load_settings(args)
    spec = parse_offset(args.offset)

    async def copy() -> int:
        consumer = await create_consumer(consumer_config(args, args.source, settings), settings=settings)
        try:
            producer = await create_producer(
                ProducerConfig.from_settings(args.destination, settings=settings), settings=settings
            )
            try:
                await consumer.set_offset_and_subscribe(spec)

                async def forward(message: Message) -> None:
                    await producer.write_one(
                        Message(
                            key=message.key,
                            payload=message.payload,
                            timestamp=message.timestamp,
                            headers=message.headers,
                        )
                    )

                return await consumer.for_each(forward)
            finally:
                await producer.close()
        finally:
            await consumer.close()

    count = asyncio.run(copy())
    print(success(f"{count} message(s) copied from {args.source} to {args.destination}"), file=sys.stderr)
    return 0


def cmd_watermarks(args: argparse.Namespace) -> int:
    """Show low/high watermarks of a partition."""
    from kafcat.messaging import create_consumer

    settings = load_settings(args)

    async def watermarks() -> tuple[int, int]:
        consumer = await create_consumer(consumer_config(args, args.topic, settings), settings=settings)
        try:
            return await consumer.get_watermarks()
        finally:
            await consumer.close()

    low, high = asyncio.run(watermarks())
    partition = args.partition if args.partition is not None else 0
    if args.format == "json":
        print(json.dumps({"topic": args.topic, "partition": partition, "low": low, "high": high}))
    else:
        print(f"{args.topic}[{partition}] low={low} high={high} messages={high - low}")
    return 0


def cmd_create_topic(args: argparse.Namespace) -> int:
    """Create a topic."""
    from kafcat.messaging import AuthConfig, create_admin

    settings = load_settings(args)

    async def create_topic() -> bool:
        admin = await create_admin(AuthConfig.from_settings(settings), settings=settings)
        try:
            return await admin.create_topic(args.name, partitions=args.partitions)
        finally:
            await admin.close()

    if asyncio.run(create_topic()):
        print(success(f"Topic '{args.name}' created successfully."))
        print(info(f"  Partitions: {args.partitions}"))
        print(info("  Replication: 1"))
    else:
        print(warning(f"Topic '{args.name}' already exists."))
    return 0


# =============================================================================
# Parser
# =============================================================================

def _add_connection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-b", "--brokers", help="Bootstrap servers, comma-separated (default: KAFKA_BOOTSTRAP_SERVERS)")
    parser.add_argument("--engine", help="Kafka engine: confluent, aiokafka, memory (default: KAFKA_BACKEND)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Log more (-vv for debug)")


def _add_consumer_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-p", "--partition", type=int, default=None, help="Partition (default: 0)")
    parser.add_argument("-o", "--offset", default="beginning", help="Start offset (default: beginning)")
    parser.add_argument("-e", "--exit", action="store_true", help="Exit once the partition has been idle for a few seconds")
    parser.add_argument("-g", "--group", help="Consumer group (default: KAFKA_GROUP_ID)")


def _add_format_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--format", choices=["text", "json"], default="text", help="Line format (default: text)")
    parser.add_argument("-K", "--key-delimiter", help="Delimiter between key and payload in text lines")


def create_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="kafcat",
        description="kafcat - read, write and copy Kafka messages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  kafcat consume -t events -o beginning -e     Dump a partition and exit
  kafcat consume -t events -o s@1700000000000  Start at a timestamp
  kafcat produce -t events -K :                Send key:payload lines
  kafcat watermarks -t events                  Show low/high offsets
  kafcat create-topic events --partitions 3    Create a topic
        """,
    )

    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # consume
    consume_parser = subparsers.add_parser("consume", help="Print messages of a topic partition")
    consume_parser.add_argument("-t", "--topic", required=True, help="Topic to read")
    consume_parser.add_argument("-c", "--count", type=int, default=0, help="Stop after this many messages")
    _add_consumer_args(consume_parser)
    _add_format_args(consume_parser)
    _add_connection_args(consume_parser)
    consume_parser.set_defaults(func=cmd_consume)

    # produce
    produce_parser = subparsers.add_parser("produce", help="Send stdin lines to a topic")
    produce_parser.add_argument("-t", "--topic", required=True, help="Destination topic")
    _add_format_args(produce_parser)
    _add_connection_args(produce_parser)
    produce_parser.set_defaults(func=cmd_produce)

    # copy
    copy_parser = subparsers.add_parser("copy", help="Copy messages between topics")
    copy_parser.add_argument("--from", dest="source", required=True, help="Source topic")
    copy_parser.add_argument("--to", dest="destination", required=True, help="Destination topic")
    _add_consumer_args(copy_parser)
    _add_connection_args(copy_parser)
    copy_parser.set_defaults(func=cmd_copy)

    # watermarks
    watermarks_parser = subparsers.add_parser("watermarks", help="Show low/high watermarks")
    watermarks_parser.add_argument("-t", "--topic", required=True, help="Topic")
    watermarks_parser.add_argument("-p", "--partition", type=int, default=None, help="Partition (default: 0)")
    watermarks_parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    watermarks_parser.add_argument("-g", "--group", help=argparse.SUPPRESS)
    watermarks_parser.set_defaults(exit=True)
    _add_connection_args(watermarks_parser)
    watermarks_parser.set_defaults(func=cmd_watermarks)

    # create-topic
    create_parser_ = subparsers.add_parser("create-topic", help="Create a topic")
    create_parser_.add_argument("name", help="Topic name")
    create_parser_.add_argument("--partitions", type=int, default=1, help="Number of partitions (default: 1)")
    _add_connection_args(create_parser_)
    create_parser_.set_defaults(func=cmd_create_topic)

    # version
    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)

    return parser


def cli(args: list[str] | None = None) -> int:
    """Run the CLI and return the exit code."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.version:
        return cmd_version(parsed_args)

    if not parsed_args.command:
        parser.print_help()
        return 0

    try:
        return parsed_args.func(parsed_args)
    except KafcatError as e:
        print(error(f"Error: {e.message}"), file=sys.stderr)
        for name, value in e.details.items():
            print(f"  {name}: {value}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print(warning("Interrupted."), file=sys.stderr)
        return 130


def main():
    """Entry point."""
    sys.exit(cli())


if __name__ == "__main__":
    main()
