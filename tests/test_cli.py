"""
Tests for the kafcat command line.

Commands run on the in-memory engine; the cluster survives the
asyncio.run() of each command, so tests seed and inspect it directly.
"""

import io
import json

import pytest

from kafcat.cli.main import cli, create_parser, format_message, parse_line
from kafcat.exceptions import ConfigurationError
from kafcat.messaging import Message


class TestFormatting:

    def test_text_payload_only(self):
        assert format_message(Message(key=b"k", payload=b"hello")) == "hello"

    def test_text_with_key_delimiter(self):
        assert format_message(Message(key=b"k", payload=b"hello"), key_delimiter=":") == "k:hello"

    def test_json(self):
        message = Message(key=b"k", payload=b"v", timestamp=5, topic="events", partition=0, offset=2)
        data = json.loads(format_message(message, fmt="json"))
        assert data["key"] == "k"
        assert data["payload"] == "v"
        assert data["offset"] == 2

    def test_parse_text_line(self):
        message = parse_line("hello\n")
        assert message.key == b""
        assert message.payload == b"hello"

    def test_parse_keyed_line(self):
        message = parse_line("k1:v1:rest\n", key_delimiter=":")
        assert message.key == b"k1"
        assert message.payload == b"v1:rest"

    def test_parse_line_without_delimiter(self):
        """A line lacking the delimiter is all payload."""
        message = parse_line("plain", key_delimiter=":")
        assert message.key == b""
        assert message.payload == b"plain"

    def test_parse_json_line(self):
        message = parse_line('{"key": "k", "payload": "v", "headers": {"h": "x"}}', fmt="json")
        assert message == Message(key=b"k", payload=b"v", headers={"h": b"x"})

    @pytest.mark.parametrize("line", ["not json", "[1, 2]"])
    def test_parse_invalid_json(self, line):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_line(line, fmt="json")
        assert exc_info.value.code == "invalid_input"


class TestParser:

    def test_consume_defaults(self):
        args = create_parser().parse_args(["consume", "-t", "events"])
        assert args.offset == "beginning"
        assert args.partition is None
        assert args.exit is False
        assert args.count == 0

    def test_topic_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["consume"])


class TestCommands:

    def test_version(self, capsys):
        assert cli(["version"]) == 0
        assert "kafcat" in capsys.readouterr().out

    def test_version_flag(self, capsys):
        assert cli(["--version"]) == 0
        assert "kafcat" in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys):
        assert cli([]) == 0
        assert "usage" in capsys.readouterr().out

    def test_consume(self, cli_env, kafka, capsys):
        for i in range(3):
            kafka.append("events", Message(key=f"k{i}".encode(), payload=f"v{i}".encode()), partition=0)

        assert cli(["consume", "-t", "events", "-e", "-K", "="]) == 0

        captured = capsys.readouterr()
        assert captured.out.splitlines() == ["k0=v0", "k1=v1", "k2=v2"]
        assert "3 message(s) consumed" in captured.err

    def test_consume_count_and_offset(self, cli_env, kafka, capsys):
        for i in range(5):
            kafka.append("events", Message(payload=f"v{i}".encode()))

        assert cli(["consume", "-t", "events", "-o", "2", "-c", "2"]) == 0

        assert capsys.readouterr().out.splitlines() == ["v2", "v3"]

    def test_consume_tail_json(self, cli_env, kafka, capsys):
        for i in range(5):
            kafka.append("events", Message(payload=f"v{i}".encode()))

        assert cli(["consume", "-t", "events", "-o", "-3", "-e", "--format", "json"]) == 0

        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert [line["payload"] for line in lines] == ["v3", "v4"]

    def test_produce(self, cli_env, kafka, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO("k1:v1\n\nplain\n"))

        assert cli(["produce", "-t", "events", "-K", ":"]) == 0

        first, second = kafka.get_messages("events")
        assert (first.key, first.value) == (b"k1", b"v1")
        assert (second.key, second.value) == (None, b"plain")

    def test_produce_invalid_json(self, cli_env, kafka, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("{broken\n"))

        assert cli(["produce", "-t", "events", "--format", "json"]) == 1

        assert "Invalid JSON" in capsys.readouterr().err
        kafka.assert_not_sent("events")

    def test_copy(self, cli_env, kafka, capsys):
        kafka.append("source", Message(key=b"a", payload=b"1", headers={"h": b"x"}))
        kafka.append("source", Message(key=b"b", payload=b"2"))

        assert cli(["copy", "--from", "source", "--to", "backup", "-e"]) == 0

        copied = kafka.get_messages("backup")
        assert [(m.key, m.value) for m in copied] == [(b"a", b"1"), (b"b", b"2")]
        assert copied[0].headers == {"h": b"x"}
        assert "2 message(s) copied" in capsys.readouterr().err

    def test_watermarks_json(self, cli_env, kafka, capsys):
        for _ in range(4):
            kafka.append("events", Message(payload=b"v"))

        assert cli(["watermarks", "-t", "events", "--format", "json"]) == 0

        assert json.loads(capsys.readouterr().out) == {
            "topic": "events",
            "partition": 0,
            "low": 0,
            "high": 4,
        }

    def test_watermarks_text(self, cli_env, kafka, capsys):
        kafka.append("events", Message(payload=b"v"))
        assert cli(["watermarks", "-t", "events"]) == 0
        assert capsys.readouterr().out.strip() == "events[0] low=0 high=1 messages=1"

    def test_watermarks_unknown_topic(self, cli_env, capsys):
        assert cli(["watermarks", "-t", "missing"]) == 1
        assert "Error" in capsys.readouterr().err

    def test_create_topic(self, cli_env, kafka, capsys):
        assert cli(["create-topic", "orders", "--partitions", "3"]) == 0
        assert len(kafka.topics["orders"]) == 3
        assert "created" in capsys.readouterr().out

    def test_create_existing_topic(self, cli_env, kafka, capsys):
        kafka.create_topic("orders")
        assert cli(["create-topic", "orders"]) == 0
        assert "already exists" in capsys.readouterr().out

    def test_sasl_is_rejected(self, cli_env, monkeypatch, capsys):
        monkeypatch.setenv("KAFKA_SECURITY_PROTOCOL", "SASL_SSL")

        assert cli(["consume", "-t", "events", "-e"]) == 1

        assert "SASL" in capsys.readouterr().err

    def test_engine_flag_overrides_environment(self, cli_env, kafka, monkeypatch, capsys):
        monkeypatch.setenv("KAFKA_BACKEND", "does-not-exist")
        kafka.append("events", Message(payload=b"v"))

        assert cli(["consume", "-t", "events", "-e", "--engine", "memory"]) == 0
        assert capsys.readouterr().out.splitlines() == ["v"]
