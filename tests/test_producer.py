"""
Producer and admin behaviour on the in-memory engine.
"""

import pytest

from kafcat.exceptions import BrokerRoundTripError, ClientConnectionError, KafcatError, TopicAdminError
from kafcat.messaging import (
    AuthConfig,
    Message,
    ProducerConfig,
    create_admin,
    create_producer,
)


class TestProducer:

    @pytest.mark.asyncio
    async def test_write_one(self, kafka):
        producer = await create_producer(ProducerConfig(topic="events"))
        await producer.write_one(Message(key=b"k1", payload=b"v1"))
        await producer.close()

        kafka.assert_sent("events", count=1)
        kafka.assert_sent_with("events", key=b"k1", value=b"v1")
        assert producer.sent_count == 1

    @pytest.mark.asyncio
    async def test_empty_key_and_payload_are_omitted(self, kafka):
        """Empty key/payload are not set on the record at all."""
        producer = await create_producer(ProducerConfig(topic="events"))
        await producer.write_one(Message(payload=b"only-payload"))
        await producer.write_one(Message(key=b"only-key"))
        await producer.close()

        first, second = kafka.get_messages("events")
        assert first.key is None and first.value == b"only-payload"
        assert second.key == b"only-key" and second.value is None

    @pytest.mark.asyncio
    async def test_headers_and_timestamp_forwarded(self, kafka):
        producer = await create_producer(ProducerConfig(topic="events"))
        await producer.write_one(Message(payload=b"v", headers={"trace": b"abc"}, timestamp=1234))
        await producer.write_one(Message(payload=b"w"))
        await producer.close()

        first, second = kafka.get_messages("events")
        assert first.headers == {"trace": b"abc"}
        assert first.timestamp == 1234
        assert second.headers is None
        assert second.timestamp is None

    @pytest.mark.asyncio
    async def test_messages_go_to_configured_topic_only(self, kafka):
        producer = await create_producer(ProducerConfig(topic="a"))
        await producer.write_one(Message(payload=b"x"))
        await producer.close()
        kafka.assert_sent("a", count=1)
        kafka.assert_not_sent("b")

    @pytest.mark.asyncio
    async def test_delivery_failure(self, kafka):
        producer = await create_producer(ProducerConfig(topic="events"))
        kafka.inject_error("send", "message timed out")
        with pytest.raises(BrokerRoundTripError) as exc_info:
            await producer.write_one(Message(payload=b"v"))
        assert exc_info.value.details["topic"] == "events"
        assert producer.sent_count == 0

        # No retry, but the producer stays usable
        await producer.write_one(Message(payload=b"v"))
        kafka.assert_sent("events", count=1)
        await producer.close()

    @pytest.mark.asyncio
    async def test_unknown_topic_without_auto_create(self, kafka):
        kafka.auto_create_topics = False
        producer = await create_producer(ProducerConfig(topic="missing"))
        with pytest.raises(BrokerRoundTripError):
            await producer.write_one(Message(payload=b"v"))
        await producer.close()

    @pytest.mark.asyncio
    async def test_connection_failure(self, kafka):
        kafka.inject_error("connect", "unreachable")
        with pytest.raises(ClientConnectionError):
            await create_producer(ProducerConfig(topic="events"))

    @pytest.mark.asyncio
    async def test_write_after_close(self, kafka):
        producer = await create_producer(ProducerConfig(topic="events"))
        await producer.close()
        with pytest.raises(KafcatError) as exc_info:
            await producer.write_one(Message(payload=b"v"))
        assert exc_info.value.code == "producer_closed"

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, kafka):
        async with await create_producer(ProducerConfig(topic="events")) as producer:
            await producer.write_one(Message(payload=b"v"))
            assert kafka.open_clients == 1
        assert kafka.open_clients == 0


class TestAdmin:

    @pytest.mark.asyncio
    async def test_create_topic(self, kafka):
        admin = await create_admin(AuthConfig())
        assert await admin.create_topic("events", partitions=3) is True
        assert len(kafka.topics["events"]) == 3
        await admin.close()

    @pytest.mark.asyncio
    async def test_already_exists_returns_false(self, kafka):
        kafka.create_topic("events")
        admin = await create_admin(AuthConfig())
        assert await admin.create_topic("events") is False
        await admin.close()

    @pytest.mark.asyncio
    async def test_failure_is_topic_admin_error(self, kafka):
        kafka.inject_error("create_topic", "not controller")
        admin = await create_admin(AuthConfig())
        with pytest.raises(TopicAdminError) as exc_info:
            await admin.create_topic("events")
        assert exc_info.value.details["topic"] == "events"
        await admin.close()

    @pytest.mark.asyncio
    async def test_invalid_partition_count(self, kafka):
        admin = await create_admin(AuthConfig())
        with pytest.raises(TopicAdminError):
            await admin.create_topic("events", partitions=0)
        assert "events" not in kafka.topics
        await admin.close()

    def test_replication_factor_is_one(self):
        from kafcat.messaging import Admin
        assert Admin.replication_factor == 1
