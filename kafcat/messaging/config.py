"""
Connection, consumer and producer configuration.

These are plain data holders. Validation of the security invariants
(TLS material present for SSL, SASL rejected) happens in
kafcat.messaging.client_config so that it fails before any engine is
touched, with a ConfigurationError rather than a pydantic error.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from kafcat.config import Settings, get_settings


class SecurityProtocol(str, Enum):
    """Kafka security protocols."""

    PLAINTEXT = "PLAINTEXT"
    SASL_PLAINTEXT = "SASL_PLAINTEXT"
    SSL = "SSL"
    SASL_SSL = "SASL_SSL"

    @property
    def uses_tls(self) -> bool:
        return self in (SecurityProtocol.SSL, SecurityProtocol.SASL_SSL)

    @property
    def uses_sasl(self) -> bool:
        return self in (SecurityProtocol.SASL_PLAINTEXT, SecurityProtocol.SASL_SSL)


class TlsConfig(BaseModel):
    """Paths of the TLS material. Files are loaded by the engine, not here."""

    model_config = ConfigDict(frozen=True)

    ca_file: str
    client_cert_file: str
    client_key_file: str


class AuthConfig(BaseModel):
    """
    Brokers and security settings shared by consumers and producers.

    Example:
        auth = AuthConfig(
            brokers=["kafka:9093"],
            security_protocol=SecurityProtocol.SSL,
            tls=TlsConfig(ca_file="ca.pem", client_cert_file="c.pem", client_key_file="k.pem"),
        )
    """

    model_config = ConfigDict(frozen=True)

    brokers: list[str] = Field(default_factory=lambda: ["localhost:9092"])
    security_protocol: SecurityProtocol = SecurityProtocol.PLAINTEXT
    tls: TlsConfig | None = None
    client_id: str = "kafcat"

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AuthConfig":
        """
        Build from Settings.

        The TLS block is only created when all three paths are set; a
        partial block is treated as missing.
        """
        settings = settings or get_settings()
        tls = None
        if settings.kafka_ssl_cafile and settings.kafka_ssl_certfile and settings.kafka_ssl_keyfile:
            tls = TlsConfig(
                ca_file=settings.kafka_ssl_cafile,
                client_cert_file=settings.kafka_ssl_certfile,
                client_key_file=settings.kafka_ssl_keyfile,
            )
        return cls(
            brokers=settings.brokers,
            security_protocol=SecurityProtocol(settings.kafka_security_protocol),
            tls=tls,
            client_id=settings.kafka_client_id,
        )


class ConsumerConfig(BaseModel):
    """
    Configuration of a single-partition, manually assigned consumer.

    Attributes:
        group_id: Consumer group (only used for stored offsets, never committed)
        topic: Topic to read
        partition: Partition to read (defaults to 0)
        exit_on_done: End the stream once the partition has been idle for
            the short idle timeout instead of tailing it
        auth: Brokers and security
    """

    model_config = ConfigDict(frozen=True)

    group_id: str = "kafcat"
    topic: str
    partition: int | None = Field(default=None, ge=0)
    exit_on_done: bool = False
    auth: AuthConfig = Field(default_factory=AuthConfig)

    @property
    def brokers(self) -> list[str]:
        return self.auth.brokers

    @property
    def effective_partition(self) -> int:
        return self.partition if self.partition is not None else 0

    @classmethod
    def from_settings(
        cls,
        topic: str,
        partition: int | None = None,
        exit_on_done: bool = False,
        group_id: str | None = None,
        settings: Settings | None = None,
    ) -> "ConsumerConfig":
        settings = settings or get_settings()
        return cls(
            group_id=group_id or settings.kafka_group_id,
            topic=topic,
            partition=partition,
            exit_on_done=exit_on_done,
            auth=AuthConfig.from_settings(settings),
        )


class ProducerConfig(BaseModel):
    """Configuration of a producer bound to one destination topic."""

    model_config = ConfigDict(frozen=True)

    topic: str
    auth: AuthConfig = Field(default_factory=AuthConfig)

    @property
    def brokers(self) -> list[str]:
        return self.auth.brokers

    @classmethod
    def from_settings(cls, topic: str, settings: Settings | None = None) -> "ProducerConfig":
        settings = settings or get_settings()
        return cls(topic=topic, auth=AuthConfig.from_settings(settings))
