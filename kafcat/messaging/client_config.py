"""
Client configuration builder.

Maps an AuthConfig to the connection parameters of the underlying engine.
This is a pure mapping: no file is opened and no socket is created here.

    params = build_client_params(auth)
    Consumer({**params.to_librdkafka(), "group.id": "g"})    # confluent-kafka
    AIOKafkaConsumer(**params.to_aiokafka())                  # aiokafka
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from kafcat.exceptions import ConfigurationError, UnsupportedSecurityProtocol
from kafcat.messaging.config import AuthConfig, SecurityProtocol


@dataclass(frozen=True)
class ClientParams:
    """
    Engine-neutral connection parameters.

    Attributes:
        bootstrap_servers: Comma-separated broker list
        security_protocol: PLAINTEXT or SSL
        client_id: Client ID reported to the brokers
        ssl_cafile: CA certificate path (SSL only)
        ssl_certfile: Client certificate path (SSL only)
        ssl_keyfile: Client key path (SSL only)
    """

    bootstrap_servers: str
    security_protocol: SecurityProtocol
    client_id: str
    ssl_cafile: str | None = None
    ssl_certfile: str | None = None
    ssl_keyfile: str | None = None

    def to_librdkafka(self) -> dict[str, Any]:
        """Dotted librdkafka keys, as used by confluent-kafka."""
        config: dict[str, Any] = {
            "bootstrap.servers": self.bootstrap_servers,
            "client.id": self.client_id,
        }
        if self.security_protocol.uses_tls:
            config["security.protocol"] = self.security_protocol.value
            config["ssl.ca.location"] = self.ssl_cafile
            config["ssl.certificate.location"] = self.ssl_certfile
            config["ssl.key.location"] = self.ssl_keyfile
        return config

    def to_aiokafka(self) -> dict[str, Any]:
        """
        aiokafka keyword arguments.

        The SSL context itself is created by the aiokafka engine from the
        ssl_* paths (see kafcat.messaging.kafka.build_ssl_context).
        """
        return {
            "bootstrap_servers": self.bootstrap_servers,
            "client_id": self.client_id,
            "security_protocol": self.security_protocol.value,
        }


def build_client_params(auth: AuthConfig) -> ClientParams:
    """
    Translate an AuthConfig into engine connection parameters.

    Args:
        auth: Brokers and security configuration

    Returns:
        ClientParams

    Raises:
        UnsupportedSecurityProtocol: For SASL_PLAINTEXT and SASL_SSL
        ConfigurationError: For an empty broker list, or SSL without a TLS block
    """
    protocol = SecurityProtocol(auth.security_protocol)

    if protocol.uses_sasl:
        raise UnsupportedSecurityProtocol(protocol.value)

    brokers = [b.strip() for b in auth.brokers if b and b.strip()]
    if not brokers:
        raise ConfigurationError("At least one broker must be configured", code="missing_brokers")

    if not protocol.uses_tls:
        return ClientParams(
            bootstrap_servers=",".join(brokers),
            security_protocol=protocol,
            client_id=auth.client_id,
        )

    if auth.tls is None:
        raise ConfigurationError(
            f"Security protocol {protocol.value} requires a TLS block "
            "(ca_file, client_cert_file, client_key_file)",
            code="missing_tls",
            details={"security_protocol": protocol.value},
        )

    return ClientParams(
        bootstrap_servers=",".join(brokers),
        security_protocol=protocol,
        client_id=auth.client_id,
        ssl_cafile=auth.tls.ca_file,
        ssl_certfile=auth.tls.client_cert_file,
        ssl_keyfile=auth.tls.client_key_file,
    )
