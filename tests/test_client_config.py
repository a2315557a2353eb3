"""
Tests for the client configuration builder.
"""

import pytest

from kafcat.exceptions import ConfigurationError, UnsupportedSecurityProtocol
from kafcat.messaging.client_config import build_client_params
from kafcat.messaging.config import AuthConfig, SecurityProtocol, TlsConfig


TLS = TlsConfig(ca_file="ca.pem", client_cert_file="cert.pem", client_key_file="key.pem")


class TestBuildClientParams:

    def test_plaintext(self):
        """PLAINTEXT only needs brokers."""
        params = build_client_params(AuthConfig(brokers=["k1:9092", "k2:9092"], client_id="cli"))
        assert params.bootstrap_servers == "k1:9092,k2:9092"
        assert params.security_protocol == SecurityProtocol.PLAINTEXT
        assert params.to_librdkafka() == {"bootstrap.servers": "k1:9092,k2:9092", "client.id": "cli"}

    def test_plaintext_ignores_tls_block(self):
        params = build_client_params(AuthConfig(tls=TLS))
        assert params.ssl_cafile is None
        assert "ssl.ca.location" not in params.to_librdkafka()

    def test_ssl_with_tls(self):
        params = build_client_params(AuthConfig(security_protocol=SecurityProtocol.SSL, tls=TLS))
        assert params.to_librdkafka() == {
            "bootstrap.servers": "localhost:9092",
            "client.id": "kafcat",
            "security.protocol": "SSL",
            "ssl.ca.location": "ca.pem",
            "ssl.certificate.location": "cert.pem",
            "ssl.key.location": "key.pem",
        }

    def test_ssl_aiokafka_dialect(self):
        """The aiokafka dialect carries the protocol; the SSL context is built by the engine."""
        params = build_client_params(AuthConfig(security_protocol=SecurityProtocol.SSL, tls=TLS))
        assert params.to_aiokafka() == {
            "bootstrap_servers": "localhost:9092",
            "client_id": "kafcat",
            "security_protocol": "SSL",
        }
        assert params.ssl_certfile == "cert.pem"

    def test_ssl_without_tls_fails(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_client_params(AuthConfig(security_protocol=SecurityProtocol.SSL))
        assert exc_info.value.code == "missing_tls"

    @pytest.mark.parametrize("protocol", [SecurityProtocol.SASL_PLAINTEXT, SecurityProtocol.SASL_SSL])
    def test_sasl_is_unsupported(self, protocol):
        """SASL fails fast even with a TLS block."""
        with pytest.raises(UnsupportedSecurityProtocol) as exc_info:
            build_client_params(AuthConfig(security_protocol=protocol, tls=TLS))
        assert exc_info.value.protocol == protocol.value

    def test_empty_brokers(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_client_params(AuthConfig(brokers=["", "  "]))
        assert exc_info.value.code == "missing_brokers"
