"""
Centralized exception classes for kafcat.

Every error that crosses the kafcat boundary is a KafcatError, so callers
never have to know which Kafka engine produced it.

Exception Hierarchy:
    KafcatError (base)
    ├── ConfigurationError
    │   └── UnsupportedSecurityProtocol
    ├── ClientConnectionError
    ├── BrokerRoundTripError
    │   └── TopicAdminError
    ├── InvariantViolation
    └── ConsumerClosedError

Idle-timeout expiry of a message stream is NOT an exception: the stream
simply ends (StopAsyncIteration), see kafcat.messaging.stream.

Example:
    from kafcat.exceptions import BrokerRoundTripError

    try:
        low, high = await consumer.get_watermarks()
    except BrokerRoundTripError as e:
        print(e.to_dict())
"""

from __future__ import annotations

from typing import Any


# =============================================================================
# Base Exception
# =============================================================================

class KafcatError(Exception):
    """
    Base exception for all kafcat errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional error details
    """

    message: str = "A Kafka client error occurred"
    code: str = "kafcat_error"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = details or {}
        super().__init__(self.message)

    @classmethod
    def wrap(cls, error: BaseException, message: str | None = None, **details: Any) -> "KafcatError":
        """
        Wrap an engine-specific error.

        The original error is kept in details["engine_error"]; callers
        should still `raise ... from error` to preserve the traceback.
        """
        details["engine_error"] = f"{type(error).__name__}: {error}"
        return cls(message or str(error) or cls.message, details=details)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary (used by the CLI json output)."""
        result = {
            "message": self.message,
            "code": self.code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, code={self.code!r})"


# =============================================================================
# Configuration
# =============================================================================

class ConfigurationError(KafcatError):
    """
    Invalid client configuration.

    Raised before any connection is attempted.
    """

    message = "Invalid Kafka client configuration"
    code = "configuration_error"


class UnsupportedSecurityProtocol(ConfigurationError):
    """
    Security protocol that kafcat does not implement.

    SASL variants fail here instead of silently falling back to plaintext.
    """

    message = "Security protocol is not implemented"
    code = "unsupported_security_protocol"

    def __init__(self, protocol: str) -> None:
        super().__init__(
            f"Security protocol {protocol} is not implemented",
            details={"security_protocol": protocol},
        )
        self.protocol = protocol


# =============================================================================
# Connection / Broker
# =============================================================================

class ClientConnectionError(KafcatError):
    """
    The underlying engine handle could not be created.

    Treated as a startup failure: never retried by kafcat.
    """

    message = "Failed to create Kafka client"
    code = "client_connection_error"


class BrokerRoundTripError(KafcatError):
    """
    A broker round-trip failed.

    Covers timeouts and unknown topic/partition during offset lookups,
    watermark queries, polls and sends.
    """

    message = "Kafka broker round-trip failed"
    code = "broker_round_trip_error"


class TopicAdminError(BrokerRoundTripError):
    """Topic administration request failed."""

    message = "Topic administration failed"
    code = "topic_admin_error"


class InvariantViolation(KafcatError):
    """
    Engine or state inconsistency.

    Example: an offsets-for-times response that does not contain the
    partition that was asked for.
    """

    message = "Kafka client invariant violated"
    code = "invariant_violation"


# =============================================================================
# Consumer lifecycle
# =============================================================================

class ConsumerClosedError(KafcatError):
    """Operation attempted on a consumer (or stream) that has been closed."""

    message = "Consumer is closed"
    code = "consumer_closed"


__all__ = [
    "KafcatError",
    "ConfigurationError",
    "UnsupportedSecurityProtocol",
    "ClientConnectionError",
    "BrokerRoundTripError",
    "TopicAdminError",
    "InvariantViolation",
    "ConsumerClosedError",
]
