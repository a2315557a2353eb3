"""
Centralized kafcat settings.

Single place for every tunable of the Kafka client layer:
- Engine selection (confluent, aiokafka, memory)
- Brokers and security (PLAINTEXT / SSL)
- Fixed engine parameters (session timeout, message timeout)
- Stream idle timeouts and broker lookup bounds
- Logging

Usage:
    from kafcat.config import get_settings

    settings = get_settings()
    print(settings.kafka_bootstrap_servers)

Configuration via .env:
    KAFKA_BACKEND=confluent
    KAFKA_BOOTSTRAP_SERVERS=kafka1:9092,kafka2:9092
    KAFKA_SECURITY_PROTOCOL=SSL
    KAFKA_SSL_CAFILE=/etc/kafka/ca.pem

Or from code (before building clients):
    from kafcat.config import configure

    configure(kafka_backend="aiokafka", kafka_exit_idle_timeout=1.0)

Env file resolution:
    Precedence (highest first):
    1. OS environment variables
    2. .env.{ENVIRONMENT} (e.g. .env.production)
    3. .env (base)
    4. Settings class defaults
"""

import logging
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import Field as PydanticField
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("kafcat.config")


# =========================================================================
# ENV FILE RESOLUTION
# =========================================================================

def _resolve_env_files() -> tuple[str, ...]:
    """
    Resolve .env files from the ENVIRONMENT variable.

    Returns:
        Tuple of .env paths to load, lowest precedence first
    """
    env = os.environ.get("ENVIRONMENT", "development")
    files: list[str] = []

    if Path(".env").is_file():
        files.append(".env")

    env_file = f".env.{env}"
    if Path(env_file).is_file():
        files.append(env_file)

    # pydantic-settings ignores a missing file
    return tuple(files) if files else (".env",)


class Settings(BaseSettings):
    """
    kafcat settings.

    All fields can be overridden through environment variables
    (case-insensitive, no prefix): KAFKA_BACKEND, KAFKA_BOOTSTRAP_SERVERS,
    KAFKA_SECURITY_PROTOCOL, LOG_LEVEL, ...

    Example:
        class ToolSettings(Settings):
            default_topic: str = "events"

        configure(settings_class=ToolSettings)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "testing"] = PydanticField(
        default="development",
        description="Runtime environment",
    )

    # =========================================================================
    # KAFKA / ENGINE
    # Plug-and-play: switch engine without changing code
    # =========================================================================

    kafka_backend: str = PydanticField(
        default="confluent",
        description="Kafka engine: confluent (librdkafka), aiokafka (pure asyncio), memory (tests) or a registered engine",
    )
    kafka_bootstrap_servers: str = PydanticField(
        default="localhost:9092",
        description="Kafka bootstrap servers (comma-separated)",
    )
    kafka_security_protocol: Literal["PLAINTEXT", "SSL", "SASL_PLAINTEXT", "SASL_SSL"] = PydanticField(
        default="PLAINTEXT",
        description="Kafka security protocol (SASL variants are rejected)",
    )
    kafka_ssl_cafile: str | None = PydanticField(
        default=None,
        description="Path to CA certificate file",
    )
    kafka_ssl_certfile: str | None = PydanticField(
        default=None,
        description="Path to client certificate file",
    )
    kafka_ssl_keyfile: str | None = PydanticField(
        default=None,
        description="Path to client private key file",
    )
    kafka_client_id: str = PydanticField(
        default="kafcat",
        description="Kafka client ID",
    )
    kafka_group_id: str = PydanticField(
        default="kafcat",
        description="Consumer group ID (only used for stored offsets)",
    )

    # Fixed engine parameters
    kafka_session_timeout_ms: int = PydanticField(
        default=6000,
        description="Consumer session timeout in milliseconds",
    )
    kafka_message_timeout_ms: int = PydanticField(
        default=5000,
        description="Producer delivery timeout in milliseconds",
    )

    # =========================================================================
    # STREAMING / LOOKUPS
    # =========================================================================

    kafka_exit_idle_timeout: float = PydanticField(
        default=3.0,
        gt=0,
        description="Idle seconds after which an exit-on-done stream ends",
    )
    kafka_tail_idle_timeout: float = PydanticField(
        default=3600.0,
        gt=0,
        description="Idle seconds after which a tailing stream ends",
    )
    kafka_poll_interval: float = PydanticField(
        default=1.0,
        gt=0,
        description="Upper bound of a single engine poll in seconds",
    )
    kafka_offset_lookup_timeout: float = PydanticField(
        default=1.0,
        gt=0,
        description="Timeout of the offsets-for-times lookup in seconds",
    )
    kafka_watermark_timeout: float = PydanticField(
        default=3.0,
        gt=0,
        description="Timeout of the watermark query in seconds",
    )

    # =========================================================================
    # Logging
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = PydanticField(
        default="WARNING",
        description="Log level",
    )
    log_format: str = PydanticField(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )

    # =========================================================================
    # Helpers
    # =========================================================================

    @property
    def brokers(self) -> list[str]:
        """Bootstrap servers as a list."""
        return [b.strip() for b in self.kafka_bootstrap_servers.split(",") if b.strip()]


# =========================================================================
# GLOBAL SETTINGS SINGLETON
# =========================================================================

_settings: Settings | None = None
_settings_class: type[Settings] = Settings

_on_settings_loaded: list[Any] = []


def get_settings() -> Settings:
    """Return the global Settings singleton."""
    global _settings

    if _settings is None:
        _settings = _settings_class(_env_file=_resolve_env_files())

        for callback in _on_settings_loaded:
            callback(_settings)

    return _settings


def configure(
    settings_class: type[Settings] | None = None,
    **overrides: Any,
) -> Settings:
    """
    Configure kafcat BEFORE building clients.

    Args:
        settings_class: Custom Settings subclass (optional)
        **overrides: Values to override

    Returns:
        The configured Settings

    Example:
        configure(
            kafka_backend="aiokafka",
            kafka_bootstrap_servers="kafka:9092",
        )
    """
    global _settings, _settings_class

    if settings_class is not None:
        _settings_class = settings_class

    if overrides:
        known_fields = set(_settings_class.model_fields.keys())
        unknown = set(overrides.keys()) - known_fields
        if unknown:
            logger.warning(
                "Unknown settings keys passed to configure(): %s. "
                "Available keys: check Settings class fields.",
                ", ".join(sorted(unknown)),
            )

    _settings = _settings_class(_env_file=_resolve_env_files(), **overrides)

    for callback in _on_settings_loaded:
        callback(_settings)

    return _settings


def on_settings_loaded(callback: Any) -> Any:
    """
    Register a callback that runs after Settings are loaded.

    Example:
        @on_settings_loaded
        def announce(settings):
            print(settings.kafka_backend)
    """
    _on_settings_loaded.append(callback)
    return callback


def is_configured() -> bool:
    """Whether settings have been loaded."""
    return _settings is not None


def reset_settings() -> None:
    """
    Reset settings. Testing only.

    Ignored (with a warning) in production.
    """
    global _settings, _settings_class

    if _settings is not None and _settings.environment == "production":
        logger.warning(
            "reset_settings() called in production environment, ignored. "
            "This function is intended for testing only."
        )
        return

    _settings = None
    _settings_class = Settings


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure root logging from settings.

    Only the CLI calls this; library code never installs handlers.
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level, format=settings.log_format)
    # aiokafka logs every reconnect attempt
    if settings.log_level != "DEBUG":
        logging.getLogger("aiokafka").setLevel(logging.WARNING)
