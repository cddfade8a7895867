"""
Driver settings.

Typed, immutable configuration for the serial link, the response
reader and logging, with optional environment variable overrides.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Final, Mapping, Optional

from .constants import (
    Baud,
    DEFAULT_DEVICE_ADDRESS,
    MAX_READ_ATTEMPTS,
    READ_CHUNK_SIZE,
)


ENV_PREFIX: Final[str] = "CCVALIDATOR_"


# =============================================================================
# Configuration Classes
# =============================================================================


@dataclass(frozen=True)
class SerialPortSettings:
    """Serial port configuration."""

    port: str = "/dev/ttyS0"
    baudrate: int = Baud.BAUD_9600
    bytesize: int = 8
    stopbits: int = 1
    parity: str = "N"
    timeout: float = 0.1

    def __post_init__(self) -> None:
        """Validate the baud rate."""
        if self.baudrate not in {baud.value for baud in Baud}:
            raise ValueError(f"Unsupported baudrate: {self.baudrate}")


@dataclass(frozen=True)
class ProtocolSettings:
    """Response reader settings."""

    address: int = DEFAULT_DEVICE_ADDRESS
    max_read_attempts: int = MAX_READ_ATTEMPTS
    read_size: int = READ_CHUNK_SIZE
    response_timeout: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate reader limits."""
        if self.max_read_attempts < 1:
            raise ValueError("max_read_attempts must be at least 1")
        if self.read_size < 1:
            raise ValueError("read_size must be at least 1")


@dataclass(frozen=True)
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    log_file: Optional[str] = None
    loki_url: Optional[str] = None
    app: str = "ccvalidator"


# =============================================================================
# Main Settings
# =============================================================================


@dataclass
class Settings:
    """
    Main driver settings.

    Aggregates all configuration sections.
    """

    serial: SerialPortSettings = field(default_factory=SerialPortSettings)
    protocol: ProtocolSettings = field(default_factory=ProtocolSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from ``CCVALIDATOR_*`` environment variables.

        Recognised variables: PORT, BAUDRATE, TIMEOUT, MAX_READ_ATTEMPTS,
        RESPONSE_TIMEOUT, LOG_LEVEL, LOG_FILE, LOKI_URL.

        Args:
            environ: Mapping to read from (defaults to os.environ).

        Returns:
            Settings instance.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            return env.get(ENV_PREFIX + name) or None

        settings = cls()

        serial_overrides: dict = {}
        if get("PORT"):
            serial_overrides["port"] = get("PORT")
        if get("BAUDRATE"):
            serial_overrides["baudrate"] = int(get("BAUDRATE"))
        if get("TIMEOUT"):
            serial_overrides["timeout"] = float(get("TIMEOUT"))

        protocol_overrides: dict = {}
        if get("MAX_READ_ATTEMPTS"):
            protocol_overrides["max_read_attempts"] = int(get("MAX_READ_ATTEMPTS"))
        if get("RESPONSE_TIMEOUT"):
            protocol_overrides["response_timeout"] = float(get("RESPONSE_TIMEOUT"))

        logging_overrides: dict = {}
        if get("LOG_LEVEL"):
            logging_overrides["level"] = get("LOG_LEVEL").upper()
        if get("LOG_FILE"):
            logging_overrides["log_file"] = get("LOG_FILE")
        if get("LOKI_URL"):
            logging_overrides["loki_url"] = get("LOKI_URL")

        return cls(
            serial=replace(settings.serial, **serial_overrides),
            protocol=replace(settings.protocol, **protocol_overrides),
            logging=replace(settings.logging, **logging_overrides),
        )


# =============================================================================
# Settings Singleton
# =============================================================================


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get driver settings singleton.

    Returns:
        Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
