"""
Unit tests for settings and logging setup.
"""

import logging
from unittest.mock import MagicMock, patch

import pytest

from ccvalidator import loggers
from ccvalidator.constants import DeviceState, get_parameter_name, get_state_name
from ccvalidator.exceptions import ChecksumMismatch, RetryExhausted, ValidatorError
from ccvalidator.settings import (
    LoggingSettings,
    ProtocolSettings,
    SerialPortSettings,
    Settings,
)


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        """Test default configuration."""
        settings = Settings()
        assert settings.serial.baudrate == 9600
        assert settings.protocol.address == 0x03
        assert settings.protocol.max_read_attempts == 50
        assert settings.protocol.response_timeout is None
        assert settings.logging.loki_url is None

    def test_from_env(self):
        """Test environment overrides."""
        settings = Settings.from_env({
            "CCVALIDATOR_PORT": "/dev/ttyUSB0",
            "CCVALIDATOR_BAUDRATE": "19200",
            "CCVALIDATOR_MAX_READ_ATTEMPTS": "10",
            "CCVALIDATOR_RESPONSE_TIMEOUT": "2.5",
            "CCVALIDATOR_LOG_LEVEL": "debug",
        })

        assert settings.serial.port == "/dev/ttyUSB0"
        assert settings.serial.baudrate == 19200
        assert settings.protocol.max_read_attempts == 10
        assert settings.protocol.response_timeout == 2.5
        assert settings.logging.level == "DEBUG"

    def test_from_env_empty(self):
        """Test empty environment keeps defaults."""
        assert Settings.from_env({}) == Settings()

    def test_invalid_baudrate(self):
        """Test unsupported baudrate."""
        with pytest.raises(ValueError):
            SerialPortSettings(baudrate=4800)

    def test_invalid_read_attempts(self):
        """Test read budget must be positive."""
        with pytest.raises(ValueError):
            ProtocolSettings(max_read_attempts=0)


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_to_dict(self):
        """Test exception serialization."""
        error = RetryExhausted("Read tries exceeded", attempts=3, received=b'\x02\x03')
        assert error.to_dict() == {
            "error": "RetryExhausted",
            "message": "Read tries exceeded",
            "details": {"attempts": 3, "received": "02 03"},
        }

    def test_checksum_details(self):
        """Test checksum values are recorded."""
        error = ChecksumMismatch("bad", expected=0x81DA, received=0)
        assert isinstance(error, ValidatorError)
        assert error.details == {"expected": "0x81DA", "received": "0x0000"}


class TestConstants:
    """Tests for constant helpers."""

    def test_get_state_name(self):
        """Test state name lookup."""
        assert get_state_name(DeviceState.IDLING) == "IDLING"
        assert get_state_name(None) == "UNKNOWN"
        assert "UNKNOWN" in get_state_name(0x99)

    def test_get_parameter_name(self):
        """Test rejection and failure naming."""
        assert get_parameter_name(DeviceState.REJECTING, 0x6C) == "LENGTH"
        assert get_parameter_name(DeviceState.GENERIC_FAILURE, 0x5F) == "CAPACITANCE_CANAL"
        assert "UNKNOWN" in get_parameter_name(DeviceState.REJECTING, 0x01)
        assert get_parameter_name(DeviceState.ESCROW_POSITION, 0x04) is None


class TestLoggers:
    """Tests for logger setup."""

    def test_console_only_by_default(self):
        """Test only the console handler is attached by default."""
        logger = loggers.get_logger("ccvalidator.test.console")
        assert len(logger.handlers) == 1
        assert logger.level == logging.INFO

    def test_no_duplicate_handlers(self):
        """Test repeated calls reuse handlers."""
        name = "ccvalidator.test.repeat"
        loggers.get_logger(name)
        logger = loggers.get_logger(name)
        assert len(logger.handlers) == 1

    def test_file_and_loki_handlers(self, tmp_path):
        """Test configured file and Loki handlers are attached."""
        settings = LoggingSettings(
            level="DEBUG",
            log_file=str(tmp_path / "validator.log"),
            loki_url="http://loki:3100/loki/api/v1/push",
        )
        logger = loggers.get_logger("ccvalidator.test.full", settings)

        assert logger.level == logging.DEBUG
        assert any(isinstance(h, loggers.LokiHandler) for h in logger.handlers)
        assert len(logger.handlers) == 3

        for handler in logger.handlers:
            logger.removeHandler(handler)
            handler.close()

    @patch("ccvalidator.loggers.send_to_loki")
    def test_loki_handler_emit(self, send):
        """Test Loki handler forwards formatted records."""
        handler = loggers.LokiHandler("http://loki", "ccvalidator")
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "jammed", None, None)
        handler.emit(record)

        send.assert_called_once_with("http://loki", "ERROR", "jammed", "ccvalidator")

    @patch("ccvalidator.loggers.httpx.Client")
    def test_send_to_loki(self, client_cls):
        """Test Loki push payload."""
        client = MagicMock()
        client_cls.return_value.__enter__.return_value = client

        loggers.send_to_loki("http://loki", "INFO", "ready", "ccvalidator")

        url = client.post.call_args.args[0]
        payload = client.post.call_args.kwargs["json"]
        assert url == "http://loki"
        assert payload["streams"][0]["stream"] == {"level": "INFO", "app": "ccvalidator"}
        assert payload["streams"][0]["values"][0][1] == "ready"

    def test_log_frame(self, caplog):
        """Test frame observer writes hex dumps."""
        with caplog.at_level(logging.DEBUG, logger=loggers.FRAME_LOGGER_NAME):
            loggers.log_frame("TX", bytes([0x02, 0x03, 0x06, 0x33, 0xDA, 0x81]))
        assert "TX: 02 03 06 33 DA 81" in caplog.text
