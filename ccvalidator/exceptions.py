"""
Exceptions raised by the CCNET driver.

Every failure surfaces to the caller as a typed subclass of
ValidatorError carrying a message, a code and optional details.
"""

from typing import Any, Optional


class ValidatorError(Exception):
    """Base exception for all bill validator errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            code: Optional error code for programmatic handling.
            details: Optional additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Link Errors
# =============================================================================


class TransportError(ValidatorError):
    """I/O failure on the serial link."""

    pass


class ConnectionStateError(ValidatorError):
    """Operation not allowed in the current open/closed state."""

    pass


class RetryExhausted(ValidatorError):
    """A response frame did not complete within the read budget."""

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        received: bytes = b'',
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.attempts = attempts
        self.received = received
        self.details["attempts"] = attempts
        self.details["received"] = received.hex(' ')


# =============================================================================
# Frame Errors
# =============================================================================


class ProtocolError(ValidatorError):
    """Base exception for malformed response frames."""

    pass


class FrameFormatError(ProtocolError):
    """Bad start code, address, or payload shape."""

    pass


class ChecksumMismatch(ProtocolError):
    """CRC of the response frame does not match."""

    def __init__(
        self,
        message: str,
        expected: int = 0,
        received: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.details["expected"] = f"0x{expected:04X}"
        self.details["received"] = f"0x{received:04X}"


# =============================================================================
# Device Replies
# =============================================================================


class DeviceRejectedError(ValidatorError):
    """Base exception for requests refused by the device."""

    pass


class DeviceNack(DeviceRejectedError):
    """Device answered with NAK."""

    pass


class IllegalCommand(DeviceRejectedError):
    """Device does not support the command."""

    pass


# =============================================================================
# Codec Errors
# =============================================================================


class InvalidIndex(ValidatorError, ValueError):
    """Bill type index outside 0..23."""

    def __init__(self, index: Any, **kwargs: Any) -> None:
        super().__init__(f"Invalid bill type index: {index!r}", **kwargs)
        self.index = index
        self.details["index"] = repr(index)
