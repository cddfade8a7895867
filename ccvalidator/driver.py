"""
CCNET Bill Validator Driver (Application Layer).

Synchronous driver for CashCode and compatible bill validators using
the CCNET protocol. This is the main entry point for application code.

Example:
    from ccvalidator import CashCodeValidator

    with CashCodeValidator.connect('/dev/ttyUSB0') as validator:
        validator.reset()
        validator.enable_bill_types(enabled={2, 3, 4}, escrow={4})
        response = validator.poll()
        print(response.state_name)
"""

import logging
import threading
from dataclasses import replace
from typing import Callable, Iterable, Optional

from .constants import BILL_TYPE_COUNT
from .exceptions import ConnectionStateError
from .protocol import (
    Bill,
    BillStatus,
    CCNETProtocol,
    Identification,
    PollResponse,
)
from .settings import SerialPortSettings, Settings, get_settings
from .transport import ByteStream, CCNETTransport, FrameObserver, SerialStream


logger = logging.getLogger(__name__)


# Opens the byte stream for given serial settings
StreamFactory = Callable[[SerialPortSettings], ByteStream]


class CashCodeValidator:
    """
    Connection to one CCNET bill validator.

    Owns a single byte stream. Commands are synchronous and serialized
    by an internal lock so frames from two callers never interleave.

    Attributes:
        port: Serial port path.
        baudrate: Serial baudrate.
        is_open: True while the stream is open.
    """

    def __init__(
        self,
        port: Optional[str] = None,
        baudrate: Optional[int] = None,
        settings: Optional[Settings] = None,
        frame_observer: Optional[FrameObserver] = None,
        stream_factory: Optional[StreamFactory] = None,
    ) -> None:
        """
        Initialize the driver. The port is not opened yet.

        Args:
            port: Serial port path (overrides settings).
            baudrate: Serial baudrate (overrides settings).
            settings: Driver settings (default: get_settings()).
            frame_observer: Callback receiving every raw TX/RX frame.
            stream_factory: Opens the byte stream (default: SerialStream).
        """
        self._settings = settings or get_settings()

        serial_settings = self._settings.serial
        overrides = {}
        if port is not None:
            overrides["port"] = port
        if baudrate is not None:
            overrides["baudrate"] = baudrate
        if overrides:
            serial_settings = replace(serial_settings, **overrides)
        self._serial_settings = serial_settings

        self._frame_observer = frame_observer
        self._stream_factory = stream_factory or SerialStream
        self._protocol: Optional[CCNETProtocol] = None
        self._lock = threading.Lock()

    @classmethod
    def connect(cls, port: Optional[str] = None, **kwargs) -> "CashCodeValidator":
        """
        Create a driver and open its port.

        Args:
            port: Serial port path.
            **kwargs: Passed to the constructor.

        Returns:
            Opened driver.
        """
        validator = cls(port, **kwargs)
        validator.open()
        return validator

    @property
    def port(self) -> str:
        """Get serial port path."""
        return self._serial_settings.port

    @property
    def baudrate(self) -> int:
        """Get serial baudrate."""
        return self._serial_settings.baudrate

    @property
    def is_open(self) -> bool:
        """Check if the port is open."""
        return self._protocol is not None

    def open(self) -> None:
        """
        Open the serial port.

        Raises:
            ConnectionStateError: If the port is already open.
            TransportError: If the port cannot be opened.
        """
        if self.is_open:
            raise ConnectionStateError(
                "Port already opened",
                details={"port": self.port},
            )

        logger.info(f"Opening {self.port} at {self.baudrate} baud")
        stream = self._stream_factory(self._serial_settings)

        protocol_settings = self._settings.protocol
        transport = CCNETTransport(
            stream,
            address=protocol_settings.address,
            max_read_attempts=protocol_settings.max_read_attempts,
            read_size=protocol_settings.read_size,
            response_timeout=protocol_settings.response_timeout,
            frame_observer=self._frame_observer,
        )
        self._protocol = CCNETProtocol(transport)

    def close(self) -> None:
        """
        Close the serial port.

        Raises:
            ConnectionStateError: If the port is not open.
        """
        protocol = self._require_open()
        logger.info(f"Closing {self.port}")
        self._protocol = None
        protocol.close()

    def _require_open(self) -> CCNETProtocol:
        if self._protocol is None:
            raise ConnectionStateError(
                "Port not opened",
                details={"port": self.port},
            )
        return self._protocol

    def _call(self, method: str, *args, **kwargs):
        with self._lock:
            protocol = self._require_open()
            return getattr(protocol, method)(*args, **kwargs)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """Reset the bill validator."""
        self._call("reset")

    def get_status(self) -> BillStatus:
        """Get enabled and high-security bill types."""
        return self._call("get_status")

    def set_security(self, bill_types: Iterable[int] = ()) -> None:
        """Set the bill types validated with high security."""
        self._call("set_security", bill_types)

    def poll(self) -> PollResponse:
        """Poll device state."""
        return self._call("poll")

    def enable_bill_types(
        self,
        enabled: Iterable[int] = range(BILL_TYPE_COUNT),
        escrow: Iterable[int] = (),
    ) -> None:
        """Enable bill types and choose which are held in escrow."""
        self._call("enable_bill_types", enabled, escrow)

    def disable_bill_types(self) -> None:
        """Disable bill acceptance."""
        self._call("disable_bill_types")

    def stack(self) -> None:
        """Stack the bill currently in escrow."""
        self._call("stack")

    def return_bill(self) -> None:
        """Return the bill currently in escrow."""
        self._call("return_bill")

    def hold(self) -> None:
        """Extend the escrow hold."""
        self._call("hold")

    def get_identification(self) -> Identification:
        """Get part, serial and asset numbers."""
        return self._call("get_identification")

    def get_bill_table(self) -> list[Bill]:
        """Get the 24-entry bill table."""
        return self._call("get_bill_table")

    def get_crc32(self) -> bytes:
        """Get the firmware CRC32 response."""
        return self._call("get_crc32")

    def set_barcode_parameters(
        self,
        barcode_format: int,
        number_of_characters: int,
    ) -> None:
        """Configure barcode coupon reading."""
        self._call("set_barcode_parameters", barcode_format, number_of_characters)

    def extract_barcode_data(self) -> bytes:
        """Read barcode data of the coupon in escrow."""
        return self._call("extract_barcode_data")

    def ack(self) -> None:
        """Send ACK to the device."""
        self._call("send_ack")

    def nack(self) -> None:
        """Send NAK to the device."""
        self._call("send_nak")

    def __enter__(self) -> "CashCodeValidator":
        """Context manager entry; opens the port if needed."""
        if not self.is_open:
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        if self.is_open:
            self.close()
