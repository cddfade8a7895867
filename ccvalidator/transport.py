"""
CCNET Transport Layer.

Handles frame construction, response accumulation, CRC validation
and serial I/O.

Frame Structure:
    SYNC (0x02) | ADR | LNG | CMD | DATA | CRC (2 bytes)

Where:
    - SYNC: Start of frame marker (always 0x02)
    - ADR: Device address (0x03 for Bill Validator)
    - LNG: Total frame length including SYNC, ADR, LNG, CMD, DATA, CRC
      (0 means the length is not constrained)
    - CMD: Command byte (first data byte in responses)
    - DATA: Optional data bytes
    - CRC: CRC16 checksum (2 bytes, little-endian)
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, runtime_checkable

import serial

from .constants import (
    Command,
    ControlReply,
    CRC_LENGTH,
    DEFAULT_DEVICE_ADDRESS,
    HEADER_LENGTH,
    MAX_READ_ATTEMPTS,
    MIN_PACKET_LENGTH,
    READ_CHUNK_SIZE,
    SYNC_BYTE,
)
from .crc import append_crc, calculate_crc16
from .exceptions import (
    ChecksumMismatch,
    DeviceNack,
    FrameFormatError,
    IllegalCommand,
    RetryExhausted,
    TransportError,
)
from .settings import SerialPortSettings


logger = logging.getLogger(__name__)


# Observer for raw frames: (direction, frame) where direction is "TX" or "RX"
FrameObserver = Callable[[str, bytes], None]


def _no_observer(direction: str, frame: bytes) -> None:
    return None


# =============================================================================
# Byte Streams
# =============================================================================


@runtime_checkable
class ByteStream(Protocol):
    """
    Blocking byte stream to the device.

    ``read`` returns at most ``size`` bytes and may return ``b''``
    when its per-call timeout expires.
    """

    def read(self, size: int) -> bytes:
        ...

    def write(self, data: bytes) -> Optional[int]:
        ...

    def close(self) -> None:
        ...


class SerialStream:
    """
    ByteStream backed by a pyserial port.

    pyserial failures are re-raised as TransportError.
    """

    def __init__(self, settings: SerialPortSettings) -> None:
        """
        Open the serial port.

        Args:
            settings: Serial port configuration.

        Raises:
            TransportError: If the port cannot be opened.
        """
        self._port = settings.port
        try:
            self._serial = serial.Serial(
                port=settings.port,
                baudrate=int(settings.baudrate),
                bytesize=settings.bytesize,
                parity=settings.parity,
                stopbits=settings.stopbits,
                timeout=settings.timeout,
            )
        except (serial.SerialException, ValueError) as e:
            raise TransportError(
                f"Cannot open {settings.port}: {e}",
                details={"port": settings.port},
            ) from e

    @property
    def port(self) -> str:
        """Get serial port path."""
        return self._port

    def read(self, size: int) -> bytes:
        try:
            return self._serial.read(size)
        except serial.SerialException as e:
            raise TransportError(f"Read from {self._port} failed: {e}") from e

    def write(self, data: bytes) -> Optional[int]:
        try:
            written = self._serial.write(data)
            self._serial.flush()
            return written
        except serial.SerialException as e:
            raise TransportError(f"Write to {self._port} failed: {e}") from e

    def close(self) -> None:
        try:
            self._serial.close()
        except serial.SerialException as e:
            raise TransportError(f"Close of {self._port} failed: {e}") from e


# =============================================================================
# Frame Codec
# =============================================================================


@dataclass
class CCNETPacket:
    """
    Represents a CCNET request frame.

    Attributes:
        address: Device address (default 0x03 for Bill Validator).
        command: Command byte.
        data: Optional data bytes.
    """
    address: int
    command: int
    data: bytes = b''

    @property
    def length(self) -> int:
        """Calculate total frame length."""
        # SYNC(1) + ADR(1) + LNG(1) + CMD(1) + DATA(n) + CRC(2)
        return MIN_PACKET_LENGTH + len(self.data)

    def to_bytes(self) -> bytes:
        """
        Serialize frame to bytes with CRC.

        Returns:
            Complete frame bytes ready to send.
        """
        packet = bytes([
            SYNC_BYTE,
            self.address,
            self.length,
            self.command,
        ]) + self.data

        return append_crc(packet)


def is_frame_complete(buffer: bytes) -> bool:
    """
    Check whether accumulated bytes hold a whole frame.

    A zero length byte means the frame length is not constrained and
    any buffer of at least the minimum size is complete.
    """
    if len(buffer) < MIN_PACKET_LENGTH:
        return False

    length = buffer[2]
    return length == 0 or length == len(buffer)


def parse_response(raw: bytes, address: int = DEFAULT_DEVICE_ADDRESS) -> bytes:
    """
    Validate a response frame and extract its body.

    Args:
        raw: Complete frame as received from the device.
        address: Expected device address.

    Returns:
        Response bytes following the 3-byte header, without CRC.
        Empty for a bare ACK reply.

    Raises:
        FrameFormatError: Wrong start code or address, or frame too short.
        ChecksumMismatch: CRC does not match.
        DeviceNack: Device answered NAK.
        IllegalCommand: Device rejected the command code.
    """
    if len(raw) < 2 or raw[0] != SYNC_BYTE or raw[1] != address:
        raise FrameFormatError(
            "Response format invalid",
            details={"frame": bytes(raw).hex(' ')},
        )

    if len(raw) < MIN_PACKET_LENGTH:
        raise FrameFormatError(
            f"Response too short: {len(raw)} bytes",
            details={"frame": bytes(raw).hex(' ')},
        )

    received = int.from_bytes(raw[-CRC_LENGTH:], byteorder='little')
    frame = bytes(raw[:-CRC_LENGTH])
    expected = calculate_crc16(frame)

    if received != expected:
        raise ChecksumMismatch(
            "Response verification failed",
            expected=expected,
            received=received,
        )

    if len(frame) == HEADER_LENGTH + 1:
        reply = frame[HEADER_LENGTH]
        if reply == ControlReply.ACK:
            return b''
        if reply == ControlReply.NAK:
            raise DeviceNack("Device answered NAK")
        if reply == ControlReply.ILLEGAL_COMMAND:
            raise IllegalCommand("Illegal command")

    return frame[HEADER_LENGTH:]


# =============================================================================
# Transport
# =============================================================================


class CCNETTransport:
    """
    Transport layer for CCNET protocol.

    Writes request frames, accumulates response bytes until a whole
    frame is present, validates it and completes the ACK handshake.

    Attributes:
        stream: Underlying byte stream.
        address: Device address.
    """

    def __init__(
        self,
        stream: ByteStream,
        address: int = DEFAULT_DEVICE_ADDRESS,
        max_read_attempts: int = MAX_READ_ATTEMPTS,
        read_size: int = READ_CHUNK_SIZE,
        response_timeout: Optional[float] = None,
        frame_observer: Optional[FrameObserver] = None,
    ) -> None:
        """
        Initialize transport layer.

        Args:
            stream: Byte stream to the device.
            address: Device address (default 0x03).
            max_read_attempts: Read calls allowed per response.
            read_size: Maximum bytes requested per read call.
            response_timeout: Optional wall-clock limit per response, seconds.
            frame_observer: Callback receiving every raw TX/RX frame.
        """
        self._stream = stream
        self._address = address
        self._max_read_attempts = max_read_attempts
        self._read_size = read_size
        self._response_timeout = response_timeout
        self._frame_observer = frame_observer or _no_observer

    @property
    def address(self) -> int:
        """Get device address."""
        return self._address

    @property
    def stream(self) -> ByteStream:
        """Get underlying byte stream."""
        return self._stream

    def _observe(self, direction: str, frame: bytes) -> None:
        try:
            self._frame_observer(direction, frame)
        except Exception as e:
            logger.error(f"Frame observer error: {e}")

    def send_packet(self, packet: CCNETPacket) -> None:
        """
        Send a frame to the device.

        Args:
            packet: Frame to send.
        """
        data = packet.to_bytes()
        self._observe("TX", data)
        self._stream.write(data)

    def send_command(
        self,
        command: int,
        data: bytes = b'',
    ) -> None:
        """
        Send a command to the device.

        Args:
            command: Command byte.
            data: Optional command data.
        """
        packet = CCNETPacket(
            address=self._address,
            command=command,
            data=data,
        )
        self.send_packet(packet)

    def read_frame(self) -> bytes:
        """
        Accumulate bytes until a complete frame has been read.

        Returns:
            Raw frame bytes, not yet validated.

        Raises:
            RetryExhausted: Frame not complete after max_read_attempts
                reads or after response_timeout seconds.
        """
        buffer = bytearray()
        deadline = None
        if self._response_timeout is not None:
            deadline = time.monotonic() + self._response_timeout

        for attempt in range(1, self._max_read_attempts + 1):
            chunk = self._stream.read(self._read_size)
            if chunk:
                buffer.extend(chunk)

            if is_frame_complete(buffer):
                logger.debug(f"Frame complete after {attempt} read(s)")
                return bytes(buffer)

            if deadline is not None and time.monotonic() >= deadline:
                raise RetryExhausted(
                    f"Response timeout after {attempt} read(s)",
                    attempts=attempt,
                    received=bytes(buffer),
                )

        raise RetryExhausted(
            "Read tries exceeded",
            attempts=self._max_read_attempts,
            received=bytes(buffer),
        )

    def receive(self) -> bytes:
        """
        Receive and validate one response.

        Substantive responses are acknowledged before returning so the
        device is ready for the next command.

        Returns:
            Response body (see parse_response); empty for a bare ACK.
        """
        raw = self.read_frame()
        self._observe("RX", raw)

        body = parse_response(raw, self._address)
        if body:
            self._acknowledge()

        return body

    def _acknowledge(self) -> None:
        """Complete the handshake for a received response."""
        self.send_command(Command.ACK)

    def close(self) -> None:
        """Close the transport."""
        self._stream.close()
