"""
CCNET Protocol Layer.

Command table of the bill validator: each command pairs a request
payload with the decoding of its response. This layer sits between
the Transport Layer and the Application Layer.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from .bitset import decode_bill_types, encode_bill_types
from .constants import (
    ASSET_NUMBER_FIELD,
    BILL_TABLE_ENTRY_LENGTH,
    BILL_TABLE_LENGTH,
    BILL_TYPE_COUNT,
    Command,
    DeviceState,
    IDENTIFICATION_LENGTH,
    NEGATIVE_EXPONENT_BIAS,
    PART_NUMBER_FIELD,
    SERIAL_NUMBER_FIELD,
    STATUS_ENABLED_SLICE,
    STATUS_SECURITY_SLICE,
    get_parameter_name,
    get_state_name,
)
from .exceptions import FrameFormatError
from .transport import CCNETTransport


logger = logging.getLogger(__name__)


# =============================================================================
# Response Types
# =============================================================================


@dataclass
class PollResponse:
    """
    Parsed response to POLL command.

    Attributes:
        state: Device state (raw int when the code is not a known state).
        parameter: Second response byte (bill type, rejection or failure
            code); 0 when absent.
    """
    state: Union[DeviceState, int]
    parameter: int = 0

    @property
    def state_name(self) -> str:
        """Get human-readable state name."""
        return get_state_name(self.state)

    @property
    def parameter_name(self) -> Optional[str]:
        """Get rejection/failure reason name, if the state carries one."""
        return get_parameter_name(self.state, self.parameter)


@dataclass(frozen=True)
class BillStatus:
    """Response to GET STATUS: enabled and high-security bill types."""
    enabled: frozenset[int] = field(default_factory=frozenset)
    security: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Identification:
    """
    Device identification.

    Attributes:
        part_number: Part number, 15 ASCII characters.
        serial_number: Serial number, 11 ASCII characters.
        asset_number: Asset number, 6 raw bytes.
    """
    part_number: str
    serial_number: str
    asset_number: bytes


@dataclass(frozen=True)
class Bill:
    """One bill table entry."""
    denomination: float
    country_code: str


# =============================================================================
# Decoders
# =============================================================================


def _field(data: bytes, layout: tuple[int, int]) -> bytes:
    offset, length = layout
    return data[offset:offset + length]


def _ascii(data: bytes) -> str:
    return data.decode('ascii', errors='replace').strip(' \x00')


def decode_poll(data: bytes) -> PollResponse:
    """
    Decode a POLL response.

    Raises:
        FrameFormatError: If the response carries no state byte.
    """
    if not data:
        raise FrameFormatError("Poll response carries no state")

    try:
        state: Union[DeviceState, int] = DeviceState(data[0])
    except ValueError:
        state = data[0]

    parameter = data[1] if len(data) > 1 else 0
    return PollResponse(state=state, parameter=parameter)


def decode_status(data: bytes) -> BillStatus:
    """
    Decode a GET STATUS response.

    Bytes 0-2 hold the enabled mask, the security mask is read from
    byte 4 onward.
    """
    if len(data) < STATUS_ENABLED_SLICE.stop:
        raise FrameFormatError(
            f"Status response too short: {len(data)} bytes",
            details={"data": data.hex(' ')},
        )

    return BillStatus(
        enabled=decode_bill_types(data[STATUS_ENABLED_SLICE]),
        security=decode_bill_types(data[STATUS_SECURITY_SLICE]),
    )


def decode_identification(data: bytes) -> Identification:
    """Decode an IDENTIFICATION response from its fixed offsets."""
    if len(data) < IDENTIFICATION_LENGTH:
        raise FrameFormatError(
            f"Identification response too short: {len(data)} bytes, "
            f"expected {IDENTIFICATION_LENGTH}",
            details={"data": data.hex(' ')},
        )

    return Identification(
        part_number=_ascii(_field(data, PART_NUMBER_FIELD)),
        serial_number=_ascii(_field(data, SERIAL_NUMBER_FIELD)),
        asset_number=bytes(_field(data, ASSET_NUMBER_FIELD)),
    )


def decode_exponent(value: int) -> int:
    """
    Decode the biased power-of-ten byte of a bill table entry.

    Values above 0x80 are negative exponents.
    """
    if value > NEGATIVE_EXPONENT_BIAS:
        return -(value - NEGATIVE_EXPONENT_BIAS)
    return value


def decode_bill_table(data: bytes) -> list[Bill]:
    """
    Decode a GET BILL TABLE response.

    Each of the 24 entries is 5 bytes: denomination digit, 3-letter
    country code and power-of-ten exponent.
    """
    if len(data) < BILL_TABLE_LENGTH:
        raise FrameFormatError(
            f"Bill table too short: {len(data)} bytes, "
            f"expected {BILL_TABLE_LENGTH}",
            details={"data": data.hex(' ')},
        )

    bills = []
    for i in range(BILL_TYPE_COUNT):
        entry = data[i * BILL_TABLE_ENTRY_LENGTH:(i + 1) * BILL_TABLE_ENTRY_LENGTH]
        exponent = decode_exponent(entry[4])
        bills.append(Bill(
            denomination=entry[0] * 10.0 ** exponent,
            country_code=_ascii(entry[1:4]),
        ))

    return bills


# =============================================================================
# Protocol
# =============================================================================


class CCNETProtocol:
    """
    Protocol layer for CCNET communication.

    Every method sends one request, waits for one validated response
    and decodes it. Errors propagate unchanged.

    Attributes:
        transport: Underlying transport layer.
    """

    def __init__(self, transport: CCNETTransport) -> None:
        """
        Initialize protocol layer.

        Args:
            transport: Transport layer instance.
        """
        self._transport = transport

    @property
    def transport(self) -> CCNETTransport:
        """Get transport layer."""
        return self._transport

    def _request(self, command: Command, data: bytes = b'') -> bytes:
        self._transport.send_command(command, data)
        return self._transport.receive()

    def send_ack(self) -> None:
        """Send ACK (acknowledgement) to device."""
        self._transport.send_command(Command.ACK)

    def send_nak(self) -> None:
        """Send NAK (negative acknowledgement) to device."""
        self._transport.send_command(Command.NAK)

    def reset(self) -> None:
        """Send RESET command to device."""
        logger.info("Sending RESET command")
        self._request(Command.RESET)

    def get_status(self) -> BillStatus:
        """
        Send GET STATUS command.

        Returns:
            Enabled and security bill type sets.
        """
        return decode_status(self._request(Command.GET_STATUS))

    def set_security(self, bill_types: Iterable[int] = ()) -> None:
        """
        Send SET SECURITY command (0x32).

        Args:
            bill_types: Bill types validated with high security.
        """
        data = encode_bill_types(bill_types)
        logger.info(f"Setting security: mask={data.hex()}")
        self._request(Command.SET_SECURITY, data)

    def poll(self) -> PollResponse:
        """
        Send POLL command and parse response.

        Returns:
            Device state and parameter byte.
        """
        response = decode_poll(self._request(Command.POLL))
        logger.debug(
            f"POLL: {response.state_name} (0x{int(response.state):02X}), "
            f"parameter=0x{response.parameter:02X}"
        )
        return response

    def enable_bill_types(
        self,
        enabled: Iterable[int] = range(BILL_TYPE_COUNT),
        escrow: Iterable[int] = (),
    ) -> None:
        """
        Send ENABLE BILL TYPES command (0x34).

        Args:
            enabled: Bill types to accept (default all).
            escrow: Bill types held in escrow before stacking.
        """
        enabled_mask = encode_bill_types(enabled)
        escrow_mask = encode_bill_types(escrow)

        logger.info(
            f"Enabling bill types: bill_mask={enabled_mask.hex()}, "
            f"escrow_mask={escrow_mask.hex()}"
        )
        self._request(Command.ENABLE_BILL_TYPES, enabled_mask + escrow_mask)

    def disable_bill_types(self) -> None:
        """Disable all bill types."""
        self.enable_bill_types(enabled=(), escrow=())

    def stack(self) -> None:
        """Send STACK command to accept bill in escrow."""
        logger.info("Sending STACK command")
        self._request(Command.STACK)

    def return_bill(self) -> None:
        """Send RETURN command to reject bill in escrow."""
        logger.info("Sending RETURN command")
        self._request(Command.RETURN)

    def hold(self) -> None:
        """
        Send HOLD command to keep bill in escrow.

        Use this to extend escrow timeout.
        """
        self._request(Command.HOLD)

    def get_identification(self) -> Identification:
        """
        Send IDENTIFICATION command.

        Returns:
            Part number, serial number and asset number.
        """
        return decode_identification(self._request(Command.IDENTIFICATION))

    def get_bill_table(self) -> list[Bill]:
        """
        Send GET BILL TABLE command.

        Returns:
            24 bill table entries, indexed by bill type.
        """
        return decode_bill_table(self._request(Command.GET_BILL_TABLE))

    def get_crc32(self) -> bytes:
        """
        Send GET CRC32 command.

        Returns:
            Raw response bytes with the firmware CRC32.
        """
        return self._request(Command.GET_CRC32)

    def set_barcode_parameters(
        self,
        barcode_format: int,
        number_of_characters: int,
    ) -> None:
        """
        Configure barcode coupon reading.

        Args:
            barcode_format: Barcode format byte.
            number_of_characters: Number of characters in the barcode.
        """
        self._request(
            Command.BARCODE,
            bytes([barcode_format, number_of_characters]),
        )

    def extract_barcode_data(self) -> bytes:
        """
        Read the barcode of the coupon in escrow.

        Returns:
            Raw barcode bytes.
        """
        return self._request(Command.BARCODE)

    def close(self) -> None:
        """Close the protocol and transport."""
        self._transport.close()
