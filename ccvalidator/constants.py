"""
CCNET Protocol Constants and Enumerations.

Frame layout, command codes, device states and sub-codes reported
by CCNET bill validators. Commands and states are IntEnum so they
compare equal to the raw bytes seen on the wire.
"""

from enum import IntEnum
from typing import Final


# Frame constants
SYNC_BYTE: Final[int] = 0x02
DEFAULT_DEVICE_ADDRESS: Final[int] = 0x03  # Bill Validator
CRC_POLYNOMIAL: Final[int] = 0x08408  # reversed CCITT
MIN_PACKET_LENGTH: Final[int] = 6  # SYNC+ADR+LNG+CMD+CRC(2)
HEADER_LENGTH: Final[int] = 3  # SYNC+ADR+LNG
CRC_LENGTH: Final[int] = 2

# Reader defaults
MAX_READ_ATTEMPTS: Final[int] = 50
READ_CHUNK_SIZE: Final[int] = 256

# Bill type masks
BILL_TYPE_COUNT: Final[int] = 24
BILL_MASK_LENGTH: Final[int] = 3

# Bill table layout
BILL_TABLE_ENTRY_LENGTH: Final[int] = 5
BILL_TABLE_LENGTH: Final[int] = BILL_TYPE_COUNT * BILL_TABLE_ENTRY_LENGTH
NEGATIVE_EXPONENT_BIAS: Final[int] = 0x80

# Identification layout (offset, length)
PART_NUMBER_FIELD: Final[tuple[int, int]] = (0, 15)
SERIAL_NUMBER_FIELD: Final[tuple[int, int]] = (16, 11)
ASSET_NUMBER_FIELD: Final[tuple[int, int]] = (28, 6)
IDENTIFICATION_LENGTH: Final[int] = ASSET_NUMBER_FIELD[0] + ASSET_NUMBER_FIELD[1]

# Get status layout
STATUS_ENABLED_SLICE: Final[slice] = slice(0, 3)
STATUS_SECURITY_SLICE: Final[slice] = slice(4, 7)


class Baud(IntEnum):
    """Supported serial baud rates."""
    BAUD_9600 = 9600
    BAUD_19200 = 19200


class Command(IntEnum):
    """
    CCNET commands sent from controller to the bill validator.
    """
    ACK = 0x00          # Acknowledgement
    RESET = 0x30        # Reset device
    GET_STATUS = 0x31   # Get status
    SET_SECURITY = 0x32 # Set security
    POLL = 0x33         # Poll device
    ENABLE_BILL_TYPES = 0x34  # Enable bill types
    STACK = 0x35        # Stack bill (accept)
    RETURN = 0x36       # Return bill
    IDENTIFICATION = 0x37     # Get identification
    HOLD = 0x38         # Hold bill in escrow
    BARCODE = 0x3A      # Barcode parameters / extraction
    GET_BILL_TABLE = 0x41     # Get bill table
    GET_CRC32 = 0x51    # Get CRC32 of firmware
    NAK = 0xFF          # Negative acknowledgement


class ControlReply(IntEnum):
    """Single-byte replies that carry no payload."""
    ACK = 0x00
    ILLEGAL_COMMAND = 0x30
    NAK = 0xFF


class DeviceState(IntEnum):
    """
    Bill validator states returned in response to POLL.
    """
    # Power-up states
    POWER_UP = 0x10
    POWER_UP_WITH_BILL_IN_VALIDATOR = 0x11
    POWER_UP_WITH_BILL_IN_STACKER = 0x12

    # Initialization and idle states
    INITIALIZE = 0x13
    IDLING = 0x14
    ACCEPTING = 0x15

    # Operation states
    STACKING = 0x17
    RETURNING = 0x18
    UNIT_DISABLED = 0x19
    HOLDING = 0x1A
    DEVICE_BUSY = 0x1B
    REJECTING = 0x1C

    # Error states
    DROP_CASSETTE_FULL = 0x41
    DROP_CASSETTE_OUT_OF_POSITION = 0x42
    VALIDATOR_JAMMED = 0x43
    DROP_CASSETTE_JAMMED = 0x44
    CHEATED = 0x45
    PAUSE = 0x46
    GENERIC_FAILURE = 0x47

    # Bill position states (parameter byte holds the bill type)
    ESCROW_POSITION = 0x80
    BILL_STACKED = 0x81
    BILL_RETURNED = 0x82


class RejectionReason(IntEnum):
    """
    Bill rejection reasons.

    Parameter byte for the REJECTING state.
    """
    INSERTION = 0x60
    MAGNETIC = 0x61
    REMAINING_BILLS_IN_TRANSPORT = 0x62
    MULTIPLYING = 0x63
    CONVEYING = 0x64
    IDENTIFICATION1 = 0x65
    VERIFICATION = 0x66
    OPTIC = 0x67
    INHIBIT = 0x68
    CAPACITY = 0x69
    OPERATION = 0x6A
    LENGTH = 0x6C


class FailureCode(IntEnum):
    """Parameter byte for the GENERIC_FAILURE state."""
    STACK_MOTOR = 0x50
    TRANSPORT_MOTOR_SPEED = 0x51
    TRANSPORT_MOTOR = 0x52
    ALIGNING_MOTOR = 0x53
    INITIAL_CASSETTE_STATUS = 0x54
    OPTIC_CANAL = 0x55
    MAGNETIC_CANAL = 0x56
    CAPACITANCE_CANAL = 0x5F


# State name mapping for logging
STATE_NAMES: dict[int, str] = {
    state.value: state.name for state in DeviceState
}


def get_state_name(state_code: int | None) -> str:
    """Get human-readable state name from state code."""
    if state_code is None:
        return "UNKNOWN"
    return STATE_NAMES.get(state_code, f"UNKNOWN(0x{state_code:02X})")


def get_parameter_name(state_code: int, parameter: int) -> str | None:
    """
    Describe the parameter byte of a poll response.

    Only REJECTING and GENERIC_FAILURE carry a coded reason; for other
    states the parameter is a bill type or unused.
    """
    if state_code == DeviceState.REJECTING:
        try:
            return RejectionReason(parameter).name
        except ValueError:
            return f"UNKNOWN(0x{parameter:02X})"
    if state_code == DeviceState.GENERIC_FAILURE:
        try:
            return FailureCode(parameter).name
        except ValueError:
            return f"UNKNOWN(0x{parameter:02X})"
    return None
