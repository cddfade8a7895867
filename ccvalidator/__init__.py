"""
CCNET Bill Validator Driver Package.

Synchronous driver for CashCode NET (CCNET) compatible bill validators.

Example:
    from ccvalidator import CashCodeValidator, DeviceState

    with CashCodeValidator.connect('/dev/ttyUSB0') as validator:
        validator.reset()
        validator.enable_bill_types(enabled=range(24))
        if validator.poll().state == DeviceState.ESCROW_POSITION:
            validator.stack()
"""

from .constants import (
    Baud,
    Command,
    DeviceState,
    FailureCode,
    RejectionReason,
    DEFAULT_DEVICE_ADDRESS,
    get_state_name,
    get_parameter_name,
)
from .crc import (
    calculate_crc16,
    crc16_bytes,
    verify_crc16,
    append_crc,
)
from .bitset import (
    encode_bill_types,
    decode_bill_types,
)
from .exceptions import (
    ValidatorError,
    TransportError,
    ConnectionStateError,
    RetryExhausted,
    ProtocolError,
    FrameFormatError,
    ChecksumMismatch,
    DeviceRejectedError,
    DeviceNack,
    IllegalCommand,
    InvalidIndex,
)
from .transport import (
    ByteStream,
    CCNETPacket,
    CCNETTransport,
    SerialStream,
    parse_response,
)
from .protocol import (
    Bill,
    BillStatus,
    CCNETProtocol,
    Identification,
    PollResponse,
)
from .settings import (
    LoggingSettings,
    ProtocolSettings,
    SerialPortSettings,
    Settings,
    get_settings,
)
from .driver import (
    CashCodeValidator,
)


__all__ = [
    # Main driver
    'CashCodeValidator',

    # Constants and enums
    'Baud',
    'Command',
    'DeviceState',
    'FailureCode',
    'RejectionReason',
    'DEFAULT_DEVICE_ADDRESS',

    # Utility functions
    'get_state_name',
    'get_parameter_name',
    'calculate_crc16',
    'crc16_bytes',
    'verify_crc16',
    'append_crc',
    'encode_bill_types',
    'decode_bill_types',

    # Exceptions
    'ValidatorError',
    'TransportError',
    'ConnectionStateError',
    'RetryExhausted',
    'ProtocolError',
    'FrameFormatError',
    'ChecksumMismatch',
    'DeviceRejectedError',
    'DeviceNack',
    'IllegalCommand',
    'InvalidIndex',

    # Protocol components
    'ByteStream',
    'CCNETPacket',
    'CCNETTransport',
    'SerialStream',
    'parse_response',
    'CCNETProtocol',

    # Response types
    'Bill',
    'BillStatus',
    'Identification',
    'PollResponse',

    # Settings
    'LoggingSettings',
    'ProtocolSettings',
    'SerialPortSettings',
    'Settings',
    'get_settings',
]

__version__ = '1.0.0'
