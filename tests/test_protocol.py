"""
Unit tests for the CCNET command table and response decoders.
"""

import pytest

from ccvalidator.constants import Command, DeviceState, RejectionReason
from ccvalidator.crc import verify_crc16
from ccvalidator.exceptions import (
    DeviceNack,
    FrameFormatError,
    IllegalCommand,
    InvalidIndex,
    RetryExhausted,
)
from ccvalidator.protocol import (
    Bill,
    BillStatus,
    CCNETProtocol,
    PollResponse,
    decode_bill_table,
    decode_exponent,
    decode_identification,
    decode_poll,
    decode_status,
)
from ccvalidator.transport import CCNETTransport

from conftest import FakeStream, response_frame


ACK_FRAME = bytes([0x02, 0x03, 0x06, 0x00, 0xC2, 0x82])

IDENTIFICATION = (
    b'SM-RU1353      '     # part number, 15 bytes
    + b' '
    + b'41K03458201'       # serial number, 11 bytes
    + b' '
    + bytes([0x01, 0x02, 0x03, 0x04, 0x05, 0x06])  # asset number
)


def bill_table(*entries: bytes) -> bytes:
    """Pad the given 5-byte entries to a full 24-entry table."""
    table = b''.join(entries)
    return table + bytes(120 - len(table))


class EchoDevice(FakeStream):
    """
    Stub validator that answers from what it was last configured with.

    ENABLE BILL TYPES stores its payload and answers ACK; GET STATUS
    answers with the stored payload. ACK frames get no reply.
    """

    def __init__(self) -> None:
        super().__init__()
        self.masks = bytes(6)

    def write(self, data: bytes) -> int:
        written = super().write(data)
        command, payload = data[3], data[4:-2]
        if command == Command.ENABLE_BILL_TYPES:
            self.masks = payload
            self.queue(ACK_FRAME)
        elif command == Command.GET_STATUS:
            self.queue(response_frame(self.masks))
        return written


def make_protocol(stream) -> CCNETProtocol:
    return CCNETProtocol(CCNETTransport(stream, max_read_attempts=5))


def sent_commands(stream: FakeStream) -> list[int]:
    return [frame[3] for frame in stream.written]


class TestDecoders:
    """Tests for response decoders."""

    def test_poll_with_parameter(self):
        """Test state and parameter bytes."""
        response = decode_poll(bytes([0x1C, 0x68]))
        assert response.state == DeviceState.REJECTING
        assert response.parameter == RejectionReason.INHIBIT
        assert response.parameter_name == "INHIBIT"

    def test_poll_without_parameter(self):
        """Test absent parameter defaults to 0."""
        response = decode_poll(bytes([0x14]))
        assert response == PollResponse(state=DeviceState.IDLING, parameter=0)
        assert response.state_name == "IDLING"
        assert response.parameter_name is None

    def test_poll_unknown_state(self):
        """Test unknown state codes are kept as int."""
        response = decode_poll(bytes([0x99]))
        assert response.state == 0x99
        assert "UNKNOWN" in response.state_name

    def test_poll_generic_failure(self):
        """Test failure sub-code naming."""
        response = decode_poll(bytes([0x47, 0x50]))
        assert response.parameter_name == "STACK_MOTOR"

    def test_poll_empty(self):
        """Test empty poll response is rejected."""
        with pytest.raises(FrameFormatError):
            decode_poll(b'')

    def test_status(self):
        """Test enabled from bytes 0-2 and security from byte 4 on."""
        status = decode_status(bytes([0x00, 0x00, 0x07, 0xFF, 0x01, 0x80]))
        assert status.enabled == {0, 1, 2}
        assert status.security == {16, 15}

    def test_status_skips_byte_three(self):
        """Test byte 3 never contributes to either set."""
        status = decode_status(bytes([0x00, 0x00, 0x00, 0xFF, 0x00, 0x00]))
        assert status == BillStatus()

    def test_status_too_short(self):
        """Test status shorter than the enabled mask is rejected."""
        with pytest.raises(FrameFormatError):
            decode_status(b'\x00\x00')

    def test_identification(self):
        """Test fixed-offset identification fields."""
        identification = decode_identification(IDENTIFICATION)
        assert identification.part_number == "SM-RU1353"
        assert identification.serial_number == "41K03458201"
        assert identification.asset_number == bytes([1, 2, 3, 4, 5, 6])

    def test_identification_too_short(self):
        """Test short identification fails with FrameFormatError."""
        with pytest.raises(FrameFormatError):
            decode_identification(IDENTIFICATION[:30])

    @pytest.mark.parametrize("value, exponent", [
        (0x00, 0),
        (0x02, 2),
        (0x80, 128),
        (0x81, -1),
        (0x82, -2),
        (0x85, -5),
    ])
    def test_exponent(self, value, exponent):
        """Test biased exponent decoding."""
        assert decode_exponent(value) == exponent

    def test_bill_table(self):
        """Test denomination and country decoding."""
        bills = decode_bill_table(bill_table(
            b'\x05RUS\x00',
            b'\x05USD\x82',
            b'\x01RUS\x03',
        ))

        assert len(bills) == 24
        assert bills[0] == Bill(denomination=5.0, country_code="RUS")
        assert bills[1].denomination == pytest.approx(0.05)
        assert bills[1].country_code == "USD"
        assert bills[2].denomination == 1000.0
        assert bills[23] == Bill(denomination=0.0, country_code="")

    def test_bill_table_last_entry(self):
        """Test the exponent of the last entry is its fifth byte."""
        table = bytearray(bill_table())
        table[115:120] = b'\x02EUR\x01'
        bills = decode_bill_table(bytes(table))
        assert bills[23] == Bill(denomination=20.0, country_code="EUR")

    def test_bill_table_too_short(self):
        """Test truncated table is rejected."""
        with pytest.raises(FrameFormatError):
            decode_bill_table(bytes(119))


class TestCCNETProtocol:
    """Tests for CCNETProtocol commands."""

    def test_reset(self, fake_stream):
        """Test RESET answered with bare ACK."""
        fake_stream.queue(ACK_FRAME)
        make_protocol(fake_stream).reset()

        assert fake_stream.written == [bytes([0x02, 0x03, 0x06, 0x30, 0x41, 0xB3])]

    def test_poll(self, fake_stream):
        """Test POLL decodes state and acknowledges."""
        fake_stream.queue(response_frame(bytes([0x80, 0x04])))
        response = make_protocol(fake_stream).poll()

        assert response.state == DeviceState.ESCROW_POSITION
        assert response.parameter == 4
        assert sent_commands(fake_stream) == [Command.POLL, Command.ACK]

    def test_enable_bill_types_payload(self, fake_stream):
        """Test two encoded masks are sent."""
        fake_stream.queue(ACK_FRAME)
        make_protocol(fake_stream).enable_bill_types({0, 1, 2}, {23})

        frame = fake_stream.written[0]
        assert frame[2] == 12
        assert frame[3] == Command.ENABLE_BILL_TYPES
        assert frame[4:10] == bytes([0x00, 0x00, 0x07, 0x80, 0x00, 0x00])
        assert verify_crc16(frame)

    def test_enable_bill_types_default_all(self, fake_stream):
        """Test default enables every bill type without escrow."""
        fake_stream.queue(ACK_FRAME)
        make_protocol(fake_stream).enable_bill_types()
        assert fake_stream.written[0][4:10] == bytes([0xFF, 0xFF, 0xFF, 0, 0, 0])

    def test_enable_invalid_index_sends_nothing(self, fake_stream):
        """Test codec errors abort before writing."""
        with pytest.raises(InvalidIndex):
            make_protocol(fake_stream).enable_bill_types({0, 24})
        assert fake_stream.written == []

    def test_disable_bill_types(self, fake_stream):
        """Test disable sends empty masks."""
        fake_stream.queue(ACK_FRAME)
        make_protocol(fake_stream).disable_bill_types()
        assert fake_stream.written[0][4:10] == bytes(6)

    def test_set_security(self, fake_stream):
        """Test one encoded mask is sent."""
        fake_stream.queue(ACK_FRAME)
        make_protocol(fake_stream).set_security([8])

        frame = fake_stream.written[0]
        assert frame[2] == 9
        assert frame[3] == Command.SET_SECURITY
        assert frame[4:7] == bytes([0x00, 0x01, 0x00])

    def test_enable_then_status_round_trip(self):
        """Test enabled set read back from a device echoing the masks."""
        device = EchoDevice()
        protocol = make_protocol(device)

        protocol.enable_bill_types({0, 1, 2}, set())
        status = protocol.get_status()

        assert status.enabled == {0, 1, 2}
        assert status.security == set()
        assert sent_commands(device) == [
            Command.ENABLE_BILL_TYPES,
            Command.GET_STATUS,
            Command.ACK,
        ]

    def test_get_identification(self, fake_stream):
        """Test IDENTIFICATION decoding end to end."""
        fake_stream.queue(response_frame(IDENTIFICATION))
        identification = make_protocol(fake_stream).get_identification()
        assert identification.serial_number == "41K03458201"

    def test_get_bill_table(self, fake_stream):
        """Test GET BILL TABLE decoding end to end."""
        fake_stream.queue(response_frame(bill_table(b'\x01RUS\x01')))
        bills = make_protocol(fake_stream).get_bill_table()
        assert bills[0] == Bill(denomination=10.0, country_code="RUS")

    def test_get_crc32_returned_as_is(self, fake_stream):
        """Test GET CRC32 returns raw response bytes."""
        fake_stream.queue(response_frame(b'\xDE\xAD\xBE\xEF'))
        assert make_protocol(fake_stream).get_crc32() == b'\xDE\xAD\xBE\xEF'
        assert fake_stream.written[0][3] == Command.GET_CRC32

    def test_barcode_parameters(self, fake_stream):
        """Test barcode parameters payload."""
        fake_stream.queue(ACK_FRAME)
        make_protocol(fake_stream).set_barcode_parameters(0x01, 18)

        frame = fake_stream.written[0]
        assert frame[3] == Command.BARCODE
        assert frame[4:6] == bytes([0x01, 18])

    def test_extract_barcode_data(self, fake_stream):
        """Test barcode extraction returns raw bytes."""
        fake_stream.queue(response_frame(b'123456789012345678'))
        data = make_protocol(fake_stream).extract_barcode_data()
        assert data == b'123456789012345678'
        assert fake_stream.written[0][2] == 6

    @pytest.mark.parametrize("method, command", [
        ("stack", Command.STACK),
        ("return_bill", Command.RETURN),
        ("hold", Command.HOLD),
    ])
    def test_escrow_commands(self, fake_stream, method, command):
        """Test escrow commands discard the ACK reply."""
        fake_stream.queue(ACK_FRAME)
        assert getattr(make_protocol(fake_stream), method)() is None
        assert sent_commands(fake_stream) == [command]

    def test_send_ack_and_nak(self, fake_stream):
        """Test controller acknowledgements are write-only."""
        protocol = make_protocol(fake_stream)
        protocol.send_ack()
        protocol.send_nak()

        assert sent_commands(fake_stream) == [Command.ACK, Command.NAK]
        assert fake_stream.reads == 0

    def test_nack_propagates(self, fake_stream):
        """Test device NAK surfaces to the caller."""
        fake_stream.queue(response_frame(b'\xFF'))
        with pytest.raises(DeviceNack):
            make_protocol(fake_stream).stack()

    def test_illegal_command_propagates(self, fake_stream):
        """Test illegal command surfaces to the caller."""
        fake_stream.queue(response_frame(b'\x30'))
        with pytest.raises(IllegalCommand):
            make_protocol(fake_stream).get_crc32()

    def test_silent_device(self, fake_stream):
        """Test no reply surfaces RetryExhausted without retrying the command."""
        with pytest.raises(RetryExhausted):
            make_protocol(fake_stream).poll()
        assert sent_commands(fake_stream) == [Command.POLL]
        assert fake_stream.reads == 5
