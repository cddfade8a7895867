"""
CRC16 calculation for CCNET frames.

Uses polynomial 0x08408 (bit-reversed CCITT 0x1021), register
initialised to zero, bytes processed LSB first. The CRC travels
on the wire as 2 bytes in little-endian order.
"""

from .constants import CRC_LENGTH, CRC_POLYNOMIAL


def calculate_crc16(data: bytes) -> int:
    """
    Calculate CRC16 for CCNET frame bytes.

    Args:
        data: Bytes to calculate CRC for (excluding CRC bytes).

    Returns:
        16-bit CRC value.

    Example:
        >>> hex(calculate_crc16(bytes([0x02, 0x03, 0x06, 0x33])))
        '0x81da'
    """
    crc: int = 0

    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x0001:
                crc = (crc >> 1) ^ CRC_POLYNOMIAL
            else:
                crc = crc >> 1

    return crc


def crc16_bytes(data: bytes) -> bytes:
    """Return the CRC of ``data`` as 2 little-endian bytes."""
    return calculate_crc16(data).to_bytes(CRC_LENGTH, byteorder='little')


def append_crc(data: bytes) -> bytes:
    """
    Append CRC16 checksum to data.

    Args:
        data: Packet data without CRC.

    Returns:
        Packet data with CRC appended.
    """
    return data + crc16_bytes(data)


def verify_crc16(data: bytes) -> bool:
    """
    Verify the trailing CRC of a complete CCNET frame.

    Args:
        data: Complete frame including CRC bytes.

    Returns:
        True if the trailing 2 bytes match the CRC of the rest.
    """
    if len(data) <= CRC_LENGTH:
        return False

    received = int.from_bytes(data[-CRC_LENGTH:], byteorder='little')
    return received == calculate_crc16(data[:-CRC_LENGTH])
