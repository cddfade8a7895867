"""
Bill type mask codec.

CCNET addresses the 24 bill type slots with a 3-byte mask packed in
reverse order: bill type 23 is the most significant bit of byte 0
and bill type 0 the least significant bit of byte 2.
"""

from typing import Iterable

from .constants import BILL_MASK_LENGTH, BILL_TYPE_COUNT
from .exceptions import InvalidIndex


def encode_bill_types(indices: Iterable[int]) -> bytes:
    """
    Pack bill type indices into a 3-byte mask.

    Args:
        indices: Bill type indices in range 0..23.

    Returns:
        3-byte mask ready to be sent to the device.

    Raises:
        InvalidIndex: If an index is not an integer in 0..23.
    """
    mask = bytearray(BILL_MASK_LENGTH)

    for index in indices:
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidIndex(index)
        if not 0 <= index < BILL_TYPE_COUNT:
            raise InvalidIndex(index)

        pos = BILL_TYPE_COUNT - 1 - index
        mask[pos // 8] |= 1 << (7 - pos % 8)

    return bytes(mask)


def decode_bill_types(mask: bytes) -> frozenset[int]:
    """
    Unpack a bill type mask into the set of indices it enables.

    Shorter masks are accepted; missing trailing bytes are treated
    as empty, anything beyond the third byte is ignored.

    Args:
        mask: Up to 3 mask bytes as received from the device.

    Returns:
        Set of enabled bill type indices.
    """
    indices: set[int] = set()

    for b, value in enumerate(mask[:BILL_MASK_LENGTH]):
        shift = 16 - 8 * b
        for i in range(8):
            if value & (1 << i):
                indices.add(shift + i)

    return frozenset(indices)
