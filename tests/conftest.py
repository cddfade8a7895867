"""
Pytest configuration for ccvalidator tests.

Provides an in-memory byte stream standing in for the serial port.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to the path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from ccvalidator.crc import append_crc  # noqa: E402
from ccvalidator.settings import ProtocolSettings, Settings  # noqa: E402


def response_frame(body: bytes, length: int | None = None) -> bytes:
    """Build a device response frame around ``body``."""
    if length is None:
        length = len(body) + 5
    return append_crc(bytes([0x02, 0x03, length]) + body)


class FakeStream:
    """
    Scripted ByteStream.

    Each read returns the next queued chunk, or b'' when the queue is
    empty (a read timeout). Writes are recorded.
    """

    def __init__(self, *chunks: bytes) -> None:
        self.chunks = list(chunks)
        self.written: list[bytes] = []
        self.reads = 0
        self.closed = False

    def queue(self, *chunks: bytes) -> None:
        self.chunks.extend(chunks)

    def read(self, size: int) -> bytes:
        self.reads += 1
        if self.chunks:
            return self.chunks.pop(0)
        return b''

    def write(self, data: bytes) -> int:
        self.written.append(bytes(data))
        return len(data)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_stream():
    """Create an empty scripted stream."""
    return FakeStream()


@pytest.fixture
def settings():
    """Settings with a small read budget."""
    return Settings(protocol=ProtocolSettings(max_read_attempts=5))


@pytest.fixture
def frame():
    """Expose the response frame builder to tests."""
    return response_frame
