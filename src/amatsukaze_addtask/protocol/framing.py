"""Message framing for the Amatsukaze server TCP protocol.

Inbound frame layout::

    +----------+----------+------------------+
    | Command  |  Length  |     Payload      |
    | 2 bytes  |  4 bytes |  Length bytes    |
    +----------+----------+------------------+

Outbound requests nest a second length in front of the body::

    +----------+--------------+--------------+------------------+
    | Command  | Outer length | Inner length |       Body       |
    | 2 bytes  |   4 bytes    |   4 bytes    | Inner len bytes  |
    +----------+--------------+--------------+------------------+

- All integers are little-endian and unsigned.
- Outer length = inner length + 4 (it covers the inner length field).
- No maximum payload length is enforced; the server is trusted.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO

from ..exceptions import TruncatedStreamError

COMMAND_SIZE = 2
LENGTH_SIZE = 4
HEADER_SIZE = COMMAND_SIZE + LENGTH_SIZE

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")


@dataclass
class Frame:
    """A parsed protocol frame."""

    command: int
    payload: bytes

    def __repr__(self) -> str:
        return (
            f"Frame(command={self.command} (0x{self.command:04X}), "
            f"payload_len={len(self.payload)})"
        )


def pack_u16(value: int) -> bytes:
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"u16 out of range: {value}")
    return _U16.pack(value)


def pack_u32(value: int) -> bytes:
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"u32 out of range: {value}")
    return _U32.pack(value)


def unpack_u16(data: bytes) -> int:
    return _U16.unpack(data)[0]


def unpack_u32(data: bytes) -> int:
    return _U32.unpack(data)[0]


def build_frame(command: int, payload: bytes = b"") -> bytes:
    """Build a single-length frame, the layout the server replies with.

    Args:
        command: 16-bit command code.
        payload: Message payload bytes.
    """
    return pack_u16(command) + pack_u32(len(payload)) + payload


def build_request_frame(command: int, body: bytes) -> bytes:
    """Build a request frame with the nested outer/inner length prefix.

    Args:
        command: 16-bit command code.
        body: Serialized request body (UTF-8 XML for Amatsukaze).

    Returns:
        ``command | len(body) + 4 | len(body) | body``
    """
    inner = pack_u32(len(body))
    outer = pack_u32(len(body) + LENGTH_SIZE)
    return pack_u16(command) + outer + inner + body


def parse_frame(data: bytes) -> Frame:
    """Parse one complete frame from the start of ``data``.

    Bytes beyond the declared payload are ignored.

    Raises:
        TruncatedStreamError: If ``data`` is shorter than the frame it declares.
    """
    if len(data) < HEADER_SIZE:
        raise TruncatedStreamError(HEADER_SIZE, len(data), "frame header")

    command = unpack_u16(data[:COMMAND_SIZE])
    length = unpack_u32(data[COMMAND_SIZE:HEADER_SIZE])
    payload = data[HEADER_SIZE : HEADER_SIZE + length]
    if len(payload) < length:
        raise TruncatedStreamError(length, len(payload), "frame payload")

    return Frame(command=command, payload=payload)


def read_exactly(stream: BinaryIO, size: int, what: str = "frame") -> bytes:
    """Read exactly ``size`` bytes from a blocking binary stream.

    Raises:
        TruncatedStreamError: If the stream hits EOF first.
    """
    buf = bytearray()
    while len(buf) < size:
        chunk = stream.read(size - len(buf))
        if not chunk:
            raise TruncatedStreamError(size, len(buf), what)
        buf += chunk
    return bytes(buf)


def read_frame(stream: BinaryIO) -> Frame:
    """Read one frame from a blocking binary stream.

    Reads 2 bytes of command, 4 bytes of length, then exactly that many
    payload bytes. A partial frame is never returned.
    """
    command = unpack_u16(read_exactly(stream, COMMAND_SIZE, "command code"))
    length = unpack_u32(read_exactly(stream, LENGTH_SIZE, "payload length"))
    payload = read_exactly(stream, length, "frame payload")
    return Frame(command=command, payload=payload)
