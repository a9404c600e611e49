"""Response parsing for server messages."""

from __future__ import annotations

from dataclasses import dataclass

from .commands import Command
from .framing import Frame

# Every server payload starts with a 4-byte header before the message body.
PAYLOAD_HEADER_SIZE = 4


@dataclass
class ServerMessage:
    """A server message reduced to its command code and readable text."""

    command: int
    text: str

    @property
    def is_operation_result(self) -> bool:
        return self.command == Command.OPERATION_RESULT


def parse_message(frame: Frame) -> ServerMessage:
    """Decode a frame's body as text, skipping the payload header.

    Payloads shorter than the header yield an empty text.
    """
    body = frame.payload[PAYLOAD_HEADER_SIZE:]
    return ServerMessage(
        command=frame.command,
        text=body.decode("utf-8", errors="replace"),
    )
