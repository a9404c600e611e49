"""Command codes and request builders.

Requests sent by the client use codes from 100 upwards; notifications sent
by the server use codes from 200 upwards.
"""

from __future__ import annotations

import logging
from enum import IntEnum

from ..models.request import AddQueueRequest
from .framing import build_request_frame

logger = logging.getLogger(__name__)


class Command(IntEnum):
    """Command codes used by this client."""

    ADD_QUEUE = 0x66
    OPERATION_RESULT = 0xD2


def build_add_queue(request: AddQueueRequest) -> bytes:
    """Build the framed AddQueue request (command 0x66)."""
    body = request.to_bytes()
    logger.debug("AddQueue request: %s", body.decode("utf-8"))
    return build_request_frame(Command.ADD_QUEUE.value, body)
