"""Protocol layer: message framing, command codes, and response parsing."""

from .framing import Frame, build_frame, parse_frame, read_frame
from .commands import Command, build_add_queue
