"""TCP connection to an Amatsukaze server.

The connection is strictly half-duplex: one request is written, then
response frames are read back in order by a single caller.
"""

from __future__ import annotations

import logging
import socket
from typing import BinaryIO

from ..exceptions import ServerConnectionError, WriteError
from ..protocol.framing import Frame, read_frame

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 32768
CONNECT_TIMEOUT = 5.0


class ServerConnection:
    """Manages the TCP connection to the server.

    Usage::

        with ServerConnection(host, port) as conn:
            conn.write(frame_bytes)
            frame = conn.read_frame()
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        connect_timeout: float = CONNECT_TIMEOUT,
    ) -> None:
        self._host = host
        self._port = port
        self._connect_timeout = connect_timeout
        self._sock: socket.socket | None = None
        self._reader: BinaryIO | None = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    @property
    def address(self) -> str:
        return f"{self._host}:{self._port}"

    def open(self) -> None:
        """Connect to the server within the connect timeout.

        Reads and writes afterwards block without a timeout.

        Raises:
            ServerConnectionError: On timeout, refusal or resolution failure.
        """
        try:
            sock = socket.create_connection(
                (self._host, self._port), timeout=self._connect_timeout
            )
        except OSError as e:
            raise ServerConnectionError(
                f"failed on connect to amatsukaze server {self.address}: {e}"
            ) from e

        sock.settimeout(None)
        self._sock = sock
        self._reader = sock.makefile("rb")
        logger.info("Connected to %s", self.address)

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._sock is None:
            return

        try:
            if self._reader is not None:
                self._reader.close()
            self._sock.close()
        except OSError as e:
            logger.warning("Error closing connection: %s", e)
        finally:
            self._sock = None
            self._reader = None
            logger.debug("Disconnected from %s", self.address)

    def write(self, data: bytes) -> None:
        """Write a complete message to the server.

        Raises:
            ServerConnectionError: If not connected.
            WriteError: If the write fails.
        """
        if self._sock is None:
            raise ServerConnectionError("Not connected to server")

        try:
            self._sock.sendall(data)
        except OSError as e:
            raise WriteError(f"failed on send add request: {e}") from e

    def read_frame(self) -> Frame:
        """Block until one complete frame has been read.

        Raises:
            ServerConnectionError: If not connected or the read fails.
            TruncatedStreamError: If the server closes mid-frame.
        """
        if self._reader is None:
            raise ServerConnectionError("Not connected to server")

        try:
            return read_frame(self._reader)
        except OSError as e:
            raise ServerConnectionError(f"failed on reading response: {e}") from e

    def __enter__(self) -> ServerConnection:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
