"""Exception types raised by the add-queue client.

Every failure in this client is terminal: nothing is retried, and the CLI
entry point is the only place these are caught.
"""

from __future__ import annotations


class AmatsukazeClientError(Exception):
    """Base class for all client errors."""


class FlagParseError(AmatsukazeClientError):
    """Raised when command-line values fail validation."""


class InterfaceLookupError(AmatsukazeClientError):
    """Raised when the Wake-on-LAN source interface cannot be used."""


class InterfaceNotFoundError(InterfaceLookupError):
    """The named network interface does not exist."""


class NoIPv4AddressError(InterfaceLookupError):
    """The named network interface has no IPv4 address bound to it."""


class WakePacketSendError(AmatsukazeClientError):
    """Raised when the magic packet could not be handed to the local stack."""


class ServerConnectionError(AmatsukazeClientError):
    """Raised when the TCP connection to the server cannot be established."""


class WriteError(AmatsukazeClientError):
    """Raised when the request could not be written to the connection."""


class TruncatedStreamError(AmatsukazeClientError):
    """Raised when the stream ends before a complete frame was read."""

    def __init__(self, expected: int, received: int, what: str = "frame") -> None:
        self.expected = expected
        self.received = received
        super().__init__(
            f"truncated {what}: expected {expected} bytes, got {received}"
        )


class ResponseTimeoutError(AmatsukazeClientError):
    """Raised when the response loop hits its message ceiling."""
