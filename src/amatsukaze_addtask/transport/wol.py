"""Wake-on-LAN magic packets sent from a chosen local interface.

A magic packet is 6 bytes of ``0xFF`` followed by the target's 6-byte
hardware address repeated 16 times (102 bytes). It is broadcast over UDP
and never acknowledged, so a successful send only means the local stack
accepted it.
"""

from __future__ import annotations

import logging
import re
import socket

import psutil

from ..exceptions import (
    InterfaceNotFoundError,
    NoIPv4AddressError,
    WakePacketSendError,
)

logger = logging.getLogger(__name__)

BROADCAST_ADDRESS = "255.255.255.255"
WOL_PORT = 9999
MAC_SIZE = 6
MAGIC_PACKET_SIZE = 6 + 16 * MAC_SIZE

_MAC_SEPARATED = re.compile(r"^[0-9A-Fa-f]{2}([:-])(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}$")
_MAC_DOTTED = re.compile(r"^[0-9A-Fa-f]{4}\.[0-9A-Fa-f]{4}\.[0-9A-Fa-f]{4}$")
_MAC_BARE = re.compile(r"^[0-9A-Fa-f]{12}$")


def parse_mac(text: str) -> bytes:
    """Parse a 6-octet MAC address.

    Accepts ``aa:bb:cc:dd:ee:ff``, ``aa-bb-cc-dd-ee-ff``, ``aabb.ccdd.eeff``
    and ``aabbccddeeff`` (any case).

    Raises:
        ValueError: If ``text`` is not one of those forms.
    """
    text = text.strip()
    if _MAC_SEPARATED.match(text) or _MAC_DOTTED.match(text) or _MAC_BARE.match(text):
        return bytes.fromhex(re.sub(r"[:.\-]", "", text))
    raise ValueError(f"invalid MAC address: {text!r}")


def build_magic_packet(mac: bytes | str) -> bytes:
    """Build the 102-byte magic packet for ``mac``.

    Args:
        mac: A 6-byte hardware address, or a string accepted by :func:`parse_mac`.
    """
    if isinstance(mac, str):
        mac = parse_mac(mac)
    if len(mac) != MAC_SIZE:
        raise ValueError(f"MAC address must be {MAC_SIZE} bytes, got {len(mac)}")
    return b"\xff" * 6 + bytes(mac) * 16


def interface_ipv4_address(name: str) -> str:
    """Return the first IPv4 address bound to the named local interface.

    Raises:
        InterfaceNotFoundError: No interface is called ``name``.
        NoIPv4AddressError: The interface has no IPv4 address.
    """
    addrs = psutil.net_if_addrs()
    if name not in addrs:
        raise InterfaceNotFoundError(f"interface {name} not found")

    for addr in addrs[name]:
        if addr.family == socket.AF_INET:
            return addr.address

    raise NoIPv4AddressError(f"interface {name} doesn't have an ipv4 address")


def send_magic_packet(
    mac: bytes | str,
    iface: str,
    port: int = WOL_PORT,
    address: str = BROADCAST_ADDRESS,
) -> None:
    """Broadcast a magic packet for ``mac`` from the address of ``iface``.

    Raises:
        InterfaceLookupError: ``iface`` is missing or has no IPv4 address.
        WakePacketSendError: The socket could not be bound or written.
    """
    packet = build_magic_packet(mac)
    local_addr = interface_ipv4_address(iface)
    logger.info("local addr for %s: %s", iface, local_addr)

    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind((local_addr, 0))
            sock.sendto(packet, (address, port))
    except OSError as e:
        raise WakePacketSendError(
            f"failed to send magic packet to {address}:{port}: {e}"
        ) from e

    logger.info("Sent magic packet for %s via %s", packet[6:12].hex(":"), iface)
