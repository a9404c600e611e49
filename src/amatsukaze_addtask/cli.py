"""Command-line entry point: submit one file to an Amatsukaze server queue.

Parses flags, optionally wakes the server with a magic packet, sends a
single AddQueue request and logs server messages until the operation
result arrives.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from .config import DEFAULT_CONNECT, ClientConfig
from .exceptions import AmatsukazeClientError, ResponseTimeoutError
from .models.request import AddQueueRequest
from .protocol.commands import build_add_queue
from .protocol.parser import parse_message
from .transport.tcp_connection import ServerConnection
from .transport.wol import send_magic_packet

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="amatsukaze-addtask",
        description="Add an encode job to an Amatsukaze server queue.",
    )
    parser.add_argument(
        "-e", "--encode", required=True, help="Path to save encoded output."
    )
    parser.add_argument(
        "-i", "--input", required=True, help="Path to input file."
    )
    parser.add_argument(
        "-r", "--remote", default=None,
        help="Path on the remote device to the folder of the input file.",
    )
    parser.add_argument(
        "-c", "--connect", default=DEFAULT_CONNECT,
        help=f"Amatsukaze server address as host:port (default: {DEFAULT_CONNECT}).",
    )
    parser.add_argument(
        "-p", "--profile", required=True, help="Amatsukaze encoding profile."
    )
    parser.add_argument(
        "-w", "--wol", default=None, help="Wake-on-LAN target MAC address."
    )
    parser.add_argument(
        "-I", "--wol-iface", default=None,
        help="Local network interface to send the Wake-on-LAN packet from.",
    )
    parser.add_argument(
        "--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level.",
    )
    return parser


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr at ``level``."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)


def wait_for_result(conn: ServerConnection, max_messages: int) -> None:
    """Log server messages until the operation result arrives.

    Raises:
        ResponseTimeoutError: If ``max_messages`` frames pass without it.
        TruncatedStreamError: If the server closes mid-frame.
    """
    for _ in range(max_messages):
        message = parse_message(conn.read_frame())
        logger.info("%s", message.text)
        if message.is_operation_result:
            return
    raise ResponseTimeoutError(
        f"no operation result after {max_messages} messages"
    )


def run(config: ClientConfig) -> None:
    """Submit the configured file and wait for the server's answer."""
    request = AddQueueRequest.for_file(
        config.target_path,
        config.encode_path,
        config.profile,
        mode=config.mode,
        priority=config.priority,
    )
    message = build_add_queue(request)

    if config.wake_requested:
        send_magic_packet(config.wol_mac, config.wol_iface, port=config.wol_port)
        logger.info("Waiting %.0fs for the server to wake up", config.wol_delay)
        time.sleep(config.wol_delay)
    elif config.wol_mac or config.wol_iface:
        logger.warning("Both --wol and --wol-iface are needed to wake the server; skipping")

    with ServerConnection(config.host, config.port, config.connect_timeout) as conn:
        conn.write(message)
        logger.info("Sent AddQueue request %s for %s", request.request_id, config.target_path)
        wait_for_result(conn, config.max_messages)


def main(argv: list[str] | None = None) -> int:
    """Run the client and return the process exit status."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = ClientConfig.from_args(args)
        logger.debug("Config: %s", config)
        run(config)
    except AmatsukazeClientError as e:
        logger.critical("%s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
