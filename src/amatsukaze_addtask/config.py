"""Immutable client configuration built once from command-line flags."""

from __future__ import annotations

import argparse
import ntpath

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import FlagParseError
from .models.request import DEFAULT_MODE, DEFAULT_PRIORITY, nullable
from .transport.tcp_connection import CONNECT_TIMEOUT, DEFAULT_HOST, DEFAULT_PORT
from .transport.wol import WOL_PORT, parse_mac

DEFAULT_CONNECT = f"{DEFAULT_HOST}:{DEFAULT_PORT}"
WOL_BOOT_DELAY = 10.0  # seconds to wait for the woken machine
MAX_RESPONSE_MESSAGES = 10000


def parse_server_address(text: str) -> tuple[str, int]:
    """Split ``host:port`` (or ``[v6addr]:port``) into its parts.

    Raises:
        ValueError: If the port is missing or not in 1-65535.
    """
    host, sep, port_text = text.rpartition(":")
    if not sep or not host:
        raise ValueError(f"expected host:port, got {text!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"invalid port in {text!r}") from None
    if not 1 <= port <= 65535:
        raise ValueError(f"port must be 1-65535, got {port}")
    return host, port


def remap_input_path(input_path: str, remote: str | None) -> str:
    r"""Rewrite a local input path to its location on the remote machine.

    The base name of ``input_path`` is appended to ``remote`` with a
    backslash separator, so ``/rec/foo.ts`` with remote ``\\host\share``
    becomes ``\\host\share\foo.ts``. Without ``remote`` the path is returned
    unchanged.
    """
    if not remote:
        return input_path
    if not remote.endswith("\\"):
        remote += "\\"
    # ntpath splits on both "/" and "\"
    return remote + ntpath.basename(input_path)


class ClientConfig(BaseModel):
    """Everything one run of the client needs."""

    model_config = ConfigDict(frozen=True)

    encode_path: str
    input_path: str
    profile: str
    remote_path: str | None = None
    connect: str = DEFAULT_CONNECT
    wol_mac: str | None = None
    wol_iface: str | None = None
    log_level: str = "INFO"

    mode: str = DEFAULT_MODE
    priority: int = DEFAULT_PRIORITY
    connect_timeout: float = CONNECT_TIMEOUT
    wol_port: int = WOL_PORT
    wol_delay: float = WOL_BOOT_DELAY
    max_messages: int = MAX_RESPONSE_MESSAGES

    @field_validator("connect")
    @classmethod
    def _check_connect(cls, value: str) -> str:
        parse_server_address(value)
        return value

    @field_validator("wol_mac")
    @classmethod
    def _check_mac(cls, value: str | None) -> str | None:
        value = nullable(value)
        if value is not None:
            parse_mac(value)
        return value

    @field_validator("remote_path", "wol_iface")
    @classmethod
    def _empty_to_none(cls, value: str | None) -> str | None:
        return nullable(value)

    @property
    def host(self) -> str:
        return parse_server_address(self.connect)[0]

    @property
    def port(self) -> int:
        return parse_server_address(self.connect)[1]

    @property
    def target_path(self) -> str:
        """Input path as the server should see it."""
        return remap_input_path(self.input_path, self.remote_path)

    @property
    def wake_requested(self) -> bool:
        return self.wol_mac is not None and self.wol_iface is not None

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> ClientConfig:
        """Build a config from parsed flags.

        Raises:
            FlagParseError: If a flag value fails validation.
        """
        try:
            return cls(
                encode_path=args.encode,
                input_path=args.input,
                profile=args.profile,
                remote_path=args.remote,
                connect=args.connect,
                wol_mac=args.wol,
                wol_iface=args.wol_iface,
                log_level=args.log_level,
            )
        except ValidationError as e:
            raise FlagParseError(f"failed on parse flags; {e}") from e
