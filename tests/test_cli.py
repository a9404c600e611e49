"""Tests for the command-line orchestration."""

import logging
import os
from unittest.mock import MagicMock, patch

import pytest

from amatsukaze_addtask import cli
from amatsukaze_addtask.cli import build_parser, main, run, wait_for_result
from amatsukaze_addtask.config import ClientConfig
from amatsukaze_addtask.exceptions import (
    NoIPv4AddressError,
    ResponseTimeoutError,
    ServerConnectionError,
    TruncatedStreamError,
)
from amatsukaze_addtask.protocol.commands import Command
from amatsukaze_addtask.protocol.framing import Frame, unpack_u16

ARGV = ["-e", "D:\\out", "-i", "/rec/foo.ts", "-p", "Default", "-r", "\\\\nas\\rec"]


def _config(*extra: str) -> ClientConfig:
    return ClientConfig.from_args(build_parser().parse_args(ARGV + list(extra)))


def _message(command: int, text: str) -> Frame:
    return Frame(command, b"\x00\x00\x00\x00" + text.encode("utf-8"))


class FakeConnection:
    """Stands in for ServerConnection and replays canned frames."""

    instances: list = []

    def __init__(self, host, port, connect_timeout, frames=()):
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.frames = list(frames)
        self.written = []
        self.closed = False
        FakeConnection.instances.append(self)

    def write(self, data):
        self.written.append(data)

    def read_frame(self):
        if not self.frames:
            raise TruncatedStreamError(2, 0, "command code")
        return self.frames.pop(0)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True


@pytest.fixture(autouse=True)
def _no_logging_setup():
    """Keep main() from replacing pytest's log handlers."""
    with patch.object(cli, "configure_logging"):
        yield


@pytest.fixture
def fake_conn():
    FakeConnection.instances = []

    def install(frames):
        def factory(host, port, connect_timeout):
            return FakeConnection(host, port, connect_timeout, frames)
        return patch.object(cli, "ServerConnection", side_effect=factory)

    return install


def test_run_sends_request_and_stops_at_result(fake_conn, caplog):
    frames = [
        _message(201, "queued"),
        _message(Command.OPERATION_RESULT, "1 item added"),
        _message(201, "never read"),
    ]
    with fake_conn(frames), caplog.at_level(logging.INFO):
        run(_config("-c", "10.0.0.5:40000"))

    conn = FakeConnection.instances[0]
    assert (conn.host, conn.port, conn.connect_timeout) == ("10.0.0.5", 40000, 5.0)
    assert conn.closed
    assert len(conn.written) == 1
    data = conn.written[0]
    assert unpack_u16(data[:2]) == Command.ADD_QUEUE
    assert b"<Path>\\\\nas\\rec\\foo.ts</Path>" in data
    assert b"<DstPath>D:\\out</DstPath>" in data
    assert b"<Profile>Default</Profile>" in data
    assert len(conn.frames) == 1
    assert "queued" in caplog.text
    assert "1 item added" in caplog.text


def test_run_truncated_response(fake_conn):
    with fake_conn([_message(201, "queued")]):
        with pytest.raises(TruncatedStreamError):
            run(_config())
    assert FakeConnection.instances[0].closed


def test_wait_for_result_ceiling():
    conn = MagicMock()
    conn.read_frame.return_value = _message(201, "progress")
    with pytest.raises(ResponseTimeoutError):
        wait_for_result(conn, max_messages=5)
    assert conn.read_frame.call_count == 5


def test_wait_for_result_stops_on_last_allowed_message():
    conn = MagicMock()
    conn.read_frame.side_effect = [_message(201, "a"), _message(210, "b")]
    wait_for_result(conn, max_messages=2)


def test_run_wakes_server_first(fake_conn):
    calls = []
    frames = [_message(Command.OPERATION_RESULT, "ok")]
    with fake_conn(frames), \
            patch.object(cli, "send_magic_packet", side_effect=lambda *a, **k: calls.append("wol")) as wol, \
            patch.object(cli.time, "sleep", side_effect=lambda s: calls.append(("sleep", s))):
        run(_config("--wol", "00:11:22:aa:bb:cc", "--wol-iface", "eth0"))

    wol.assert_called_once_with("00:11:22:aa:bb:cc", "eth0", port=9999)
    assert calls == ["wol", ("sleep", 10.0)]


def test_run_skips_wake_with_only_mac(fake_conn, caplog):
    with fake_conn([_message(210, "ok")]), \
            patch.object(cli, "send_magic_packet") as wol, \
            patch.object(cli.time, "sleep") as sleep:
        run(_config("--wol", "00:11:22:aa:bb:cc"))

    wol.assert_not_called()
    sleep.assert_not_called()
    assert "--wol-iface" in caplog.text


def test_main_success(fake_conn):
    with fake_conn([_message(210, "ok")]):
        assert main(ARGV) == 0


def test_main_connection_failure():
    with patch.object(cli, "ServerConnection") as conn_cls:
        conn_cls.return_value.__enter__.side_effect = ServerConnectionError("refused")
        assert main(ARGV) == 1


def test_main_wake_failure_does_not_connect():
    with patch.object(cli, "send_magic_packet", side_effect=NoIPv4AddressError("eth0")), \
            patch.object(cli, "ServerConnection") as conn_cls:
        assert main(ARGV + ["--wol", "00:11:22:aa:bb:cc", "--wol-iface", "eth0"]) == 1
    conn_cls.assert_not_called()


def test_main_bad_flag_value():
    assert main(ARGV + ["-c", "nowhere"]) == 1


def test_main_missing_flags():
    with pytest.raises(SystemExit) as excinfo:
        main(["-i", "in.ts"])
    assert excinfo.value.code == 2


def test_main_undecodable_input_name(fake_conn):
    """A file name that is not valid UTF-8 is still submitted."""
    argv = ["-e", "D:\\out", "-i", os.fsdecode(b"/rec/\x98\x5e\x89\xe6.ts"),
            "-p", "Default", "-r", "\\\\nas\\rec"]
    with fake_conn([_message(210, "ok")]):
        assert main(argv) == 0

    data = FakeConnection.instances[0].written[0]
    assert "<Path>\\\\nas\\rec\\\ufffd^\ufffd\ufffd.ts</Path>".encode("utf-8") in data


def test_request_encoded_before_network(fake_conn):
    """Encoding problems surface before waking the server or connecting."""
    with fake_conn([]) as conn_cls, \
            patch.object(cli, "build_add_queue", side_effect=ValueError("bad")), \
            patch.object(cli, "send_magic_packet") as wol:
        with pytest.raises(ValueError):
            run(_config("--wol", "00:11:22:aa:bb:cc", "--wol-iface", "eth0"))

    wol.assert_not_called()
    conn_cls.assert_not_called()
