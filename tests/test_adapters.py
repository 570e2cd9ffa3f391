"""
Tests for transports — session contract, mock, local shell, SSH.
"""

import shutil
import threading
import time
from unittest.mock import MagicMock, patch

import paramiko
import pytest

from remote_bootstrap.adapters.base import CommandResult
from remote_bootstrap.adapters.mock import MockTransport
from remote_bootstrap.adapters.shell.local import LocalTransport
from remote_bootstrap.adapters.ssh.connection import SSHTransport
from remote_bootstrap.core.errors import TransportBusyError, TransportError
from remote_bootstrap.core.models.target import SSHTarget

# ── Session contract (via the mock) ──────────────────────────────────


class TestMockTransport:
    def test_default_success(self, mock_transport):
        result = mock_transport.execute("true")
        assert result.ok
        assert mock_transport.call_count == 1

    def test_first_matching_rule_wins(self, mock_transport):
        mock_transport.set_stdout("echo", "first")
        mock_transport.set_stdout("echo hi", "second")
        assert mock_transport.execute("echo hi").stdout == "first"

    def test_connect_error(self):
        with pytest.raises(TransportError, match="refused"):
            MockTransport(connect_error="refused").connect()

    def test_closed_session_rejects_commands(self, mock_transport):
        mock_transport.close()
        mock_transport.close()  # idempotent
        with pytest.raises(TransportError, match="closed"):
            mock_transport.execute("true")

    def test_reconnect_after_close_rejected(self, mock_transport):
        mock_transport.close()
        with pytest.raises(TransportError):
            mock_transport.connect()

    def test_one_command_at_a_time(self, mock_transport):
        entered = threading.Event()
        release = threading.Event()

        def _slow(command: str) -> CommandResult:
            entered.set()
            release.wait(5)
            return CommandResult(exit_status=0)

        mock_transport.add_response("slow", _slow)
        worker = threading.Thread(target=mock_transport.execute, args=("slow",))
        worker.start()
        entered.wait(5)
        try:
            with pytest.raises(TransportBusyError):
                mock_transport.execute("fast")
        finally:
            release.set()
            worker.join(5)

    def test_execute_until_returns_early(self, mock_transport):
        mock_transport.set_stdout("run", "a\nEND\nb")
        chunks = []
        result = mock_transport.execute_until("run", lambda out: "END" in out, chunks.append)
        assert result.exit_status is None
        assert chunks == ["a\nEND\nb"]

    def test_context_manager(self):
        with MockTransport() as mock:
            assert mock.connected
        assert mock.closed


# ── Local shell ──────────────────────────────────────────────────────


@pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")
class TestLocalTransport:
    def test_execute(self):
        with LocalTransport() as t:
            result = t.execute("echo out; echo err >&2; exit 3")
        assert result.stdout == "out\n"
        assert result.stderr == "err\n"
        assert result.exit_status == 3

    def test_env_overrides(self):
        with LocalTransport(env_overrides={"RB_TEST_VALUE": "42"}) as t:
            assert t.execute("echo $RB_TEST_VALUE").stdout.strip() == "42"

    def test_execute_until_leaves_process_running(self):
        with LocalTransport() as t:
            result = t.execute_until(
                "echo ready; sleep 30",
                lambda out: "ready" in out,
            )
            assert result.exit_status is None
            assert "ready" in result.stdout

    def test_detached_process_keeps_writing(self, tmp_path):
        marker = tmp_path / "finished"
        with LocalTransport() as t:
            t.execute_until(
                f"echo ready; head -c 1000000 /dev/zero; touch {marker}; sleep 30",
                lambda out: "ready" in out,
            )
            for _ in range(100):
                if marker.exists():
                    break
                time.sleep(0.05)
            assert marker.exists()

    def test_execute_until_natural_exit(self):
        with LocalTransport() as t:
            result = t.execute_until("echo done", lambda out: False)
        assert result.exit_status == 0
        assert result.stdout == "done\n"

    def test_missing_shell(self):
        with pytest.raises(TransportError, match="not executable"):
            LocalTransport(shell="/nonexistent/sh").connect()

    def test_timeout(self):
        with LocalTransport(timeout=1) as t:
            with pytest.raises(TransportError, match="timed out"):
                t.execute("sleep 5")


# ── SSH ──────────────────────────────────────────────────────────────


class FakeChannel:
    """Minimal paramiko.Channel stand-in fed from canned chunks."""

    def __init__(self, stdout_chunks=(), stderr_chunks=(), exit_status=0):
        self._out = list(stdout_chunks)
        self._err = list(stderr_chunks)
        self._status = exit_status
        self.command = None
        self.closed = False

    def exec_command(self, command):
        self.command = command

    def shutdown_write(self):
        pass

    def recv_ready(self):
        return bool(self._out)

    def recv(self, size):
        return self._out.pop(0)

    def recv_stderr_ready(self):
        return bool(self._err)

    def recv_stderr(self, size):
        return self._err.pop(0)

    def exit_status_ready(self):
        return not self._out and not self._err

    def recv_exit_status(self):
        return self._status

    def close(self):
        self.closed = True


def _ssh(channel: FakeChannel, **kwargs) -> tuple[SSHTransport, MagicMock]:
    client = MagicMock()
    client.get_transport.return_value.open_session.return_value = channel
    client.get_transport.return_value.is_active.return_value = True
    with patch("remote_bootstrap.adapters.ssh.connection.paramiko.SSHClient", return_value=client):
        transport = SSHTransport(SSHTarget(host="h", user="u"), **kwargs).connect()
    return transport, client


class TestSSHTransport:
    def test_connect_rejects_unknown_hosts_by_default(self):
        _, client = _ssh(FakeChannel())
        policy = client.set_missing_host_key_policy.call_args[0][0]
        assert isinstance(policy, paramiko.RejectPolicy)
        kwargs = client.connect.call_args.kwargs
        assert kwargs["hostname"] == "h"
        assert kwargs["username"] == "u"

    def test_accept_unknown_hosts(self):
        _, client = _ssh(FakeChannel(), accept_unknown_hosts=True)
        policy = client.set_missing_host_key_policy.call_args[0][0]
        assert isinstance(policy, paramiko.AutoAddPolicy)

    def test_auth_failure(self):
        client = MagicMock()
        client.connect.side_effect = paramiko.AuthenticationException("bad key")
        with patch("remote_bootstrap.adapters.ssh.connection.paramiko.SSHClient", return_value=client):
            with pytest.raises(TransportError, match="authentication failed"):
                SSHTransport(SSHTarget(host="h")).connect()
        client.close.assert_called_once()

    def test_network_failure(self):
        client = MagicMock()
        client.connect.side_effect = OSError("No route to host")
        with patch("remote_bootstrap.adapters.ssh.connection.paramiko.SSHClient", return_value=client):
            with pytest.raises(TransportError, match="connection failed"):
                SSHTransport(SSHTarget(host="h")).connect()

    def test_execute_collects_both_streams(self):
        channel = FakeChannel([b"hel", b"lo\n"], [b"warn\n"], exit_status=2)
        transport, _ = _ssh(channel)
        result = transport.execute("echo hello")
        assert channel.command == "echo hello"
        assert result.stdout == "hello\n"
        assert result.stderr == "warn\n"
        assert result.exit_status == 2
        assert channel.closed

    def test_split_utf8_sequence(self):
        data = "é".encode()
        channel = FakeChannel([data[:1], data[1:]])
        transport, _ = _ssh(channel)
        assert transport.execute("x").stdout == "é"

    def test_execute_until_keeps_channel_open(self):
        channel = FakeChannel([b"abc: start\n", b"abc: end\n", b"server log\n"])
        transport, client = _ssh(channel)
        result = transport.execute_until("x", lambda out: "abc: end" in out)
        assert result.exit_status is None
        assert result.stdout == "abc: start\nabc: end\n"
        assert not channel.closed
        transport.close()
        assert channel.closed
        client.close.assert_called_once()

    def test_io_error_becomes_transport_error(self):
        channel = FakeChannel([b"x"])
        channel.recv = MagicMock(side_effect=paramiko.SSHException("reset"))
        transport, _ = _ssh(channel)
        with pytest.raises(TransportError, match="I/O error"):
            transport.execute("x")

    def test_inactive_connection(self):
        transport, client = _ssh(FakeChannel())
        client.get_transport.return_value.is_active.return_value = False
        with pytest.raises(TransportError, match="no longer active"):
            transport.execute("x")

    def test_name(self):
        transport, _ = _ssh(FakeChannel())
        assert transport.name == "ssh:u@h"
